"""
resources/schemas.py -- Validation schemas and the entity registry.

One Pydantic v2 model per campus entity. These are what the v2 routes check
payloads against; v1 routes store payloads as sent.

Every model forbids unknown fields and is evaluated in full, so a rejected
payload reports all of its failing fields at once.

ENTITIES is the registry the route composer iterates: adding an entity means
adding a model here and one EntityBinding line below.
"""

from datetime import date
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from resources.models import EntityBinding

# ---------------------------------------------------------------------------
# Shared field types
# ---------------------------------------------------------------------------

PositiveId = Annotated[int, Field(gt=0)]
AnyId = int
NonNegative = Annotated[float, Field(ge=0)]
PositiveCount = Annotated[int, Field(gt=0)]


class _EntitySchema(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AttendanceStatusEnum(str, Enum):
    present = "Present"
    absent = "Absent"
    late = "Late"
    excused = "Excused"


class GenderEnum(str, Enum):
    male = "Male"
    female = "Female"
    other = "Other"


class LeaveTypeEnum(str, Enum):
    sick = "Sick"
    vacation = "Vacation"
    emergency = "Emergency"
    other = "Other"


class LeaveStatusEnum(str, Enum):
    approved = "Approved"
    pending = "Pending"
    rejected = "Rejected"


class StudentStatusEnum(str, Enum):
    active = "Active"
    inactive = "Inactive"
    graduated = "Graduated"
    dropped = "Dropped"


class CivilStatusEnum(str, Enum):
    single = "Single"
    married = "Married"
    divorced = "Divorced"
    widowed = "Widowed"


# ---------------------------------------------------------------------------
# Library
# ---------------------------------------------------------------------------


class Book(_EntitySchema):
    Book_ID: PositiveId
    Student_ID: Optional[PositiveId] = None
    Title: str = Field(max_length=200)
    Author: str = Field(max_length=100)
    Publisher: Optional[str] = Field(default=None, max_length=100)
    Year_of_Publication: Optional[date] = None
    Available_Copies: int = Field(ge=0)
    Total_Copies: int = Field(ge=0)
    Category_ID: PositiveId
    Shelf_ID: PositiveId


class Category(_EntitySchema):
    Category_ID: PositiveId
    Category_Name: str = Field(max_length=100)


class Shelf(_EntitySchema):
    Shelf_ID: AnyId
    Shelf_Name: str = Field(max_length=100)
    Category_ID: AnyId
    Location: str = Field(max_length=200)


class Librarian(_EntitySchema):
    Librarian_ID: AnyId
    Name: str = Field(max_length=100)
    Email: EmailStr
    Phone_Number: int


class Transaction(_EntitySchema):
    Transaction_ID: AnyId
    Student_ID: AnyId
    Book_ID: AnyId
    Faculty_ID: AnyId
    Borrow_Date: date
    Return_Date: date
    Fine: NonNegative


class Fine(_EntitySchema):
    Fine_ID: AnyId
    Student_ID: AnyId
    Transaction_ID: AnyId
    Amount: NonNegative
    Status: str = Field(max_length=20)


# ---------------------------------------------------------------------------
# Academics
# ---------------------------------------------------------------------------


class Course(_EntitySchema):
    Course_ID: int
    Course_name: str = Field(max_length=100)
    Credits: PositiveCount
    Catalog_no: str = Field(max_length=50)
    Academic_yr: PositiveCount


class Subject(_EntitySchema):
    Subject_ID: AnyId
    SubjectName: str = Field(max_length=100)
    SubjectDescription: Optional[str] = Field(default=None, max_length=500)
    Course_ID: AnyId


class Schedule(_EntitySchema):
    Schedule_ID: int
    Course_ID: int
    Teacher: str
    Days: str
    Class_time: str
    Room: str
    Lecture: PositiveCount
    Laboratory: PositiveCount
    Units: PositiveCount


class Enrollment(_EntitySchema):
    Enrollment_ID: AnyId
    Student_ID: AnyId
    Course_ID: AnyId
    EnrollmentDate: date


class Grade(_EntitySchema):
    Grade_ID: int
    Student_ID: int
    Subj_desc: str
    Units: PositiveCount
    Credits: PositiveCount
    Remarks: Optional[str] = None


class Department(_EntitySchema):
    Department_ID: AnyId
    Department_Name: str = Field(max_length=100)
    Department_Head: str = Field(max_length=50)


# ---------------------------------------------------------------------------
# People
# ---------------------------------------------------------------------------


class Student(_EntitySchema):
    Student_ID: AnyId
    StudentStatus: StudentStatusEnum
    YearLevel: int = Field(ge=1, le=6)
    FirstName: str = Field(max_length=50)
    LastName: str = Field(max_length=50)
    MiddleName: Optional[str] = Field(default=None, max_length=50)
    Address: str = Field(max_length=255)
    Email: EmailStr
    Phone: int
    DateOfBirth: date
    PlaceOfBirth: str = Field(max_length=100)
    Sex: GenderEnum
    Religion: str = Field(max_length=50)
    Nationality: str = Field(max_length=50)
    CivilStatus: CivilStatusEnum
    Occupation: Optional[str] = Field(default=None, max_length=100)
    WorkAddress: Optional[str] = Field(default=None, max_length=255)
    Course_ID: AnyId
    Subject_ID: AnyId
    Enrollment_ID: AnyId


class Faculty(_EntitySchema):
    Faculty_ID: AnyId
    First_Name: str = Field(max_length=50)
    Last_Name: str = Field(max_length=50)
    Gender: GenderEnum
    Age: PositiveCount
    Email: EmailStr
    Contact: str
    Faculty_Role: str
    Department_ID: AnyId
    Leave_ID: AnyId
    Attendance_ID: AnyId
    Student_Grade: str


class Attendance(_EntitySchema):
    Attendance_ID: AnyId
    Date: date
    Status: AttendanceStatusEnum


class Leave(_EntitySchema):
    Leave_ID: AnyId
    Leave_Type: LeaveTypeEnum
    Faculty_ID: AnyId
    Date: date
    Status: LeaveStatusEnum


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

ENTITIES: tuple[EntityBinding, ...] = (
    EntityBinding("attendance", "Attendance_ID", Attendance, "Attendance"),
    EntityBinding("book", "Book_ID", Book, "Books"),
    EntityBinding("category", "Category_ID", Category, "Categories"),
    EntityBinding("course", "Course_ID", Course, "Courses"),
    EntityBinding("department", "Department_ID", Department, "Departments"),
    EntityBinding("enrollment", "Enrollment_ID", Enrollment, "Enrollments"),
    EntityBinding("faculty", "Faculty_ID", Faculty, "Faculty"),
    EntityBinding("fine", "Fine_ID", Fine, "Fines"),
    EntityBinding("grade", "Grade_ID", Grade, "Grades"),
    EntityBinding("leave", "Leave_ID", Leave, "Leaves"),
    EntityBinding("librarian", "Librarian_ID", Librarian, "Librarians"),
    EntityBinding("schedule", "Schedule_ID", Schedule, "Schedules"),
    EntityBinding("shelf", "Shelf_ID", Shelf, "Shelves"),
    EntityBinding("student", "Student_ID", Student, "Students"),
    EntityBinding("subject", "Subject_ID", Subject, "Subjects"),
    EntityBinding("transaction", "Transaction_ID", Transaction, "Transactions"),
)


def get_binding(name: str) -> EntityBinding:
    for binding in ENTITIES:
        if binding.name == name:
            return binding
    raise KeyError(name)
