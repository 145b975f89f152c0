"""
core/db.py -- Shared SQLAlchemy engine construction.

UserStore, OTPStore and DocumentStore all build their engine here so the SQLite
tweaks live in one place.

Layer rule: core/ is the kernel. No imports from api/, auth/, or resources/.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine with the SQLite tweaks every store needs.

    check_same_thread=False because FastAPI runs sync handlers in a threadpool.
    WAL is skipped for in-memory databases, where it does not apply.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite") and "memory" not in db_url:
        event.listen(engine, "connect", set_wal_mode)
    return engine
