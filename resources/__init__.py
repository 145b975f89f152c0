"""resources/ -- Generic entity records: document store, schemas, CRUD controller.

Layer rule: resources/ imports only stdlib + third-party libraries + core/.
It does NOT import from api/ or auth/.
"""
