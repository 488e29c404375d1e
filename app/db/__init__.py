"""
Database module - SQL connection and the templates mirror table.
"""
from app.db.postgres import get_db_session, test_postgres_connection

__all__ = [
    "get_db_session",
    "test_postgres_connection",
]
