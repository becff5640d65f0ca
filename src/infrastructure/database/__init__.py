"""Database connection utilities."""

from src.infrastructure.database.connection import (
    execute_insert,
    execute_query,
    fetch_result_set,
)
from src.infrastructure.database.helpers import audit_log, check_db_result

__all__ = [
    "audit_log",
    "check_db_result",
    "execute_insert",
    "execute_query",
    "fetch_result_set",
]
