"""Shared database operation helpers."""

import logging
from typing import Any

from src.services.errors import PersistenceError

logger = logging.getLogger(__name__)


def check_db_result(result: dict[str, Any], operation: str) -> None:
    """Raise PersistenceError if a database write failed."""
    if not result.get("success") or result.get("error"):
        logger.error("Failed to %s: %s", operation, result.get("error"))
        raise PersistenceError(operation, result.get("error"))


def audit_log(operation: str, resource: str, resource_id: str) -> None:
    """Log CRUD operations for audit trail."""
    logger.info("AUDIT %s %s id=%s", operation, resource, resource_id)
