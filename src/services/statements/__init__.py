"""SQL statement library."""

from src.services.statements.models import SaveStatementRequest, SqlStatement
from src.services.statements.service import SqlStatementService

__all__ = ["SaveStatementRequest", "SqlStatement", "SqlStatementService"]
