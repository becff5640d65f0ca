"""SQL statement library service."""

import logging
import uuid
from typing import Any

from src.config.settings import Settings
from src.infrastructure.database.connection import execute_insert, execute_query
from src.infrastructure.database.helpers import audit_log, check_db_result
from src.services.errors import PersistenceError
from src.services.statements.models import SaveStatementRequest, SqlStatement

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, name, sql_text, description, scope, tags, is_favorite, use_count, "
    "last_used_at, created_at, updated_at"
)


class SqlStatementService:
    """Named, reusable SQL statements that reports can reference as their source."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.table = f"{settings.db_schema}.SqlStatements"

    async def _query(
        self, operation: str, sql: str, params: tuple[Any, ...] | None = None
    ) -> list[dict[str, Any]]:
        try:
            return await execute_query(self.settings, sql, params)
        except Exception as e:
            logger.error("Failed to %s: %s", operation, e)
            raise PersistenceError(operation, str(e)) from e

    async def _write(self, operation: str, sql: str, params: tuple[Any, ...]) -> None:
        try:
            result = await execute_insert(self.settings, sql, params)
        except Exception as e:
            logger.error("Failed to %s: %s", operation, e)
            raise PersistenceError(operation, str(e)) from e
        check_db_result(result, operation)

    async def list_statements(self, scope: str | None = None) -> list[SqlStatement]:
        """List statements in a scope: favourites, then most recently used, then by name."""
        scope = (scope or "").strip() or self.settings.default_statement_scope
        rows = await self._query(
            "list statements",
            f"SELECT {_COLUMNS} FROM {self.table} WHERE scope = ? "
            "ORDER BY is_favorite DESC, COALESCE(last_used_at, updated_at, created_at) DESC, name ASC",
            (scope,),
        )
        return [SqlStatement.from_db_row(r) for r in rows]

    async def get_statement(self, statement_id: str) -> SqlStatement | None:
        rows = await self._query(
            "get statement",
            f"SELECT {_COLUMNS} FROM {self.table} WHERE id = ?",
            (statement_id,),
        )
        return SqlStatement.from_db_row(rows[0]) if rows else None

    async def save_statement(self, request: SaveStatementRequest) -> str:
        """Insert or update a statement. Returns its id."""
        statement_id = request.id or str(uuid.uuid4())
        scope = request.scope.strip() or "global"

        existing = await self._query(
            "save statement", f"SELECT id FROM {self.table} WHERE id = ?", (statement_id,)
        )
        if existing:
            await self._write(
                "update statement",
                f"UPDATE {self.table} SET name = ?, sql_text = ?, description = ?, scope = ?, "
                "tags = ?, is_favorite = ?, updated_at = GETDATE() WHERE id = ?",
                (
                    request.name,
                    request.sql_text,
                    request.description,
                    scope,
                    request.tags,
                    1 if request.is_favorite else 0,
                    statement_id,
                ),
            )
            audit_log("UPDATE", "sql_statement", statement_id)
        else:
            await self._write(
                "save statement",
                f"INSERT INTO {self.table} (id, name, sql_text, description, scope, tags, "
                "is_favorite, use_count, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, 0, GETDATE(), GETDATE())",
                (
                    statement_id,
                    request.name,
                    request.sql_text,
                    request.description,
                    scope,
                    request.tags,
                    1 if request.is_favorite else 0,
                ),
            )
            audit_log("CREATE", "sql_statement", statement_id)
        return statement_id

    async def delete_statement(self, statement_id: str) -> None:
        await self._write(
            "delete statement", f"DELETE FROM {self.table} WHERE id = ?", (statement_id,)
        )
        audit_log("DELETE", "sql_statement", statement_id)

    async def set_favorite(self, statement_id: str, is_favorite: bool) -> None:
        await self._write(
            "update favorite",
            f"UPDATE {self.table} SET is_favorite = ?, updated_at = GETDATE() WHERE id = ?",
            (1 if is_favorite else 0, statement_id),
        )

    async def mark_used(self, statement_id: str) -> None:
        """Bump the use counter so frequently picked statements sort first."""
        await self._write(
            "mark statement used",
            f"UPDATE {self.table} SET use_count = COALESCE(use_count, 0) + 1, "
            "last_used_at = GETDATE() WHERE id = ?",
            (statement_id,),
        )
