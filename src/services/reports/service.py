"""Saved report persistence service."""

import json
import logging
import uuid
from typing import Any

from src.config.settings import Settings
from src.infrastructure.database.connection import execute_insert, execute_query
from src.infrastructure.database.helpers import audit_log, check_db_result
from src.services.errors import PersistenceError
from src.services.reports.models import SavedReport, SaveReportRequest
from src.services.viz.models import dump_visualization_config

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, name, description, sql_statement_id, sql_query, visualization_config, "
    "created_at, updated_at"
)


class ReportService:
    """Handles saved report CRUD operations."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.table = f"{settings.db_schema}.Reports"

    async def _query(
        self, operation: str, sql: str, params: tuple[Any, ...] | None = None
    ) -> list[dict[str, Any]]:
        try:
            return await execute_query(self.settings, sql, params)
        except Exception as e:
            logger.error("Failed to %s: %s", operation, e)
            raise PersistenceError(operation, str(e)) from e

    async def _write(
        self, operation: str, sql: str, params: tuple[Any, ...]
    ) -> dict[str, Any]:
        try:
            result = await execute_insert(self.settings, sql, params)
        except Exception as e:
            logger.error("Failed to %s: %s", operation, e)
            raise PersistenceError(operation, str(e)) from e
        check_db_result(result, operation)
        return result

    async def list_reports(self, offset: int = 0, limit: int = 50) -> list[SavedReport]:
        """List saved reports, newest first."""
        rows = await self._query(
            "list reports",
            f"SELECT {_COLUMNS} FROM {self.table} ORDER BY created_at DESC "
            "OFFSET ? ROWS FETCH NEXT ? ROWS ONLY",
            (offset, limit),
        )
        return [SavedReport.from_db_row(r) for r in rows]

    async def get_report(self, report_id: str) -> SavedReport | None:
        """Fetch one report, or None when it does not exist."""
        rows = await self._query(
            "get report",
            f"SELECT {_COLUMNS} FROM {self.table} WHERE id = ?",
            (report_id,),
        )
        if not rows:
            return None
        return SavedReport.from_db_row(rows[0])

    async def save_report(self, request: SaveReportRequest) -> str:
        """Insert or update a report keyed by id. Returns the report id."""
        report_id = request.id or str(uuid.uuid4())
        config_json = json.dumps(
            dump_visualization_config(request.visualization_config), ensure_ascii=False
        )

        existing = await self._query(
            "save report", f"SELECT id FROM {self.table} WHERE id = ?", (report_id,)
        )
        if existing:
            await self._write(
                "update report",
                f"UPDATE {self.table} SET name = ?, description = ?, sql_statement_id = ?, "
                "sql_query = ?, visualization_config = ?, updated_at = GETDATE() WHERE id = ?",
                (
                    request.name,
                    request.description,
                    request.sql_statement_ref,
                    request.sql_text,
                    config_json,
                    report_id,
                ),
            )
            audit_log("UPDATE", "report", report_id)
        else:
            await self._write(
                "save report",
                f"INSERT INTO {self.table} (id, name, description, sql_statement_id, sql_query, "
                "visualization_config, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, GETDATE(), GETDATE())",
                (
                    report_id,
                    request.name,
                    request.description,
                    request.sql_statement_ref,
                    request.sql_text,
                    config_json,
                ),
            )
            audit_log("CREATE", "report", report_id)

        return report_id

    async def delete_report(self, report_id: str) -> None:
        """Delete a single report."""
        await self._write(
            "delete report", f"DELETE FROM {self.table} WHERE id = ?", (report_id,)
        )
        audit_log("DELETE", "report", report_id)
