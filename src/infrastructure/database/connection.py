"""Direct database connection utilities using pyodbc."""

import asyncio
import logging
from typing import Any, cast

from src.config.settings import Settings
from src.utils.retry import is_transient_db_error, run_with_retry

logger = logging.getLogger(__name__)


def _connect(connection_string: str) -> Any:
    # Imported lazily: loading pyodbc needs the system ODBC manager, which
    # only hosts that actually reach a database are required to have.
    import pyodbc

    return pyodbc.connect(connection_string)


async def _with_retry(settings: Settings, func: Any) -> Any:
    async def _run() -> Any:
        return await asyncio.to_thread(func)

    return await run_with_retry(
        _run,
        max_retries=settings.sql_max_retries,
        initial_delay=settings.sql_retry_delay,
        backoff_factor=settings.retry_backoff_factor,
    )


async def execute_query(
    settings: Settings, sql: str, params: tuple[Any, ...] | None = None
) -> list[dict[str, Any]]:
    """
    Execute a SELECT against the app database and return rows as dictionaries.

    Args:
        settings: Application settings containing database_connection_string
        sql: SQL query string (use ? placeholders for parameters)
        params: Optional tuple of parameters for parameterized queries

    Returns:
        List of dictionaries, one per row, keyed by column name

    Raises:
        Exception: If database connection or query execution fails
    """
    if not settings.database_connection_string:
        raise ValueError("database_connection_string is not configured in settings")

    def _execute() -> list[dict[str, Any]]:
        conn = None
        cursor = None
        try:
            conn = _connect(settings.database_connection_string)
            cursor = conn.cursor()
            if params:
                cursor.execute(sql, params)
            else:
                cursor.execute(sql)
            columns = [column[0] for column in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]
        except Exception as e:
            logger.error("Database query error: %s", e)
            raise
        finally:
            if cursor:
                cursor.close()
            if conn:
                conn.close()

    return cast(list[dict[str, Any]], await _with_retry(settings, _execute))


async def execute_insert(
    settings: Settings, sql: str, params: tuple[Any, ...] | None = None
) -> dict[str, Any]:
    """
    Execute an INSERT, UPDATE, or DELETE against the app database.

    Returns:
        Dictionary with success status and affected row count:
        {
            "success": bool,
            "rows_affected": int,
            "error": str | None
        }
    """
    if not settings.database_connection_string:
        raise ValueError("database_connection_string is not configured in settings")

    def _execute() -> dict[str, Any]:
        conn = None
        cursor = None
        try:
            conn = _connect(settings.database_connection_string)
            cursor = conn.cursor()
            if params:
                cursor.execute(sql, params)
            else:
                cursor.execute(sql)
            rows_affected = cursor.rowcount
            conn.commit()
            return {"success": True, "rows_affected": rows_affected, "error": None}
        except Exception as e:
            logger.error("Database insert/update error: %s", e)
            if conn:
                conn.rollback()
            # Transient errors go back to the retry loop
            if is_transient_db_error(e):
                raise
            return {"success": False, "rows_affected": 0, "error": str(e)}
        finally:
            if cursor:
                cursor.close()
            if conn:
                conn.close()

    return cast(dict[str, Any], await _with_retry(settings, _execute))


async def fetch_result_set(
    settings: Settings, sql: str, max_rows: int
) -> tuple[list[str], list[dict[str, Any]]]:
    """
    Run ad-hoc report SQL against the warehouse.

    Returns the ordered column names (present even when no rows come back)
    and at most ``max_rows`` rows as dictionaries.
    """
    if not settings.warehouse_connection_string:
        raise ValueError("warehouse_connection_string is not configured in settings")

    def _execute() -> tuple[list[str], list[dict[str, Any]]]:
        conn = None
        cursor = None
        try:
            conn = _connect(settings.warehouse_connection_string)
            cursor = conn.cursor()
            cursor.execute(sql)
            if cursor.description is None:
                return [], []
            columns = [column[0] for column in cursor.description]
            rows = [dict(zip(columns, row)) for row in cursor.fetchmany(max_rows)]
            return columns, rows
        finally:
            if cursor:
                cursor.close()
            if conn:
                conn.close()

    return cast(
        tuple[list[str], list[dict[str, Any]]], await _with_retry(settings, _execute)
    )
