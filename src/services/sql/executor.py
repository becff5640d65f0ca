"""SQL executor service."""

import logging
import time

from src.config.settings import Settings
from src.infrastructure.database.connection import fetch_result_set
from src.services.errors import QueryError
from src.services.sql.models import ResultSet

logger = logging.getLogger(__name__)


class SQLExecutor:
    """
    Runs report SQL against the warehouse.

    The builder never validates or rewrites SQL; whatever the user typed is
    sent as-is and any driver failure comes back as a QueryError carrying
    the driver's message. Retries for transient errors happen in the
    connection layer, not here.
    """

    def __init__(self, settings: Settings):
        """Initialize SQL executor."""
        self.settings = settings

    async def execute(self, sql: str) -> ResultSet:
        """
        Execute ``sql`` and return its result set.

        Args:
            sql: SQL text exactly as entered

        Returns:
            ResultSet with at most ``settings.result_row_limit`` rows

        Raises:
            QueryError: Empty SQL, malformed SQL or database failure
        """
        if not sql or not sql.strip():
            raise QueryError("SQL text is empty")

        start = time.time()
        try:
            columns, rows = await fetch_result_set(
                self.settings, sql, self.settings.result_row_limit
            )
        except Exception as e:
            logger.error("SQL execution error: %s", e)
            raise QueryError(str(e)) from e

        elapsed_ms = (time.time() - start) * 1000
        logger.info("SQL executed successfully: %d rows in %.0f ms", len(rows), elapsed_ms)
        if len(rows) >= self.settings.result_row_limit:
            logger.warning(
                "Result truncated at result_row_limit=%d", self.settings.result_row_limit
            )
        return ResultSet(columns=columns, rows=rows)
