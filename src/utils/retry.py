"""
Retry utilities for transient database errors.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


# SQLSTATE codes that represent transient errors worth retrying.
# Syntax errors, missing tables, permissions etc. are permanent and surface immediately.
_TRANSIENT_SQLSTATES: frozenset[str] = frozenset({
    "HYT00",  # Timeout expired
    "HYT01",  # Connection timeout expired
    "08S01",  # Communication link failure
    "08001",  # Unable to connect to data source
    "08007",  # Connection failure during transaction
    "40001",  # Deadlock victim
})


def is_transient_db_error(exception: Exception) -> bool:
    """Check whether a driver error carries a transient SQLSTATE.

    pyodbc puts the SQLSTATE in ``args[0]``; the string form is checked as a
    fallback for drivers that only embed it in the message.
    """
    if isinstance(exception, (TimeoutError, asyncio.TimeoutError)):
        return True
    if exception.args and isinstance(exception.args[0], str):
        if exception.args[0].strip() in _TRANSIENT_SQLSTATES:
            return True
    error_str = str(exception)
    return any(code in error_str for code in _TRANSIENT_SQLSTATES)


async def run_with_retry(
    func: Callable[[], Awaitable[Any]],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
) -> Any:
    """
    Execute an async function, retrying transient database errors.

    Args:
        func: Async function to execute (no parameters)
        max_retries: Maximum number of attempts
        initial_delay: Delay in seconds before the second attempt
        backoff_factor: Multiplier applied to the delay after each attempt

    Returns:
        Result from the function

    Raises:
        Exception: The last error when it is permanent or attempts run out
    """
    for attempt in range(max_retries):
        try:
            return await func()
        except Exception as e:
            if not is_transient_db_error(e) or attempt >= max_retries - 1:
                raise
            wait_time = initial_delay * (backoff_factor**attempt)
            logger.warning(
                "Transient DB error (%s). Attempt %s/%s. Waiting %.1f seconds before retry...",
                e,
                attempt + 1,
                max_retries,
                wait_time,
            )
            await asyncio.sleep(wait_time)
    raise RuntimeError("run_with_retry called with max_retries < 1")
