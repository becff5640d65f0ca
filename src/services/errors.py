"""Errors raised by the report builder services."""


class ReportBuilderError(Exception):
    """Base class for report builder failures."""


class QueryError(ReportBuilderError):
    """SQL execution failed; ``message`` is shown to the user verbatim."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidConfigError(ReportBuilderError):
    """A pivot key or measure names a column the result set does not have."""

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"Column '{field}' does not exist in the result set")
        self.field = field


class PersistenceError(ReportBuilderError):
    """A save/delete against the app database failed."""

    def __init__(self, operation: str, detail: str | None = None) -> None:
        message = f"Failed to {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.operation = operation
        self.detail = detail
