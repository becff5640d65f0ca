"""Request/Response models for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from src.config.constants import EntryMode
from src.services.reports.models import SavedReport, SaveReportRequest
from src.services.statements.models import SaveStatementRequest, SqlStatement

__all__ = [
    "BuilderStateResponse",
    "CreateSessionRequest",
    "DraftUpdateRequest",
    "FavoriteRequest",
    "FinishRequest",
    "HealthResponse",
    "KpiPreviewResponse",
    "NavigateRequest",
    "OperationResponse",
    "PivotCell",
    "PivotPreviewResponse",
    "SaveReportRequest",
    "SaveStatementRequest",
    "SavedReport",
    "SqlStatement",
    "StepReadiness",
]


class HealthResponse(BaseModel):
    """Response model for health endpoint."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Application version")


class OperationResponse(BaseModel):
    """Result of a single create/update/delete."""

    status: str = "success"
    id: str


class FavoriteRequest(BaseModel):
    is_favorite: bool


# ==========================================
#  Guided builder sessions
# ==========================================


class CreateSessionRequest(BaseModel):
    """Start a builder session: a new report (optionally text-first) or an existing one."""

    mode: EntryMode
    text: bool = False
    report_id: str | None = None


class DraftUpdateRequest(BaseModel):
    """Field-by-field draft edits. Unset fields are left alone."""

    sql_text: str | None = None
    name: str | None = None
    statement_id: str | None = None
    use_inline_sql: bool = False
    resync_source: bool = False
    visualization: dict[str, Any] | None = Field(
        None, description="Config changes; a 'type' key switches the variant"
    )


class NavigateRequest(BaseModel):
    step: int = Field(..., ge=1, le=4)


class FinishRequest(BaseModel):
    save_as_new: bool = False


class StepReadiness(BaseModel):
    """Per-step gate verdicts."""

    start: bool
    source_and_run: bool
    visualize: bool
    finalize: bool


class BuilderStateResponse(BaseModel):
    """Everything a UI needs to render the guided builder."""

    session_id: str
    current_step: int
    reachable_step: int
    steps: StepReadiness
    loading: bool
    has_unsaved_changes: bool
    entry_mode: EntryMode | None = None
    report_id: str | None = None
    name: str = ""
    sql_text: str = ""
    statement_id: str | None = None
    source_matches: bool = False
    result_is_stale: bool = False
    columns: list[str] = []
    numeric_columns: list[str] = []
    row_count: int = 0
    visualization_config: dict[str, Any] = {}
    preview_revision: int = 0
    error: str | None = None
    save_error: str | None = None


class PivotCell(BaseModel):
    row_key: list[Any]
    col_key: list[Any]
    field: str
    agg: str
    value: float | int | None


class PivotPreviewResponse(BaseModel):
    """Pivot grid for the current draft, or why it cannot render.

    Key parts are the grouped column values. A row that lacks the column
    entirely is keyed by the marker ``{"missing": true}``, kept apart from a
    NULL value (``null``).
    """

    renderable: bool
    error: str | None = None
    row_keys: list[list[Any]] = []
    col_keys: list[list[Any]] = []
    cells: list[PivotCell] = []


class KpiPreviewResponse(BaseModel):
    """KPI value and the colour of the first matching rule."""

    value: Any = None
    color: str | None = None
