"""Guided report builder endpoints.

Each session wraps one GuidedBuilder. Gate refusals come back as 409 with
the current reachable step; query failures are not HTTP errors, they are
part of the returned state (``error``).
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from src.api.dependencies import get_session_store
from src.api.models import (
    BuilderStateResponse,
    CreateSessionRequest,
    DraftUpdateRequest,
    FinishRequest,
    KpiPreviewResponse,
    NavigateRequest,
    OperationResponse,
    PivotCell,
    PivotPreviewResponse,
    StepReadiness,
)
from src.config.constants import EntryMode
from src.config.settings import Settings, get_settings
from src.services.builder import BuilderSession, BuilderSessionStore, GuidedBuilder
from src.services.errors import InvalidConfigError, PersistenceError
from src.services.pivot import MISSING
from src.services.reports import ReportService
from src.services.sql.executor import SQLExecutor
from src.services.statements import SqlStatementService
from src.services.viz.models import dump_visualization_config

logger = logging.getLogger(__name__)

router = APIRouter()


def _build(settings: Settings) -> GuidedBuilder:
    return GuidedBuilder(
        settings,
        executor=SQLExecutor(settings),
        reports=ReportService(settings),
        statements=SqlStatementService(settings),
    )


def _session_or_404(store: BuilderSessionStore, session_id: str) -> BuilderSession:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Builder session not found")
    return session


def _state(session: BuilderSession) -> BuilderStateResponse:
    builder = session.builder
    draft = builder.draft
    return BuilderStateResponse(
        session_id=session.session_id,
        current_step=int(builder.current_step),
        reachable_step=int(builder.reachable_step),
        steps=StepReadiness(
            start=builder.start_ready,
            source_and_run=builder.source_ready,
            visualize=builder.visualization_ready,
            finalize=builder.finalize_ready,
        ),
        loading=builder.loading,
        has_unsaved_changes=builder.has_unsaved_changes,
        entry_mode=draft.entry_mode,
        report_id=draft.report_id,
        name=draft.name,
        sql_text=draft.sql_text,
        statement_id=draft.source.statement_id if draft.source else None,
        source_matches=draft.source_matches,
        result_is_stale=draft.result_is_stale,
        columns=draft.result.columns,
        numeric_columns=draft.numeric_columns,
        row_count=draft.result.row_count,
        visualization_config=dump_visualization_config(draft.config),
        preview_revision=builder.preview_revision,
        error=draft.error,
        save_error=draft.save_error,
    )


def _refused(session: BuilderSession, action: str) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=f"Cannot {action}: reachable step is {int(session.builder.reachable_step)}",
    )


MISSING_KEY_PART = {"missing": True}


def _plain_key(key: tuple[Any, ...]) -> list[Any]:
    return [dict(MISSING_KEY_PART) if v is MISSING else v for v in key]


# ==========================================
#  SESSIONS
# ==========================================


@router.post("/sessions", response_model=BuilderStateResponse, status_code=201)
async def create_session(
    request: CreateSessionRequest,
    settings: Settings = Depends(get_settings),
    store: BuilderSessionStore = Depends(get_session_store),
) -> BuilderStateResponse:
    """Start a new draft, or open a saved report for editing."""
    builder = _build(settings)
    if request.mode == EntryMode.EXISTING:
        if not request.report_id:
            raise HTTPException(status_code=422, detail="report_id is required to edit a report")
        try:
            report = await ReportService(settings).get_report(request.report_id)
        except PersistenceError as e:
            raise HTTPException(status_code=500, detail=str(e)) from e
        if report is None:
            raise HTTPException(status_code=404, detail="Report not found")
        await builder.open_existing(report)
    else:
        builder.start_new(text=request.text)

    store.cleanup_expired()
    return _state(store.create(builder))


@router.get("/sessions/{session_id}", response_model=BuilderStateResponse)
async def get_session(
    session_id: str,
    store: BuilderSessionStore = Depends(get_session_store),
) -> BuilderStateResponse:
    return _state(_session_or_404(store, session_id))


@router.patch("/sessions/{session_id}", response_model=BuilderStateResponse)
async def update_draft(
    session_id: str,
    request: DraftUpdateRequest,
    settings: Settings = Depends(get_settings),
    store: BuilderSessionStore = Depends(get_session_store),
) -> BuilderStateResponse:
    """Edit draft fields. Readiness and the reachable step follow immediately."""
    session = _session_or_404(store, session_id)
    builder = session.builder

    if request.use_inline_sql:
        builder.use_inline_sql()
    if request.statement_id:
        try:
            statement = await SqlStatementService(settings).get_statement(request.statement_id)
        except PersistenceError as e:
            raise HTTPException(status_code=500, detail=str(e)) from e
        if statement is None:
            raise HTTPException(status_code=404, detail="Statement not found")
        await builder.select_statement(statement)
    if request.resync_source and not builder.resync_source():
        raise HTTPException(status_code=409, detail="Draft has no statement source to resync")
    if request.sql_text is not None:
        builder.set_sql_text(request.sql_text)
    if request.name is not None:
        builder.set_name(request.name)
    if request.visualization:
        try:
            builder.update_visualization(request.visualization)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e

    return _state(session)


@router.post("/sessions/{session_id}/apply", response_model=BuilderStateResponse)
async def apply(
    session_id: str,
    store: BuilderSessionStore = Depends(get_session_store),
) -> BuilderStateResponse:
    """Run the query on step 2, refresh the preview on step 3."""
    session = _session_or_404(store, session_id)
    if session.builder.loading:
        raise HTTPException(status_code=409, detail="A query is already running")
    await session.builder.apply()
    return _state(session)


@router.post("/sessions/{session_id}/navigate", response_model=BuilderStateResponse)
async def navigate(
    session_id: str,
    request: NavigateRequest,
    store: BuilderSessionStore = Depends(get_session_store),
) -> BuilderStateResponse:
    session = _session_or_404(store, session_id)
    if not session.builder.go_to(request.step):
        raise _refused(session, f"go to step {request.step}")
    return _state(session)


@router.post("/sessions/{session_id}/next", response_model=BuilderStateResponse)
async def next_step(
    session_id: str,
    store: BuilderSessionStore = Depends(get_session_store),
) -> BuilderStateResponse:
    session = _session_or_404(store, session_id)
    if not session.builder.advance():
        raise _refused(session, "advance")
    return _state(session)


@router.post("/sessions/{session_id}/finish", response_model=BuilderStateResponse)
async def finish(
    session_id: str,
    request: FinishRequest,
    store: BuilderSessionStore = Depends(get_session_store),
) -> BuilderStateResponse:
    """Save the report. The session stays open for further edits."""
    session = _session_or_404(store, session_id)
    builder = session.builder
    if not builder.finalize_ready:
        raise _refused(session, "finish")
    saved = await builder.finish(save_as_new=request.save_as_new)
    if saved is None:
        logger.warning("Finish failed for session %s: %s", session_id, builder.draft.save_error)
        raise HTTPException(status_code=500, detail=builder.draft.save_error)
    return _state(session)


@router.delete("/sessions/{session_id}", response_model=OperationResponse)
async def discard(
    session_id: str,
    store: BuilderSessionStore = Depends(get_session_store),
) -> OperationResponse:
    """Discard the draft and close the session."""
    session = _session_or_404(store, session_id)
    session.builder.discard()
    store.delete(session_id)
    return OperationResponse(id=session_id)


# ==========================================
#  PREVIEWS
# ==========================================


@router.get("/sessions/{session_id}/pivot", response_model=PivotPreviewResponse)
async def pivot_preview(
    session_id: str,
    store: BuilderSessionStore = Depends(get_session_store),
) -> PivotPreviewResponse:
    session = _session_or_404(store, session_id)
    try:
        grid = session.builder.pivot_preview()
    except InvalidConfigError as e:
        return PivotPreviewResponse(renderable=False, error=str(e))

    cells = [
        PivotCell(
            row_key=_plain_key(rk),
            col_key=_plain_key(ck),
            field=measure_key[0],
            agg=measure_key[1],
            value=value,
        )
        for (rk, ck, measure_key), value in grid.cells.items()
    ]
    return PivotPreviewResponse(
        renderable=not grid.is_empty,
        row_keys=[_plain_key(k) for k in grid.row_keys],
        col_keys=[_plain_key(k) for k in grid.col_keys],
        cells=cells,
    )


@router.get("/sessions/{session_id}/kpi", response_model=KpiPreviewResponse)
async def kpi_preview(
    session_id: str,
    store: BuilderSessionStore = Depends(get_session_store),
) -> KpiPreviewResponse:
    session = _session_or_404(store, session_id)
    result = session.builder.kpi_preview()
    if result is None:
        return KpiPreviewResponse()
    return KpiPreviewResponse(value=result.value, color=result.color)
