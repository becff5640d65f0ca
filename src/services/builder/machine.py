"""Guided report builder: the four-step authoring state machine.

Steps are Start, Source & Run, Visualize and Finalize. The furthest step a
user may jump to (``reachable_step``) is never stored; it is recomputed
from the draft on every read, so editing an earlier step retracts it
immediately. Backward navigation is always allowed, forward navigation only
up to ``reachable_step``. Text widgets have no SQL and skip step 2.
"""

import logging
import time
import uuid
from typing import Any, Protocol

from src.config.constants import BuilderAction, BuilderStep, EntryMode, VisualizationType
from src.config.settings import Settings
from src.infrastructure.logging.logger import StructuredLogger
from src.services.builder.draft import ReportDraft, SqlSource
from src.services.builder.snapshot import SnapshotComparator, snapshot
from src.services.errors import PersistenceError, QueryError
from src.services.pivot import PivotGrid, aggregate
from src.services.reports.models import SaveReportRequest, SavedReport
from src.services.sql.models import ResultSet
from src.services.statements.models import SqlStatement
from src.services.viz.formatter import KpiResult, evaluate_kpi, suggest_axes
from src.services.viz.models import (
    ChartConfig,
    KpiConfig,
    PivotConfig,
    TableConfig,
    TextConfig,
    convert_visualization_type,
    update_visualization_config,
)
from src.services.viz.readiness import is_ready

logger = logging.getLogger(__name__)


class QueryRunner(Protocol):
    async def execute(self, sql: str) -> ResultSet: ...


class ReportStore(Protocol):
    async def save_report(self, request: SaveReportRequest) -> str: ...


class StatementLibrary(Protocol):
    async def get_statement(self, statement_id: str) -> SqlStatement | None: ...

    async def mark_used(self, statement_id: str) -> None: ...


class GuidedBuilder:
    """Drives one report draft through the guided steps."""

    def __init__(
        self,
        settings: Settings,
        executor: QueryRunner,
        reports: ReportStore,
        statements: StatementLibrary | None = None,
    ):
        self.settings = settings
        self.executor = executor
        self.reports = reports
        self.statements = statements
        self.structured = StructuredLogger(__name__)

        self.draft = ReportDraft()
        self.current_step = BuilderStep.START
        self.preview_revision = 0
        self._snapshots = SnapshotComparator()
        self._loading = False
        self._run_token = 0

    # ==========================================
    #  Derived state
    # ==========================================

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def start_ready(self) -> bool:
        return self.draft.entry_mode is not None

    @property
    def source_ready(self) -> bool:
        """SQL matches its source and the held result came from running exactly it."""
        if self.draft.is_text:
            return True
        return self.draft.source_matches and self.draft.has_fresh_result

    @property
    def visualization_ready(self) -> bool:
        result = self.draft.result
        return is_ready(
            self.draft.config, result.columns, result.rows, self.draft.numeric_columns
        )

    @property
    def name_ready(self) -> bool:
        return bool(self.draft.name.strip())

    @property
    def finalize_ready(self) -> bool:
        return (
            self.start_ready
            and self.source_ready
            and self.visualization_ready
            and self.name_ready
        )

    @property
    def reachable_step(self) -> BuilderStep:
        if not self.start_ready:
            return BuilderStep.START
        if not self.source_ready:
            return BuilderStep.SOURCE_AND_RUN
        if not self.visualization_ready or not self.name_ready:
            return BuilderStep.VISUALIZE
        return BuilderStep.FINALIZE

    @property
    def has_unsaved_changes(self) -> bool:
        return self._snapshots.is_dirty(self.draft)

    # ==========================================
    #  Entry
    # ==========================================

    def _reset(self, draft: ReportDraft) -> None:
        # a fresh token orphans any query still in flight for the old draft
        self._run_token += 1
        self._loading = False
        self.draft = draft
        self.current_step = BuilderStep.START
        self.preview_revision = 0
        self._snapshots.clear()

    def start_new(self, text: bool = False) -> None:
        """Begin a new draft; ``text`` starts a text widget that needs no SQL."""
        config = TextConfig() if text else TableConfig()
        self._reset(
            ReportDraft(
                entry_mode=EntryMode.NEW,
                config=config,
                name=self.settings.default_report_name,
            )
        )
        self.structured.log_step(
            BuilderAction.START.value, {"text": text, "reachable_step": int(self.reachable_step)}
        )

    async def open_existing(self, report: SavedReport, run: bool | None = None) -> None:
        """Hydrate the draft from a saved report and take it as the saved baseline.

        Args:
            report: The persisted report to edit.
            run: Run its SQL immediately; defaults to ``settings.auto_run_on_open``.
        """
        draft = ReportDraft(
            entry_mode=EntryMode.EXISTING,
            report_id=report.id,
            sql_text=report.sql_text,
            config=report.visualization_config,
            name=report.name,
            description=report.description,
        )
        if report.sql_statement_ref:
            draft.source = await self._resolve_statement(report.sql_statement_ref)
        self._reset(draft)
        self._snapshots.mark_saved(draft)

        self.structured.log_step(
            BuilderAction.OPEN.value,
            {"report_id": report.id, "statement_id": report.sql_statement_ref},
        )

        if run is None:
            run = self.settings.auto_run_on_open
        if run and not draft.is_text and draft.sql_text.strip():
            await self.run_query()

    async def _resolve_statement(self, statement_id: str) -> SqlSource | None:
        if self.statements is None:
            return None
        try:
            statement = await self.statements.get_statement(statement_id)
        except PersistenceError as e:
            logger.warning("Could not load statement %s: %s", statement_id, e)
            return None
        if statement is None:
            logger.warning("Referenced statement %s no longer exists", statement_id)
            return None
        return SqlSource(statement.id, statement.name, statement.sql_text)

    def discard(self) -> None:
        """Drop the draft and all derived state."""
        report_id = self.draft.report_id
        self._reset(ReportDraft())
        self.structured.log_step(BuilderAction.DISCARD.value, {"report_id": report_id})

    # ==========================================
    #  Step 2: source
    # ==========================================

    def set_sql_text(self, sql_text: str) -> None:
        self.draft.sql_text = sql_text

    async def select_statement(self, statement: SqlStatement) -> None:
        """Use a library statement as the source and copy its text into the draft."""
        self.draft.source = SqlSource(statement.id, statement.name, statement.sql_text)
        self.draft.sql_text = statement.sql_text
        if self.statements is None:
            return
        try:
            await self.statements.mark_used(statement.id)
        except PersistenceError as e:
            # usage tracking is best-effort
            logger.warning("Could not mark statement %s used: %s", statement.id, e)

    def use_inline_sql(self) -> None:
        """Detach from the library; the working SQL text is kept."""
        self.draft.source = None

    def resync_source(self) -> bool:
        """Reload the selected statement's text, discarding local edits."""
        if self.draft.source is None:
            return False
        self.draft.sql_text = self.draft.source.sql_text
        return True

    # ==========================================
    #  Step 3 and 4: config and name
    # ==========================================

    def set_visualization_type(self, viz_type: VisualizationType | str) -> None:
        self.draft.config = convert_visualization_type(
            self.draft.config, VisualizationType(viz_type).value
        )

    def update_visualization(self, changes: dict[str, Any]) -> None:
        """Apply config changes; raises pydantic.ValidationError on bad input."""
        self.draft.config = update_visualization_config(self.draft.config, changes)

    def set_name(self, name: str) -> None:
        self.draft.name = name

    # ==========================================
    #  Navigation
    # ==========================================

    def go_to(self, step: BuilderStep | int) -> bool:
        """Jump to ``step``: any earlier step, or forward up to the reachable one."""
        try:
            target = BuilderStep(step)
        except ValueError:
            return False
        if self.draft.is_text and target == BuilderStep.SOURCE_AND_RUN:
            return False
        if target > self.current_step and target > self.reachable_step:
            logger.debug("Navigation to step %d refused (reachable %d)", target, self.reachable_step)
            return False
        self.current_step = target
        self.structured.log_step(BuilderAction.NAVIGATE.value, {"step": int(target)})
        return True

    def advance(self) -> bool:
        """Next: move one step forward when the next step's requirements hold."""
        if self.current_step == BuilderStep.FINALIZE:
            return False
        target = BuilderStep(self.current_step + 1)
        if self.draft.is_text and target == BuilderStep.SOURCE_AND_RUN:
            target = BuilderStep.VISUALIZE
        return self.go_to(target)

    async def apply(self) -> bool:
        """Apply on the current step: run the query on step 2, refresh the preview on step 3."""
        if self.current_step == BuilderStep.SOURCE_AND_RUN:
            return await self.run_query()
        if self.current_step == BuilderStep.VISUALIZE:
            self.preview_revision += 1
            self.structured.log_step(
                BuilderAction.PREVIEW.value,
                {"revision": self.preview_revision, "type": self.draft.config.type},
            )
            return True
        return False

    async def proceed(self) -> bool:
        """Next on steps 1-3, Finish on step 4."""
        if self.current_step == BuilderStep.FINALIZE:
            return await self.finish() is not None
        return self.advance()

    # ==========================================
    #  Actions
    # ==========================================

    async def run_query(self) -> bool:
        """Execute the working SQL and store its result on the draft.

        Returns False when refused (a run is already in flight, or the draft
        is a text widget), when the query fails, or when the result arrives
        after the draft moved on and is dropped.
        """
        if self._loading:
            logger.warning("Query already running; run request ignored")
            return False
        if self.draft.is_text:
            return False

        draft = self.draft
        sql = draft.sql_text
        self._run_token += 1
        token = self._run_token
        self._loading = True
        start = time.time()
        try:
            result = await self.executor.execute(sql)
        except QueryError as e:
            if self._is_current(token, draft):
                draft.apply_failure(e.message)
                self.structured.log_error(BuilderAction.RUN.value, e, {"sql": sql})
            return False
        finally:
            if token == self._run_token:
                self._loading = False

        if not self._is_current(token, draft):
            logger.debug("Dropping stale query result (token %d)", token)
            return False

        draft.apply_result(sql, result)
        self._suggest_axes()
        self.structured.log_step(
            BuilderAction.RUN.value,
            {"rows": result.row_count, "columns": len(result.columns)},
            duration_ms=(time.time() - start) * 1000,
        )
        return True

    def _is_current(self, token: int, draft: ReportDraft) -> bool:
        return token == self._run_token and draft is self.draft

    def _suggest_axes(self) -> None:
        config = self.draft.config
        if not isinstance(config, ChartConfig) or config.x_axis:
            return
        x_axis, y_axes = suggest_axes(self.draft.result.columns, self.draft.numeric_columns)
        if x_axis is None:
            return
        changes: dict[str, Any] = {"x_axis": x_axis}
        if not config.y_axes:
            changes["y_axes"] = y_axes
        self.draft.config = update_visualization_config(config, changes)

    async def finish(self, save_as_new: bool = False) -> SaveReportRequest | None:
        """Persist the draft once every step is satisfied.

        Args:
            save_as_new: Write a new record even when editing an existing report.

        Returns:
            The saved record, or None when refused or when persistence failed
            (the failure message is left on ``draft.save_error``).
        """
        if not self.finalize_ready:
            logger.info("Finish refused: reachable step is %d", self.reachable_step)
            return None

        draft = self.draft
        report_id = None if save_as_new else draft.report_id
        request = SaveReportRequest(
            id=report_id or str(uuid.uuid4()),
            name=draft.name.strip(),
            description=draft.description,
            sql_statement_ref=draft.statement_ref,
            sql_text=draft.sql_text,
            visualization_config=draft.config,
        )
        pending = snapshot(draft)
        try:
            saved_id = await self.reports.save_report(request)
        except PersistenceError as e:
            draft.save_error = str(e)
            self.structured.log_error(BuilderAction.FINISH.value, e, {"report_id": request.id})
            return None

        if draft is not self.draft:
            logger.debug("Draft replaced while saving %s; new draft left untouched", saved_id)
            return request.model_copy(update={"id": saved_id})

        draft.report_id = saved_id
        draft.save_error = None
        self._snapshots.accept(pending)
        self.structured.log_step(
            BuilderAction.FINISH.value, {"report_id": saved_id, "save_as_new": save_as_new}
        )
        return request.model_copy(update={"id": saved_id})

    # ==========================================
    #  Previews
    # ==========================================

    def pivot_preview(self) -> PivotGrid:
        """Aggregate the held rows for a pivot config.

        Raises:
            InvalidConfigError: A configured key or measure column is absent.
        """
        config = self.draft.config
        if not isinstance(config, PivotConfig):
            return PivotGrid()
        return aggregate(
            self.draft.result.rows,
            config.pivot_rows,
            config.pivot_cols,
            config.pivot_measures,
        )

    def kpi_preview(self) -> KpiResult | None:
        config = self.draft.config
        if not isinstance(config, KpiConfig):
            return None
        return evaluate_kpi(config, self.draft.result.rows)
