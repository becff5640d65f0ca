"""Report draft: the mutable authoring state behind the guided builder."""

from dataclasses import dataclass, field

from src.config.constants import EntryMode, VisualizationType
from src.services.sql.models import ResultSet
from src.services.viz.formatter import infer_numeric_columns
from src.services.viz.models import TableConfig, VisualizationConfig
from src.utils.text_processing import sql_matches


@dataclass
class SqlSource:
    """A reference to a library statement the draft's SQL came from."""

    statement_id: str
    name: str
    sql_text: str


@dataclass
class ReportDraft:
    """State object mutated step by step while a widget is authored."""

    # Step 1: Start
    entry_mode: EntryMode | None = None  # None until the user picks new/existing
    report_id: str | None = None  # set when editing a saved report

    # Step 2: Source and run
    source: SqlSource | None = None  # None means inline SQL
    sql_text: str = ""
    executed_sql: str | None = None  # text of the last successful run
    result: ResultSet = field(default_factory=ResultSet)
    numeric_columns: list[str] = field(default_factory=list)
    error: str | None = None

    # Step 3: Visualize
    config: VisualizationConfig = field(default_factory=TableConfig)

    # Step 4: Finalize
    name: str = ""
    description: str = ""
    save_error: str | None = None

    @property
    def is_text(self) -> bool:
        return self.config.type == VisualizationType.TEXT

    @property
    def source_matches(self) -> bool:
        """Working SQL still corresponds to the selected source."""
        if self.source is None:
            return bool(self.sql_text.strip())
        return sql_matches(self.sql_text, self.source.sql_text)

    @property
    def has_fresh_result(self) -> bool:
        """The held rows came from a successful run of exactly the current SQL."""
        return (
            self.error is None
            and self.executed_sql is not None
            and self.executed_sql == self.sql_text
        )

    @property
    def result_is_stale(self) -> bool:
        return self.executed_sql is not None and self.executed_sql != self.sql_text

    @property
    def statement_ref(self) -> str | None:
        """Statement id to persist; dropped once the SQL has diverged from it."""
        if self.source is not None and self.source_matches:
            return self.source.statement_id
        return None

    def apply_result(self, sql: str, result: ResultSet) -> None:
        self.executed_sql = sql
        self.result = result
        self.numeric_columns = infer_numeric_columns(result.columns, result.rows)
        self.error = None

    def apply_failure(self, message: str) -> None:
        self.executed_sql = None
        self.result = ResultSet()
        self.numeric_columns = []
        self.error = message
