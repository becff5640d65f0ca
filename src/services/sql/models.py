"""SQL service models."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ResultSet:
    """Rows returned by one SQL run, with the column order the query produced."""

    columns: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @classmethod
    def from_rows(cls, rows: list[dict[str, Any]]) -> "ResultSet":
        """Build a result set, taking column order from the first row."""
        columns = list(rows[0].keys()) if rows else []
        return cls(columns=columns, rows=list(rows))
