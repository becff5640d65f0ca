"""Pivot aggregation: group result rows by row/column keys and aggregate measures.

Groups are discovered in first-seen order (not sorted), so the grid follows
the order rows came back from the query. Cells are dense: every row group x
column group x measure combination is present, holding ``None`` when no
input row fell into that intersection or no value contributed.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from src.config.constants import AggregateFunction
from src.services.errors import InvalidConfigError
from src.services.viz.formatter import is_number
from src.services.viz.models import PivotMeasure

logger = logging.getLogger(__name__)


class _Missing:
    """Group key used when a row lacks a column other rows have."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()

GroupKey = tuple[Any, ...]
MeasureKey = tuple[str, str]


@dataclass
class PivotGrid:
    """Output of :func:`aggregate`."""

    row_keys: list[GroupKey] = field(default_factory=list)
    col_keys: list[GroupKey] = field(default_factory=list)
    measures: list[PivotMeasure] = field(default_factory=list)
    cells: dict[tuple[GroupKey, GroupKey, MeasureKey], float | int | None] = field(
        default_factory=dict
    )

    def value(
        self, row_key: GroupKey, col_key: GroupKey, measure: PivotMeasure
    ) -> float | int | None:
        return self.cells.get((row_key, col_key, measure.key))

    @property
    def is_empty(self) -> bool:
        return not self.row_keys and not self.col_keys


class _Accumulator:
    """Running aggregates for one (cell, measure) pair."""

    __slots__ = ("rows", "numeric", "total", "low", "high")

    def __init__(self) -> None:
        self.rows = 0
        self.numeric = 0
        self.total: float | int = 0
        self.low: float | int | None = None
        self.high: float | int | None = None

    def add(self, value: Any) -> None:
        self.rows += 1
        if not is_number(value):
            return
        if isinstance(value, Decimal):
            value = float(value)
        if isinstance(value, float) and math.isnan(value):
            return
        self.numeric += 1
        self.total += value
        self.low = value if self.low is None else min(self.low, value)
        self.high = value if self.high is None else max(self.high, value)

    def result(self, agg: AggregateFunction) -> float | int | None:
        if agg is AggregateFunction.COUNT:
            return self.rows
        if self.numeric == 0:
            return None
        if agg is AggregateFunction.SUM:
            return self.total
        if agg is AggregateFunction.AVG:
            return self.total / self.numeric
        if agg is AggregateFunction.MIN:
            return self.low
        return self.high


def _group_key(row: dict[str, Any], keys: list[str]) -> GroupKey:
    return tuple(row[k] if k in row else MISSING for k in keys)


def _check_columns(
    required: Iterable[str], seen_columns: set[str]
) -> None:
    for name in required:
        if name not in seen_columns:
            raise InvalidConfigError(name)


def aggregate(
    rows: list[dict[str, Any]],
    row_keys: list[str],
    col_keys: list[str],
    measures: list[PivotMeasure],
) -> PivotGrid:
    """Pivot ``rows`` into a grid.

    Args:
        rows: Result rows, in query order.
        row_keys: Columns whose value tuple identifies a row group.
        col_keys: Columns whose value tuple identifies a column group.
        measures: Field/aggregate pairs computed for every cell.

    Returns:
        A dense PivotGrid. With no row or column keys the grid is a single
        totals cell per measure; with no rows it is empty.

    Raises:
        InvalidConfigError: A key or measure field is not a column of any row
            scanned so far.
    """
    grid = PivotGrid(measures=list(measures))
    if not rows:
        return grid

    required = [*row_keys, *col_keys, *(m.field for m in measures)]
    seen_columns: set[str] = set()

    # dicts keep insertion order, so keys double as the first-seen index
    row_index: dict[GroupKey, None] = {}
    col_index: dict[GroupKey, None] = {}
    cells: dict[tuple[GroupKey, GroupKey], list[_Accumulator]] = {}

    for row in rows:
        seen_columns.update(row.keys())
        _check_columns(required, seen_columns)

        rk = _group_key(row, row_keys)
        ck = _group_key(row, col_keys)
        row_index.setdefault(rk, None)
        col_index.setdefault(ck, None)

        accumulators = cells.get((rk, ck))
        if accumulators is None:
            accumulators = [_Accumulator() for _ in measures]
            cells[(rk, ck)] = accumulators
        for accumulator, measure in zip(accumulators, measures):
            accumulator.add(row.get(measure.field))

    grid.row_keys = list(row_index)
    grid.col_keys = list(col_index)
    for rk in grid.row_keys:
        for ck in grid.col_keys:
            accumulators = cells.get((rk, ck))
            for i, measure in enumerate(measures):
                value = accumulators[i].result(measure.agg) if accumulators else None
                grid.cells[(rk, ck, measure.key)] = value

    logger.debug(
        "Pivot built: %d row groups x %d column groups x %d measures",
        len(grid.row_keys),
        len(grid.col_keys),
        len(measures),
    )
    return grid
