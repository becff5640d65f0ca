"""Pure-Python helpers that read chart inputs out of result rows."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from src.services.viz.models import KpiConfig


def is_number(value: Any) -> bool:
    """True for int/float/Decimal values; booleans are not numbers here."""
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def is_present(value: Any) -> bool:
    """A cell counts as present unless it is null or an empty string."""
    return value is not None and value != ""


def infer_numeric_columns(columns: list[str], rows: list[dict[str, Any]]) -> list[str]:
    """Columns whose non-null values are all numbers (and that have at least one)."""
    numeric: list[str] = []
    for column in columns:
        seen = False
        for row in rows:
            value = row.get(column)
            if value is None:
                continue
            if not is_number(value):
                break
            seen = True
        else:
            if seen:
                numeric.append(column)
    return numeric


def to_finite_float(value: Any) -> float | None:
    """Coerce ``value`` to a finite float, or None when it cannot be plotted."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (ValueError, TypeError):
        return None
    if not math.isfinite(number):
        return None
    return number


def build_scatter_points(
    rows: list[dict[str, Any]],
    x_column: str,
    y_column: str,
) -> list[dict[str, float]]:
    """Build ``{"x", "y"}`` points, dropping rows where either side is not finite."""
    points: list[dict[str, float]] = []
    for row in rows:
        x = to_finite_float(row.get(x_column))
        y = to_finite_float(row.get(y_column))
        if x is None or y is None:
            continue
        points.append({"x": x, "y": y})
    return points


@dataclass
class KpiResult:
    """Resolved KPI value and the colour of the first matching rule."""

    value: Any
    color: str | None = None


def evaluate_kpi(config: KpiConfig, rows: list[dict[str, Any]]) -> KpiResult | None:
    """Resolve a KPI from the first row's first column.

    Rules are checked in list order and the first match wins. A value that is
    not numeric is shown as-is with the config colour.
    """
    if not rows:
        return None
    first_row = rows[0]
    if not first_row:
        return None
    value = next(iter(first_row.values()))
    number = to_finite_float(value)
    if number is not None:
        for rule in config.rules:
            if rule.matches(number):
                return KpiResult(value=value, color=rule.color)
    return KpiResult(value=value, color=config.color)


def suggest_axes(
    columns: list[str],
    numeric_columns: list[str],
) -> tuple[str | None, list[str]]:
    """Pick a default xAxis (first non-numeric column) and yAxes (first numeric)."""
    if not columns:
        return None, []
    text_columns = [c for c in columns if c not in numeric_columns]
    x_axis = text_columns[0] if text_columns else columns[0]
    y_candidates = [c for c in numeric_columns if c != x_axis]
    return x_axis, y_candidates[:1]
