"""Visualization readiness: is a config renderable against the current result set?

Readiness means the chart would draw at least one meaningful point, not
merely that a field was picked. Rules are evaluated against the rows held
right now, so a config can turn unready when the result set changes.
"""

from __future__ import annotations

import logging
from typing import Any

from src.services.viz.formatter import build_scatter_points, is_present
from src.services.viz.models import (
    ChartConfig,
    KpiConfig,
    PivotConfig,
    ScatterConfig,
    TableConfig,
    TextConfig,
    VisualizationConfig,
)

logger = logging.getLogger(__name__)


def is_ready(
    config: VisualizationConfig,
    result_columns: list[str],
    result_rows: list[dict[str, Any]],
    numeric_columns: list[str],
) -> bool:
    """Return whether ``config`` can render against the given result set."""
    if isinstance(config, TextConfig):
        return bool(config.text_content.strip())

    # Pivot degrades to a totals grid, so its pickers are optional
    if isinstance(config, (TableConfig, PivotConfig, KpiConfig)):
        return len(result_rows) > 0

    if isinstance(config, ScatterConfig):
        return _scatter_ready(config, numeric_columns, result_rows)

    if isinstance(config, ChartConfig):
        return _axis_chart_ready(config, result_rows)

    logger.warning("No readiness rule for visualization type %s", config.type)
    return False


def _scatter_ready(
    config: ScatterConfig,
    numeric_columns: list[str],
    rows: list[dict[str, Any]],
) -> bool:
    if not config.x_axis or not config.y_axes:
        return False
    y_axis = config.y_axes[0]
    if config.x_axis not in numeric_columns or y_axis not in numeric_columns:
        return False
    return len(build_scatter_points(rows, config.x_axis, y_axis)) > 0


def _axis_chart_ready(config: ChartConfig, rows: list[dict[str, Any]]) -> bool:
    if not config.x_axis or not config.y_axes:
        return False
    for row in rows:
        if not is_present(row.get(config.x_axis)):
            continue
        if any(is_present(row.get(y)) for y in config.y_axes):
            return True
    return False
