"""
Constants, enums, and static values.
"""

from enum import Enum, IntEnum


DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


class VisualizationType(str, Enum):
    """Visualization types a widget can render as."""

    TABLE = "table"
    BAR = "bar"
    LINE = "line"
    AREA = "area"
    PIE = "pie"
    KPI = "kpi"
    COMPOSED = "composed"
    RADAR = "radar"
    SCATTER = "scatter"
    PIVOT = "pivot"
    TEXT = "text"


class AggregateFunction(str, Enum):
    """Aggregates available to pivot measures."""

    SUM = "sum"
    COUNT = "count"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


class KpiOperator(str, Enum):
    """Comparison operators for KPI colour rules."""

    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    EQ = "=="


class EntryMode(str, Enum):
    """How an authoring session was started."""

    NEW = "new"
    EXISTING = "existing"


class BuilderStep(IntEnum):
    """Guided builder steps."""

    START = 1
    SOURCE_AND_RUN = 2
    VISUALIZE = 3
    FINALIZE = 4


class BuilderAction(str, Enum):
    """Actions recorded in the builder's structured log."""

    START = "start"
    OPEN = "open"
    NAVIGATE = "navigate"
    RUN = "run"
    PREVIEW = "preview"
    FINISH = "finish"
    DISCARD = "discard"
