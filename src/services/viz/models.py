"""Visualization config models.

A widget's visualization is a tagged union discriminated by ``type``. Each
variant only carries the fields its renderer reads. Field names are
snake_case in Python and camelCase (``xAxis``, ``yAxes``, ``pivotMeasures``)
in the persisted JSON.
"""

import operator
from collections.abc import Callable
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel, to_snake

from src.config.constants import AggregateFunction, KpiOperator

_KPI_OPERATORS: dict[KpiOperator, Callable[[float, float], bool]] = {
    KpiOperator.GT: operator.gt,
    KpiOperator.LT: operator.lt,
    KpiOperator.GTE: operator.ge,
    KpiOperator.LTE: operator.le,
    KpiOperator.EQ: operator.eq,
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KpiRule(_CamelModel):
    """Colour a KPI when ``value <operator> threshold`` holds."""

    operator: KpiOperator
    threshold: float
    color: str

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_value(cls, data: Any) -> Any:
        # Older widgets stored the threshold under "value"
        if isinstance(data, dict) and "threshold" not in data and "value" in data:
            data = dict(data)
            data["threshold"] = data.pop("value")
        return data

    def matches(self, value: float) -> bool:
        return _KPI_OPERATORS[self.operator](value, self.threshold)


class PivotMeasure(_CamelModel):
    """A column aggregated into every pivot cell."""

    field: str
    agg: AggregateFunction = AggregateFunction.SUM

    @property
    def key(self) -> tuple[str, str]:
        return (self.field, self.agg.value)


class _BaseVisualization(_CamelModel):
    """Fields shared by every visualization type."""

    x_axis: str | None = None
    y_axes: list[str] = Field(default_factory=list)
    color: str | None = None
    show_labels: bool = False

    @model_validator(mode="before")
    @classmethod
    def upgrade_single_y_axis(cls, data: Any) -> Any:
        # Single-metric configs predate yAxes
        if isinstance(data, dict) and "yAxis" in data:
            data = dict(data)
            legacy = data.pop("yAxis")
            if legacy and not data.get("yAxes") and not data.get("y_axes"):
                data["yAxes"] = [legacy]
        return data

    @field_validator("y_axes")
    @classmethod
    def reject_duplicate_y_axes(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError(f"yAxes must not contain duplicates, got {v}")
        return v


class TableConfig(_BaseVisualization):
    type: Literal["table"] = "table"


class ChartConfig(_BaseVisualization):
    """Category charts plotting yAxes against an xAxis."""

    type: Literal["bar", "line", "area", "pie", "composed", "radar"] = "bar"


class ScatterConfig(_BaseVisualization):
    type: Literal["scatter"] = "scatter"


class KpiConfig(_BaseVisualization):
    """Single value from the first row, coloured by the first matching rule."""

    type: Literal["kpi"] = "kpi"
    rules: list[KpiRule] = Field(default_factory=list)


class PivotConfig(_BaseVisualization):
    type: Literal["pivot"] = "pivot"
    pivot_rows: list[str] = Field(default_factory=list)
    pivot_cols: list[str] = Field(default_factory=list)
    pivot_measures: list[PivotMeasure] = Field(default_factory=list)


class TextConfig(_BaseVisualization):
    """Static text widget, no SQL source."""

    type: Literal["text"] = "text"
    text_content: str = ""
    text_size: Literal["sm", "md", "lg", "xl", "2xl"] = "md"
    text_align: Literal["left", "center", "right"] = "left"
    text_bold: bool = False
    text_italic: bool = False
    text_underline: bool = False


VisualizationConfig = Annotated[
    Union[TableConfig, ChartConfig, ScatterConfig, KpiConfig, PivotConfig, TextConfig],
    Field(discriminator="type"),
]

_CONFIG_ADAPTER: TypeAdapter[VisualizationConfig] = TypeAdapter(VisualizationConfig)

_COMMON_FIELDS = ("x_axis", "y_axes", "color", "show_labels")


def parse_visualization_config(data: dict[str, Any]) -> VisualizationConfig:
    """Validate a stored or submitted config dict into its variant."""
    return _CONFIG_ADAPTER.validate_python(data)


def dump_visualization_config(config: VisualizationConfig) -> dict[str, Any]:
    """Serialize a config the way it is persisted (camelCase keys)."""
    return config.model_dump(mode="json", by_alias=True)


def convert_visualization_type(
    config: VisualizationConfig, new_type: str
) -> VisualizationConfig:
    """Switch a config to another type, keeping the shared axis fields.

    Type-specific fields survive only when the type does not change.
    """
    if config.type == new_type:
        return config
    common = {name: getattr(config, name) for name in _COMMON_FIELDS}
    return _CONFIG_ADAPTER.validate_python({"type": new_type, **common})


def update_visualization_config(
    config: VisualizationConfig, changes: dict[str, Any]
) -> VisualizationConfig:
    """Return a re-validated copy of ``config`` with ``changes`` applied.

    ``changes`` may use either snake_case or camelCase keys; a ``type`` key
    switches the variant first.
    """
    changes = dict(changes)
    new_type = changes.pop("type", None)
    if new_type is not None:
        config = convert_visualization_type(config, str(new_type))
    data = config.model_dump(by_alias=False)
    for key, value in changes.items():
        data[to_snake(key)] = value
    return _CONFIG_ADAPTER.validate_python(data)
