"""Tests for the pivot aggregation engine."""

import random
from decimal import Decimal

import pytest

from src.config.constants import AggregateFunction
from src.services.errors import InvalidConfigError
from src.services.pivot import MISSING, aggregate
from src.services.viz.models import PivotMeasure

SUM_QTY = PivotMeasure(field="qty", agg=AggregateFunction.SUM)


def _measure(agg: str, field: str = "qty") -> PivotMeasure:
    return PivotMeasure(field=field, agg=AggregateFunction(agg))


# ==========================================
#  Grouping
# ==========================================


def test_sum_by_region():
    rows = [
        {"region": "EU", "qty": 3},
        {"region": "EU", "qty": 5},
        {"region": "US", "qty": 2},
    ]
    grid = aggregate(rows, ["region"], [], [SUM_QTY])

    assert grid.row_keys == [("EU",), ("US",)]
    assert grid.col_keys == [()]
    assert grid.value(("EU",), (), SUM_QTY) == 8
    assert grid.value(("US",), (), SUM_QTY) == 2


def test_groups_follow_first_seen_order_not_sorted():
    rows = [
        {"region": "US", "year": 2024, "qty": 1},
        {"region": "EU", "year": 2023, "qty": 1},
        {"region": "APAC", "year": 2024, "qty": 1},
        {"region": "EU", "year": 2022, "qty": 1},
    ]
    grid = aggregate(rows, ["region"], ["year"], [SUM_QTY])

    assert grid.row_keys == [("US",), ("EU",), ("APAC",)]
    assert grid.col_keys == [(2024,), (2023,), (2022,)]


def test_cells_are_dense():
    rows = [
        {"region": "EU", "year": 2023, "qty": 4},
        {"region": "US", "year": 2024, "qty": 6},
    ]
    grid = aggregate(rows, ["region"], ["year"], [SUM_QTY, _measure("count")])

    assert len(grid.cells) == 2 * 2 * 2
    assert grid.value(("EU",), (2024,), SUM_QTY) is None
    assert grid.value(("EU",), (2024,), _measure("count")) is None
    assert grid.value(("US",), (2024,), SUM_QTY) == 6


def test_null_and_missing_keys_form_separate_groups():
    rows = [
        {"region": None, "qty": 1},
        {"qty": 2},
        {"region": "EU", "qty": 3},
        {"region": None, "qty": 4},
    ]
    grid = aggregate(rows, ["region"], [], [SUM_QTY])

    assert grid.row_keys == [(None,), (MISSING,), ("EU",)]
    assert grid.value((None,), (), SUM_QTY) == 5
    assert grid.value((MISSING,), (), SUM_QTY) == 2


def test_no_keys_collapses_to_totals():
    rows = [{"qty": 1}, {"qty": 2}, {"qty": None}, {"qty": 7}]
    measures = [_measure("sum"), _measure("count"), _measure("avg"), _measure("min"), _measure("max")]
    grid = aggregate(rows, [], [], measures)

    assert grid.row_keys == [()]
    assert grid.col_keys == [()]
    assert [grid.value((), (), m) for m in measures] == [10, 4, pytest.approx(10 / 3), 1, 7]


def test_permuted_rows_give_same_cell_values():
    rows = [
        {"region": r, "channel": c, "qty": q}
        for r, c, q in [
            ("EU", "web", 3),
            ("US", "store", 8),
            ("EU", "store", 1),
            ("US", "web", None),
            ("EU", "web", 2.5),
        ]
    ]
    measures = [_measure("sum"), _measure("avg"), _measure("count")]
    baseline = aggregate(rows, ["region"], ["channel"], measures)

    shuffled = list(rows)
    random.Random(7).shuffle(shuffled)
    permuted = aggregate(shuffled, ["region"], ["channel"], measures)

    assert permuted.cells == baseline.cells


def test_identical_input_is_deterministic():
    rows = [{"region": "EU", "qty": 1}, {"region": "US", "qty": 2}]
    first = aggregate(rows, ["region"], [], [SUM_QTY])
    second = aggregate(rows, ["region"], [], [SUM_QTY])
    assert first == second


# ==========================================
#  Aggregates
# ==========================================


def test_count_includes_null_values():
    rows = [{"g": "a", "qty": None}, {"g": "a", "qty": "n/a"}, {"g": "a", "qty": 1}]
    grid = aggregate(rows, ["g"], [], [_measure("count")])
    assert grid.value(("a",), (), _measure("count")) == 3


def test_avg_divides_by_contributing_values():
    rows = [{"qty": 4}, {"qty": None}, {"qty": "x"}, {"qty": 8}]
    grid = aggregate(rows, [], [], [_measure("avg")])
    assert grid.value((), (), _measure("avg")) == 6


def test_strings_are_not_coerced():
    rows = [{"qty": "10"}, {"qty": "20"}]
    grid = aggregate(rows, [], [], [_measure("sum"), _measure("max")])
    assert grid.value((), (), _measure("sum")) is None
    assert grid.value((), (), _measure("max")) is None


def test_min_max_ignore_non_numeric():
    rows = [{"qty": 5}, {"qty": True}, {"qty": -2}, {"qty": None}]
    grid = aggregate(rows, [], [], [_measure("min"), _measure("max")])
    assert grid.value((), (), _measure("min")) == -2
    assert grid.value((), (), _measure("max")) == 5


def test_decimal_values_contribute():
    rows = [{"qty": Decimal("1.5")}, {"qty": Decimal("2.5")}]
    grid = aggregate(rows, [], [], [_measure("sum")])
    assert grid.value((), (), _measure("sum")) == pytest.approx(4.0)


# ==========================================
#  Edge cases
# ==========================================


def test_empty_input_gives_empty_grid():
    grid = aggregate([], ["region"], ["year"], [SUM_QTY])
    assert grid.row_keys == []
    assert grid.col_keys == []
    assert grid.cells == {}
    assert grid.is_empty


def test_unknown_measure_field_raises():
    rows = [{"region": "EU", "qty": 1}]
    with pytest.raises(InvalidConfigError) as exc_info:
        aggregate(rows, ["region"], [], [_measure("sum", field="revenue")])
    assert exc_info.value.field == "revenue"


def test_unknown_key_column_raises():
    rows = [{"region": "EU", "qty": 1}]
    with pytest.raises(InvalidConfigError):
        aggregate(rows, ["country"], [], [SUM_QTY])
