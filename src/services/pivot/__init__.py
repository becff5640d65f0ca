"""Pivot aggregation engine."""

from src.services.pivot.aggregation import MISSING, PivotGrid, aggregate

__all__ = ["MISSING", "PivotGrid", "aggregate"]
