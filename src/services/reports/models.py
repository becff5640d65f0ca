"""Saved report models."""

import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.services.viz.models import VisualizationConfig, parse_visualization_config


class SaveReportRequest(BaseModel):
    """The record handed to report persistence."""

    id: str | None = None
    name: str = Field(..., min_length=1)
    description: str = ""
    sql_statement_ref: str | None = None
    sql_text: str = ""
    visualization_config: VisualizationConfig


class SavedReport(BaseModel):
    """A persisted widget: SQL source plus visualization config."""

    id: str
    name: str
    description: str = ""
    sql_statement_ref: str | None = None
    sql_text: str = ""
    visualization_config: VisualizationConfig
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "SavedReport":
        raw_config = row.get("visualization_config") or "{}"
        config_data = json.loads(raw_config) if isinstance(raw_config, str) else raw_config
        if "type" not in config_data:
            config_data = {**config_data, "type": "table"}
        return cls(
            id=str(row["id"]),
            name=str(row["name"]),
            description=row.get("description") or "",
            sql_statement_ref=row.get("sql_statement_id"),
            sql_text=row.get("sql_query") or "",
            visualization_config=parse_visualization_config(config_data),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )
