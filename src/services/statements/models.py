"""SQL statement library models."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class SqlStatement(BaseModel):
    """A named SQL statement from the library."""

    id: str
    name: str
    sql_text: str
    description: str = ""
    scope: str = "global"
    tags: str = ""
    is_favorite: bool = False
    use_count: int = 0
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "SqlStatement":
        return cls(
            id=str(row["id"]),
            name=str(row["name"]),
            sql_text=str(row.get("sql_text") or ""),
            description=row.get("description") or "",
            scope=row.get("scope") or "global",
            tags=row.get("tags") or "",
            is_favorite=bool(row.get("is_favorite")),
            use_count=int(row.get("use_count") or 0),
            last_used_at=row.get("last_used_at"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


class SaveStatementRequest(BaseModel):
    """Create or update a library statement."""

    id: str | None = None
    name: str
    sql_text: str
    description: str = ""
    scope: str = "global"
    tags: str = ""
    is_favorite: bool = False
