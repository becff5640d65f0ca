"""FastAPI dependencies."""

from functools import lru_cache

from src.config.settings import get_settings
from src.services.builder import BuilderSessionStore


@lru_cache
def get_session_store() -> BuilderSessionStore:
    """Process-wide builder session store."""
    return BuilderSessionStore(ttl_seconds=get_settings().builder_session_ttl)
