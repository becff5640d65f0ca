"""In-memory store for guided builder sessions."""

import logging
import time
import uuid
from dataclasses import dataclass, field

from src.services.builder.machine import GuidedBuilder

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_SECONDS = 3600  # 1 hour


@dataclass
class BuilderSession:
    """A single authoring session and its state machine."""

    session_id: str
    builder: GuidedBuilder
    created_at: float = field(default_factory=time.time)
    last_access: float = field(default_factory=time.time)


class BuilderSessionStore:
    """Sessions expire after ``ttl_seconds`` without access."""

    def __init__(self, ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS) -> None:
        self.ttl_seconds = ttl_seconds
        self._sessions: dict[str, BuilderSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, builder: GuidedBuilder) -> BuilderSession:
        now = time.time()
        session = BuilderSession(
            session_id=str(uuid.uuid4()), builder=builder, created_at=now, last_access=now
        )
        self._sessions[session.session_id] = session
        logger.info("Builder session %s created", session.session_id)
        return session

    def get(self, session_id: str) -> BuilderSession | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        now = time.time()
        if now - session.last_access > self.ttl_seconds:
            del self._sessions[session_id]
            logger.info("Builder session %s expired", session_id)
            return None
        session.last_access = now
        return session

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def cleanup_expired(self) -> int:
        """Remove expired sessions and return the count removed."""
        now = time.time()
        expired = [
            k
            for k, v in self._sessions.items()
            if now - v.last_access > self.ttl_seconds
        ]
        for k in expired:
            del self._sessions[k]
        return len(expired)
