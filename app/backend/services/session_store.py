"""
Session storage for extraction results awaiting export.

Sessions hold the parsed records between the analyze and export steps. The
store is injected into the routes so it can be swapped for a shared backend;
the in-memory implementation evicts sessions after a fixed time-to-live.
"""

import logging
import time
from collections.abc import Callable
from typing import Any, Protocol

from .records import aggregate_by_identity

logger = logging.getLogger(__name__)


class ExtractionSession:
    """Records, group keys and per-document outcomes of one analyze request."""

    def __init__(
        self,
        records: list[dict[str, Any]],
        group_keys: list[str],
        summaries: dict[str, str] | None = None,
        documents: list[Any] | None = None,
        created_at: float | None = None,
    ):
        self.records = records
        self.group_keys = group_keys
        self.summaries = summaries or {}
        self.documents = documents or []
        self.created_at = created_at if created_at is not None else time.time()
        self.aggregate = aggregate_by_identity(records)


class SessionStore(Protocol):
    """Interface every session backend implements."""

    def get(self, session_id: str) -> ExtractionSession | None: ...

    def put(self, session_id: str, session: ExtractionSession) -> None: ...

    def delete(self, session_id: str) -> bool: ...

    def expire(self) -> int: ...


class InMemorySessionStore:
    """
    Process-local session store with time-based eviction.

    Expired sessions are dropped lazily on ``get`` and in bulk by ``expire``.

    Args:
        ttl_seconds: Lifetime of a session after it was stored.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, tuple[float, ExtractionSession]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _is_expired(self, stored_at: float) -> bool:
        return self._clock() - stored_at >= self.ttl_seconds

    def get(self, session_id: str) -> ExtractionSession | None:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None
        stored_at, session = entry
        if self._is_expired(stored_at):
            logger.info("Session %s expired", session_id)
            del self._sessions[session_id]
            return None
        return session

    def put(self, session_id: str, session: ExtractionSession) -> None:
        self._sessions[session_id] = (self._clock(), session)
        logger.info(
            "Stored session %s (%d records, %d group keys)",
            session_id,
            len(session.records),
            len(session.group_keys),
        )

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def expire(self) -> int:
        """Drop every expired session and return how many were removed."""
        expired = [
            session_id
            for session_id, (stored_at, _) in self._sessions.items()
            if self._is_expired(stored_at)
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info("Evicted %d expired session(s)", len(expired))
        return len(expired)


# Singleton instance for convenience
_session_store: InMemorySessionStore | None = None


def get_session_store() -> InMemorySessionStore:
    """Get or create the session store singleton."""
    global _session_store
    if _session_store is None:
        from ..config import get_settings

        _session_store = InMemorySessionStore(ttl_seconds=get_settings().session_ttl_seconds)
    return _session_store
