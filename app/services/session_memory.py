"""In-memory session store with per-key expiry."""

from __future__ import annotations

import logging
import time
from typing import Callable

from app.application.interfaces import SessionStoreInterface
from app.config.settings import settings
from app.domain.errors import SessionConflictError, SessionNotFoundError
from app.domain.models import Session

logger = logging.getLogger(__name__)


class InMemorySessionStore(SessionStoreInterface):
    """Keep serialized sessions in a dict; entries vanish once their TTL elapses.

    Sessions are stored as JSON so callers never share a live object with
    the store, which mirrors how a remote key/value backend behaves.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = settings.session.timeout_minutes * 60,
        key_prefix: str = settings.session.key_prefix,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._key_prefix = key_prefix
        self._clock = clock
        self._entries: dict[str, tuple[str, int, float]] = {}

    def _key(self, session_id: str) -> str:
        return f"{self._key_prefix}{session_id}"

    def _live_entry(self, session_id: str) -> tuple[str, int, float] | None:
        key = self._key(session_id)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry[2] <= self._clock():
            del self._entries[key]
            logger.info("Session expired: %s", session_id)
            return None
        return entry

    async def create(self, session_id: str) -> Session:
        self._purge_expired()
        session = Session(session_id=session_id)
        self._entries[self._key(session_id)] = (
            session.to_json(),
            session.version,
            self._clock() + self._ttl_seconds,
        )
        logger.info(
            "Created session: %s with TTL: %s seconds", session_id, int(self._ttl_seconds)
        )
        return session

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry[2] <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Purged %s expired sessions", len(expired))

    async def get(self, session_id: str) -> Session:
        entry = self._live_entry(session_id)
        if entry is None:
            logger.warning("Session not found or expired: %s", session_id)
            raise SessionNotFoundError(session_id)
        return Session.from_json(entry[0])

    async def put(self, session: Session) -> None:
        entry = self._live_entry(session.session_id)
        if entry is None:
            raise SessionNotFoundError(session.session_id)
        if entry[1] != session.version:
            raise SessionConflictError(session.session_id, session.version)

        session.version += 1
        self._entries[self._key(session.session_id)] = (
            session.to_json(),
            session.version,
            self._clock() + self._ttl_seconds,
        )
        logger.debug("Saved session: %s (version %s)", session.session_id, session.version)

    async def delete(self, session_id: str) -> bool:
        deleted = self._entries.pop(self._key(session_id), None) is not None
        if deleted:
            logger.info("Deleted session: %s", session_id)
        else:
            logger.warning("Failed to delete session (may not exist): %s", session_id)
        return deleted

    async def exists(self, session_id: str) -> bool:
        return self._live_entry(session_id) is not None

    async def touch(self, session_id: str) -> None:
        entry = self._live_entry(session_id)
        if entry is None:
            raise SessionNotFoundError(session_id)
        self._entries[self._key(session_id)] = (
            entry[0],
            entry[1],
            self._clock() + self._ttl_seconds,
        )
        logger.debug("Extended session TTL: %s", session_id)


__all__ = ["InMemorySessionStore"]
