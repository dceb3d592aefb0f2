"""SQLAlchemy-backed session store for deployments that need durable sessions."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.application.interfaces import SessionStoreInterface
from app.config.settings import settings
from app.domain.errors import SessionConflictError, SessionNotFoundError
from app.domain.models import Session
from app.models.questionnaire_session import QuestionnaireSessionRecord

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SqlSessionStore(SessionStoreInterface):
    """Persist sessions as JSON rows with an ``expires_at`` column acting as the TTL."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        ttl_seconds: float = settings.session.timeout_minutes * 60,
    ) -> None:
        self._session_factory = session_factory
        self._ttl = timedelta(seconds=ttl_seconds)

    def _expiry(self) -> datetime:
        return _now() + self._ttl

    async def create(self, session_id: str) -> Session:
        session = Session(session_id=session_id)
        async with self._session_factory() as db:
            db.add(
                QuestionnaireSessionRecord(
                    session_id=session_id,
                    payload=session.model_dump(mode="json"),
                    version=session.version,
                    expires_at=self._expiry(),
                )
            )
            await db.commit()
        logger.info("Created session: %s with TTL: %s", session_id, self._ttl)
        return session

    async def get(self, session_id: str) -> Session:
        async with self._session_factory() as db:
            result = await db.execute(
                select(QuestionnaireSessionRecord.payload, QuestionnaireSessionRecord.version)
                .where(QuestionnaireSessionRecord.session_id == session_id)
                .where(QuestionnaireSessionRecord.expires_at > _now())
            )
            row = result.one_or_none()
            if row is None:
                await self._purge_expired(db, session_id)
                logger.warning("Session not found or expired: %s", session_id)
                raise SessionNotFoundError(session_id)

        session = Session.model_validate(row.payload)
        session.version = row.version
        return session

    async def put(self, session: Session) -> None:
        expected_version = session.version
        payload = session.model_dump(mode="json")
        payload["version"] = expected_version + 1

        async with self._session_factory() as db:
            result = await db.execute(
                update(QuestionnaireSessionRecord)
                .where(QuestionnaireSessionRecord.session_id == session.session_id)
                .where(QuestionnaireSessionRecord.version == expected_version)
                .where(QuestionnaireSessionRecord.expires_at > _now())
                .values(
                    payload=payload,
                    version=expected_version + 1,
                    expires_at=self._expiry(),
                )
                .execution_options(synchronize_session=False)
            )
            await db.commit()

        if result.rowcount == 0:
            if await self.exists(session.session_id):
                raise SessionConflictError(session.session_id, expected_version)
            raise SessionNotFoundError(session.session_id)

        session.version = expected_version + 1
        logger.debug("Saved session: %s (version %s)", session.session_id, session.version)

    async def delete(self, session_id: str) -> bool:
        async with self._session_factory() as db:
            result = await db.execute(
                delete(QuestionnaireSessionRecord)
                .where(QuestionnaireSessionRecord.session_id == session_id)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        deleted = result.rowcount > 0
        if deleted:
            logger.info("Deleted session: %s", session_id)
        else:
            logger.warning("Failed to delete session (may not exist): %s", session_id)
        return deleted

    async def exists(self, session_id: str) -> bool:
        async with self._session_factory() as db:
            result = await db.execute(
                select(QuestionnaireSessionRecord.session_id)
                .where(QuestionnaireSessionRecord.session_id == session_id)
                .where(QuestionnaireSessionRecord.expires_at > _now())
            )
            return result.scalar_one_or_none() is not None

    async def touch(self, session_id: str) -> None:
        async with self._session_factory() as db:
            result = await db.execute(
                update(QuestionnaireSessionRecord)
                .where(QuestionnaireSessionRecord.session_id == session_id)
                .where(QuestionnaireSessionRecord.expires_at > _now())
                .values(expires_at=self._expiry())
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        if result.rowcount == 0:
            raise SessionNotFoundError(session_id)
        logger.debug("Extended session TTL: %s", session_id)

    async def _purge_expired(self, db: AsyncSession, session_id: str) -> None:
        await db.execute(
            delete(QuestionnaireSessionRecord)
            .where(QuestionnaireSessionRecord.session_id == session_id)
            .where(QuestionnaireSessionRecord.expires_at <= _now())
            .execution_options(synchronize_session=False)
        )
        await db.commit()


__all__ = ["SqlSessionStore"]
