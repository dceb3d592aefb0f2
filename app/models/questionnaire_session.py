"""SQLAlchemy model for persisted questionnaire sessions."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import JSONB

from app.models.base import Base


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class QuestionnaireSessionRecord(Base):
    """One row per live session; ``payload`` holds the whole serialized Session."""

    __tablename__ = "questionnaire_sessions"

    session_id = Column(String(64), primary_key=True)
    payload = Column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
    )
    version = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utc_now,
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utc_now,
        onupdate=_utc_now,
    )


__all__ = ["QuestionnaireSessionRecord"]
