"""
Tutor Persistence Models.

SQLAlchemy models for the adaptive tutor:
- tutor_sessions: one knowledge-state row per student
- chat_messages: the chat transcript, oldest first by created_at
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


class TutorSessionRecord(Base):
    """Persisted StudentState, keyed by user."""

    __tablename__ = "tutor_sessions"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    exam_domain: Mapped[str] = mapped_column(String(128), default="general")
    session_phase: Mapped[str] = mapped_column(String(32), default="warmup")
    session_count: Mapped[int] = mapped_column(Integer, default=0)
    messages_in_session: Mapped[int] = mapped_column(Integer, default=0)

    # JSON payloads in the camelCase shape of StudentState.to_dict()
    concept_mastery: Mapped[dict] = mapped_column(JSON, default=dict)
    misconceptions: Mapped[list] = mapped_column(JSON, default=list)
    last_concepts_tested: Mapped[list] = mapped_column(JSON, default=list)

    confidence_calibration: Mapped[str] = mapped_column(String(32), default="unknown")
    consecutive_failures: Mapped[int] = mapped_column(Integer, default=0)
    consecutive_successes: Mapped[int] = mapped_column(Integer, default=0)
    pending_question: Mapped[str | None] = mapped_column(Text, nullable=True)
    pending_concept: Mapped[str | None] = mapped_column(Text, nullable=True)
    hints_given: Mapped[int] = mapped_column(Integer, default=0)
    awaiting_confidence_rating: Mapped[bool] = mapped_column(Boolean, default=False)
    last_assessment_correct: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ChatMessageRecord(Base):
    """One transcript message."""

    __tablename__ = "chat_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (Index("ix_chat_messages_user_created", "user_id", "created_at"),)
