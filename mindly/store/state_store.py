"""
Student state and transcript persistence.

SqlStudentStateStore keeps one tutor_sessions row per student and the chat
transcript in chat_messages. Saves are upserts keyed by user_id, so
concurrent turns for the same student from different processes are
last-write-wins; in-process turns are serialized by the chat service.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import create_engine, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from mindly.exceptions import StateStoreError
from mindly.llm.base import ChatMessage
from mindly.tutor.types import StudentState, default_student_state

from .models import Base, ChatMessageRecord, TutorSessionRecord

CHAT_ROLES = ("user", "assistant")


def _engine_kwargs(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection so every session sees the same in-memory DB
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {"pool_pre_ping": True}


def state_to_record(state: StudentState, record: TutorSessionRecord) -> TutorSessionRecord:
    data = state.to_dict()
    record.exam_domain = state.exam_domain
    record.session_phase = state.session_phase.value
    record.session_count = state.session_count
    record.messages_in_session = state.messages_in_session
    record.concept_mastery = data["conceptMastery"]
    record.misconceptions = data["misconceptions"]
    record.last_concepts_tested = data["lastConceptsTested"]
    record.confidence_calibration = state.confidence_calibration.value
    record.consecutive_failures = state.consecutive_failures
    record.consecutive_successes = state.consecutive_successes
    record.pending_question = state.pending_question
    record.pending_concept = state.pending_concept
    record.hints_given = state.hints_given
    record.awaiting_confidence_rating = state.awaiting_confidence_rating
    record.last_assessment_correct = state.last_assessment_correct
    record.updated_at = datetime.now(UTC)
    return record


def record_to_state(record: TutorSessionRecord) -> StudentState:
    return StudentState.from_dict(
        {
            "userId": record.user_id,
            "examDomain": record.exam_domain,
            "sessionPhase": record.session_phase,
            "sessionCount": record.session_count,
            "messagesInSession": record.messages_in_session,
            "conceptMastery": record.concept_mastery,
            "misconceptions": record.misconceptions,
            "confidenceCalibration": record.confidence_calibration,
            "consecutiveFailures": record.consecutive_failures,
            "consecutiveSuccesses": record.consecutive_successes,
            "pendingQuestion": record.pending_question,
            "pendingConcept": record.pending_concept,
            "hintsGiven": record.hints_given,
            "awaitingConfidenceRating": record.awaiting_confidence_rating,
            "lastConceptsTested": record.last_concepts_tested,
            "lastAssessmentCorrect": record.last_assessment_correct,
        }
    )


class SqlStudentStateStore:
    """
    Manages tutor state persistence.

    load() returns the documented default state for unknown students, so a
    first message never needs special handling by the caller.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.engine = create_engine(database_url, echo=echo, **_engine_kwargs(database_url))
        self._session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def init_db(self) -> None:
        """Create the tutor tables if they are missing."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Tutor tables initialized")

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Transactional scope; any database error becomes StateStoreError."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StateStoreError(f"Tutor store operation failed: {e}") from e
        finally:
            session.close()

    def load(self, user_id: str, exam_domain: str | None = None) -> StudentState:
        """Stored state for a student, or the default state when none exists."""
        with self.session_scope() as session:
            record = session.get(TutorSessionRecord, user_id)
            if record is None:
                return default_student_state(user_id, exam_domain or "general")
            state = record_to_state(record)

        if exam_domain:
            state.exam_domain = exam_domain
        return state

    def save(self, state: StudentState) -> None:
        """Upsert the student's state."""
        with self.session_scope() as session:
            record = session.get(TutorSessionRecord, state.user_id)
            if record is None:
                record = TutorSessionRecord(user_id=state.user_id)
                session.add(record)
            state_to_record(state, record)
        logger.debug(f"Saved tutor state for {state.user_id}")

    def delete(self, user_id: str) -> bool:
        """Remove a student's state and transcript. True if a state row existed."""
        with self.session_scope() as session:
            result = session.execute(
                delete(TutorSessionRecord).where(TutorSessionRecord.user_id == user_id)
            )
            session.execute(delete(ChatMessageRecord).where(ChatMessageRecord.user_id == user_id))
            return result.rowcount > 0

    def append_message(self, user_id: str, role: str, content: str) -> None:
        """Add one message to the student's transcript."""
        if role not in CHAT_ROLES:
            raise ValueError(f"Unsupported chat role: {role}")
        with self.session_scope() as session:
            session.add(ChatMessageRecord(user_id=user_id, role=role, content=content))

    def recent_history(self, user_id: str, limit: int = 8) -> list[ChatMessage]:
        """The newest ``limit`` messages, returned oldest first."""
        with self.session_scope() as session:
            rows = session.scalars(
                select(ChatMessageRecord)
                .where(ChatMessageRecord.user_id == user_id)
                .order_by(ChatMessageRecord.created_at.desc(), ChatMessageRecord.id.desc())
                .limit(limit)
            ).all()
            return [ChatMessage(role=r.role, content=r.content) for r in reversed(rows)]
