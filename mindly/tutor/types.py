"""
Tutor Data Model.

Types shared by the four tutoring stages:
- Enumerations for mastery, session phase, message type, calibration, action
- StudentState: the per-student knowledge state mutated every turn
- StudentContext: read-only performance data supplied by the caller
- AssessmentResult: ephemeral output of the answer assessor
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from loguru import logger

MAX_RECENT_CONCEPTS = 10


class MasteryLevel(str, Enum):
    """Ordered per-concept mastery scale."""

    NEW = "NEW"
    FRAGILE = "FRAGILE"
    DEVELOPING = "DEVELOPING"
    SOLID = "SOLID"
    MASTERED = "MASTERED"


class SessionPhase(str, Enum):
    """Where the current tutoring conversation sits in the pedagogical cycle."""

    WARMUP = "warmup"
    NEW_CONCEPT = "new_concept"
    PRACTICE = "practice"
    METACOGNITIVE = "metacognitive"
    PREVIEW = "preview"

    @property
    def badge(self) -> str:
        """Label for phase badges in the UI."""
        return self.value.replace("_", " ").upper()


class MessageType(str, Enum):
    """Classification of an incoming student message."""

    GREETING = "greeting"
    CONFUSION = "confusion"
    CLAIMED_KNOWLEDGE = "claimed_knowledge"
    CONFIDENCE_RATING = "confidence_rating"
    QUESTION = "question"
    ANSWER = "answer"
    GENERAL = "general"


class ConfidenceCalibration(str, Enum):
    """Whether self-reported confidence matches actual correctness."""

    OVERCONFIDENT = "overconfident"
    UNDERCONFIDENT = "underconfident"
    CALIBRATED = "calibrated"
    UNKNOWN = "unknown"


class TutorAction(str, Enum):
    """Pedagogical move chosen by the planner for this turn."""

    WARMUP_RETRIEVAL = "warmup_retrieval"
    INTRODUCE_NEW_CONCEPT = "introduce_new_concept"
    INTERLEAVED_PRACTICE = "interleaved_practice"
    GIVE_HINT = "give_hint"
    REVEAL_ANSWER = "reveal_answer"
    ESCALATE_DIFFICULTY = "escalate_difficulty"
    SCAFFOLD_BACK = "scaffold_back"
    VALIDATE_AND_PIVOT = "validate_and_pivot"
    CHALLENGE_CLAIMED_KNOWLEDGE = "challenge_claimed_knowledge"
    PROCESS_CONFIDENCE_RATING = "process_confidence_rating"
    ANSWER_THEN_TEST = "answer_then_test"
    METACOGNITIVE_CHECK = "metacognitive_check"
    PREVIEW_NEXT = "preview_next"
    RESPOND_GENERAL = "respond_general"


def _coerce_enum(enum_cls: type[Enum], value: Any, default: Enum) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(f"Unknown {enum_cls.__name__} value {value!r}, using {default.value}")
        return default


def _coerce_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Non-numeric value {value!r}, using {default}")
        return default


def _coerce_bool(value: Any, default: bool | None) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    if value is not None:
        logger.warning(f"Non-boolean value {value!r}, using {default}")
    return default


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _parse_timestamp(value: Any, fallback: datetime) -> datetime:
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return fallback
        return ensure_utc(parsed)
    return fallback


@dataclass
class MasteryEntry:
    """Mastery record for one concept."""

    level: MasteryLevel = MasteryLevel.NEW
    last_tested: datetime = field(default_factory=lambda: datetime.now(UTC))
    success_count: int = 0
    failure_count: int = 0
    hints_used: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "lastTested": self.last_tested.isoformat(),
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "hintsUsed": self.hints_used,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MasteryEntry:
        return cls(
            level=_coerce_enum(MasteryLevel, data.get("level", "NEW"), MasteryLevel.NEW),
            last_tested=_parse_timestamp(data.get("lastTested"), datetime.now(UTC)),
            success_count=_coerce_int(data.get("successCount")),
            failure_count=_coerce_int(data.get("failureCount")),
            hints_used=_coerce_int(data.get("hintsUsed")),
        )


@dataclass
class Misconception:
    """A misconception the assessor named, tagged with the session it appeared in."""

    concept: str
    misconception: str
    session_number: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "concept": self.concept,
            "misconception": self.misconception,
            "sessionNumber": self.session_number,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Misconception:
        return cls(
            concept=str(data.get("concept", "")),
            misconception=str(data.get("misconception", "")),
            session_number=_coerce_int(data.get("sessionNumber")),
        )


@dataclass
class StudentState:
    """
    Knowledge state for one student.

    Loaded at the start of a turn, updated by the planner, persisted by the
    caller. The serialized form uses the camelCase keys of the tutor_sessions
    JSON payload.
    """

    user_id: str
    exam_domain: str = "general"
    session_phase: SessionPhase = SessionPhase.WARMUP
    session_count: int = 0
    messages_in_session: int = 0
    concept_mastery: dict[str, MasteryEntry] = field(default_factory=dict)
    misconceptions: list[Misconception] = field(default_factory=list)
    confidence_calibration: ConfidenceCalibration = ConfidenceCalibration.UNKNOWN
    consecutive_failures: int = 0
    consecutive_successes: int = 0
    pending_question: str | None = None
    pending_concept: str | None = None
    hints_given: int = 0
    awaiting_confidence_rating: bool = False
    last_concepts_tested: list[str] = field(default_factory=list)
    # Correctness of the most recent assessed answer, used for calibration
    last_assessment_correct: bool | None = None

    def copy(self) -> StudentState:
        """Independent deep copy; the planner works on one of these."""
        return copy.deepcopy(self)

    def mastery_for(self, concept: str, hints_given: int = 0) -> MasteryEntry:
        """Entry for a concept, fresh if the concept was never seen."""
        entry = self.concept_mastery.get(concept)
        if entry is None:
            entry = MasteryEntry(hints_used=hints_given)
        return entry

    def record_tested_concept(self, concept: str) -> None:
        """Append to the interleaving window, dropping the oldest past the limit."""
        self.last_concepts_tested = [*self.last_concepts_tested, concept][-MAX_RECENT_CONCEPTS:]

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "examDomain": self.exam_domain,
            "sessionPhase": self.session_phase.value,
            "sessionCount": self.session_count,
            "messagesInSession": self.messages_in_session,
            "conceptMastery": {k: v.to_dict() for k, v in self.concept_mastery.items()},
            "misconceptions": [m.to_dict() for m in self.misconceptions],
            "confidenceCalibration": self.confidence_calibration.value,
            "consecutiveFailures": self.consecutive_failures,
            "consecutiveSuccesses": self.consecutive_successes,
            "pendingQuestion": self.pending_question,
            "pendingConcept": self.pending_concept,
            "hintsGiven": self.hints_given,
            "awaitingConfidenceRating": self.awaiting_confidence_rating,
            "lastConceptsTested": list(self.last_concepts_tested),
            "lastAssessmentCorrect": self.last_assessment_correct,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StudentState:
        """Rebuild from a stored payload; missing or corrupt fields take defaults."""
        mastery: dict[str, MasteryEntry] = {}
        for concept, raw in (data.get("conceptMastery") or {}).items():
            if isinstance(raw, dict):
                mastery[concept] = MasteryEntry.from_dict(raw)
            else:
                logger.warning(f"Dropping corrupt mastery entry for {concept!r}")

        return cls(
            user_id=str(data.get("userId", "")),
            exam_domain=data.get("examDomain") or "general",
            session_phase=_coerce_enum(
                SessionPhase, data.get("sessionPhase") or "warmup", SessionPhase.WARMUP
            ),
            session_count=_coerce_int(data.get("sessionCount")),
            messages_in_session=_coerce_int(data.get("messagesInSession")),
            concept_mastery=mastery,
            misconceptions=[
                Misconception.from_dict(m)
                for m in (data.get("misconceptions") or [])
                if isinstance(m, dict)
            ],
            confidence_calibration=_coerce_enum(
                ConfidenceCalibration,
                data.get("confidenceCalibration") or "unknown",
                ConfidenceCalibration.UNKNOWN,
            ),
            consecutive_failures=_coerce_int(data.get("consecutiveFailures")),
            consecutive_successes=_coerce_int(data.get("consecutiveSuccesses")),
            pending_question=data.get("pendingQuestion") or None,
            pending_concept=data.get("pendingConcept") or None,
            hints_given=_coerce_int(data.get("hintsGiven")),
            awaiting_confidence_rating=bool(
                _coerce_bool(data.get("awaitingConfidenceRating"), False)
            ),
            last_concepts_tested=list(data.get("lastConceptsTested") or [])[-MAX_RECENT_CONCEPTS:],
            last_assessment_correct=_coerce_bool(data.get("lastAssessmentCorrect"), None),
        )


def default_student_state(user_id: str, exam_domain: str = "general") -> StudentState:
    """Initial state for a student with no stored record."""
    return StudentState(user_id=user_id, exam_domain=exam_domain)


@dataclass(frozen=True)
class StudentContext:
    """Real-time performance data for the prompt; never mutated by the tutor."""

    exam_name: str
    student_name: str | None = None
    days_to_exam: int | None = None
    current_streak: int = 0
    quiz_accuracy_last_7_days: float | None = None  # percentage 0-100
    today_topics_done: int = 0
    today_topics_total: int = 0
    recent_weak_topics: tuple[str, ...] = ()


@dataclass(frozen=True)
class AssessmentResult:
    """Rubric score for one answer (0 = incorrect ... 3 = correct with reasoning)."""

    score: int
    is_correct: bool
    misconception: str | None = None
    feedback: str = ""
