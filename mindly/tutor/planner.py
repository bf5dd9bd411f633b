"""
Mastery Planner: the tutoring state machine.

Pure and deterministic. Given the loaded StudentState, the message type and
the (optional) assessment, it returns an updated copy of the state and the
single TutorAction for this turn. No I/O; the clock is injectable.

Per turn:
1. Apply the assessment to the pending concept's mastery entry
2. Count the message
3. Select an action by message type (answer sub-cases in fixed precedence)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger

from .mastery import advance_mastery, regress_mastery
from .types import (
    AssessmentResult,
    ConfidenceCalibration,
    MasteryLevel,
    MessageType,
    Misconception,
    SessionPhase,
    StudentState,
    TutorAction,
    ensure_utc,
)

MAX_HINTS = 2
SCAFFOLD_FAILURE_STREAK = 3
ESCALATE_SUCCESS_STREAK = 3
CONFIDENT_RATING = 4  # ratings >= 4 on the 1-5 scale count as "confident"

# (messages_in_session strictly greater than, action, phase), checked in order
PHASE_SCHEDULE: tuple[tuple[int, TutorAction, SessionPhase], ...] = (
    (22, TutorAction.PREVIEW_NEXT, SessionPhase.PREVIEW),
    (16, TutorAction.METACOGNITIVE_CHECK, SessionPhase.METACOGNITIVE),
    (6, TutorAction.INTERLEAVED_PRACTICE, SessionPhase.PRACTICE),
    (2, TutorAction.INTRODUCE_NEW_CONCEPT, SessionPhase.NEW_CONCEPT),
)


@dataclass(frozen=True)
class PlanResult:
    """Planner output: the chosen action and the updated state."""

    action: TutorAction
    state: StudentState


class MasteryPlanner:
    """Updates the knowledge state and picks the next pedagogical action."""

    def plan(
        self,
        state: StudentState,
        message_type: MessageType,
        assessment: AssessmentResult | None = None,
        message: str = "",
        now: datetime | None = None,
    ) -> PlanResult:
        """Run one transition. The input state is never mutated."""
        now = ensure_utc(now or datetime.now(UTC))
        s = state.copy()

        if assessment is not None and s.pending_concept:
            self._apply_assessment(s, assessment, now)

        s.messages_in_session += 1

        if message_type == MessageType.GREETING:
            action = TutorAction.WARMUP_RETRIEVAL
            s.session_phase = SessionPhase.WARMUP
            s.session_count += 1
            s.messages_in_session = 1

        elif message_type == MessageType.CONFUSION:
            action = TutorAction.VALIDATE_AND_PIVOT

        elif message_type == MessageType.CLAIMED_KNOWLEDGE:
            action = TutorAction.CHALLENGE_CLAIMED_KNOWLEDGE

        elif message_type == MessageType.CONFIDENCE_RATING:
            action = TutorAction.PROCESS_CONFIDENCE_RATING
            s.awaiting_confidence_rating = False
            was_correct = (
                assessment.is_correct if assessment is not None else state.last_assessment_correct
            )
            s.confidence_calibration = calibrate(
                parse_rating(message), was_correct, s.confidence_calibration
            )

        elif message_type == MessageType.ANSWER:
            action = self._select_answer_action(s, assessment)

        elif message_type == MessageType.QUESTION:
            action = TutorAction.ANSWER_THEN_TEST

        else:
            action, s.session_phase = phase_for_message_count(s.messages_in_session)

        logger.debug(
            f"Planned {action.value} for {s.user_id} ({message_type.value}, "
            f"phase={s.session_phase.value}, msg={s.messages_in_session})"
        )
        return PlanResult(action=action, state=s)

    def _apply_assessment(
        self,
        s: StudentState,
        assessment: AssessmentResult,
        now: datetime,
    ) -> None:
        concept = s.pending_concept
        entry = s.mastery_for(concept, s.hints_given)

        if assessment.is_correct:
            entry.success_count += 1
            s.consecutive_failures = 0
            s.consecutive_successes += 1
            if assessment.score == 3:
                entry.level = advance_mastery(entry.level)
            elif assessment.score == 2 and entry.level == MasteryLevel.NEW:
                entry.level = MasteryLevel.FRAGILE

            entry.hints_used += s.hints_given
            s.pending_question = None
            s.hints_given = 0
            s.awaiting_confidence_rating = False
        else:
            entry.failure_count += 1
            s.consecutive_successes = 0
            s.consecutive_failures += 1
            if entry.level in (MasteryLevel.SOLID, MasteryLevel.DEVELOPING):
                entry.level = regress_mastery(entry.level)
            elif entry.level == MasteryLevel.NEW:
                entry.level = MasteryLevel.FRAGILE
            # Pending question and hint count stay until the action decides

        entry.last_tested = now
        s.concept_mastery[concept] = entry
        s.last_assessment_correct = assessment.is_correct

        if assessment.misconception:
            s.misconceptions.append(
                Misconception(
                    concept=concept,
                    misconception=assessment.misconception,
                    session_number=s.session_count,
                )
            )

    def _select_answer_action(
        self,
        s: StudentState,
        assessment: AssessmentResult | None,
    ) -> TutorAction:
        is_correct = assessment is not None and assessment.is_correct

        # Failure streak dominates the hint budget
        if s.consecutive_failures >= SCAFFOLD_FAILURE_STREAK:
            s.pending_question = None
            s.hints_given = 0
            return TutorAction.SCAFFOLD_BACK

        if not is_correct and s.hints_given >= MAX_HINTS:
            s.pending_question = None
            s.hints_given = 0
            return TutorAction.REVEAL_ANSWER

        if not is_correct:
            s.hints_given += 1
            return TutorAction.GIVE_HINT

        if s.consecutive_successes >= ESCALATE_SUCCESS_STREAK:
            s.awaiting_confidence_rating = True
            return TutorAction.ESCALATE_DIFFICULTY

        return TutorAction.INTERLEAVED_PRACTICE


def parse_rating(message: str) -> int | None:
    """Numeric 1-5 confidence rating from a reply, or None."""
    text = message.strip()
    if len(text) == 1 and text in "12345":
        return int(text)
    return None


def calibrate(
    rating: int | None,
    was_correct: bool | None,
    current: ConfidenceCalibration,
) -> ConfidenceCalibration:
    """
    Classify calibration from a rating and the last assessed answer.

    rating >= 4 with an incorrect answer is overconfident, rating < 4 with a
    correct answer is underconfident, anything else is calibrated. Without a
    rating or a known prior answer the current value is kept.
    """
    if rating is None or was_correct is None:
        return current

    confident = rating >= CONFIDENT_RATING
    if confident and not was_correct:
        return ConfidenceCalibration.OVERCONFIDENT
    if not confident and was_correct:
        return ConfidenceCalibration.UNDERCONFIDENT
    return ConfidenceCalibration.CALIBRATED


def phase_for_message_count(messages_in_session: int) -> tuple[TutorAction, SessionPhase]:
    """Fallback action and phase for general chat, driven by session length."""
    for threshold, action, phase in PHASE_SCHEDULE:
        if messages_in_session > threshold:
            return action, phase
    return TutorAction.WARMUP_RETRIEVAL, SessionPhase.WARMUP
