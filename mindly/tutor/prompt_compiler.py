"""
Prompt Compiler: render the tutor's system instruction for one turn.

Deterministic string assembly from the updated StudentState, the selected
TutorAction and the optional StudentContext. The only time-dependent input is
the decay check, and its clock is injectable, so equal inputs give
byte-identical prompts.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from . import prompts
from .mastery import is_fragile
from .types import MasteryLevel, StudentContext, StudentState, TutorAction, ensure_utc

OVERDUE_AFTER = timedelta(days=3)
RECENT_MISCONCEPTIONS = 3
RECENT_TOPICS = 4
SUMMARY_FRAGILE_LIMIT = 5
SUMMARY_OVERDUE_LIMIT = 3


def fragile_concepts(state: StudentState) -> list[str]:
    """FRAGILE/DEVELOPING concepts, most failures first."""
    fragile = [(name, e) for name, e in state.concept_mastery.items() if is_fragile(e.level)]
    fragile.sort(key=lambda item: item[1].failure_count, reverse=True)
    return [name for name, _ in fragile]


def overdue_concepts(state: StudentState, now: datetime) -> list[str]:
    """SOLID concepts not tested for more than three days."""
    return [
        name
        for name, e in state.concept_mastery.items()
        if e.level == MasteryLevel.SOLID and now - e.last_tested > OVERDUE_AFTER
    ]


def format_misconceptions(state: StudentState) -> str:
    recent = state.misconceptions[-RECENT_MISCONCEPTIONS:]
    return "; ".join(f'{m.concept}: "{m.misconception}"' for m in recent) or prompts.NONE_TEXT


def format_recent_topics(state: StudentState) -> str:
    return ", ".join(state.last_concepts_tested[-RECENT_TOPICS:]) or prompts.NONE_TEXT


def render_performance_block(ctx: StudentContext) -> str:
    """Performance data block with explicit fallbacks for missing numbers."""
    if ctx.days_to_exam is not None:
        days = f"{ctx.days_to_exam} days"
    else:
        days = prompts.NO_EXAM_DATE

    if ctx.quiz_accuracy_last_7_days is not None:
        accuracy = f"{ctx.quiz_accuracy_last_7_days:g}%"
    else:
        accuracy = prompts.NO_RECENT_QUIZZES

    if ctx.today_topics_total > 0:
        today = f"{ctx.today_topics_done}/{ctx.today_topics_total} topics done"
    elif ctx.today_topics_done > 0:
        today = f"{ctx.today_topics_done} topics completed"
    else:
        today = prompts.NOT_STARTED

    return prompts.PERFORMANCE_BLOCK.format(
        name=ctx.student_name or prompts.DEFAULT_STUDENT_NAME,
        exam=ctx.exam_name,
        days=days,
        streak=f"{ctx.current_streak} day{'' if ctx.current_streak == 1 else 's'}",
        accuracy=accuracy,
        today=today,
        weak=", ".join(ctx.recent_weak_topics) or prompts.NO_WEAK_TOPICS,
    )


class PromptCompiler:
    """Builds the system prompt: persona, performance, knowledge state, task, rules."""

    def __init__(self, now: datetime | None = None):
        # Fixed clock for tests; None means "now" at compile time
        self._now = now

    def compile(
        self,
        state: StudentState,
        action: TutorAction,
        context: StudentContext | None = None,
        now: datetime | None = None,
    ) -> str:
        now = ensure_utc(now or self._now or datetime.now(UTC))

        fragile = fragile_concepts(state)
        overdue = overdue_concepts(state, now)
        misconceptions = format_misconceptions(state)

        sections = [
            prompts.PERSONA_PREAMBLE,
            render_performance_block(context) if context is not None else "",
            self._knowledge_state(state, fragile, overdue, misconceptions),
            prompts.TASK_HEADER,
            self.action_instruction(state, action, fragile, overdue, misconceptions),
            "\n",
            prompts.RULES_HEADER,
            "\n".join(f"{i}. {rule}" for i, rule in enumerate(prompts.NON_NEGOTIABLE_RULES, 1)),
        ]
        return "".join(sections)

    def _knowledge_state(
        self,
        state: StudentState,
        fragile: list[str],
        overdue: list[str],
        misconceptions: str,
    ) -> str:
        return prompts.KNOWLEDGE_STATE_BLOCK.format(
            domain=state.exam_domain,
            phase=state.session_phase.badge,
            message_number=state.messages_in_session,
            session_number=state.session_count,
            consecutive_failures=state.consecutive_failures,
            consecutive_successes=state.consecutive_successes,
            calibration=state.confidence_calibration.value,
            fragile=", ".join(fragile[:SUMMARY_FRAGILE_LIMIT]) or prompts.NONE_YET,
            overdue=", ".join(overdue[:SUMMARY_OVERDUE_LIMIT]) or prompts.NONE_TEXT,
            misconceptions=misconceptions,
            awaiting=str(state.awaiting_confidence_rating).lower(),
        )

    def action_instruction(
        self,
        state: StudentState,
        action: TutorAction,
        fragile: list[str],
        overdue: list[str],
        misconceptions: str,
    ) -> str:
        """Fill the action's instruction template with this turn's signals."""
        note = prompts.CALIBRATION_NOTES.get(state.confidence_calibration)
        calibration_note = (
            note.format(misconceptions=misconceptions) if note else prompts.WELL_CALIBRATED_NOTE
        )

        if action == TutorAction.WARMUP_RETRIEVAL:
            fragile_text = ", ".join(fragile) or prompts.NO_FRAGILE_WARMUP
        else:
            fragile_text = ", ".join(fragile) or prompts.NO_FRAGILE_RECORDED

        template = prompts.ACTION_INSTRUCTIONS[action]
        return template.format(
            fragile=fragile_text,
            overdue=", ".join(overdue) or prompts.NONE_TEXT,
            misconceptions=misconceptions,
            recent_topics=format_recent_topics(state),
            domain=state.exam_domain,
            hints_given=state.hints_given,
            consecutive_successes=state.consecutive_successes,
            consecutive_failures=state.consecutive_failures,
            calibration=state.confidence_calibration.value,
            calibration_note=calibration_note,
        )
