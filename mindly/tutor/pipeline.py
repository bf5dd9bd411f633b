"""
Tutor Pipeline: classify -> (assess) -> plan -> compile.

One invocation per incoming chat message. Only the classifier's fallback and
the assessor touch the generative service; both are bounded and degrade to
safe defaults, so run() does not raise on generative failures. The pipeline
keeps no state between calls.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loguru import logger

from mindly.config import Settings, get_settings
from mindly.llm.base import ChatMessage, CompletionService

from .assessor import AnswerAssessor
from .classifier import MessageClassifier
from .planner import MasteryPlanner
from .prompt_compiler import PromptCompiler
from .types import (
    AssessmentResult,
    MessageType,
    SessionPhase,
    StudentContext,
    StudentState,
    TutorAction,
)


@dataclass(frozen=True)
class TurnResult:
    """Everything the caller needs after one pipeline run."""

    message_type: MessageType
    assessment: AssessmentResult | None
    action: TutorAction
    state: StudentState
    system_prompt: str

    @property
    def phase(self) -> SessionPhase:
        return self.state.session_phase

    def metadata(self) -> dict[str, Any]:
        """UI metadata (phase badge, pending rating prompt)."""
        return {
            "type": "meta",
            "phase": self.phase.value,
            "awaitingRating": self.state.awaiting_confidence_rating,
            "action": self.action.value,
            "messageType": self.message_type.value,
        }


class TutorPipeline:
    """Runs the four tutoring stages for a single message."""

    def __init__(
        self,
        classifier: MessageClassifier,
        assessor: AnswerAssessor,
        planner: MasteryPlanner | None = None,
        compiler: PromptCompiler | None = None,
    ):
        self.classifier = classifier
        self.assessor = assessor
        self.planner = planner or MasteryPlanner()
        self.compiler = compiler or PromptCompiler()

    @classmethod
    def from_settings(
        cls,
        llm: CompletionService | None,
        settings: Settings | None = None,
    ) -> TutorPipeline:
        settings = settings or get_settings()
        return cls(
            classifier=MessageClassifier(llm, timeout_s=settings.classifier_timeout_s),
            assessor=AnswerAssessor(llm, timeout_s=settings.assessor_timeout_s),
        )

    async def run(
        self,
        message: str,
        state: StudentState,
        history: Sequence[ChatMessage] = (),
        context: StudentContext | None = None,
        now: datetime | None = None,
    ) -> TurnResult:
        message_type = await self.classifier.classify(
            message,
            history_length=len(history),
            pending_question=state.pending_question,
            awaiting_confidence_rating=state.awaiting_confidence_rating,
        )

        assessment = None
        if AnswerAssessor.should_assess(message_type, state):
            assessment = await self.assessor.assess(message_type, state, message)

        plan = self.planner.plan(state, message_type, assessment, message=message, now=now)
        system_prompt = self.compiler.compile(plan.state, plan.action, context, now=now)

        logger.info(
            f"Turn for {state.user_id}: {message_type.value} -> {plan.action.value} "
            f"[{plan.state.session_phase.value}]"
        )
        return TurnResult(
            message_type=message_type,
            assessment=assessment,
            action=plan.action,
            state=plan.state,
            system_prompt=system_prompt,
        )


def build_messages(
    system_prompt: str,
    history: Sequence[ChatMessage],
    message: str,
) -> list[ChatMessage]:
    """Final chat payload: system prompt, history oldest first, then the new message."""
    return [
        ChatMessage(role="system", content=system_prompt),
        *history,
        ChatMessage(role="user", content=message.strip()),
    ]
