"""
Answer Assessor: rubric-score a student's answer to the pending question.

Only runs for ANSWER messages while a question is pending. Any failure
(network, timeout, malformed payload) yields None, which the planner treats
as "no assessment happened" rather than "incorrect".
"""

from __future__ import annotations

import asyncio

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mindly.llm.base import CompletionOptions, CompletionService

from .types import AssessmentResult, MessageType, StudentState

ASSESSOR_SYSTEM_PROMPT = (
    "You evaluate student answers in an adaptive tutoring session. "
    "Be strict but fair. Return ONLY JSON."
)

ASSESSOR_PROMPT = """Tutor asked: "{question}"
Concept being tested: "{concept}"
Domain: {domain}
Hints already given: {hints}
Student answered: "{answer}"

Score 0-3:
3 = Correct AND demonstrates deep understanding (explains reasoning)
2 = Correct but shallow (right answer, unclear why)
1 = Partially correct or right direction
0 = Incorrect or completely off track

Return JSON: {{"score":0-3,"isCorrect":true|false,"misconception":"string or null","feedback":"one sentence on what was right/wrong"}}"""

ASSESSOR_OPTIONS = CompletionOptions(temperature=0.0, max_tokens=150, json_mode=True)


class AssessmentPayload(BaseModel):
    """Shape of the assessor's JSON reply."""

    model_config = ConfigDict(populate_by_name=True)

    score: int = 0
    is_correct: bool = Field(default=False, alias="isCorrect")
    misconception: str | None = None
    feedback: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, v):
        if v is None:
            return 0
        return max(0, min(3, int(v)))

    @field_validator("misconception", mode="before")
    @classmethod
    def blank_misconception(cls, v):
        if v is None:
            return None
        text = str(v).strip()
        return None if text.lower() in ("", "null", "none") else text

    @field_validator("feedback", mode="before")
    @classmethod
    def feedback_text(cls, v):
        return "" if v is None else str(v)

    def to_result(self) -> AssessmentResult:
        return AssessmentResult(
            score=self.score,
            is_correct=self.is_correct,
            misconception=self.misconception,
            feedback=self.feedback,
        )


class AnswerAssessor:
    """Scores answers with the generative service against a fixed rubric."""

    def __init__(self, llm: CompletionService | None = None, timeout_s: float = 12.0):
        self.llm = llm
        self.timeout_s = timeout_s

    @staticmethod
    def should_assess(message_type: MessageType, state: StudentState) -> bool:
        return message_type == MessageType.ANSWER and bool(state.pending_question)

    async def assess(
        self,
        message_type: MessageType,
        state: StudentState,
        answer: str,
    ) -> AssessmentResult | None:
        """Score the answer, or None when no assessment applies or it failed."""
        if not self.should_assess(message_type, state) or self.llm is None:
            return None

        prompt = ASSESSOR_PROMPT.format(
            question=state.pending_question,
            concept=state.pending_concept or "unknown",
            domain=state.exam_domain,
            hints=state.hints_given,
            answer=answer.strip(),
        )

        try:
            raw = await asyncio.wait_for(
                self.llm.complete_json(
                    prompt, system=ASSESSOR_SYSTEM_PROMPT, options=ASSESSOR_OPTIONS
                ),
                timeout=self.timeout_s,
            )
            result = AssessmentPayload.model_validate(raw).to_result()
        except ValidationError as e:
            logger.warning(f"Assessor returned an invalid payload: {e.error_count()} errors")
            return None
        except Exception as e:  # Intentionally broad - a failed assessment is "no assessment"
            logger.warning(f"Answer assessment failed: {e}")
            return None

        logger.debug(
            f"Assessed answer for {state.pending_concept!r}: score={result.score} "
            f"correct={result.is_correct}"
        )
        return result
