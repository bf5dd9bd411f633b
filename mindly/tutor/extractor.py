"""
Pending-question extraction.

After the tutor replies, find the question it asked and the concept being
tested so the next student message can be assessed against it.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from loguru import logger

from mindly.llm.base import CompletionOptions, CompletionService

from .types import StudentState

EXTRACT_PROMPT = """From this tutor response, extract the question being asked and the concept/topic being tested.
Response: "{response}"
Return ONLY JSON: {{"question":"exact question text or null","concept":"topic or concept name or null"}}"""

EXTRACT_OPTIONS = CompletionOptions(temperature=0.0, max_tokens=80, json_mode=True)
RESPONSE_CHARS = 600


@dataclass(frozen=True)
class ExtractedQuestion:
    question: str | None = None
    concept: str | None = None


def _clean(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return None if text.lower() in ("", "null", "none") else text


class QuestionExtractor:
    """Pulls the outstanding question and concept out of a tutor reply."""

    def __init__(self, llm: CompletionService | None = None, timeout_s: float = 8.0):
        self.llm = llm
        self.timeout_s = timeout_s

    async def extract(self, response: str) -> ExtractedQuestion:
        if "?" not in response or self.llm is None:
            return ExtractedQuestion()

        prompt = EXTRACT_PROMPT.format(response=response[:RESPONSE_CHARS])
        try:
            data = await asyncio.wait_for(
                self.llm.complete_json(prompt, options=EXTRACT_OPTIONS),
                timeout=self.timeout_s,
            )
        except Exception as e:  # Intentionally broad - extraction is best effort
            logger.warning(f"Question extraction failed: {e}")
            return ExtractedQuestion()

        return ExtractedQuestion(
            question=_clean(data.get("question")),
            concept=_clean(data.get("concept")),
        )


def apply_extracted_question(state: StudentState, extracted: ExtractedQuestion) -> None:
    """Record the new pending question and feed the interleaving window."""
    if not extracted.question:
        return

    state.pending_question = extracted.question
    state.pending_concept = extracted.concept or state.pending_concept
    if extracted.concept:
        state.record_tested_concept(extracted.concept)
