"""
Message Classifier: decide what kind of message the student sent.

Cheap ordered pattern rules cover most traffic; ambiguous messages fall back
to a short JSON classification call. The fallback is bounded by a timeout and
never raises: on any failure the message is treated as an answer when a
question is pending, otherwise as general chat.
"""

from __future__ import annotations

import asyncio
import re

from loguru import logger

from mindly.llm.base import CompletionOptions, CompletionService

from .types import MessageType

CLASSIFY_PROMPT = """Classify this student message in a tutoring session.
{context}
Student: "{message}"
Return ONLY JSON: {{"type":"answer"|"question"|"general"}}"""

CLASSIFY_OPTIONS = CompletionOptions(temperature=0.0, max_tokens=30, json_mode=True)

# Labels the generative fallback is allowed to return
FALLBACK_LABELS = {
    MessageType.ANSWER.value: MessageType.ANSWER,
    MessageType.QUESTION.value: MessageType.QUESTION,
    MessageType.GENERAL.value: MessageType.GENERAL,
}


class MessageClassifier:
    """
    Classifies student messages into MessageType.

    Rule order (first match wins):
    1. No history, or a greeting/start phrase -> GREETING
    2. Awaiting a rating and the reply is a single digit 1-5 -> CONFIDENCE_RATING
    3. Claimed familiarity ("I know this") -> CLAIMED_KNOWLEDGE
    4. Confusion or being stuck -> CONFUSION
    5. Leading interrogative or request to explain -> QUESTION
    6. Generative fallback -> ANSWER | QUESTION | GENERAL
    """

    GREETING_PATTERN = re.compile(r"""
        ^ (?: hi | hello | hey | start | begin
            | let'?s \s+ (?: start | go )
            | good \s+ (?: morning | evening | afternoon )
        ) \b
    """, re.VERBOSE | re.IGNORECASE)

    RATING_PATTERN = re.compile(r"^[1-5]$")

    CLAIMED_KNOWLEDGE_PATTERNS = [
        re.compile(r"""
            ^ i \s+ (?: know | remember | studied | saw | read ) \s+ this
        """, re.VERBOSE | re.IGNORECASE),

        re.compile(r"""
            ^ (?: i \s+ know | i'?ve \s+ seen \s+ this )
        """, re.VERBOSE | re.IGNORECASE),
    ]

    CONFUSION_PATTERN = re.compile(r"""
        i (?: '?m | \s+ am ) \s+ (?: confused | lost | stuck )
        | not \s+ (?: getting | clear | understanding )
        | don'?t \s+ understand
        | struggling
        | this \s+ is \s+ (?: hard | difficult | confusing )
    """, re.VERBOSE | re.IGNORECASE)

    QUESTION_PATTERN = re.compile(r"""
        ^ (?: what'?s | what | why | how | when | where | explain
            | tell \s+ me | can \s+ you | could \s+ you
            | is \s+ it | are \s+ there
        ) \b
    """, re.VERBOSE | re.IGNORECASE)

    def __init__(self, llm: CompletionService | None = None, timeout_s: float = 8.0):
        self.llm = llm
        self.timeout_s = timeout_s

    @staticmethod
    def _normalize(message: str) -> str:
        return message.strip().replace("’", "'").lower()

    def classify_by_rules(
        self,
        message: str,
        history_length: int,
        awaiting_confidence_rating: bool = False,
    ) -> MessageType | None:
        """Apply the pattern rules; None when the message is ambiguous."""
        msg = self._normalize(message)

        if history_length == 0 or self.GREETING_PATTERN.search(msg):
            return MessageType.GREETING
        if awaiting_confidence_rating and self.RATING_PATTERN.match(msg):
            return MessageType.CONFIDENCE_RATING
        if any(p.search(msg) for p in self.CLAIMED_KNOWLEDGE_PATTERNS):
            return MessageType.CLAIMED_KNOWLEDGE
        if self.CONFUSION_PATTERN.search(msg):
            return MessageType.CONFUSION
        if self.QUESTION_PATTERN.search(msg):
            return MessageType.QUESTION
        return None

    async def classify(
        self,
        message: str,
        history_length: int,
        pending_question: str | None = None,
        awaiting_confidence_rating: bool = False,
    ) -> MessageType:
        """Classify a message, consulting the generative service only when rules are silent."""
        by_rule = self.classify_by_rules(message, history_length, awaiting_confidence_rating)
        if by_rule is not None:
            return by_rule

        fallback = MessageType.ANSWER if pending_question else MessageType.GENERAL
        if self.llm is None:
            return fallback

        context = (
            f'Pending question from tutor: "{pending_question}"'
            if pending_question
            else "No pending question."
        )
        prompt = CLASSIFY_PROMPT.format(context=context, message=message.strip())

        try:
            result = await asyncio.wait_for(
                self.llm.complete_json(prompt, options=CLASSIFY_OPTIONS),
                timeout=self.timeout_s,
            )
        except Exception as e:  # Intentionally broad - classification must never fail the turn
            logger.warning(f"Classifier fallback failed, defaulting to {fallback.value}: {e}")
            return fallback

        label = str(result.get("type") or "general").strip().lower()
        message_type = FALLBACK_LABELS.get(label)
        if message_type is None:
            logger.debug(f"Classifier returned unknown label {label!r}, using general")
            return MessageType.GENERAL
        return message_type
