"""
Unit tests for the message classifier.

Covers rule precedence, word-boundary handling and the generative fallback's
degradation paths.
"""

import asyncio

import pytest

from mindly.exceptions import GenerationError
from mindly.tutor.classifier import MessageClassifier
from mindly.tutor.types import MessageType


@pytest.fixture
def classifier():
    return MessageClassifier()


class TestRules:
    def test_empty_history_is_greeting(self, classifier):
        assert classifier.classify_by_rules("what is GDP?", 0) == MessageType.GREETING

    @pytest.mark.parametrize(
        "message",
        ["hi", "Hello there", "hey!", "let's start", "lets go", "Good morning", "begin"],
    )
    def test_greetings(self, classifier, message):
        assert classifier.classify_by_rules(message, 4) == MessageType.GREETING

    @pytest.mark.parametrize("message", ["history is my weak area", "highly unlikely", "beginning"])
    def test_greeting_needs_word_boundary(self, classifier, message):
        assert classifier.classify_by_rules(message, 4) != MessageType.GREETING

    def test_rating_only_when_awaiting(self, classifier):
        assert (
            classifier.classify_by_rules("4", 6, awaiting_confidence_rating=True)
            == MessageType.CONFIDENCE_RATING
        )
        assert classifier.classify_by_rules("4", 6, awaiting_confidence_rating=False) is None

    @pytest.mark.parametrize("message", ["0", "6", "45", "4/5"])
    def test_rating_must_be_single_digit_in_range(self, classifier, message):
        assert (
            classifier.classify_by_rules(message, 6, awaiting_confidence_rating=True)
            != MessageType.CONFIDENCE_RATING
        )

    @pytest.mark.parametrize(
        "message",
        ["I know this", "i remember this one", "I've seen this before", "I know how it works"],
    )
    def test_claimed_knowledge(self, classifier, message):
        assert classifier.classify_by_rules(message, 4) == MessageType.CLAIMED_KNOWLEDGE

    @pytest.mark.parametrize(
        "message",
        [
            "I'm confused",
            "honestly I am lost",
            "I don't understand the second part",
            "struggling with this",
            "this is hard",
            "not getting it",
        ],
    )
    def test_confusion(self, classifier, message):
        assert classifier.classify_by_rules(message, 4) == MessageType.CONFUSION

    @pytest.mark.parametrize(
        "message",
        ["What is fiscal deficit", "why does it matter", "How do enzymes work?", "explain paging",
         "can you give an example", "tell me more"],
    )
    def test_questions(self, classifier, message):
        assert classifier.classify_by_rules(message, 4) == MessageType.QUESTION

    def test_question_needs_word_boundary(self, classifier):
        assert classifier.classify_by_rules("however the GDP fell", 4) is None

    def test_claimed_knowledge_beats_confusion(self, classifier):
        assert (
            classifier.classify_by_rules("I know this but I'm confused", 4)
            == MessageType.CLAIMED_KNOWLEDGE
        )

    def test_curly_apostrophe_is_normalized(self, classifier):
        assert classifier.classify_by_rules("I’m stuck", 4) == MessageType.CONFUSION

    def test_ambiguous_returns_none(self, classifier):
        assert classifier.classify_by_rules("Article 17", 4) is None


class TestFallback:
    @pytest.mark.asyncio
    async def test_rules_skip_the_service(self, fake_llm):
        llm = fake_llm()
        classifier = MessageClassifier(llm)

        result = await classifier.classify("hello", history_length=3)

        assert result == MessageType.GREETING
        assert llm.json_calls == []

    @pytest.mark.asyncio
    async def test_service_label_is_used(self, fake_llm):
        llm = fake_llm(json_replies=[{"type": "answer"}])
        classifier = MessageClassifier(llm)

        result = await classifier.classify("Article 17", 3, pending_question="Which article?")

        assert result == MessageType.ANSWER
        assert 'Pending question from tutor: "Which article?"' in llm.json_calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_unknown_label_maps_to_general(self, fake_llm):
        classifier = MessageClassifier(fake_llm(json_replies=[{"type": "greeting"}]))
        assert await classifier.classify("Article 17", 3, "Which article?") == MessageType.GENERAL

    @pytest.mark.asyncio
    async def test_failure_with_pending_question_is_answer(self, fake_llm):
        llm = fake_llm(json_replies=[GenerationError("boom", provider="fake")])
        classifier = MessageClassifier(llm)
        assert await classifier.classify("Article 17", 3, "Which article?") == MessageType.ANSWER

    @pytest.mark.asyncio
    async def test_failure_without_pending_question_is_general(self, fake_llm):
        classifier = MessageClassifier(fake_llm(json_replies=[ValueError("bad json")]))
        assert await classifier.classify("Article 17", 3, None) == MessageType.GENERAL

    @pytest.mark.asyncio
    async def test_timeout_degrades(self):
        class SlowService:
            async def complete_json(self, prompt, system=None, options=None):
                await asyncio.sleep(5)
                return {"type": "question"}

        classifier = MessageClassifier(SlowService(), timeout_s=0.01)
        assert await classifier.classify("Article 17", 3, "Which article?") == MessageType.ANSWER

    @pytest.mark.asyncio
    async def test_no_service_uses_default(self):
        classifier = MessageClassifier(None)
        assert await classifier.classify("Article 17", 3, "Which article?") == MessageType.ANSWER
        assert await classifier.classify("Article 17", 3, None) == MessageType.GENERAL
