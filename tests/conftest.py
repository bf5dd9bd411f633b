"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
from __future__ import annotations

import sys
from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from mindly.exceptions import GenerationError  # noqa: E402
from mindly.llm.base import ChatMessage, CompletionOptions  # noqa: E402
from mindly.tutor.types import (  # noqa: E402
    MasteryEntry,
    MasteryLevel,
    Misconception,
    StudentContext,
    StudentState,
)

FIXED_NOW = datetime(2025, 3, 10, 9, 30, tzinfo=UTC)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FakeCompletionService:
    """
    In-memory CompletionService.

    complete_json pops queued payloads (or raises queued exceptions); stream
    yields the queued reply in chunks. Every call is recorded.
    """

    def __init__(
        self,
        json_replies: list[Any] | None = None,
        stream_reply: str = "",
        chunk_size: int = 8,
    ):
        self.json_replies = list(json_replies or [])
        self.stream_reply = stream_reply
        self.chunk_size = chunk_size
        self.json_calls: list[dict[str, Any]] = []
        self.stream_calls: list[list[ChatMessage]] = []
        self.closed = False

    async def complete(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> str:
        return self.stream_reply

    async def complete_json(
        self,
        prompt: str,
        system: str | None = None,
        options: CompletionOptions | None = None,
    ) -> dict[str, Any]:
        self.json_calls.append({"prompt": prompt, "system": system, "options": options})
        if not self.json_replies:
            raise GenerationError("no reply queued", provider="fake")
        reply = self.json_replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def stream(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> AsyncIterator[str]:
        self.stream_calls.append(list(messages))
        text = self.stream_reply
        for i in range(0, len(text), self.chunk_size):
            yield text[i : i + self.chunk_size]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def fixed_now():
    """A fixed clock for planner and prompt tests."""
    return FIXED_NOW


@pytest.fixture
def fake_llm():
    """Factory for FakeCompletionService instances."""

    def _make(json_replies=None, stream_reply="", chunk_size=8):
        return FakeCompletionService(json_replies, stream_reply, chunk_size)

    return _make


@pytest.fixture
def fresh_state():
    """A brand-new student."""
    return StudentState(user_id="student-001", exam_domain="UPSC")


@pytest.fixture
def pending_state():
    """A student with a question outstanding on a NEW concept."""
    return StudentState(
        user_id="student-001",
        exam_domain="UPSC",
        session_count=1,
        messages_in_session=4,
        pending_question="Which article of the Constitution abolishes untouchability?",
        pending_concept="Fundamental Rights",
    )


@pytest.fixture
def rich_state():
    """A mid-session student with mixed mastery, misconceptions and history."""
    return StudentState(
        user_id="student-002",
        exam_domain="GATE CS",
        session_count=3,
        messages_in_session=9,
        concept_mastery={
            "Deadlocks": MasteryEntry(
                level=MasteryLevel.FRAGILE,
                last_tested=FIXED_NOW - timedelta(days=1),
                failure_count=3,
            ),
            "Paging": MasteryEntry(
                level=MasteryLevel.DEVELOPING,
                last_tested=FIXED_NOW - timedelta(hours=5),
                success_count=2,
                failure_count=1,
            ),
            "Normalization": MasteryEntry(
                level=MasteryLevel.SOLID,
                last_tested=FIXED_NOW - timedelta(days=5),
                success_count=4,
            ),
            "Hashing": MasteryEntry(
                level=MasteryLevel.SOLID,
                last_tested=FIXED_NOW - timedelta(days=1),
                success_count=3,
            ),
        },
        misconceptions=[
            Misconception("Deadlocks", "thinks mutual exclusion alone causes deadlock", 1),
            Misconception("Paging", "confuses page size with frame count", 2),
            Misconception("Deadlocks", "believes preemption always prevents deadlock", 2),
            Misconception("Hashing", "assumes chaining never degrades", 3),
        ],
        last_concepts_tested=["Deadlocks", "Paging", "Hashing", "Normalization", "Paging"],
    )


@pytest.fixture
def student_context():
    """Performance data for the prompt's context block."""
    return StudentContext(
        exam_name="UPSC Prelims",
        student_name="Asha",
        days_to_exam=42,
        current_streak=6,
        quiz_accuracy_last_7_days=72.5,
        today_topics_done=2,
        today_topics_total=5,
        recent_weak_topics=("Polity", "Modern History"),
    )
