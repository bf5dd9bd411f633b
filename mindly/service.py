"""
Tutor Chat Service.

Orchestrates one chat turn around the decision pipeline:
load state and history, run the pipeline, stream the tutor reply, then
extract the next pending question and persist everything.

Turns for the same student are serialized within a process. The store is
synchronous, so its calls run in a worker thread.
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from loguru import logger

from mindly.config import Settings, get_settings
from mindly.llm import create_completion_service
from mindly.llm.base import CompletionOptions, CompletionService
from mindly.store import SqlStudentStateStore
from mindly.tutor.extractor import QuestionExtractor, apply_extracted_question
from mindly.tutor.pipeline import TutorPipeline, build_messages
from mindly.tutor.types import MessageType, SessionPhase, StudentContext, StudentState, TutorAction


@dataclass(frozen=True)
class ChatReply:
    """A fully collected tutor turn."""

    text: str
    message_type: MessageType
    action: TutorAction
    phase: SessionPhase
    awaiting_rating: bool


class TutorChatService:
    """Runs chat turns end to end for many students."""

    def __init__(
        self,
        pipeline: TutorPipeline,
        llm: CompletionService,
        store: SqlStudentStateStore,
        extractor: QuestionExtractor | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.pipeline = pipeline
        self.llm = llm
        self.store = store
        self.extractor = extractor or QuestionExtractor(
            llm, timeout_s=self.settings.extractor_timeout_s
        )
        # A lock lives only while some turn for that student holds or awaits it
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        llm: CompletionService | None = None,
        store: SqlStudentStateStore | None = None,
    ) -> TutorChatService:
        """Wire the service from configuration. Raises ConfigurationError without an API key."""
        settings = settings or get_settings()
        llm = llm or create_completion_service(settings)
        if store is None:
            store = SqlStudentStateStore(settings.database_url)
            store.init_db()
        return cls(
            pipeline=TutorPipeline.from_settings(llm, settings),
            llm=llm,
            store=store,
            settings=settings,
        )

    @property
    def chat_options(self) -> CompletionOptions:
        return CompletionOptions(
            temperature=self.settings.chat_temperature,
            max_tokens=self.settings.chat_max_tokens,
        )

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    async def stream_turn(
        self,
        user_id: str,
        message: str,
        context: StudentContext | None = None,
        exam_domain: str | None = None,
    ) -> AsyncIterator[dict[str, Any] | str]:
        """
        Run one turn, yielding a metadata event first and then reply text chunks.

        The metadata event is a dict with ``type`` == "meta". The updated state
        and whatever reply text arrived are persisted even when streaming fails
        or the consumer stops early; generation errors still propagate.
        """
        message = (message or "").strip()
        if not message:
            raise ValueError("Message must not be empty")

        exam_domain = exam_domain or self.settings.default_exam_domain

        lock = self._lock_for(user_id)
        async with lock:
            state = await asyncio.to_thread(self.store.load, user_id, exam_domain)
            history = await asyncio.to_thread(
                self.store.recent_history, user_id, self.settings.history_limit
            )

            result = await self.pipeline.run(message, state, history, context)
            chunks: list[str] = []
            try:
                yield result.metadata()
                async for chunk in self.llm.stream(
                    build_messages(result.system_prompt, history, message),
                    self.chat_options,
                ):
                    chunks.append(chunk)
                    yield chunk
            finally:
                # Planner progress is kept even if generation fails or the caller goes away
                await asyncio.shield(
                    self._finish_turn(user_id, message, "".join(chunks), result.state)
                )

    async def _finish_turn(
        self,
        user_id: str,
        message: str,
        reply: str,
        state: StudentState,
    ) -> None:
        if reply:
            apply_extracted_question(state, await self.extractor.extract(reply))

        await asyncio.to_thread(self.store.append_message, user_id, "user", message)
        if reply:
            await asyncio.to_thread(self.store.append_message, user_id, "assistant", reply)
        await asyncio.to_thread(self.store.save, state)
        logger.debug(
            f"Persisted turn for {user_id} (pending question: {bool(state.pending_question)})"
        )

    async def run_turn(
        self,
        user_id: str,
        message: str,
        context: StudentContext | None = None,
        exam_domain: str | None = None,
    ) -> ChatReply:
        """Run one turn and collect the streamed reply."""
        meta: dict[str, Any] = {}
        parts: list[str] = []
        async for event in self.stream_turn(user_id, message, context, exam_domain):
            if isinstance(event, dict):
                meta = event
            else:
                parts.append(event)

        return ChatReply(
            text="".join(parts),
            message_type=MessageType(meta["messageType"]),
            action=TutorAction(meta["action"]),
            phase=SessionPhase(meta["phase"]),
            awaiting_rating=bool(meta["awaitingRating"]),
        )

    async def close(self) -> None:
        await self.llm.close()
