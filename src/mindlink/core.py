"""Mindlink orchestrator — routes user actions to the stores and the engine.

Responsibilities:
1. Own the memory store, chat history and application state
2. Per-action guard — one outstanding request per action kind
3. Memory capture — analyse first, store only on success
4. Chat, insights and study plan requests
5. Read-side projections: filtered timeline and knowledge graph
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mindlink.conversation import (
    ANALYSIS_CONTEXT_SIZE,
    ResponseParseError,
    analyze_memory,
    chat_reply,
    generate_insights,
    generate_study_plan,
)
from mindlink.engines.base import EngineError
from mindlink.graph import GraphData, build_graph
from mindlink.memory.chat import ChatHistory
from mindlink.memory.store import MemoryStore
from mindlink.models import ChatMessage, Memory
from mindlink.state import (
    Action,
    ActionFinished,
    ActionStarted,
    AppState,
    ErrorRaised,
    InsightsReady,
    StudyPlanReady,
    reduce,
)

if TYPE_CHECKING:
    from mindlink.config import MindlinkConfig
    from mindlink.engines.base import Engine
    from mindlink.models import Attachment

logger = logging.getLogger(__name__)

_FAILURES = (EngineError, ResponseParseError, OSError)


class Mindlink:
    """Core orchestrator — one instance per running shell."""

    def __init__(self, config: MindlinkConfig, engine: Engine) -> None:
        self.config = config
        self.engine = engine
        self.memory = MemoryStore(config.memories_file)
        self.chat = ChatHistory(config.chat_file)
        self.state = AppState()

    def dispatch(self, action: Action) -> AppState:
        self.state = reduce(self.state, action)
        return self.state

    def _begin(self, kind: str) -> bool:
        """Mark kind as in flight. False if a request of that kind is already running."""
        if self.state.is_pending(kind):
            logger.warning("Ignoring %s: previous request still running", kind)
            return False
        self.dispatch(ActionStarted(kind))
        return True

    # ── Memories ─────────────────────────────────────────────

    async def add_memory(self, content: str, attachment: Attachment | None = None) -> Memory | None:
        """Analyse and store a new memory. Returns None if nothing was stored."""
        content = content.strip()
        if not content and attachment is None:
            return None
        if not self._begin("add_memory"):
            return None

        error: str | None = None
        try:
            analysis = await analyze_memory(
                self.engine,
                content or f"Attachment: {attachment.name}",
                self.memory.recent(ANALYSIS_CONTEXT_SIZE),
                attachment,
            )
            memory = Memory(
                content=content or f"Analysis: {attachment.name}",
                concepts=tuple(analysis.concepts),
                links=tuple(analysis.suggested_links),
                attachment=attachment,
            )
            self.memory.append(memory)
        except _FAILURES as e:
            logger.error("Could not add memory: %s", e)
            error = str(e)
            return None
        finally:
            self.dispatch(ActionFinished("add_memory", error=error))

        await self.refresh_insights()
        return memory

    def delete_memory(self, memory_id: str) -> bool:
        try:
            return self.memory.remove(memory_id)
        except OSError as e:
            logger.error("Could not delete memory %s: %s", memory_id, e)
            self.dispatch(ErrorRaised(str(e)))
            return False

    def search(self, term: str) -> list[Memory]:
        return self.memory.filter(term)

    def timeline(self) -> list[Memory]:
        """Memories as the timeline shows them, narrowed by the current search term."""
        return self.memory.filter(self.state.search_term)

    def graph(self) -> GraphData:
        """Knowledge graph of the current store, rebuilt on every call."""
        return build_graph(self.memory.memories)

    # ── Engine requests ──────────────────────────────────────

    async def send_chat(self, text: str) -> ChatMessage | None:
        """Send a chat message. Returns the model's reply, or None on failure."""
        text = text.strip()
        if not text or not self._begin("chat"):
            return None

        history = self.chat.turns(self.config.history_turns)

        error: str | None = None
        try:
            self.chat.append(ChatMessage(role="user", text=text))
            reply = await chat_reply(
                self.engine,
                text,
                self.memory.memories,
                history,
                temperature=self.config.engine.chat_temperature,
            )
            message = ChatMessage(role="model", text=reply)
            self.chat.append(message)
            return message
        except _FAILURES as e:
            logger.error("Chat error: %s", e)
            error = str(e)
            return None
        finally:
            self.dispatch(ActionFinished("chat", error=error))

    async def refresh_insights(self) -> str | None:
        if not self._begin("insights"):
            return None

        error: str | None = None
        try:
            text = await generate_insights(self.engine, self.memory.memories)
            self.dispatch(InsightsReady(text))
            return text
        except _FAILURES as e:
            logger.error("Insight generation failed: %s", e)
            error = str(e)
            return None
        finally:
            self.dispatch(ActionFinished("insights", error=error))

    async def create_study_plan(self) -> str | None:
        if len(self.memory) == 0 or not self._begin("study_plan"):
            return None

        error: str | None = None
        try:
            plan = await generate_study_plan(
                self.engine,
                self.memory.memories,
                model=self.config.engine.plan_model,
                temperature=self.config.engine.plan_temperature,
            )
            self.dispatch(StudyPlanReady(plan))
            return plan
        except _FAILURES as e:
            logger.error("Plan generation error: %s", e)
            error = str(e)
            return None
        finally:
            self.dispatch(ActionFinished("study_plan", error=error))

    async def health_check(self) -> bool:
        return await self.engine.health_check()
