"""Tests for the Mindlink core orchestrator."""

import asyncio
import json
import pytest
from pathlib import Path

from mindlink.config import EngineConfig, MindlinkConfig
from mindlink.core import Mindlink
from mindlink.engines.base import AgentResponse
from mindlink.models import Attachment, ChatMessage, Memory

ANALYSIS = json.dumps(
    {"concepts": ["sleep", "memory"], "suggestedLinks": ["m-1"], "summary": "s", "cognitiveType": "t"}
)


class MockEngine:
    """Answers analysis prompts with ANALYSIS and everything else with a fixed text."""

    def __init__(self, analysis: str = ANALYSIS, text: str = "Mock response"):
        self.analysis = analysis
        self.text = text
        self.calls: list[dict] = []
        self.gate: asyncio.Event | None = None

    @property
    def name(self) -> str:
        return "mock"

    async def send(self, message, **kwargs) -> AgentResponse:
        self.calls.append({"message": message, **kwargs})
        if self.gate is not None:
            await self.gate.wait()
        if message.startswith("Analyse this new thought"):
            return AgentResponse(text=self.analysis)
        return AgentResponse(text=self.text)

    async def health_check(self) -> bool:
        return True


class MockFailEngine:
    @property
    def name(self) -> str:
        return "fail"

    async def send(self, message, **kwargs) -> AgentResponse:
        return AgentResponse(text="", error="Anthropic API error: boom")

    async def health_check(self) -> bool:
        return False


@pytest.fixture
def config(tmp_path: Path) -> MindlinkConfig:
    return MindlinkConfig(
        engine=EngineConfig(plan_model="planner"),
        data_dir=tmp_path / "data",
    )


@pytest.fixture
def engine() -> MockEngine:
    return MockEngine()


@pytest.fixture
def app(config: MindlinkConfig, engine: MockEngine) -> Mindlink:
    return Mindlink(config, engine)


class TestAddMemory:
    @pytest.mark.asyncio
    async def test_add_memory(self, app: Mindlink):
        memory = await app.add_memory("Sleep helps memory consolidation")
        assert memory is not None
        assert memory.concepts == ("sleep", "memory")
        assert memory.links == ("m-1",)
        assert app.memory.memories == (memory,)
        assert app.state.pending == frozenset()

    @pytest.mark.asyncio
    async def test_persisted(self, app: Mindlink, config: MindlinkConfig):
        await app.add_memory("persist me")
        assert len(Mindlink(config, MockEngine()).memory) == 1

    @pytest.mark.asyncio
    async def test_newest_first(self, app: Mindlink):
        await app.add_memory("first")
        await app.add_memory("second")
        assert [m.content for m in app.memory] == ["second", "first"]

    @pytest.mark.asyncio
    async def test_empty_input_ignored(self, app: Mindlink, engine: MockEngine):
        assert await app.add_memory("   ") is None
        assert engine.calls == []
        assert len(app.memory) == 0

    @pytest.mark.asyncio
    async def test_attachment_only(self, app: Mindlink, engine: MockEngine):
        att = Attachment(type="pdf", data="QQ==", mime_type="application/pdf", name="lecture.pdf")
        memory = await app.add_memory("", att)
        assert memory.content == "Analysis: lecture.pdf"
        assert memory.attachment is att
        assert "Thought: Attachment: lecture.pdf" in engine.calls[0]["message"]

    @pytest.mark.asyncio
    async def test_engine_failure_leaves_store_unchanged(self, config: MindlinkConfig):
        app = Mindlink(config, MockFailEngine())
        assert await app.add_memory("will fail") is None
        assert len(app.memory) == 0
        assert not config.memories_file.exists()
        assert "boom" in app.state.last_error
        assert app.state.pending == frozenset()

    @pytest.mark.asyncio
    async def test_malformed_json_leaves_store_unchanged(self, config: MindlinkConfig):
        app = Mindlink(config, MockEngine(analysis="sorry, no JSON today"))
        assert await app.add_memory("will fail") is None
        assert len(app.memory) == 0
        assert app.state.last_error == "Invalid AI response format"

    @pytest.mark.asyncio
    async def test_refreshes_insights(self, app: Mindlink):
        await app.add_memory("one")
        assert app.state.insights.startswith("Add a few more notes")
        await app.add_memory("two")
        assert app.state.insights == "Mock response"

    @pytest.mark.asyncio
    async def test_duplicate_submission_refused(self, app: Mindlink, engine: MockEngine):
        engine.gate = asyncio.Event()
        first = asyncio.create_task(app.add_memory("first"))
        await asyncio.sleep(0)
        assert app.state.is_pending("add_memory")

        assert await app.add_memory("second") is None
        engine.gate.set()
        assert (await first).content == "first"
        assert [m.content for m in app.memory] == ["first"]

    @pytest.mark.asyncio
    async def test_different_actions_overlap(self, app: Mindlink, engine: MockEngine):
        engine.gate = asyncio.Event()
        add = asyncio.create_task(app.add_memory("note"))
        chat = asyncio.create_task(app.send_chat("hi"))
        await asyncio.sleep(0)
        assert app.state.pending == frozenset({"add_memory", "chat"})
        engine.gate.set()
        assert (await add) is not None
        assert (await chat) is not None


class TestReadSide:
    @pytest.mark.asyncio
    async def test_graph_rebuilt_on_read(self, app: Mindlink):
        memory = await app.add_memory("Sleep helps memory")
        graph = app.graph()
        assert [n.id for n in graph.nodes] == [memory.id, "concept-sleep", "concept-memory"]

        app.delete_memory(memory.id)
        assert app.graph().to_dict() == {"nodes": [], "links": []}

    def test_timeline_respects_search(self, app: Mindlink):
        app.memory.append(Memory(content="goodbye"))
        app.memory.append(Memory(content="Hello world"))
        from mindlink.state import SetSearch

        app.dispatch(SetSearch("WORLD"))
        assert [m.content for m in app.timeline()] == ["Hello world"]
        assert len(app.search("")) == 2


class TestChat:
    @pytest.mark.asyncio
    async def test_send_chat(self, app: Mindlink, engine: MockEngine):
        app.memory.append(Memory(content="exam on friday"))
        reply = await app.send_chat("what's up?")
        assert reply.role == "model"
        assert reply.text == "Mock response"
        assert [m.role for m in app.chat.messages] == ["user", "model"]
        assert "exam on friday" in engine.calls[0]["system_prompt"]
        assert engine.calls[0]["temperature"] == 0.9

    @pytest.mark.asyncio
    async def test_prior_turns_exclude_new_message(self, app: Mindlink, engine: MockEngine):
        await app.send_chat("first")
        await app.send_chat("second")
        history = engine.calls[1]["history"]
        assert [m.text for m in history] == ["first", "Mock response"]

    @pytest.mark.asyncio
    async def test_chat_failure_keeps_user_turn(self, config: MindlinkConfig):
        app = Mindlink(config, MockFailEngine())
        assert await app.send_chat("hello?") is None
        assert [m.role for m in app.chat.messages] == ["user"]
        assert app.state.pending == frozenset()

    @pytest.mark.asyncio
    async def test_blank_message_ignored(self, app: Mindlink):
        assert await app.send_chat("  ") is None
        assert len(app.chat) == 0


class TestStudyPlan:
    @pytest.mark.asyncio
    async def test_no_memories(self, app: Mindlink, engine: MockEngine):
        assert await app.create_study_plan() is None
        assert engine.calls == []

    @pytest.mark.asyncio
    async def test_plan(self, app: Mindlink, engine: MockEngine):
        app.memory.append(Memory(content="organic chemistry"))
        plan = await app.create_study_plan()
        assert plan == "Mock response"
        assert app.state.study_plan == "Mock response"
        assert engine.calls[0]["model"] == "planner"
        assert engine.calls[0]["temperature"] == 0.8

    @pytest.mark.asyncio
    async def test_plan_failure(self, config: MindlinkConfig):
        app = Mindlink(config, MockFailEngine())
        app.memory.append(Memory(content="organic chemistry"))
        assert await app.create_study_plan() is None
        assert app.state.study_plan is None


class TestInsights:
    @pytest.mark.asyncio
    async def test_failure_keeps_previous(self, config: MindlinkConfig):
        app = Mindlink(config, MockFailEngine())
        app.memory.append(Memory(content="a"))
        app.memory.append(Memory(content="b"))
        assert await app.refresh_insights() is None
        assert app.state.insights == ""

    @pytest.mark.asyncio
    async def test_insight_failure_does_not_undo_memory(self, config: MindlinkConfig):
        class AnalysisOnly(MockEngine):
            async def send(self, message, **kwargs):
                if message.startswith("Analyse this new thought"):
                    return AgentResponse(text=ANALYSIS)
                return AgentResponse(text="", error="down")

        app = Mindlink(config, AnalysisOnly())
        app.memory.append(Memory(content="earlier"))
        memory = await app.add_memory("later")
        assert memory is not None
        assert len(app.memory) == 2


@pytest.mark.asyncio
async def test_health_check(app: Mindlink):
    assert await app.health_check() is True


def _disk_full(*args, **kwargs):
    raise OSError("disk full")


class TestStorageFailures:
    @pytest.mark.asyncio
    async def test_chat_write_failure_clears_pending(self, app: Mindlink, monkeypatch):
        with monkeypatch.context() as m:
            m.setattr("mindlink.memory.chat.save_snapshot", _disk_full)
            assert await app.send_chat("hello") is None
        assert app.state.pending == frozenset()
        assert app.state.last_error == "disk full"

        reply = await app.send_chat("hello again")
        assert reply is not None
        assert reply.text == "Mock response"

    @pytest.mark.asyncio
    async def test_add_memory_write_failure(self, app: Mindlink, monkeypatch):
        with monkeypatch.context() as m:
            m.setattr("mindlink.memory.store.save_snapshot", _disk_full)
            assert await app.add_memory("will not persist") is None
        assert len(app.memory) == 0
        assert app.state.pending == frozenset()
        assert app.state.last_error == "disk full"

        assert await app.add_memory("works now") is not None

    def test_delete_write_failure(self, app: Mindlink, monkeypatch):
        app.memory.append(Memory(id="a", content="keep me"))
        monkeypatch.setattr("mindlink.memory.store.save_snapshot", _disk_full)
        assert app.delete_memory("a") is False
        assert [m.id for m in app.memory] == ["a"]
        assert app.state.last_error == "disk full"
