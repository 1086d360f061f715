"""Tests for tool-output decay and summary compaction."""

from pathlib import Path

import pytest

from agent_core.llm_client.types import (
    AssistantMessage,
    SystemMessage,
    ToolCall,
    ToolResultMessage,
    ToolResultPart,
    UserMessage,
)
from agent_core.orchestrator.compaction import (
    CONTINUE_PROMPT,
    DECAY_MARKER,
    SUMMARIZATION_SYSTEM,
    compact_messages,
    decay_tool_outputs,
    persist_compaction_summary,
    recent_turns,
)
from agent_core.orchestrator.types import ToolOutputMeta


def tool_turn(content: str, name: str = "web_search") -> ToolResultMessage:
    return ToolResultMessage(
        results=[ToolResultPart(tool_call_id=f"call_{name}", tool_name=name, content=content)]
    )


def call_turn(name: str = "web_search") -> AssistantMessage:
    return AssistantMessage(tool_calls=[ToolCall(id=f"call_{name}", name=name, arguments={})])


@pytest.fixture
def history() -> list:
    """System prompt, request, two tool rounds and an answer."""
    return [
        SystemMessage(content="You are helpful."),
        UserMessage(content="Find the weather"),
        call_turn(),
        tool_turn("a" * 500),
        call_turn(),
        tool_turn("b" * 500),
        AssistantMessage(content="It is sunny."),
    ]


class TestDecay:
    """Test age-based truncation of tool output."""

    def test_old_results_truncated_once(self, history: list) -> None:
        """Test results at least decay_iterations old are cut and flagged."""
        meta = [ToolOutputMeta(message_index=3, iteration=1), ToolOutputMeta(message_index=5, iteration=2)]

        decayed = decay_tool_outputs(history, meta, iteration=4, decay_iterations=3, threshold_chars=100)

        assert decayed == 1
        part = history[3].results[0]
        assert part.content == "a" * 100 + DECAY_MARKER
        assert part.decayed is True
        assert history[5].results[0].content == "b" * 500

    def test_decay_is_idempotent(self, history: list) -> None:
        """Test an already decayed part is skipped."""
        meta = [ToolOutputMeta(message_index=3, iteration=1)]
        decay_tool_outputs(history, meta, iteration=4, decay_iterations=3, threshold_chars=100)
        first = history[3].results[0].content

        decayed = decay_tool_outputs(history, meta, iteration=9, decay_iterations=3, threshold_chars=100)

        assert decayed == 0
        assert history[3].results[0].content == first

    def test_short_results_untouched(self, history: list) -> None:
        """Test results under the threshold are left alone."""
        meta = [ToolOutputMeta(message_index=3, iteration=1)]

        assert decay_tool_outputs(history, meta, 10, 3, threshold_chars=1000) == 0
        assert history[3].results[0].decayed is False

    def test_stale_meta_is_ignored(self, history: list) -> None:
        """Test indexes that no longer point at a tool turn are skipped."""
        meta = [ToolOutputMeta(message_index=1, iteration=0), ToolOutputMeta(message_index=99, iteration=0)]

        assert decay_tool_outputs(history, meta, 10, 3, 10) == 0


class TestRecentTurns:
    """Test selection of the turns kept after compaction."""

    def test_excludes_system(self, history: list) -> None:
        """Test system messages never count as recent turns."""
        recent = recent_turns(history, 10)

        assert all(not isinstance(message, SystemMessage) for message in recent)
        assert len(recent) == 6

    def test_never_starts_with_tool_turn(self, history: list) -> None:
        """Test the slice widens to include the tool turn's assistant call."""
        recent = recent_turns(history[:6], 1)

        assert isinstance(recent[0], AssistantMessage)
        assert isinstance(recent[1], ToolResultMessage)

    def test_zero_keeps_nothing(self, history: list) -> None:
        """Test keep_recent=0."""
        assert recent_turns(history, 0) == []


@pytest.mark.asyncio
async def test_compact_messages(history: list, scripted_model) -> None:
    """Test the summary replaces older turns and recent turns are kept."""
    model = scripted_model([scripted_model.text("User wants weather; it is sunny.")])

    result = await compact_messages(model, history, "You are helpful.", keep_recent=2)

    assert result.summary == "User wants weather; it is sunny."
    messages = result.compacted_messages
    assert messages[0] == SystemMessage(content="You are helpful.")
    assert messages[1] == UserMessage(content=f"User wants weather; it is sunny.\n\n{CONTINUE_PROMPT}")
    # Keeping two turns would start at a tool turn, so its call turn is kept too.
    assert messages[2:] == history[4:]

    request = model.calls[0]
    assert request[0].content == SUMMARIZATION_SYSTEM
    assert "Find the weather" in request[1].content
    assert model.tool_schemas[0] == []


@pytest.mark.asyncio
async def test_compact_messages_without_system_prompt(history: list, scripted_model) -> None:
    """Test no system message is added when the prompt is empty."""
    model = scripted_model([scripted_model.text("summary")])

    result = await compact_messages(model, history, "", keep_recent=1)

    assert isinstance(result.compacted_messages[0], UserMessage)


@pytest.mark.asyncio
async def test_compact_messages_short_history_unchanged(history: list, scripted_model) -> None:
    """Test a history that fits in the recent window is not summarized or duplicated."""
    model = scripted_model([scripted_model.text("summary")])

    result = await compact_messages(model, history, "You are helpful.", keep_recent=10)

    assert result.summary == ""
    assert result.compacted_messages == history
    assert model.calls == []


def test_persist_compaction_summary(tmp_path: Path) -> None:
    """Test summaries are appended to the workspace memory file."""
    workspace = tmp_path / "workspace"

    path = persist_compaction_summary(workspace, "first summary")
    persist_compaction_summary(workspace, "second summary")

    assert path == workspace / "MEMORY.md"
    content = path.read_text(encoding="utf-8")
    assert content.count("## Compaction Summary (") == 2
    assert content.index("first summary") < content.index("second summary")
