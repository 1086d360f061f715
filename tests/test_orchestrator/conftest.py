"""Shared fakes for orchestrator tests."""

import asyncio
from collections.abc import AsyncIterator, Sequence
from typing import Any

import pytest

from agent_core.governance.models import ToolPermission
from agent_core.llm_client.types import (
    Message,
    StreamEvent,
    StreamFinish,
    TextDelta,
    ToolCallRequest,
    Usage,
)
from agent_core.tools.registry import ToolRegistry
from agent_core.tools.types import ToolDefinition, ToolExecResult, ToolParameter


class ScriptedModel:
    """Streaming model that replays one scripted turn per call.

    A turn is a list of stream events, or an exception to raise when the
    stream opens. Once the script runs out the model answers "done".
    """

    def __init__(self, turns: Sequence[Any], provider: str = "fake", model_id: str = "scripted") -> None:
        self.turns = list(turns)
        self.provider = provider
        self.model_id = model_id
        self.calls: list[list[Message]] = []
        self.tool_schemas: list[list[dict[str, Any]]] = []

    @staticmethod
    def text(text: str, prompt_tokens: int = 10, completion_tokens: int = 5) -> list[Any]:
        return [
            TextDelta(text=text),
            StreamFinish(
                usage=Usage(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
                finish_reason="stop",
            ),
        ]

    @staticmethod
    def tools(
        *calls: tuple[str, dict[str, Any]],
        text: str = "",
        prompt_tokens: int = 10,
        completion_tokens: int = 5,
    ) -> list[Any]:
        events: list[Any] = [TextDelta(text=text)] if text else []
        for index, (name, arguments) in enumerate(calls):
            events.append(ToolCallRequest(id=f"call_{name}_{index}", name=name, arguments=arguments))
        events.append(
            StreamFinish(
                usage=Usage(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
                finish_reason="tool_calls",
            )
        )
        return events

    async def stream(
        self, messages: Sequence[Message], tools: Sequence[dict[str, Any]]
    ) -> AsyncIterator[StreamEvent]:
        self.calls.append(list(messages))
        self.tool_schemas.append(list(tools))
        turn: Any = self.turns.pop(0) if self.turns else self.text("done")
        if isinstance(turn, BaseException):
            raise turn
        for event in turn:
            await asyncio.sleep(0)
            yield event


class HangingModel:
    """Model whose stream never produces an event."""

    provider = "fake"
    model_id = "hanging"

    async def stream(
        self, messages: Sequence[Message], tools: Sequence[dict[str, Any]]
    ) -> AsyncIterator[StreamEvent]:
        await asyncio.sleep(3600)
        yield TextDelta(text="never")


class RecordingExecutor:
    """Session tool executor returning canned results and recording calls."""

    def __init__(self, results: dict[str, ToolExecResult] | None = None) -> None:
        self.results = results or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def execute(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        *,
        iteration: int = 0,
        deadline: float | None = None,
    ) -> ToolExecResult:
        self.calls.append((tool_name, arguments))
        return self.results.get(tool_name, ToolExecResult(result=f"{tool_name} ok"))


def _tool(name: str, permission: ToolPermission = ToolPermission.READ, *params: str) -> ToolDefinition:
    return ToolDefinition(
        name=name,
        description=f"{name} tool",
        permission=permission,
        parameters=[
            ToolParameter(name=param, type="string", description=param, required=False)
            for param in params
        ],
    )


@pytest.fixture
def scripted_model() -> type[ScriptedModel]:
    """Factory for models replaying scripted turns."""
    return ScriptedModel


@pytest.fixture
def hanging_model() -> HangingModel:
    """Model that never answers."""
    return HangingModel()


@pytest.fixture
def recording_executor() -> type[RecordingExecutor]:
    """Factory for recording tool executors."""
    return RecordingExecutor


@pytest.fixture
def tool_registry() -> ToolRegistry:
    """Registry with the tools used across orchestrator tests."""
    registry = ToolRegistry()

    def echo(**kwargs: Any) -> dict[str, Any]:
        return kwargs

    registry.register(_tool("echo", ToolPermission.READ, "text"), echo)
    registry.register(_tool("web_search", ToolPermission.READ, "query"), echo)
    registry.register(_tool("think", ToolPermission.READ, "thought"), echo)
    registry.register(_tool("file_write", ToolPermission.WRITE, "path", "content"), echo)
    registry.register(_tool("shell_exec", ToolPermission.EXEC, "command"), echo)
    registry.register(_tool("cancel_scheduled_task", ToolPermission.WRITE, "task_id"), echo)
    registry.register(_tool("list_scheduled_tasks", ToolPermission.READ), echo)
    return registry
