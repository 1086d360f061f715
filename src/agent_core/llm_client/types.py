"""Type definitions for the model interface.

This module defines:
- Conversation messages: a tagged union over the role of each turn
- Stream events: a tagged union over what a streaming model yields
- StreamingModel: the protocol every model backend implements
- Error classes: hierarchy of model client errors
"""

from collections.abc import AsyncIterator, Sequence
from typing import Annotated, Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, Field, TypeAdapter

# Conversation messages


class ToolCall(BaseModel):
    """A structured tool invocation requested by the model."""

    id: str = Field(..., description="Identifier echoed back in the tool result")
    name: str = Field(..., description="Tool to call")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Parsed arguments")


class SystemMessage(BaseModel):
    role: Literal["system"] = "system"
    content: str


class UserMessage(BaseModel):
    role: Literal["user"] = "user"
    content: str


class AssistantMessage(BaseModel):
    """A model turn: text, optional reasoning and any tool calls."""

    role: Literal["assistant"] = "assistant"
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    reasoning: str | None = None


class ToolResultPart(BaseModel):
    """Result of one tool call inside a tool turn."""

    tool_call_id: str
    tool_name: str
    content: str
    is_error: bool = False
    decayed: bool = Field(False, description="Content was truncated by age-based decay")


class ToolResultMessage(BaseModel):
    """All tool results of one iteration."""

    role: Literal["tool"] = "tool"
    results: list[ToolResultPart] = Field(default_factory=list)


Message = Annotated[
    SystemMessage | UserMessage | AssistantMessage | ToolResultMessage,
    Field(discriminator="role"),
]

_history_adapter: TypeAdapter[list[Message]] = TypeAdapter(list[Message])


def validate_history(raw: Sequence[Any]) -> list[Message]:
    """Validate externally supplied history (e.g. from storage) into messages.

    Raises:
        pydantic.ValidationError: If any entry has an unknown role or bad shape.
    """
    return _history_adapter.validate_python(list(raw))


def dump_history(messages: Sequence[Message]) -> list[dict[str, Any]]:
    """Serialize messages to plain dicts for persistence."""
    return _history_adapter.dump_python(list(messages), mode="json")


def message_text(message: Message) -> str:
    """Flatten a message to text (used for summarization prompts)."""
    if isinstance(message, ToolResultMessage):
        return "\n".join(f"{part.tool_name}: {part.content}" for part in message.results)
    if isinstance(message, AssistantMessage) and message.tool_calls:
        calls = ", ".join(f"{call.name}({call.arguments})" for call in message.tool_calls)
        return f"{message.content}\n[tool calls: {calls}]".strip()
    return message.content


# Stream events


class Usage(BaseModel):
    """Token usage reported at the end of a model call."""

    prompt_tokens: int = Field(0, ge=0)
    completion_tokens: int = Field(0, ge=0)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class TextDelta(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ReasoningDelta(BaseModel):
    type: Literal["reasoning"] = "reasoning"
    text: str


class ToolCallRequest(BaseModel):
    """The model asks for a tool call."""

    type: Literal["tool_call"] = "tool_call"
    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)

    def to_call(self) -> ToolCall:
        return ToolCall(id=self.id, name=self.name, arguments=self.arguments)


class StreamFinish(BaseModel):
    """Last event of a stream."""

    type: Literal["finish"] = "finish"
    usage: Usage = Field(default_factory=Usage)
    finish_reason: str | None = None


StreamEvent = Annotated[
    TextDelta | ReasoningDelta | ToolCallRequest | StreamFinish,
    Field(discriminator="type"),
]


@runtime_checkable
class StreamingModel(Protocol):
    """A model endpoint that streams its response.

    ``stream`` is an async generator. Cancelling the consuming task cancels
    the generation; implementations should release connections on close.
    """

    provider: str
    model_id: str

    def stream(
        self, messages: Sequence[Message], tools: Sequence[dict[str, Any]]
    ) -> AsyncIterator[StreamEvent]: ...


def endpoint_key(model: StreamingModel) -> str:
    """Identity used for cooldown bookkeeping and logs."""
    return f"{model.provider}/{model.model_id}"


# Error hierarchy


class LLMClientError(Exception):
    """Base exception for all model client errors.

    Attributes:
        status: HTTP-like status code reported by the backend, if any.
    """

    def __init__(self, message: str = "", *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class LLMTimeout(LLMClientError):
    """Raised when a model request times out."""

    pass


class LLMConnectionError(LLMClientError):
    """Raised when connection to the model server fails."""

    pass


class LLMRateLimit(LLMClientError):
    """Raised when the model server returns a rate limit error."""

    pass


class LLMServerError(LLMClientError):
    """Raised when the model server returns an error (5xx)."""

    pass


class LLMInvalidResponse(LLMClientError):
    """Raised when the model server returns an unexpected response format."""

    pass


class LLMAborted(LLMClientError):
    """Raised when a request was aborted by its caller. Never retried."""

    pass


class AllModelsCoolingDown(LLMClientError):
    """Raised when every candidate of a fallback chain is in cooldown."""

    pass
