"""Fake streaming models for llm_client tests."""

from collections.abc import AsyncIterator, Sequence
from typing import Any

import pytest

from agent_core.llm_client.types import Message, StreamEvent, StreamFinish, TextDelta, Usage


class FakeModel:
    """Streams a fixed text, or raises when the stream opens or midway.

    Attributes:
        opened: Number of times ``stream`` was started.
    """

    def __init__(
        self,
        provider: str,
        model_id: str,
        text: str = "ok",
        error: BaseException | None = None,
        mid_stream_error: BaseException | None = None,
    ) -> None:
        self.provider = provider
        self.model_id = model_id
        self.text = text
        self.error = error
        self.mid_stream_error = mid_stream_error
        self.opened = 0
        self.closed = False

    async def stream(
        self, messages: Sequence[Message], tools: Sequence[dict[str, Any]]
    ) -> AsyncIterator[StreamEvent]:
        self.opened += 1
        try:
            if self.error is not None:
                raise self.error
            yield TextDelta(text=self.text)
            if self.mid_stream_error is not None:
                raise self.mid_stream_error
            yield StreamFinish(usage=Usage(prompt_tokens=3, completion_tokens=1), finish_reason="stop")
        finally:
            self.closed = True


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_model() -> type[FakeModel]:
    """Factory for fake models."""
    return FakeModel


@pytest.fixture
def clock() -> FakeClock:
    """Injectable clock."""
    return FakeClock()
