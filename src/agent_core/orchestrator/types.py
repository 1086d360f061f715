"""Core types for the session loop.

This module defines the data structures shared by the loop and its callers:
- SessionStatus: lifecycle states of a session
- SessionState: mutable token, cost and iteration accounting
- SessionBudgets: limits a session runs under
- ToolOutputMeta: which history entries hold tool output, and when
- ResumeSnapshot / LoopResult: what goes into and comes out of a run
- SessionDeadline: the wall-clock budget as an event-loop deadline
"""

import asyncio
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from agent_core.llm_client.pricing import ModelPricing
from agent_core.llm_client.types import Message, Usage


class SessionStatus(str, Enum):
    """Lifecycle states of a session."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"
    COST_LIMIT = "cost_limit"

    @property
    def is_terminal(self) -> bool:
        return self not in (SessionStatus.PENDING, SessionStatus.RUNNING)


@dataclass
class SessionState:
    """Mutable accounting of one session.

    Owned by the loop for the duration of a run and mutated only by its
    iteration step. Token and cost fields only ever grow.

    Attributes:
        iteration: Model calls made so far.
        prompt_tokens: Accumulated prompt tokens.
        completion_tokens: Accumulated completion tokens.
        total_tokens: prompt_tokens + completion_tokens.
        estimated_cost_usd: Accumulated cost of the token deltas.
        status: Lifecycle state.
    """

    iteration: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    estimated_cost_usd: float = 0.0
    status: SessionStatus = SessionStatus.PENDING

    @classmethod
    def from_snapshot(cls, snapshot: "SessionState | Mapping[str, Any] | None") -> "SessionState":
        """Restore state from a (possibly partial) snapshot.

        Unknown keys are ignored; missing ones keep their defaults.
        """
        if snapshot is None:
            return cls()
        if isinstance(snapshot, SessionState):
            return cls(**{f.name: getattr(snapshot, f.name) for f in fields(cls)})
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in snapshot.items() if key in known}
        if "status" in values:
            values["status"] = SessionStatus(values["status"])
        return cls(**values)

    def record_usage(self, usage: Usage, pricing: ModelPricing) -> None:
        """Add one model call's usage and its cost."""
        self.prompt_tokens += usage.prompt_tokens
        self.completion_tokens += usage.completion_tokens
        self.total_tokens = self.prompt_tokens + self.completion_tokens
        self.estimated_cost_usd += pricing.cost(usage.prompt_tokens, usage.completion_tokens)

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "estimated_cost_usd": self.estimated_cost_usd,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class SessionBudgets:
    """Limits of one run.

    On resume ``cost_cap_usd`` is used as given: callers that want a fresh
    allowance must add the resumed ``estimated_cost_usd`` themselves.
    """

    max_iterations: int
    timeout_seconds: float
    cost_cap_usd: float


@dataclass(frozen=True)
class ToolOutputMeta:
    """Marks a history entry as a tool-result turn produced in ``iteration``."""

    message_index: int
    iteration: int


@dataclass
class ResumeSnapshot:
    """Everything needed to continue an interrupted session."""

    messages: list[Message]
    state: SessionState | Mapping[str, Any] | None = None
    tool_output_meta: list[ToolOutputMeta] = field(default_factory=list)


@dataclass
class LoopResult:
    """Outcome of a run. Always well-formed, whatever the status."""

    session_id: str
    output: str
    state: SessionState
    messages: list[Message]
    tool_output_meta: list[ToolOutputMeta]
    reflection: dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> SessionStatus:
        return self.state.status


class SessionTimeout(Exception):
    """Raised when the session wall-clock budget cancels a suspension point."""

    pass


class SessionDeadline:
    """Session wall-clock budget expressed as an event-loop deadline."""

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        self.when = asyncio.get_running_loop().time() + timeout_seconds

    def expired(self) -> bool:
        return asyncio.get_running_loop().time() >= self.when

    @asynccontextmanager
    async def scope(self) -> AsyncIterator[None]:
        """Cancel the enclosed await at the deadline.

        Raises:
            SessionTimeout: The deadline passed while the body was suspended.
        """
        try:
            async with asyncio.timeout_at(self.when):
                yield
        except TimeoutError as e:
            if self.expired():
                raise SessionTimeout(f"Session timed out after {self.timeout_seconds}s") from e
            raise
