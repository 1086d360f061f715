"""Trace context and the session trace event stream.

This module provides:
- TraceContext: lightweight trace/span ids for log correlation
- TracePhase / TraceEvent: the structured event stream emitted by a session
- Trace sinks: where events go (a list, an asyncio queue, a callback)
- TraceRecorder: binds a sink to one session and mirrors every event to the log
"""

import asyncio
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

import structlog
from pydantic import BaseModel, Field

from agent_core.telemetry.events import TRACE_SINK_ERROR

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TraceContext:
    """Lightweight trace context for request correlation.

    Provides minimal trace semantics compatible with OpenTelemetry:
    - trace_id: Unique identifier for an end-to-end session
    - parent_span_id: Optional parent span ID for nested operations

    Components should create new spans using new_span() rather than modifying
    the context.

    Attributes:
        trace_id: Unique identifier for the trace (UUID string).
        parent_span_id: Optional parent span ID for nested operations.
    """

    trace_id: str
    parent_span_id: str | None = None

    @classmethod
    def new_trace(cls, trace_id: str | None = None) -> "TraceContext":
        """Start a new trace.

        Args:
            trace_id: Use this id instead of generating one (e.g. the session id).

        Returns:
            A new TraceContext with no parent span.
        """
        return cls(trace_id=trace_id or str(uuid.uuid4()))

    def new_span(self) -> tuple["TraceContext", str]:
        """Create a child span within this trace.

        Returns:
            A tuple of (new TraceContext with this span as parent, new span_id).
        """
        span_id = str(uuid.uuid4())
        return TraceContext(trace_id=self.trace_id, parent_span_id=span_id), span_id


class TracePhase(str, Enum):
    """Phase tag of a trace event."""

    SESSION_START = "session_start"
    REASON = "reason"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    OBSERVE = "observe"
    TOOL_FAILURE_RECOVERY = "tool_failure_recovery"
    NARRATION_NUDGE = "narration_nudge"
    REFLECTION_PRE = "reflection_pre"
    REFLECTION_POST = "reflection_post"
    REFLECTION_SESSION = "reflection_session"
    COMPACTION = "compaction"
    GOVERNANCE = "governance"
    MODEL_FALLBACK = "model_fallback"
    FINISH = "finish"
    ERROR = "error"


class TraceEvent(BaseModel):
    """One entry of the session trace stream."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Event id")
    session_id: str = Field(..., description="Session the event belongs to")
    phase: TracePhase = Field(..., description="Phase tag")
    iteration: int = Field(0, ge=0, description="Loop iteration when emitted")
    data: dict[str, Any] = Field(default_factory=dict, description="Phase-specific payload")
    prompt_tokens: int | None = Field(None, description="Prompt tokens of this step")
    completion_tokens: int | None = Field(None, description="Completion tokens of this step")
    cost_usd: float | None = Field(None, description="Cumulative session cost")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


@runtime_checkable
class TraceSink(Protocol):
    """Receives trace events. Implementations must not block."""

    def emit(self, event: TraceEvent) -> None: ...


class NullTraceSink:
    """Discards every event."""

    def emit(self, event: TraceEvent) -> None:
        return None


class ListTraceSink:
    """Collects events in memory, mostly for tests and replay."""

    def __init__(self) -> None:
        self.events: list[TraceEvent] = []

    def emit(self, event: TraceEvent) -> None:
        self.events.append(event)

    def phases(self) -> list[TracePhase]:
        return [event.phase for event in self.events]

    def by_phase(self, phase: TracePhase) -> list[TraceEvent]:
        return [event for event in self.events if event.phase == phase]


class QueueTraceSink:
    """Pushes events onto an asyncio queue consumed by another task.

    The queue is unbounded by default so ``emit`` never blocks the session.
    """

    def __init__(self, queue: "asyncio.Queue[TraceEvent] | None" = None) -> None:
        self.queue: asyncio.Queue[TraceEvent] = queue if queue is not None else asyncio.Queue()

    def emit(self, event: TraceEvent) -> None:
        self.queue.put_nowait(event)


class CallbackTraceSink:
    """Adapts a plain callable into a sink."""

    def __init__(self, callback: Callable[[TraceEvent], None]) -> None:
        self._callback = callback

    def emit(self, event: TraceEvent) -> None:
        self._callback(event)


class TraceRecorder:
    """Emits trace events for one session.

    Every event is logged with structlog under ``trace_<phase>`` and then
    handed to the sink. A failing sink is logged and does not affect the
    session.
    """

    def __init__(self, session_id: str, sink: TraceSink | None = None) -> None:
        self.session_id = session_id
        self.sink: TraceSink = sink if sink is not None else NullTraceSink()
        self.last_iteration = 0

    def emit(
        self,
        phase: TracePhase,
        iteration: int,
        data: dict[str, Any] | None = None,
        *,
        prompt_tokens: int | None = None,
        completion_tokens: int | None = None,
        cost_usd: float | None = None,
    ) -> TraceEvent:
        """Build, log and publish one event.

        Args:
            phase: Phase tag.
            iteration: Current loop iteration.
            data: Phase-specific payload.
            prompt_tokens: Prompt tokens reported for this step, if any.
            completion_tokens: Completion tokens reported for this step, if any.
            cost_usd: Cumulative session cost, if known.

        Returns:
            The emitted event.
        """
        event = TraceEvent(
            session_id=self.session_id,
            phase=phase,
            iteration=iteration,
            data=data or {},
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            cost_usd=cost_usd,
        )
        self.last_iteration = iteration
        log.debug(
            f"trace_{phase.value}",
            session_id=self.session_id,
            iteration=iteration,
            event_id=event.id,
        )
        try:
            self.sink.emit(event)
        except Exception as e:
            log.warning(
                TRACE_SINK_ERROR,
                session_id=self.session_id,
                phase=phase.value,
                error=str(e),
                error_type=type(e).__name__,
            )
        return event
