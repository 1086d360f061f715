"""Tests for the session trace stream and trace context."""

import asyncio

import pytest

from agent_core.telemetry import (
    CallbackTraceSink,
    ListTraceSink,
    NullTraceSink,
    QueueTraceSink,
    TraceContext,
    TraceEvent,
    TracePhase,
    TraceRecorder,
    TraceSink,
)


class TestTraceContext:
    """Test trace and span ids."""

    def test_new_trace_generates_id(self) -> None:
        ctx = TraceContext.new_trace()

        assert len(ctx.trace_id) == 36
        assert ctx.parent_span_id is None
        assert TraceContext.new_trace().trace_id != ctx.trace_id

    def test_new_trace_with_session_id(self) -> None:
        """Test a session id can be reused as the trace id."""
        assert TraceContext.new_trace("session-9").trace_id == "session-9"

    def test_new_span_keeps_trace(self) -> None:
        """Test child spans share the trace id and point at the new span."""
        ctx = TraceContext.new_trace()

        child, span_id = ctx.new_span()

        assert child.trace_id == ctx.trace_id
        assert child.parent_span_id == span_id
        assert ctx.parent_span_id is None


class TestTraceRecorder:
    """Test TraceRecorder."""

    def test_emit_builds_event(self) -> None:
        """Test event fields and last_iteration tracking."""
        sink = ListTraceSink()
        recorder = TraceRecorder("session-1", sink)

        event = recorder.emit(
            TracePhase.REASON,
            3,
            {"text": "thinking"},
            prompt_tokens=120,
            completion_tokens=30,
            cost_usd=0.02,
        )

        assert sink.events == [event]
        assert event.session_id == "session-1"
        assert event.iteration == 3
        assert event.data == {"text": "thinking"}
        assert event.prompt_tokens == 120
        assert event.completion_tokens == 30
        assert event.cost_usd == 0.02
        assert event.timestamp.tzinfo is not None
        assert recorder.last_iteration == 3

    def test_default_sink_discards(self) -> None:
        recorder = TraceRecorder("session-1")

        assert isinstance(recorder.sink, NullTraceSink)
        assert recorder.emit(TracePhase.FINISH, 1).data == {}

    def test_failing_sink_does_not_raise(self) -> None:
        """Test sink errors are logged and swallowed."""

        def explode(event: TraceEvent) -> None:
            raise RuntimeError("sink down")

        recorder = TraceRecorder("session-1", CallbackTraceSink(explode))

        event = recorder.emit(TracePhase.ERROR, 2, {"error": "x"})

        assert event.phase == TracePhase.ERROR
        assert recorder.last_iteration == 2

    def test_event_ids_unique(self) -> None:
        sink = ListTraceSink()
        recorder = TraceRecorder("session-1", sink)

        recorder.emit(TracePhase.TOOL_CALL, 1)
        recorder.emit(TracePhase.TOOL_RESULT, 1)

        assert len({event.id for event in sink.events}) == 2


class TestSinks:
    """Test the built-in sinks."""

    def test_list_sink_filters_by_phase(self) -> None:
        sink = ListTraceSink()
        recorder = TraceRecorder("s", sink)
        for phase in (TracePhase.REASON, TracePhase.TOOL_CALL, TracePhase.REASON):
            recorder.emit(phase, 1)

        assert sink.phases() == [TracePhase.REASON, TracePhase.TOOL_CALL, TracePhase.REASON]
        assert len(sink.by_phase(TracePhase.REASON)) == 2
        assert sink.by_phase(TracePhase.FINISH) == []

    @pytest.mark.asyncio
    async def test_queue_sink_feeds_consumer(self) -> None:
        """Test events are readable from another task in order."""
        sink = QueueTraceSink()
        recorder = TraceRecorder("s", sink)

        async def consume() -> list[TracePhase]:
            phases = []
            while True:
                event = await sink.queue.get()
                phases.append(event.phase)
                if event.phase == TracePhase.FINISH:
                    return phases

        consumer = asyncio.create_task(consume())
        recorder.emit(TracePhase.SESSION_START, 0)
        recorder.emit(TracePhase.FINISH, 1)

        assert await consumer == [TracePhase.SESSION_START, TracePhase.FINISH]

    def test_queue_sink_uses_given_queue(self) -> None:
        queue: asyncio.Queue[TraceEvent] = asyncio.Queue()

        assert QueueTraceSink(queue).queue is queue

    def test_callback_sink(self) -> None:
        received: list[TraceEvent] = []
        recorder = TraceRecorder("s", CallbackTraceSink(received.append))

        recorder.emit(TracePhase.COMPACTION, 4, {"removed": 6})

        assert [event.data for event in received] == [{"removed": 6}]

    def test_sinks_satisfy_protocol(self) -> None:
        """Test every built-in sink is a TraceSink."""
        for sink in (NullTraceSink(), ListTraceSink(), CallbackTraceSink(print)):
            assert isinstance(sink, TraceSink)
