"""Telemetry module for structured logging and trace correlation.

This module provides:
- TraceContext for log correlation
- The session trace event stream and its sinks
- Structured logging via structlog
- Semantic event constants
"""

from agent_core.telemetry.logger import configure_logging, get_logger
from agent_core.telemetry.events import (
    APPROVAL_DENIED,
    APPROVAL_GRANTED,
    APPROVAL_REQUIRED,
    APPROVAL_TIMED_OUT,
    COMPACTION_COMPLETED,
    COMPACTION_SUMMARY_PERSISTED,
    COMPLETION_GATE_NUDGE_INJECTED,
    GOVERNANCE_DECISION,
    INJECTION_ATTEMPT_FLAGGED,
    ITERATION_STARTED,
    MODEL_CALL_COMPLETED,
    MODEL_CALL_ERROR,
    MODEL_CALL_STARTED,
    MODEL_COOLDOWN_SKIPPED,
    MODEL_COOLDOWN_STARTED,
    MODEL_FALLBACK,
    ALL_MODELS_COOLING_DOWN,
    NARRATION_NUDGE_INJECTED,
    PROMPT_LEAKAGE_DETECTED,
    RATE_LIMIT_EXCEEDED,
    REFLECTION_CALL_BLOCKED,
    REFLECTION_NUDGE_INJECTED,
    SESSION_FAILED,
    SESSION_FINISHED,
    SESSION_PERSISTED,
    SESSION_STARTED,
    SESSION_TIMED_OUT,
    TOOL_CALL_COMPLETED,
    TOOL_CALL_FAILED,
    TOOL_CALL_INVALID_PARAMETERS_FILTERED,
    TOOL_CALL_STARTED,
    TOOL_FAILURE_RECOVERY,
    TOOL_OUTPUT_DECAYED,
    TRACE_SINK_ERROR,
)
from agent_core.telemetry.trace import (
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

__all__ = [
    # Core exports
    "TraceContext",
    "get_logger",
    "configure_logging",
    # Trace stream
    "TraceEvent",
    "TracePhase",
    "TraceSink",
    "TraceRecorder",
    "ListTraceSink",
    "QueueTraceSink",
    "CallbackTraceSink",
    "NullTraceSink",
    # Event constants
    "SESSION_STARTED",
    "SESSION_FINISHED",
    "SESSION_FAILED",
    "SESSION_TIMED_OUT",
    "SESSION_PERSISTED",
    "ITERATION_STARTED",
    "NARRATION_NUDGE_INJECTED",
    "COMPLETION_GATE_NUDGE_INJECTED",
    "TOOL_FAILURE_RECOVERY",
    "TOOL_OUTPUT_DECAYED",
    "COMPACTION_COMPLETED",
    "COMPACTION_SUMMARY_PERSISTED",
    "TRACE_SINK_ERROR",
    "MODEL_CALL_STARTED",
    "MODEL_CALL_COMPLETED",
    "MODEL_CALL_ERROR",
    "MODEL_FALLBACK",
    "MODEL_COOLDOWN_STARTED",
    "MODEL_COOLDOWN_SKIPPED",
    "ALL_MODELS_COOLING_DOWN",
    "TOOL_CALL_STARTED",
    "TOOL_CALL_COMPLETED",
    "TOOL_CALL_FAILED",
    "TOOL_CALL_INVALID_PARAMETERS_FILTERED",
    "GOVERNANCE_DECISION",
    "INJECTION_ATTEMPT_FLAGGED",
    "PROMPT_LEAKAGE_DETECTED",
    "RATE_LIMIT_EXCEEDED",
    "APPROVAL_REQUIRED",
    "APPROVAL_GRANTED",
    "APPROVAL_DENIED",
    "APPROVAL_TIMED_OUT",
    "REFLECTION_CALL_BLOCKED",
    "REFLECTION_NUDGE_INJECTED",
]
