"""Semantic event constants for structured logging.

All log events should use these constants rather than magic strings to ensure
consistency and enable reliable querying and analysis.
"""

# Session loop events
SESSION_STARTED = "session_started"
SESSION_FINISHED = "session_finished"
SESSION_FAILED = "session_failed"
SESSION_TIMED_OUT = "session_timed_out"
SESSION_PERSISTED = "session_persisted"
ITERATION_STARTED = "iteration_started"
NARRATION_NUDGE_INJECTED = "narration_nudge_injected"
COMPLETION_GATE_NUDGE_INJECTED = "completion_gate_nudge_injected"
TOOL_FAILURE_RECOVERY = "tool_failure_recovery"
TOOL_OUTPUT_DECAYED = "tool_output_decayed"
COMPACTION_COMPLETED = "compaction_completed"
COMPACTION_SUMMARY_PERSISTED = "compaction_summary_persisted"
TRACE_SINK_ERROR = "trace_sink_error"

# Model events
MODEL_CALL_STARTED = "model_call_started"
MODEL_CALL_COMPLETED = "model_call_completed"
MODEL_CALL_ERROR = "model_call_error"
MODEL_FALLBACK = "model_fallback"
MODEL_COOLDOWN_STARTED = "model_cooldown_started"
MODEL_COOLDOWN_SKIPPED = "model_cooldown_skipped"
ALL_MODELS_COOLING_DOWN = "all_models_cooling_down"

# Tool execution events
TOOL_CALL_STARTED = "tool_call_started"
TOOL_CALL_COMPLETED = "tool_call_completed"
TOOL_CALL_FAILED = "tool_call_failed"
TOOL_CALL_INVALID_PARAMETERS_FILTERED = "tool_call_invalid_parameters_filtered"

# Safety and governance events
GOVERNANCE_DECISION = "governance_decision"
INJECTION_ATTEMPT_FLAGGED = "injection_attempt_flagged"
PROMPT_LEAKAGE_DETECTED = "prompt_leakage_detected"
RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
APPROVAL_REQUIRED = "approval_required"
APPROVAL_GRANTED = "approval_granted"
APPROVAL_DENIED = "approval_denied"
APPROVAL_TIMED_OUT = "approval_timed_out"

# Reflection events
REFLECTION_CALL_BLOCKED = "reflection_call_blocked"
REFLECTION_NUDGE_INJECTED = "reflection_nudge_injected"
