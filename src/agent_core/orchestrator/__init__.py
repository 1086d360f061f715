"""Session orchestration: the control loop and its decision subsystems.

This module provides:
- LoopController: runs one session to a terminal status
- SessionRunner: wires settings, governance and persistence around the loop
- Failure tracker, reflection engine and narration heuristics
- Compaction and tool-output decay
- Session persistence
"""

from agent_core.orchestrator.compaction import (
    CompactionResult,
    Summarizer,
    compact_messages,
    decay_tool_outputs,
    persist_compaction_summary,
)
from agent_core.orchestrator.failure_tracker import (
    ALL_FAIL_THRESHOLD,
    TOOL_FAILURE_THRESHOLD,
    FailureRecoveryAction,
    RecoveryReason,
    ToolCallOutcome,
    ToolFailureState,
    process_tool_results,
)
from agent_core.orchestrator.heuristics import NarrationKind, NarrationPolicy, detect_narration
from agent_core.orchestrator.loop import (
    FINISH_TOOL,
    LoopConfig,
    LoopController,
    SessionToolExecutor,
    StreamObserver,
)
from agent_core.orchestrator.reflection import (
    AggregateCounts,
    BehavioralContext,
    BehavioralPattern,
    ReflectionPolicy,
    ReflectionSummary,
    RiskLevel,
    ToolStats,
    behavioral_patterns,
    completion_gate,
    estimate_nudge_overhead,
    post_check,
    pre_check,
)
from agent_core.orchestrator.runner import SessionNotFoundError, SessionRunner
from agent_core.orchestrator.session import (
    InMemorySessionStore,
    JsonFileSessionStore,
    SessionRecord,
    SessionStore,
)
from agent_core.orchestrator.types import (
    LoopResult,
    ResumeSnapshot,
    SessionBudgets,
    SessionDeadline,
    SessionState,
    SessionStatus,
    SessionTimeout,
    ToolOutputMeta,
)

__all__ = [
    # Loop
    "FINISH_TOOL",
    "LoopConfig",
    "LoopController",
    "SessionToolExecutor",
    "StreamObserver",
    "SessionRunner",
    "SessionNotFoundError",
    # Types
    "LoopResult",
    "ResumeSnapshot",
    "SessionBudgets",
    "SessionDeadline",
    "SessionState",
    "SessionStatus",
    "SessionTimeout",
    "ToolOutputMeta",
    # Failure tracker
    "ALL_FAIL_THRESHOLD",
    "TOOL_FAILURE_THRESHOLD",
    "FailureRecoveryAction",
    "RecoveryReason",
    "ToolCallOutcome",
    "ToolFailureState",
    "process_tool_results",
    # Reflection
    "AggregateCounts",
    "BehavioralContext",
    "BehavioralPattern",
    "ReflectionPolicy",
    "ReflectionSummary",
    "RiskLevel",
    "ToolStats",
    "behavioral_patterns",
    "completion_gate",
    "estimate_nudge_overhead",
    "post_check",
    "pre_check",
    # Heuristics
    "NarrationKind",
    "NarrationPolicy",
    "detect_narration",
    # Compaction
    "CompactionResult",
    "Summarizer",
    "compact_messages",
    "decay_tool_outputs",
    "persist_compaction_summary",
    # Persistence
    "InMemorySessionStore",
    "JsonFileSessionStore",
    "SessionRecord",
    "SessionStore",
]
