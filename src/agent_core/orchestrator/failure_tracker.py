"""Consecutive tool failure tracking.

Consulted once per iteration with that iteration's tool results. Detects
tools that keep failing and iterations in which nothing works, and returns
a corrective message for the model.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

TOOL_FAILURE_THRESHOLD = 2
"""Consecutive failures of one tool before the model is told to stop using it."""

ALL_FAIL_THRESHOLD = 3
"""Consecutive all-failing iterations before the model is told to stop using tools."""


class RecoveryReason(str, Enum):
    REPEATED_TOOL_FAILURE = "repeated_tool_failure"
    ALL_FAIL_STREAK = "all_fail_streak"


@dataclass(frozen=True)
class ToolCallOutcome:
    """Whether one tool call of the iteration failed."""

    tool_name: str
    is_error: bool
    tool_call_id: str = ""


@dataclass
class ToolFailureState:
    """Per-session failure counters.

    Attributes:
        tool_failures: Consecutive failures per tool; a success removes the entry.
        consecutive_all_fail_iterations: Iterations in a row where every call failed.
    """

    tool_failures: dict[str, int] = field(default_factory=dict)
    consecutive_all_fail_iterations: int = 0


@dataclass(frozen=True)
class FailureRecoveryAction:
    """Corrective message to inject, with details for the trace."""

    message: str
    reason: RecoveryReason
    failed_tools: list[str]
    failure_counts: dict[str, int] = field(default_factory=dict)
    consecutive_all_fail_iterations: int = 0


def process_tool_results(
    state: ToolFailureState, results: Sequence[ToolCallOutcome]
) -> FailureRecoveryAction | None:
    """Update ``state`` with one iteration's results and decide on recovery.

    An all-fail streak at or above ``ALL_FAIL_THRESHOLD`` wins over individual
    tools at or above ``TOOL_FAILURE_THRESHOLD``.

    Args:
        state: Session failure state, mutated in place.
        results: Every tool call of the iteration, in call order.

    Returns:
        The recovery action, or None when no intervention is needed.
    """
    if not results:
        return None

    failed_in_iteration = 0
    for outcome in results:
        if outcome.is_error:
            state.tool_failures[outcome.tool_name] = state.tool_failures.get(outcome.tool_name, 0) + 1
            failed_in_iteration += 1
        else:
            state.tool_failures.pop(outcome.tool_name, None)

    if failed_in_iteration == len(results):
        state.consecutive_all_fail_iterations += 1
    else:
        state.consecutive_all_fail_iterations = 0

    if state.consecutive_all_fail_iterations >= ALL_FAIL_THRESHOLD:
        return FailureRecoveryAction(
            message=(
                "Multiple consecutive attempts have all failed. Stop retrying tools and "
                "provide the user with a clear explanation of what you were trying to do, "
                "why it failed, and suggest alternative approaches they could try."
            ),
            reason=RecoveryReason.ALL_FAIL_STREAK,
            failed_tools=list(state.tool_failures),
            consecutive_all_fail_iterations=state.consecutive_all_fail_iterations,
        )

    repeatedly_failed = [
        name for name, count in state.tool_failures.items() if count >= TOOL_FAILURE_THRESHOLD
    ]
    if repeatedly_failed:
        return FailureRecoveryAction(
            message=(
                f"The following tools have failed {TOOL_FAILURE_THRESHOLD}+ times consecutively "
                f"and appear to be unavailable: {', '.join(repeatedly_failed)}. Do NOT retry them. "
                "Use a different tool or approach, or explain the limitation to the user."
            ),
            reason=RecoveryReason.REPEATED_TOOL_FAILURE,
            failed_tools=repeatedly_failed,
            failure_counts={name: state.tool_failures[name] for name in repeatedly_failed},
        )

    return None
