"""Tests for consecutive tool failure tracking."""

from agent_core.orchestrator.failure_tracker import (
    ALL_FAIL_THRESHOLD,
    TOOL_FAILURE_THRESHOLD,
    RecoveryReason,
    ToolCallOutcome,
    ToolFailureState,
    process_tool_results,
)


def fail(name: str) -> ToolCallOutcome:
    return ToolCallOutcome(tool_name=name, is_error=True)


def ok(name: str) -> ToolCallOutcome:
    return ToolCallOutcome(tool_name=name, is_error=False)


def test_thresholds_are_fixed() -> None:
    """Test the documented threshold constants."""
    assert TOOL_FAILURE_THRESHOLD == 2
    assert ALL_FAIL_THRESHOLD == 3


def test_first_failure_returns_none() -> None:
    """Test a single failure only starts the counter."""
    state = ToolFailureState()

    action = process_tool_results(state, [fail("web_search")])

    assert action is None
    assert state.tool_failures == {"web_search": 1}
    assert state.consecutive_all_fail_iterations == 1


def test_second_consecutive_failure_names_the_tool() -> None:
    """Test two failures of the same tool return repeated_tool_failure."""
    state = ToolFailureState()
    process_tool_results(state, [fail("web_search")])

    action = process_tool_results(state, [fail("web_search"), ok("echo")])

    assert action is not None
    assert action.reason == RecoveryReason.REPEATED_TOOL_FAILURE
    assert action.failed_tools == ["web_search"]
    assert action.failure_counts == {"web_search": 2}
    assert "web_search" in action.message


def test_success_clears_tool_counter() -> None:
    """Test an interleaved success removes the tool's counter."""
    state = ToolFailureState()
    process_tool_results(state, [fail("web_search")])

    action = process_tool_results(state, [ok("web_search")])

    assert action is None
    assert "web_search" not in state.tool_failures
    assert state.consecutive_all_fail_iterations == 0

    assert process_tool_results(state, [fail("web_search")]) is None
    assert state.tool_failures == {"web_search": 1}


def test_any_success_resets_all_fail_streak() -> None:
    """Test a mixed iteration resets the all-fail streak."""
    state = ToolFailureState()
    process_tool_results(state, [fail("a")])
    process_tool_results(state, [fail("b")])

    process_tool_results(state, [fail("c"), ok("d")])

    assert state.consecutive_all_fail_iterations == 0


def test_all_fail_streak_takes_priority() -> None:
    """Test three all-failing iterations win over a simultaneous repeated failure."""
    state = ToolFailureState()
    process_tool_results(state, [fail("a")])
    process_tool_results(state, [fail("b")])

    action = process_tool_results(state, [fail("a"), fail("b")])

    assert action is not None
    assert action.reason == RecoveryReason.ALL_FAIL_STREAK
    assert action.consecutive_all_fail_iterations == 3
    assert "Stop retrying tools" in action.message


def test_all_fail_streak_with_different_tools() -> None:
    """Test the streak counts iterations regardless of which tools failed."""
    state = ToolFailureState()

    actions = [
        process_tool_results(state, [fail("a")]),
        process_tool_results(state, [fail("b")]),
        process_tool_results(state, [fail("c")]),
    ]

    assert actions[0] is None
    assert actions[1] is None
    assert actions[2] is not None
    assert actions[2].reason == RecoveryReason.ALL_FAIL_STREAK


def test_empty_batch_is_ignored() -> None:
    """Test an iteration without tool calls changes nothing."""
    state = ToolFailureState(tool_failures={"a": 1}, consecutive_all_fail_iterations=2)

    assert process_tool_results(state, []) is None
    assert state.tool_failures == {"a": 1}
    assert state.consecutive_all_fail_iterations == 2
