"""Tests for narration heuristics."""

import re

import pytest

from agent_core.orchestrator.heuristics import (
    NUDGE_MESSAGES,
    NarrationKind,
    NarrationPolicy,
    detect_narration,
)


@pytest.mark.parametrize(
    "text",
    [
        'think(thought="first I should list the files")',
        'Searching now: web_search(query="weather Paris")',
        "shell_exec(command = 'ls -la')",
    ],
)
def test_fake_tool_call(text: str) -> None:
    """Test tool calls written out as text."""
    assert detect_narration(text) == NarrationKind.FAKE_TOOL_CALL


def test_hallucinated_action_without_tools() -> None:
    """Test an action claim with no tool call in the turn."""
    assert detect_narration("I've scheduled the reminder.") == NarrationKind.HALLUCINATED_ACTION


def test_action_claim_with_tool_calls_is_not_hallucinated() -> None:
    """Test the same claim is fine when a tool was actually called."""
    assert detect_narration("I've scheduled the reminder.", tool_call_count=1) is None


def test_planning_narration() -> None:
    """Test a short plan with no concrete result."""
    assert detect_narration("Let me check that for you.") == NarrationKind.PLANNING_NARRATION


def test_plan_with_content_is_an_answer() -> None:
    """Test a plan verb next to a concrete statement is accepted."""
    assert detect_narration("I can confirm that Paris is the capital of France.") is None


def test_long_text_is_not_narration() -> None:
    """Test planning phrases in long answers are ignored."""
    text = "I will explain step by step. " + "Some detail follows here. " * 20

    assert len(text) >= 300
    assert detect_narration(text) is None


def test_plain_answer() -> None:
    """Test an ordinary answer."""
    assert detect_narration("Tomorrow will be sunny.") is None


def test_fake_tool_call_checked_first() -> None:
    """Test fake tool calls win over action claims."""
    text = 'I have searched it: web_search(query="x")'

    assert detect_narration(text) == NarrationKind.FAKE_TOOL_CALL


def test_custom_policy() -> None:
    """Test patterns can be replaced per deployment."""
    policy = NarrationPolicy(plan_verbs=re.compile(r"\bje vais\b", re.IGNORECASE))

    assert detect_narration("Je vais regarder.", policy=policy) == NarrationKind.PLANNING_NARRATION
    assert detect_narration("Let me check that for you.", policy=policy) is None


def test_every_kind_has_a_nudge() -> None:
    """Test each narration kind maps to a nudge text."""
    assert set(NUDGE_MESSAGES) == set(NarrationKind)
