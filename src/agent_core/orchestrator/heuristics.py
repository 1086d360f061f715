"""Narration heuristics for text-only model turns.

When a turn carries no tool calls, the loop checks whether the text is a
real answer or one of three unproductive patterns:

- planning narration: a short "I will / let me ..." with no concrete result
- fake tool call: a call written as text, e.g. ``think(thought="...")``
- hallucinated action: "I've scheduled ..." although no tool ran

The regexes approximate observed model behaviour, so they are bundled in a
replaceable ``NarrationPolicy``.
"""

import re
from dataclasses import dataclass
from enum import Enum


class NarrationKind(str, Enum):
    """Unproductive text pattern, used as the nudge reason tag."""

    FAKE_TOOL_CALL = "fake_tool_call"
    HALLUCINATED_ACTION = "hallucinated_action"
    PLANNING_NARRATION = "planning_narration"


PLAN_VERBS = re.compile(
    r"\b(I will|I'll|let me|I need to|I'm going to|I should|I can|I am going to)\b", re.IGNORECASE
)
HAS_CONTENT = re.compile(
    r"(\d{2,}|https?://|```|[A-Z][a-z]+ is |the answer|the result|your |here's|here is)",
    re.IGNORECASE,
)
FAKE_TOOL_CALL = re.compile(r"\b\w+\((?:thought|query|command|url)\s*=", re.IGNORECASE)
TOOL_ACTION_CLAIM = re.compile(
    r"\b(I've |I have |I )(scheduled|set up|created|saved|written|deleted|cancelled|searched|"
    r"fetched|reminded|notified|sent|updated|modified|added|removed|recorded|stored|looked up)\b",
    re.IGNORECASE,
)

NUDGE_MESSAGES: dict[NarrationKind, str] = {
    NarrationKind.FAKE_TOOL_CALL: (
        "You wrote tool calls as text instead of invoking them. Use the actual "
        "tool-calling mechanism. Do not write function calls as text."
    ),
    NarrationKind.HALLUCINATED_ACTION: (
        "You claimed to have completed an action but you did NOT actually call any tools. "
        "You MUST use the available tools to perform actions. Call the appropriate tool now."
    ),
    NarrationKind.PLANNING_NARRATION: (
        "Do not describe what you plan to do. Call the tools now and return the final result."
    ),
}


@dataclass(frozen=True)
class NarrationPolicy:
    """Patterns and limits of the narration heuristics.

    Attributes:
        plan_verbs: First-person planning phrases.
        has_content: Markers of a concrete result (numbers, URLs, code, statements).
        fake_tool_call: A tool call written out as text.
        action_claim: First-person past-tense claim of a tool-like action.
        max_narration_chars: Planning narration must be shorter than this.
    """

    plan_verbs: re.Pattern[str] = PLAN_VERBS
    has_content: re.Pattern[str] = HAS_CONTENT
    fake_tool_call: re.Pattern[str] = FAKE_TOOL_CALL
    action_claim: re.Pattern[str] = TOOL_ACTION_CLAIM
    max_narration_chars: int = 300

    def is_planning_narration(self, text: str) -> bool:
        return (
            len(text) < self.max_narration_chars
            and self.plan_verbs.search(text) is not None
            and self.has_content.search(text) is None
        )

    def is_fake_tool_call(self, text: str) -> bool:
        return self.fake_tool_call.search(text) is not None

    def is_hallucinated_action(self, text: str, tool_call_count: int) -> bool:
        return tool_call_count == 0 and self.action_claim.search(text) is not None


DEFAULT_NARRATION_POLICY = NarrationPolicy()


def detect_narration(
    text: str,
    tool_call_count: int = 0,
    policy: NarrationPolicy = DEFAULT_NARRATION_POLICY,
) -> NarrationKind | None:
    """Classify a text-only turn.

    Checked in order fake tool call, hallucinated action, planning narration;
    the first match is returned.

    Args:
        text: The turn's text output.
        tool_call_count: Structured tool calls in the turn.
        policy: Patterns to use.

    Returns:
        The detected pattern, or None when the text looks like a real answer.
    """
    if policy.is_fake_tool_call(text):
        return NarrationKind.FAKE_TOOL_CALL
    if policy.is_hallucinated_action(text, tool_call_count):
        return NarrationKind.HALLUCINATED_ACTION
    if policy.is_planning_narration(text):
        return NarrationKind.PLANNING_NARRATION
    return None
