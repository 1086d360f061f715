"""Context size control: age-based decay and summary compaction.

Decay is cheap and runs every iteration: tool-result turns older than a few
iterations have their text cut down. Compaction is expensive: once the
prompt grows past a token threshold the model summarizes the older history,
which is then replaced by ``{system, summary turn, most recent turns}``.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from agent_core.llm_client.types import (
    Message,
    StreamingModel,
    SystemMessage,
    TextDelta,
    ToolResultMessage,
    UserMessage,
    message_text,
)
from agent_core.orchestrator.types import ToolOutputMeta
from agent_core.telemetry import COMPACTION_SUMMARY_PERSISTED, TOOL_OUTPUT_DECAYED, get_logger

log = get_logger(__name__)

SUMMARIZATION_SYSTEM = (
    "You compress agent conversations. Summarize the conversation below so the "
    "agent can continue the task without it. Keep: the user's goal and constraints, "
    "decisions made, facts learned from tool results (paths, ids, values), work "
    "completed, and what remains to be done. Drop pleasantries and repeated output. "
    "Write plain prose or short bullet points."
)
CONTINUE_PROMPT = "Continue from where we left off."
DECAY_MARKER = "\n[...older tool output truncated]"
MEMORY_FILE = "MEMORY.md"


@dataclass
class CompactionResult:
    summary: str
    compacted_messages: list[Message]


class Summarizer(Protocol):
    """Summarization collaborator used by the loop."""

    async def __call__(
        self, model: StreamingModel, messages: Sequence[Message], system_prompt: str
    ) -> CompactionResult: ...


def recent_turns(messages: Sequence[Message], keep_recent: int) -> list[Message]:
    """Return the last ``keep_recent`` non-system turns.

    The slice is widened backwards so it never starts with a tool-result turn
    whose assistant turn was cut off.
    """
    body = [message for message in messages if not isinstance(message, SystemMessage)]
    if keep_recent <= 0:
        return []
    start = max(0, len(body) - keep_recent)
    while start > 0 and isinstance(body[start], ToolResultMessage):
        start -= 1
    return body[start:]


async def compact_messages(
    model: StreamingModel,
    messages: Sequence[Message],
    system_prompt: str,
    keep_recent: int = 4,
) -> CompactionResult:
    """Summarize older history with ``model`` and rebuild the message list.

    Args:
        model: Model used for the summary call (no tools).
        messages: Full history.
        system_prompt: System prompt to keep at the head of the new history.
        keep_recent: Turns kept verbatim after the summary.

    Returns:
        The summary and the replacement history. When every turn is recent
        there is nothing to summarize: the summary is empty and the history
        is returned unchanged.
    """
    recent = recent_turns(messages, keep_recent)
    body = [message for message in messages if not isinstance(message, SystemMessage)]
    older = body[: len(body) - len(recent)]
    if not older:
        return CompactionResult(summary="", compacted_messages=list(messages))
    transcript = "\n\n".join(f"[{message.role}] {message_text(message)}" for message in older)

    parts: list[str] = []
    request: list[Message] = [
        SystemMessage(content=SUMMARIZATION_SYSTEM),
        UserMessage(content=transcript),
    ]
    async for event in model.stream(request, []):
        if isinstance(event, TextDelta):
            parts.append(event.text)
    summary = "".join(parts).strip()

    compacted: list[Message] = []
    if system_prompt:
        compacted.append(SystemMessage(content=system_prompt))
    compacted.append(UserMessage(content=f"{summary}\n\n{CONTINUE_PROMPT}"))
    compacted.extend(recent)
    return CompactionResult(summary=summary, compacted_messages=compacted)


def decay_tool_outputs(
    messages: Sequence[Message],
    meta: Sequence[ToolOutputMeta],
    iteration: int,
    decay_iterations: int,
    threshold_chars: int,
) -> int:
    """Truncate tool results that are at least ``decay_iterations`` old.

    Each result is truncated once; decayed parts are flagged and skipped
    afterwards. Entries whose index no longer points at a tool turn are
    ignored.

    Returns:
        Number of results truncated by this call.
    """
    decayed = 0
    for entry in meta:
        if iteration - entry.iteration < decay_iterations:
            continue
        if entry.message_index >= len(messages):
            continue
        message = messages[entry.message_index]
        if not isinstance(message, ToolResultMessage):
            continue
        for part in message.results:
            if part.decayed or len(part.content) <= threshold_chars:
                continue
            part.content = f"{part.content[:threshold_chars]}{DECAY_MARKER}"
            part.decayed = True
            decayed += 1

    if decayed:
        log.debug(TOOL_OUTPUT_DECAYED, iteration=iteration, results=decayed)
    return decayed


def persist_compaction_summary(workspace: Path, summary: str) -> Path:
    """Append a compaction summary to the workspace memory file."""
    workspace.mkdir(parents=True, exist_ok=True)
    path = workspace / MEMORY_FILE
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%SZ")
    with path.open("a", encoding="utf-8") as f:
        f.write(f"\n## Compaction Summary ({timestamp})\n\n{summary}\n")
    log.info(COMPACTION_SUMMARY_PERSISTED, path=str(path), chars=len(summary))
    return path
