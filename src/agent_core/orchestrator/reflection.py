"""Reflection engine: heuristic checks around tool calls.

Pure functions consulted by the loop:

- ``pre_check`` before each tool call (may block the call)
- ``post_check`` after each tool call (may suggest a corrective nudge)
- ``behavioral_patterns`` once per iteration over the session's call history
- ``completion_gate`` before a final answer is accepted

The functions keep no state. The loop owns a ``BehavioralContext`` and a
``ReflectionSummary`` per session and passes them in. Tool names, the
protected file and every phrase pattern come from a ``ReflectionPolicy`` so
deployments with different tool sets can retune them.
"""

import math
import posixpath
import re
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from agent_core.governance.models import ToolPermission
from agent_core.llm_client.pricing import ModelPricing
from agent_core.tools.types import ToolDefinition

SUMMARY_MAX_CHARS = 220


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BehavioralPattern(str, Enum):
    THINK_LOOP = "think_loop"
    REPEATED_PATH_FAILURE = "repeated_path_failure"
    SHELL_EXEC_OVERUSE = "shell_exec_overuse"
    THINK_HEAVY = "think_heavy"
    CLEAN = "clean"


@dataclass(frozen=True)
class ClaimCategory:
    """A kind of claim the final answer can make, and the tools that back it.

    Attributes:
        name: Category tag, used in ``missing_evidence_for_<name>_claim``.
        claim: Pattern of the claim in the output text.
        evidence_tools: A success of any of these tools backs the claim.
        related_tools: Lookups in the same area. A call to one of these, or a
            failed evidence call, means the model worked on the claim.
        hint: What the model should do instead of claiming.
    """

    name: str
    claim: re.Pattern[str]
    evidence_tools: tuple[str, ...]
    hint: str
    related_tools: tuple[str, ...] = ()


DEFAULT_CLAIM_CATEGORIES: tuple[ClaimCategory, ...] = (
    ClaimCategory(
        name="scheduler",
        claim=re.compile(
            r"\b(cancel+ed|scheduled|rescheduled|set up (a |the )?reminder|reminder (is |has been )?set)\b",
            re.IGNORECASE,
        ),
        evidence_tools=("schedule_task", "cancel_scheduled_task", "heartbeat_register"),
        hint="Call list_scheduled_tasks and then the scheduling tool; report only what it confirms.",
        related_tools=("list_scheduled_tasks",),
    ),
    ClaimCategory(
        name="memory",
        claim=re.compile(
            r"\b(saved|stored|added|recorded|noted|written)\b[^.\n]{0,40}\bmemory\b"
            r"|\bI('ll| will) remember\b",
            re.IGNORECASE,
        ),
        evidence_tools=("memory_write", "memory_append", "memory_save"),
        hint="Call the memory tool to save it, then confirm.",
        related_tools=("memory_search", "memory_read"),
    ),
    ClaimCategory(
        name="plugin",
        claim=re.compile(
            r"\b(installed|uninstalled|removed|enabled|disabled)\b[^.\n]{0,40}\bplugins?\b"
            r"|\bplugins?\b[^.\n]{0,40}\b(installed|uninstalled|removed)\b",
            re.IGNORECASE,
        ),
        evidence_tools=("plugin_install", "plugin_uninstall", "plugin_remove"),
        hint="Call the plugin tool and report its actual result.",
        related_tools=("plugin_list",),
    ),
    ClaimCategory(
        name="file",
        claim=re.compile(
            r"\b(updated|edited|modified|wrote|written|created|saved)\b[^.\n]{0,40}"
            r"\b(the file|files?|[\w./-]+\.(md|txt|json|ya?ml|py|ts|js|toml|csv))\b",
            re.IGNORECASE,
        ),
        evidence_tools=("file_write", "file_edit"),
        hint="Call file_write or file_edit and check the result before reporting.",
        related_tools=("list_directory",),
    ),
)

ACKNOWLEDGES_FAILURE = re.compile(
    r"\b(fail(ed|ure|s)?|error|unable|could ?n[o']t|can ?n[o']t|cannot|not able|"
    r"didn't work|did not work|unsuccessful|problem|issue|sorry)\b",
    re.IGNORECASE,
)
NOT_FOUND = re.compile(
    r"(no such file|not found|does not exist|doesn't exist|ENOENT|cannot find|could not find)",
    re.IGNORECASE,
)
PERMISSION_DENIED = re.compile(
    r"(permission denied|EACCES|EPERM|not permitted|access denied|is denied by|forbidden)",
    re.IGNORECASE,
)
CONFIRMATION_REQUIRED = re.compile(
    r"(requires confirmation|rejected by user|confirmation timed out)", re.IGNORECASE
)
SHELL_SYNTAX_ERROR = re.compile(
    r"(syntax error|unexpected token|unterminated quoted|unexpected EOF|unexpected end of file)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ReflectionPolicy:
    """Tool names and patterns the reflection checks are tuned to."""

    protected_edit_tools: tuple[str, ...] = ("file_edit", "file_write")
    protected_file: re.Pattern[str] = re.compile(r"(^|[\\/])HEARTBEAT\.md$", re.IGNORECASE)
    protected_file_name: str = "HEARTBEAT.md"
    protected_file_signature: str = "protected memory file"
    safe_update_tool: str = "heartbeat_register"
    cancel_tool: str = "cancel_scheduled_task"
    cancel_id_arg: str = "task_id"
    cancel_not_found_signature: str = "No task found with ID starting with"
    list_tasks_tool: str = "list_scheduled_tasks"
    id_prefix: re.Pattern[str] = re.compile(r"^[a-f0-9-]{4,}$", re.IGNORECASE)
    list_directory_tool: str = "list_directory"
    path_args: tuple[str, ...] = ("path", "file_path")
    think_tool: str = "think"
    shell_tools: tuple[str, ...] = ("shell_exec",)
    claim_categories: tuple[ClaimCategory, ...] = DEFAULT_CLAIM_CATEGORIES
    acknowledges_failure: re.Pattern[str] = ACKNOWLEDGES_FAILURE
    think_loop_threshold: int = 3
    repeated_path_threshold: int = 3
    path_escalation_threshold: int = 2
    shell_overuse_threshold: int = 8
    shell_overuse_max_productive: int = 1
    think_heavy_min_calls: int = 5
    think_heavy_ratio: float = 0.4

    def path_of(self, args: Mapping[str, Any]) -> str | None:
        for name in self.path_args:
            value = args.get(name)
            if isinstance(value, str) and value:
                return value
        return None


DEFAULT_REFLECTION_POLICY = ReflectionPolicy()


def truncate(text: str, max_chars: int = SUMMARY_MAX_CHARS) -> str:
    if len(text) <= max_chars:
        return text
    return f"{text[: max_chars - 3]}..."


# Results


@dataclass(frozen=True)
class PreCheck:
    risk: RiskLevel
    should_block: bool
    summary: str
    recommendation: str | None = None


@dataclass(frozen=True)
class PostCheck:
    outcome: str  # "ok" | "error"
    summary: str
    should_nudge: bool
    recommendation: str | None = None
    reason: str | None = None

    def nudge_message(self, tool_name: str) -> str:
        text = f'Tool "{tool_name}" failed: {self.summary}'
        if self.recommendation:
            text = f"{text}\n{self.recommendation}"
        return text


@dataclass(frozen=True)
class GateResult:
    should_nudge: bool
    reason: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class PatternResult:
    pattern: BehavioralPattern
    message: str | None = None

    @property
    def detected(self) -> bool:
        return self.pattern is not BehavioralPattern.CLEAN


# Per-session inputs


@dataclass
class ToolStats:
    calls: int = 0
    successes: int = 0
    errors: int = 0


@dataclass
class BehavioralContext:
    """Running tally of a session's tool calls."""

    consecutive_think_calls: int = 0
    failed_paths: dict[str, int] = field(default_factory=dict)
    total_shell_exec_calls: int = 0
    total_productive_tool_calls: int = 0
    total_think_calls: int = 0
    total_tool_calls: int = 0
    per_tool: dict[str, ToolStats] = field(default_factory=dict)

    def record(
        self,
        tool_name: str,
        args: Mapping[str, Any],
        is_error: bool,
        policy: ReflectionPolicy = DEFAULT_REFLECTION_POLICY,
    ) -> None:
        """Count one finished tool call."""
        self.total_tool_calls += 1
        stats = self.per_tool.setdefault(tool_name, ToolStats())
        stats.calls += 1
        if is_error:
            stats.errors += 1
        else:
            stats.successes += 1

        if tool_name == policy.think_tool:
            self.consecutive_think_calls += 1
            self.total_think_calls += 1
        else:
            self.consecutive_think_calls = 0

        is_shell = tool_name in policy.shell_tools
        if is_shell:
            self.total_shell_exec_calls += 1
        if not is_error and not is_shell and tool_name != policy.think_tool:
            self.total_productive_tool_calls += 1

        path = policy.path_of(args)
        if is_error and path is not None:
            self.failed_paths[path] = self.failed_paths.get(path, 0) + 1

    @property
    def tool_successes(self) -> int:
        return sum(stats.successes for stats in self.per_tool.values())

    @property
    def tool_errors(self) -> int:
        return sum(stats.errors for stats in self.per_tool.values())


@dataclass(frozen=True)
class AggregateCounts:
    tool_successes: int
    tool_errors: int


@dataclass
class ReflectionSummary:
    """Session-level reflection accounting, reported at session end."""

    pre_checks: int = 0
    blocked_calls: int = 0
    high_risk_calls: int = 0
    post_checks: int = 0
    post_errors: int = 0
    nudges_injected: int = 0
    estimated_prompt_overhead_tokens: int = 0
    estimated_cost_usd: float = 0.0

    def record_pre_check(self, check: PreCheck) -> None:
        self.pre_checks += 1
        if check.should_block:
            self.blocked_calls += 1
        if check.risk is RiskLevel.HIGH:
            self.high_risk_calls += 1

    def record_post_check(self, check: PostCheck) -> None:
        self.post_checks += 1
        if check.outcome == "error":
            self.post_errors += 1

    def record_nudge(self, text: str, pricing: ModelPricing) -> None:
        tokens, cost = estimate_nudge_overhead(text, pricing)
        self.nudges_injected += 1
        self.estimated_prompt_overhead_tokens += tokens
        self.estimated_cost_usd += cost

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def estimate_tokens(text: str) -> int:
    """Rough token estimate: four characters per token."""
    return math.ceil(len(text) / 4)


def estimate_nudge_overhead(text: str, pricing: ModelPricing) -> tuple[int, float]:
    """Estimate the prompt tokens and cost an injected nudge adds.

    The nudge stays in history, so every later call pays for it again; this
    counts only its first appearance.

    Returns:
        Tuple of (estimated tokens, estimated USD at input rates).
    """
    tokens = estimate_tokens(text)
    return tokens, pricing.cost(tokens, 0)


# Checks


def _is_protected_edit(tool_name: str, args: Mapping[str, Any], policy: ReflectionPolicy) -> bool:
    if tool_name not in policy.protected_edit_tools:
        return False
    path = policy.path_of(args) or ""
    return policy.protected_file.search(path) is not None


def pre_check(
    tool_name: str,
    args: Mapping[str, Any],
    tool_def: ToolDefinition | None,
    policy: ReflectionPolicy = DEFAULT_REFLECTION_POLICY,
) -> PreCheck:
    """Assess a tool call before it runs.

    Args:
        tool_name: Tool the model asked for.
        args: Arguments it supplied.
        tool_def: The tool's definition, or None if the session does not have it.
        policy: Tool names and patterns.

    Returns:
        Risk assessment; ``should_block`` calls must not be executed.
    """
    if tool_def is None:
        return PreCheck(
            risk=RiskLevel.HIGH,
            should_block=True,
            summary=f'Tool "{tool_name}" is not available in this session.',
            recommendation="Use only tools present in the current tool list.",
        )

    if tool_def.permission in (ToolPermission.WRITE, ToolPermission.EXEC) and not args:
        return PreCheck(
            risk=RiskLevel.MEDIUM,
            should_block=False,
            summary=f'Tool "{tool_name}" is {tool_def.permission.value} but was called with empty args.',
            recommendation="Verify required parameters before execution.",
        )

    if _is_protected_edit(tool_name, args, policy):
        return PreCheck(
            risk=RiskLevel.HIGH,
            should_block=True,
            summary=f"{policy.protected_file_name} is protected from direct file edits.",
            recommendation=f"Use {policy.safe_update_tool} to update schedule items safely.",
        )

    if tool_name == policy.cancel_tool:
        raw = args.get(policy.cancel_id_arg)
        if isinstance(raw, str) and raw.strip() and not policy.id_prefix.match(raw.strip()):
            return PreCheck(
                risk=RiskLevel.MEDIUM,
                should_block=False,
                summary=f'Task id "{truncate(raw.strip(), 40)}" does not look like a task id prefix.',
                recommendation=(
                    f"Call {policy.list_tasks_tool} and use the id prefix shown in that output."
                ),
            )

    return PreCheck(risk=RiskLevel.LOW, should_block=False, summary="No pre-action issues detected.")


def post_check(
    tool_name: str,
    args: Mapping[str, Any],
    result: str,
    error: str | None = None,
    behavioral_context: BehavioralContext | None = None,
    policy: ReflectionPolicy = DEFAULT_REFLECTION_POLICY,
) -> PostCheck:
    """Assess a finished tool call.

    Error signatures are checked in a fixed order; the first match decides
    the recommendation. Every error outcome asks for a nudge.

    Args:
        tool_name: Tool that ran.
        args: Arguments it ran with.
        result: Its output.
        error: Its error message, if it failed.
        behavioral_context: Session tally before this call was counted.
        policy: Tool names and patterns.

    Returns:
        The assessment.
    """
    if error is None:
        return PostCheck(
            outcome="ok",
            summary=truncate(result or "Tool completed successfully."),
            should_nudge=False,
        )

    summary = truncate(error)

    def failed(recommendation: str, reason: str) -> PostCheck:
        return PostCheck(
            outcome="error",
            summary=summary,
            should_nudge=True,
            recommendation=recommendation,
            reason=reason,
        )

    if tool_name == policy.cancel_tool and policy.cancel_not_found_signature in error:
        return failed(
            f"Use {policy.list_tasks_tool} first, then cancel using the exact id prefix from the list.",
            "cancel_task_not_found",
        )

    if (
        policy.protected_file_signature in error and policy.protected_file_name in error
    ) or _is_protected_edit(tool_name, args, policy):
        return failed(
            f"Use {policy.safe_update_tool} for {policy.protected_file_name} updates instead of "
            f"{'/'.join(policy.protected_edit_tools)}.",
            "protected_file",
        )

    if NOT_FOUND.search(error):
        path = policy.path_of(args)
        if path is None:
            return failed(
                "Check that the target exists (list it first) before retrying.", "not_found"
            )
        parent = posixpath.dirname(path.rstrip("/")) or "."
        previous_failures = (
            behavioral_context.failed_paths.get(path, 0) if behavioral_context is not None else 0
        )
        if previous_failures >= policy.path_escalation_threshold:
            return failed(
                f"{path} has already failed {previous_failures} times. Stop guessing paths: call "
                f"{policy.list_directory_tool} on {parent} and use a path from its output.",
                "not_found",
            )
        return failed(
            f"Call {policy.list_directory_tool} on {parent} to see what exists before retrying.",
            "not_found",
        )

    if PERMISSION_DENIED.search(error):
        return failed(
            "Do not retry the same call. Use a location or tool you are allowed to use, "
            "or explain the restriction to the user.",
            "permission_denied",
        )

    if CONFIRMATION_REQUIRED.search(error):
        return failed(
            "This call needs human approval that was refused or is unavailable. Do not retry it; "
            "tell the user what needs approval.",
            "confirmation_required",
        )

    if SHELL_SYNTAX_ERROR.search(error):
        return failed(
            "Fix the command syntax (quoting, escaping, unbalanced brackets) before running it again.",
            "shell_syntax_error",
        )

    return failed(
        "Adjust the parameters or use a different approach. Do not repeat the same failing call.",
        "tool_error",
    )


def behavioral_patterns(
    context: BehavioralContext, policy: ReflectionPolicy = DEFAULT_REFLECTION_POLICY
) -> PatternResult:
    """Detect unproductive call patterns, first match wins."""
    if context.consecutive_think_calls >= policy.think_loop_threshold:
        return PatternResult(
            BehavioralPattern.THINK_LOOP,
            f"You have called {policy.think_tool} {context.consecutive_think_calls} times in a row. "
            "Stop deliberating: call a tool that makes progress or give the final answer.",
        )

    for path, count in context.failed_paths.items():
        if count >= policy.repeated_path_threshold:
            return PatternResult(
                BehavioralPattern.REPEATED_PATH_FAILURE,
                f"{path} has failed {count} times. Stop retrying it; list the parent directory "
                "or ask the user for the right location.",
            )

    if (
        context.total_shell_exec_calls >= policy.shell_overuse_threshold
        and context.total_productive_tool_calls <= policy.shell_overuse_max_productive
    ):
        return PatternResult(
            BehavioralPattern.SHELL_EXEC_OVERUSE,
            f"You have run {context.total_shell_exec_calls} shell commands with little progress. "
            "Prefer the dedicated tools, or explain to the user what is blocking you.",
        )

    if (
        context.total_tool_calls >= policy.think_heavy_min_calls
        and context.total_think_calls / context.total_tool_calls > policy.think_heavy_ratio
    ):
        return PatternResult(
            BehavioralPattern.THINK_HEAVY,
            f"Most of your tool calls are {policy.think_tool} calls. Act on your reasoning with "
            "real tools now.",
        )

    return PatternResult(BehavioralPattern.CLEAN)


def completion_gate(
    counts: AggregateCounts,
    final_text: str,
    per_tool_stats: Mapping[str, ToolStats] | None = None,
    policy: ReflectionPolicy = DEFAULT_REFLECTION_POLICY,
) -> GateResult:
    """Check a final answer against the tool calls that actually succeeded.

    Args:
        counts: Session-wide tool successes and errors.
        final_text: The answer about to be returned.
        per_tool_stats: Per-tool tallies; claim checks are skipped without them.
        policy: Claim categories and the failure-acknowledgement pattern.

    Returns:
        Whether to send the answer back with a nudge, and why.

    A claim is only checked when the session called one of its category's
    tools. Answers that merely mention a schedule after unrelated lookups pass.
    """
    if per_tool_stats is not None:
        for category in policy.claim_categories:
            if not category.claim.search(final_text):
                continue
            attempted = any(
                per_tool_stats[tool].calls > 0
                for tool in (*category.evidence_tools, *category.related_tools)
                if tool in per_tool_stats
            )
            if not attempted:
                continue
            backed = any(
                per_tool_stats[tool].successes > 0
                for tool in category.evidence_tools
                if tool in per_tool_stats
            )
            if not backed:
                return GateResult(
                    should_nudge=True,
                    reason=f"missing_evidence_for_{category.name}_claim",
                    message=(
                        f"Your answer claims a {category.name} action, but no {category.name} tool "
                        f"call succeeded in this session. {category.hint} If it cannot be done, "
                        "say so plainly."
                    ),
                )

    if (
        counts.tool_errors > 0
        and counts.tool_successes == 0
        and not policy.acknowledges_failure.search(final_text)
    ):
        return GateResult(
            should_nudge=True,
            reason="unverified_completion_after_failures",
            message=(
                "Every tool call in this session failed, yet your answer reads as if the task "
                "succeeded. Tell the user what failed and what they can do instead."
            ),
        )

    return GateResult(should_nudge=False)
