"""Governance gate in front of the raw tool executor.

Every call is resolved to a permission tier and an effective policy, its
string arguments are sanitized and scanned for injection markers, and the
call is then denied, confirmed with a human, or allowed. Allowed calls pass
through an optional per-session rate limiter before reaching the raw
executor. Each decision produces exactly one audit event.

Refusals are returned as error results so the model can read them; they
never raise.
"""

import asyncio
import time
from typing import Any

from agent_core.governance.confirmation import ConfirmationDelegate
from agent_core.governance.injection import matched_injection_patterns, sanitize_args
from agent_core.governance.models import (
    GovernanceDecision,
    GovernancePolicy,
    ToolPermission,
    ToolPolicy,
)
from agent_core.governance.rate_limit import SlidingWindowLimiter
from agent_core.telemetry import (
    GOVERNANCE_DECISION,
    INJECTION_ATTEMPT_FLAGGED,
    RATE_LIMIT_EXCEEDED,
    TracePhase,
    TraceRecorder,
    get_logger,
)
from agent_core.tools.registry import ToolRegistry
from agent_core.tools.types import ToolExecResult, ToolExecutor

log = get_logger(__name__)

AUDIT_ARG_MAX_CHARS = 500
AUDIT_TRUNCATION_MARKER = "...[truncated]"


def truncate_args_for_audit(args: dict[str, Any], max_chars: int = AUDIT_ARG_MAX_CHARS) -> dict[str, Any]:
    """Shorten long string argument values for the audit trail."""
    return {
        key: f"{value[:max_chars]}{AUDIT_TRUNCATION_MARKER}"
        if isinstance(value, str) and len(value) > max_chars
        else value
        for key, value in args.items()
    }


class GovernedToolExecutor:
    """Applies a governance policy around a raw executor for one session."""

    def __init__(
        self,
        raw_executor: ToolExecutor,
        registry: ToolRegistry,
        policy: GovernancePolicy,
        session_id: str,
        confirm: ConfirmationDelegate | None = None,
        rate_limiter: SlidingWindowLimiter | None = None,
        trace: TraceRecorder | None = None,
    ) -> None:
        """Initialize the governed executor.

        Args:
            raw_executor: Executes calls that governance lets through.
            registry: Source of each tool's permission tier.
            policy: Session governance policy.
            session_id: Key for the rate limiter and the audit trail.
            confirm: Human confirmation delegate; None in non-interactive sessions.
            rate_limiter: Optional limiter shared across sessions.
            trace: Receives governance audit events.
        """
        self.raw_executor = raw_executor
        self.registry = registry
        self.policy = policy
        self.session_id = session_id
        self.confirm = confirm
        self.rate_limiter = rate_limiter
        self.trace = trace

    def permission_for(self, tool_name: str) -> ToolPermission:
        tool_def = self.registry.get_definition(tool_name)
        return tool_def.permission if tool_def is not None else ToolPermission.READ

    async def execute(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        *,
        iteration: int = 0,
        deadline: float | None = None,
    ) -> ToolExecResult:
        """Execute a tool call under governance.

        Args:
            tool_name: Tool the model asked for.
            arguments: Arguments the model supplied.
            iteration: Loop iteration, recorded on audit events.
            deadline: Event-loop time at which the session expires. Bounds the
                confirmation wait; ``TimeoutError`` propagates when it passes.

        Returns:
            The raw executor's result, or an error result describing the refusal.
        """
        permission = self.permission_for(tool_name)
        effective = self.policy.policy_for(tool_name, permission)
        args = sanitize_args(arguments)

        self._scan_for_injection(tool_name, args, iteration)

        if effective is ToolPolicy.DENY:
            error = (
                f'Tool "{tool_name}" is denied by governance policy '
                f"(permission: {permission.value})."
            )
            self._audit(tool_name, permission, args, GovernanceDecision.DENIED, iteration, error)
            return ToolExecResult(error=error)

        decision = GovernanceDecision.AUTO_ALLOWED
        if effective is ToolPolicy.CONFIRM:
            if self.confirm is None:
                error = (
                    f'Tool "{tool_name}" requires confirmation but no interactive session '
                    f"is available (permission: {permission.value})."
                )
                self._audit(
                    tool_name, permission, args, GovernanceDecision.SKIPPED_NO_DELEGATE, iteration, error
                )
                return ToolExecResult(error=error)

            async with asyncio.timeout_at(deadline):
                reply = await self.confirm(tool_name, permission, args)
            if not reply.approved:
                error = f'Tool "{tool_name}" was rejected by user: {reply.reason or "no reason given"}'
                self._audit(tool_name, permission, args, GovernanceDecision.REJECTED, iteration, error)
                return ToolExecResult(error=error)
            decision = GovernanceDecision.APPROVED

        if self.rate_limiter is not None:
            limit = self.rate_limiter.check(self.session_id)
            if not limit.allowed:
                retry_after = max(1, round(limit.retry_after_seconds))
                error = f'Tool "{tool_name}" rate limited. Try again in {retry_after}s.'
                log.warning(
                    RATE_LIMIT_EXCEEDED,
                    session_id=self.session_id,
                    tool_name=tool_name,
                    retry_after_seconds=limit.retry_after_seconds,
                )
                self._audit(
                    tool_name, permission, args, GovernanceDecision.RATE_LIMITED, iteration, error
                )
                return ToolExecResult(error=error)

        self._audit(tool_name, permission, args, decision, iteration)
        start_time = time.monotonic()
        result = await self.raw_executor.execute(tool_name, args)
        if result.duration_ms == 0.0:
            result = result.model_copy(update={"duration_ms": (time.monotonic() - start_time) * 1000})
        return result

    def _scan_for_injection(self, tool_name: str, args: dict[str, Any], iteration: int) -> None:
        matches: list[str] = []
        for value in args.values():
            if isinstance(value, str):
                matches.extend(matched_injection_patterns(value))
        if not matches:
            return

        log.warning(
            INJECTION_ATTEMPT_FLAGGED,
            session_id=self.session_id,
            tool_name=tool_name,
            patterns=matches,
        )
        if self.trace is not None:
            self.trace.emit(
                TracePhase.GOVERNANCE,
                iteration,
                {
                    "type": "injection_attempt",
                    "tool_name": tool_name,
                    "decision": "flagged",
                    "patterns": matches,
                    "args": truncate_args_for_audit(args),
                },
            )

    def _audit(
        self,
        tool_name: str,
        permission: ToolPermission,
        args: dict[str, Any],
        decision: GovernanceDecision,
        iteration: int,
        reason: str | None = None,
    ) -> None:
        log.info(
            GOVERNANCE_DECISION,
            session_id=self.session_id,
            tool_name=tool_name,
            permission=permission.value,
            decision=decision.value,
        )
        if self.trace is None:
            return
        data: dict[str, Any] = {
            "type": "tool_governance",
            "tool_name": tool_name,
            "permission": permission.value,
            "decision": decision.value,
            "args": truncate_args_for_audit(args),
        }
        if reason is not None:
            data["reason"] = reason
        self.trace.emit(TracePhase.GOVERNANCE, iteration, data)
