"""Session runner: wires settings, tools, governance and persistence around the loop.

``SessionRunner`` is the entry point hosts use. Per session it creates the
trace recorder and the governed executor, derives budgets from settings,
runs the loop, and saves the result. It also exposes ``observe_fallback``,
to be passed as ``on_fallback`` when building model chains, so that
provider fallbacks show up in the trace of the session that hit them.
"""

import uuid
from collections.abc import Sequence
from contextvars import ContextVar
from typing import Any

from agent_core.config import get_settings
from agent_core.config.governance_loader import load_governance_config
from agent_core.config.settings import AppConfig
from agent_core.governance.confirmation import ConfirmationDelegate, ConfirmationManager
from agent_core.governance.models import GovernancePolicy
from agent_core.governance.rate_limit import SlidingWindowLimiter
from agent_core.llm_client.fallback import FallbackEvent
from agent_core.llm_client.pricing import ModelPricing, resolve_pricing
from agent_core.llm_client.types import Message, StreamingModel
from agent_core.orchestrator.loop import LoopConfig, LoopController, StreamObserver
from agent_core.orchestrator.session import SessionRecord, SessionStore
from agent_core.orchestrator.types import LoopResult, SessionBudgets
from agent_core.telemetry import SESSION_PERSISTED, TracePhase, TraceRecorder, TraceSink, get_logger
from agent_core.tools.executor import ToolExecutionLayer
from agent_core.tools.governed import GovernedToolExecutor
from agent_core.tools.registry import ToolRegistry
from agent_core.tools.types import ToolExecutor

log = get_logger(__name__)

_current_trace: ContextVar[TraceRecorder | None] = ContextVar("current_trace", default=None)


class SessionNotFoundError(KeyError):
    """Raised when resuming a session the store does not have."""

    pass


class SessionRunner:
    """Runs and resumes sessions with settings-derived defaults."""

    def __init__(
        self,
        model: StreamingModel,
        registry: ToolRegistry,
        *,
        system_prompt: str = "",
        settings: AppConfig | None = None,
        policy: GovernancePolicy | None = None,
        store: SessionStore | None = None,
        trace_sink: TraceSink | None = None,
        raw_executor: ToolExecutor | None = None,
        pricing: ModelPricing | None = None,
        rate_limiter: SlidingWindowLimiter | None = None,
        loop_config: LoopConfig | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            model: Model or fallback chain used by every session.
            registry: Tools offered to the model.
            system_prompt: Instructions for new sessions.
            settings: Application settings; defaults to the process settings.
            policy: Governance policy; defaults to the configured policy file.
            store: Where finished sessions are saved; None disables persistence.
            trace_sink: Receives every session's trace events.
            raw_executor: Executes allowed calls; defaults to ``ToolExecutionLayer``.
            pricing: Pricing of ``model``; defaults to the configured rates.
            rate_limiter: Shared tool rate limiter; built from settings when enabled.
            loop_config: Loop knobs; derived from settings by default.
        """
        self.settings = settings or get_settings()
        self.registry = registry
        self.policy = policy or load_governance_config(self.settings.governance_config_path)
        self.store = store
        self.trace_sink = trace_sink
        self.raw_executor: ToolExecutor = raw_executor or ToolExecutionLayer(
            registry,
            default_timeout_seconds=self.settings.tool_timeout_seconds,
            max_output_chars=self.settings.tool_max_output_chars,
        )
        if rate_limiter is None and self.settings.tool_rate_limit_max_calls is not None:
            rate_limiter = SlidingWindowLimiter(
                self.settings.tool_rate_limit_max_calls,
                self.settings.tool_rate_limit_window_seconds,
            )
        self.rate_limiter = rate_limiter
        # Chat adapters pass confirmations.delegate_for(chat_id) as ``confirm``
        # and route the human's replies to confirmations.try_resolve.
        self.confirmations = ConfirmationManager(self.settings.confirmation_timeout_seconds)
        self.controller = LoopController(
            model,
            registry,
            system_prompt=system_prompt,
            config=loop_config or LoopConfig.from_settings(self.settings),
            pricing=resolve_pricing(
                pricing,
                ModelPricing(
                    cost_per_million_input_tokens=self.settings.llm_cost_per_million_input_tokens,
                    cost_per_million_output_tokens=self.settings.llm_cost_per_million_output_tokens,
                ),
            ),
        )

    def budgets(
        self,
        max_iterations: int | None = None,
        timeout_seconds: float | None = None,
        cost_cap_usd: float | None = None,
    ) -> SessionBudgets:
        return SessionBudgets(
            max_iterations=max_iterations or self.settings.agent_max_iterations,
            timeout_seconds=timeout_seconds or self.settings.agent_timeout_seconds,
            cost_cap_usd=cost_cap_usd if cost_cap_usd is not None else self.settings.agent_cost_cap_usd,
        )

    def observe_fallback(self, event: FallbackEvent) -> None:
        """Fallback observer: records the event in the current session's trace."""
        trace = _current_trace.get()
        if trace is None:
            return
        trace.emit(
            TracePhase.MODEL_FALLBACK,
            trace.last_iteration,
            {
                "failed_endpoint": event.failed_endpoint,
                "selected_endpoint": event.selected_endpoint,
                "reason": event.reason.value,
                "fallback_index": event.fallback_index,
                "error": str(event.error),
            },
        )

    async def run(
        self,
        user_input: str,
        *,
        session_id: str | None = None,
        history: Sequence[Message] | None = None,
        confirm: ConfirmationDelegate | None = None,
        observer: StreamObserver | None = None,
        budgets: SessionBudgets | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> LoopResult:
        """Run a new session.

        Args:
            user_input: The user's request.
            session_id: Session id; generated if omitted.
            history: Earlier conversation turns.
            confirm: Human confirmation delegate. Without one, tools whose
                policy is ``confirm`` are refused.
            observer: Receives streamed text.
            budgets: Overrides the settings-derived budgets.
            metadata: Stored with the session record.

        Returns:
            The session result.
        """
        session_id = session_id or str(uuid.uuid4())
        return await self._run(
            session_id,
            budgets or self.budgets(),
            confirm,
            observer,
            metadata,
            user_input=user_input,
            history=history,
        )

    async def resume(
        self,
        session_id: str,
        user_input: str | None = None,
        *,
        confirm: ConfirmationDelegate | None = None,
        observer: StreamObserver | None = None,
        max_iterations: int | None = None,
        timeout_seconds: float | None = None,
        additional_cost_usd: float | None = None,
    ) -> LoopResult:
        """Continue a stored session.

        The loop uses the cost cap as given, so the runner grants a fresh
        allowance by adding ``additional_cost_usd`` (default: the configured
        per-session cap) to the cost already spent. Iterations keep counting
        from the stored value.

        Raises:
            SessionNotFoundError: If no store is configured or the session is unknown.
        """
        record = self.store.load(session_id) if self.store is not None else None
        if record is None:
            raise SessionNotFoundError(session_id)

        allowance = (
            additional_cost_usd if additional_cost_usd is not None else self.settings.agent_cost_cap_usd
        )
        iterations = max_iterations or self.settings.agent_max_iterations
        budgets = SessionBudgets(
            max_iterations=record.state.iteration + iterations,
            timeout_seconds=timeout_seconds or self.settings.agent_timeout_seconds,
            cost_cap_usd=record.state.estimated_cost_usd + allowance,
        )
        return await self._run(
            session_id,
            budgets,
            confirm,
            observer,
            record.metadata,
            user_input=user_input,
            resume=record,
        )

    async def _run(
        self,
        session_id: str,
        budgets: SessionBudgets,
        confirm: ConfirmationDelegate | None,
        observer: StreamObserver | None,
        metadata: dict[str, Any] | None,
        *,
        user_input: str | None,
        history: Sequence[Message] | None = None,
        resume: SessionRecord | None = None,
    ) -> LoopResult:
        trace = TraceRecorder(session_id, self.trace_sink)
        executor = GovernedToolExecutor(
            self.raw_executor,
            self.registry,
            self.policy,
            session_id,
            confirm=confirm,
            rate_limiter=self.rate_limiter,
            trace=trace,
        )

        token = _current_trace.set(trace)
        try:
            result = await self.controller.run(
                user_input,
                budgets=budgets,
                executor=executor,
                resume=resume.to_resume() if resume is not None else None,
                history=history,
                trace=trace,
                observer=observer,
            )
        finally:
            _current_trace.reset(token)

        if self.store is not None:
            self.store.save(SessionRecord.from_result(result, metadata))
            log.info(
                SESSION_PERSISTED,
                session_id=session_id,
                status=result.status.value,
                messages=len(result.messages),
            )
        return result
