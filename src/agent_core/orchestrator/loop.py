"""Session control loop.

The ``LoopController`` drives one session: it streams a model turn, runs the
requested tools one after another through the governed executor, consults the
failure tracker and the reflection engine, keeps the context bounded, and
decides when the session ends.

All per-session state lives in a ``_SessionRun`` created by ``run``, so one
controller can serve many concurrent sessions. The controller never raises
to its caller: every outcome is a ``LoopResult`` with a terminal status.
"""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Protocol

from agent_core.config.settings import AppConfig
from agent_core.governance.injection import (
    DEFAULT_INJECTION_POLICY,
    INJECTION_DEFENSE_PREAMBLE,
    InjectionPolicy,
    detect_system_prompt_leakage,
    wrap_user_input,
)
from agent_core.llm_client.pricing import DEFAULT_PRICING, ModelPricing
from agent_core.llm_client.types import (
    AssistantMessage,
    Message,
    ReasoningDelta,
    StreamFinish,
    StreamingModel,
    SystemMessage,
    TextDelta,
    ToolCall,
    ToolCallRequest,
    ToolResultMessage,
    ToolResultPart,
    Usage,
    UserMessage,
    endpoint_key,
)
from agent_core.orchestrator.compaction import (
    Summarizer,
    compact_messages,
    decay_tool_outputs,
    persist_compaction_summary,
)
from agent_core.orchestrator.failure_tracker import (
    ToolCallOutcome,
    ToolFailureState,
    process_tool_results,
)
from agent_core.orchestrator.heuristics import (
    DEFAULT_NARRATION_POLICY,
    NUDGE_MESSAGES,
    NarrationPolicy,
    detect_narration,
)
from agent_core.orchestrator.reflection import (
    DEFAULT_REFLECTION_POLICY,
    AggregateCounts,
    BehavioralContext,
    ReflectionPolicy,
    ReflectionSummary,
    behavioral_patterns,
    completion_gate,
    post_check,
    pre_check,
    truncate,
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
from agent_core.telemetry import (
    COMPACTION_COMPLETED,
    COMPLETION_GATE_NUDGE_INJECTED,
    ITERATION_STARTED,
    MODEL_CALL_COMPLETED,
    MODEL_CALL_ERROR,
    MODEL_CALL_STARTED,
    NARRATION_NUDGE_INJECTED,
    PROMPT_LEAKAGE_DETECTED,
    REFLECTION_CALL_BLOCKED,
    REFLECTION_NUDGE_INJECTED,
    SESSION_FAILED,
    SESSION_FINISHED,
    SESSION_STARTED,
    SESSION_TIMED_OUT,
    TOOL_FAILURE_RECOVERY,
    TracePhase,
    TraceRecorder,
    get_logger,
)
from agent_core.tools.governed import truncate_args_for_audit
from agent_core.tools.registry import ToolRegistry
from agent_core.tools.types import ToolDefinition, ToolExecResult, ToolParameter

log = get_logger(__name__)

FINISH_TOOL = "finish"
FINISH_TOOL_DEFINITION = ToolDefinition(
    name=FINISH_TOOL,
    description="Finish the task and return the final answer to the user.",
    parameters=[
        ToolParameter(name="summary", type="string", description="The final answer for the user"),
    ],
)

MAX_ITERATIONS_OUTPUT = "Reached maximum iterations."
COST_LIMIT_OUTPUT = "Cost cap reached."
TIMEOUT_OUTPUT = "Session timed out."
TRACE_TEXT_MAX_CHARS = 500


class SessionToolExecutor(Protocol):
    """Executes one tool call on behalf of a session (see ``GovernedToolExecutor``)."""

    async def execute(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        *,
        iteration: int = 0,
        deadline: float | None = None,
    ) -> ToolExecResult: ...


class StreamObserver(Protocol):
    """Receives live output of the model stream, e.g. to update a chat message."""

    def on_text(self, delta: str) -> None: ...

    def on_reasoning(self, delta: str) -> None: ...

    def on_reset(self) -> None:
        """The text streamed so far was discarded (a nudge follows)."""
        ...


@dataclass(frozen=True)
class LoopConfig:
    """Behaviour knobs of the loop; budgets are passed per run."""

    max_narration_nudges: int = 2
    max_completion_gate_nudges: int = 1
    max_reflection_nudges: int = 3
    decay_iterations: int | None = 3
    decay_threshold_chars: int = 500
    compaction_threshold_tokens: int | None = 120_000
    compaction_keep_recent: int = 4
    workspace_path: Path | None = None
    wrap_user_input: bool = True

    @classmethod
    def from_settings(cls, config: AppConfig) -> "LoopConfig":
        return cls(
            max_narration_nudges=config.loop_max_narration_nudges,
            max_completion_gate_nudges=config.loop_max_completion_gate_nudges,
            max_reflection_nudges=config.loop_max_reflection_nudges,
            decay_iterations=config.tool_output_decay_iterations,
            decay_threshold_chars=config.tool_output_decay_threshold_chars,
            compaction_threshold_tokens=config.compaction_threshold_tokens,
            compaction_keep_recent=config.compaction_keep_recent_messages,
            workspace_path=config.workspace_path,
        )


@dataclass
class _ModelTurn:
    text: str = ""
    reasoning: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)
    finish_reason: str | None = None


@dataclass
class _SessionRun:
    """Everything one session owns while it runs."""

    session_id: str
    budgets: SessionBudgets
    state: SessionState
    messages: list[Message]
    tool_output_meta: list[ToolOutputMeta]
    executor: SessionToolExecutor
    trace: TraceRecorder
    deadline: SessionDeadline
    observer: StreamObserver | None = None
    failures: ToolFailureState = field(default_factory=ToolFailureState)
    behavior: BehavioralContext = field(default_factory=BehavioralContext)
    reflection: ReflectionSummary = field(default_factory=ReflectionSummary)
    narration_nudges: int = 0
    gate_nudges: int = 0
    reflection_nudges: int = 0


class LoopController:
    """Runs sessions against one model and one tool set."""

    def __init__(
        self,
        model: StreamingModel,
        registry: ToolRegistry,
        system_prompt: str = "",
        config: LoopConfig | None = None,
        pricing: ModelPricing | None = None,
        summarizer: Summarizer | None = None,
        narration_policy: NarrationPolicy = DEFAULT_NARRATION_POLICY,
        reflection_policy: ReflectionPolicy = DEFAULT_REFLECTION_POLICY,
        injection_policy: InjectionPolicy = DEFAULT_INJECTION_POLICY,
    ) -> None:
        """Initialize the controller.

        Args:
            model: Model to stream from, usually a fallback chain.
            registry: Tools offered to the model.
            system_prompt: Instructions placed at the head of new sessions.
            config: Nudge budgets, decay and compaction settings.
            pricing: Token pricing for cost accounting.
            summarizer: Compaction collaborator; defaults to ``compact_messages``.
            narration_policy: Patterns for text-only turns.
            reflection_policy: Tool names and patterns for reflection checks.
            injection_policy: Patterns for the output leakage check.
        """
        self.model = model
        self.registry = registry
        self.system_prompt = system_prompt
        self.config = config or LoopConfig()
        self.pricing = pricing or DEFAULT_PRICING
        self.summarizer: Summarizer = summarizer or partial(
            compact_messages, keep_recent=self.config.compaction_keep_recent
        )
        self.narration_policy = narration_policy
        self.reflection_policy = reflection_policy
        self.injection_policy = injection_policy

    def tool_schemas(self) -> list[dict[str, Any]]:
        schemas = self.registry.get_tool_definitions_for_llm()
        if FINISH_TOOL not in self.registry:
            schemas.append(FINISH_TOOL_DEFINITION.to_llm_schema())
        return schemas

    def full_system_prompt(self) -> str:
        if not self.config.wrap_user_input:
            return self.system_prompt
        if not self.system_prompt:
            return INJECTION_DEFENSE_PREAMBLE
        return f"{self.system_prompt}\n\n{INJECTION_DEFENSE_PREAMBLE}"

    async def run(
        self,
        user_input: str | None = None,
        *,
        budgets: SessionBudgets,
        executor: SessionToolExecutor,
        resume: ResumeSnapshot | None = None,
        history: Sequence[Message] | None = None,
        trace: TraceRecorder | None = None,
        session_id: str | None = None,
        observer: StreamObserver | None = None,
    ) -> LoopResult:
        """Run a session to a terminal status.

        Args:
            user_input: The user's request. Optional when resuming.
            budgets: Iteration, wall-clock and cost limits. On resume the cost
                cap is used as given; it must already include prior cost.
            executor: Governed executor for this session's tool calls.
            resume: Snapshot of an interrupted session to continue.
            history: Earlier conversation turns for a new session.
            trace: Trace recorder; its session id is used when given.
            session_id: Session id when no recorder is given; generated if omitted.
            observer: Receives streamed text and reset signals.

        Returns:
            The session result. Never raises for failures inside the session.

        Raises:
            ValueError: If neither ``user_input`` nor ``resume`` is given.
        """
        if user_input is None and resume is None:
            raise ValueError("run needs user_input or a resume snapshot")

        if trace is None:
            trace = TraceRecorder(session_id or str(uuid.uuid4()))
        session = _SessionRun(
            session_id=trace.session_id,
            budgets=budgets,
            state=SessionState.from_snapshot(resume.state if resume else None),
            messages=self._initial_messages(user_input, resume, history),
            tool_output_meta=list(resume.tool_output_meta) if resume else [],
            executor=executor,
            trace=trace,
            deadline=SessionDeadline(budgets.timeout_seconds),
            observer=observer,
        )
        state = session.state
        state.status = SessionStatus.RUNNING

        log.info(
            SESSION_STARTED,
            session_id=session.session_id,
            resumed=resume is not None,
            iteration=state.iteration,
            max_iterations=budgets.max_iterations,
            cost_cap_usd=budgets.cost_cap_usd,
            model=endpoint_key(self.model),
        )
        trace.emit(
            TracePhase.SESSION_START,
            state.iteration,
            {
                "resumed": resume is not None,
                "model": endpoint_key(self.model),
                "messages": len(session.messages),
                "max_iterations": budgets.max_iterations,
                "timeout_seconds": budgets.timeout_seconds,
                "cost_cap_usd": budgets.cost_cap_usd,
            },
            cost_usd=state.estimated_cost_usd,
        )

        try:
            output = await self._drive(session)
        except Exception as e:
            if isinstance(e, SessionTimeout) or session.deadline.expired():
                state.status = SessionStatus.TIMEOUT
                output = TIMEOUT_OUTPUT
                log.warning(
                    SESSION_TIMED_OUT,
                    session_id=session.session_id,
                    iteration=state.iteration,
                    timeout_seconds=budgets.timeout_seconds,
                )
            else:
                state.status = SessionStatus.FAILED
                output = str(e) or type(e).__name__
                log.error(
                    SESSION_FAILED,
                    session_id=session.session_id,
                    iteration=state.iteration,
                    error=output,
                    error_type=type(e).__name__,
                    exc_info=True,
                )
            trace.emit(
                TracePhase.ERROR,
                state.iteration,
                {"status": state.status.value, "error": str(e), "error_type": type(e).__name__},
                cost_usd=state.estimated_cost_usd,
            )

        self._check_leakage(session, output)
        trace.emit(TracePhase.REFLECTION_SESSION, state.iteration, session.reflection.to_dict())
        trace.emit(
            TracePhase.FINISH,
            state.iteration,
            {"status": state.status.value, "output": truncate(output, TRACE_TEXT_MAX_CHARS)},
            prompt_tokens=state.prompt_tokens,
            completion_tokens=state.completion_tokens,
            cost_usd=state.estimated_cost_usd,
        )
        log.info(
            SESSION_FINISHED,
            session_id=session.session_id,
            status=state.status.value,
            iterations=state.iteration,
            total_tokens=state.total_tokens,
            cost_usd=round(state.estimated_cost_usd, 6),
        )
        return LoopResult(
            session_id=session.session_id,
            output=output,
            state=state,
            messages=session.messages,
            tool_output_meta=session.tool_output_meta,
            reflection=session.reflection.to_dict(),
        )

    def _initial_messages(
        self,
        user_input: str | None,
        resume: ResumeSnapshot | None,
        history: Sequence[Message] | None,
    ) -> list[Message]:
        if resume is not None:
            messages = list(resume.messages)
        else:
            messages = []
            system_prompt = self.full_system_prompt()
            if system_prompt:
                messages.append(SystemMessage(content=system_prompt))
            for message in history or ():
                if isinstance(message, SystemMessage):
                    continue
                if isinstance(message, UserMessage):
                    message = UserMessage(content=self._wrap(message.content))
                messages.append(message)
        if user_input is not None:
            messages.append(UserMessage(content=self._wrap(user_input)))
        return messages

    def _wrap(self, text: str) -> str:
        if not self.config.wrap_user_input or text.lstrip().startswith("<user_input>"):
            return text
        return wrap_user_input(text)

    async def _drive(self, session: _SessionRun) -> str:
        state = session.state
        budgets = session.budgets

        while (
            state.iteration < budgets.max_iterations
            and state.estimated_cost_usd < budgets.cost_cap_usd
        ):
            state.iteration += 1
            session.trace.last_iteration = state.iteration
            log.debug(ITERATION_STARTED, session_id=session.session_id, iteration=state.iteration)

            turn = await self._call_model(session)
            session.messages.append(
                AssistantMessage(
                    content=turn.text,
                    tool_calls=turn.tool_calls,
                    reasoning=turn.reasoning or None,
                )
            )
            if not turn.tool_calls:
                final = self._review_text(session, turn)
                if final is not None:
                    state.status = SessionStatus.COMPLETED
                    return final
                await self._housekeeping(session, turn.usage)
                continue

            finish = next((call for call in turn.tool_calls if call.name == FINISH_TOOL), None)
            if finish is not None:
                summary = finish.arguments.get("summary")
                state.status = SessionStatus.COMPLETED
                return summary if isinstance(summary, str) and summary else turn.text

            await self._run_tools(session, turn.tool_calls)
            await self._housekeeping(session, turn.usage)
            session.trace.emit(
                TracePhase.OBSERVE,
                state.iteration,
                {"tool_result_count": len(turn.tool_calls)},
                cost_usd=state.estimated_cost_usd,
            )

        if state.iteration >= budgets.max_iterations:
            state.status = SessionStatus.COMPLETED
            return MAX_ITERATIONS_OUTPUT
        state.status = SessionStatus.COST_LIMIT
        return COST_LIMIT_OUTPUT

    async def _call_model(self, session: _SessionRun) -> _ModelTurn:
        state = session.state
        turn = _ModelTurn()
        text_parts: list[str] = []
        reasoning_parts: list[str] = []
        observer = session.observer

        log.debug(
            MODEL_CALL_STARTED,
            session_id=session.session_id,
            iteration=state.iteration,
            model=endpoint_key(self.model),
            messages=len(session.messages),
        )
        try:
            async with session.deadline.scope():
                async for event in self.model.stream(list(session.messages), self.tool_schemas()):
                    if isinstance(event, TextDelta):
                        text_parts.append(event.text)
                        if observer is not None:
                            observer.on_text(event.text)
                    elif isinstance(event, ReasoningDelta):
                        reasoning_parts.append(event.text)
                        if observer is not None:
                            observer.on_reasoning(event.text)
                    elif isinstance(event, ToolCallRequest):
                        turn.tool_calls.append(event.to_call())
                    elif isinstance(event, StreamFinish):
                        turn.usage = event.usage
                        turn.finish_reason = event.finish_reason
        except Exception as e:
            log.warning(
                MODEL_CALL_ERROR,
                session_id=session.session_id,
                iteration=state.iteration,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        turn.text = "".join(text_parts)
        turn.reasoning = "".join(reasoning_parts)
        state.record_usage(turn.usage, self.pricing)

        log.info(
            MODEL_CALL_COMPLETED,
            session_id=session.session_id,
            iteration=state.iteration,
            prompt_tokens=turn.usage.prompt_tokens,
            completion_tokens=turn.usage.completion_tokens,
            tool_calls=len(turn.tool_calls),
            finish_reason=turn.finish_reason,
        )
        session.trace.emit(
            TracePhase.REASON,
            state.iteration,
            {
                "text": truncate(turn.text, TRACE_TEXT_MAX_CHARS),
                "reasoning_chars": len(turn.reasoning),
                "tool_calls": [call.name for call in turn.tool_calls],
                "finish_reason": turn.finish_reason,
            },
            prompt_tokens=turn.usage.prompt_tokens,
            completion_tokens=turn.usage.completion_tokens,
            cost_usd=state.estimated_cost_usd,
        )
        return turn

    def _review_text(self, session: _SessionRun, turn: _ModelTurn) -> str | None:
        """Accept a text-only turn as the answer, or nudge and return None."""
        iteration = session.state.iteration
        kind = detect_narration(turn.text, len(turn.tool_calls), self.narration_policy)
        if kind is not None and session.narration_nudges < self.config.max_narration_nudges:
            session.narration_nudges += 1
            message = NUDGE_MESSAGES[kind]
            session.messages.append(UserMessage(content=message))
            self._reset_text(session)
            log.info(
                NARRATION_NUDGE_INJECTED,
                session_id=session.session_id,
                iteration=iteration,
                kind=kind.value,
                nudge=session.narration_nudges,
            )
            session.trace.emit(
                TracePhase.NARRATION_NUDGE,
                iteration,
                {
                    "kind": kind.value,
                    "nudge": session.narration_nudges,
                    "text": truncate(turn.text, TRACE_TEXT_MAX_CHARS),
                },
            )
            return None

        behavior = session.behavior
        if behavior.total_tool_calls == 0:
            return turn.text
        gate = completion_gate(
            AggregateCounts(behavior.tool_successes, behavior.tool_errors),
            turn.text,
            behavior.per_tool,
            self.reflection_policy,
        )
        if (
            gate.should_nudge
            and gate.message is not None
            and session.gate_nudges < self.config.max_completion_gate_nudges
        ):
            session.gate_nudges += 1
            session.messages.append(UserMessage(content=gate.message))
            session.reflection.record_nudge(gate.message, self.pricing)
            self._reset_text(session)
            log.info(
                COMPLETION_GATE_NUDGE_INJECTED,
                session_id=session.session_id,
                iteration=iteration,
                reason=gate.reason,
            )
            session.trace.emit(
                TracePhase.REFLECTION_POST,
                iteration,
                {"type": "completion_gate", "reason": gate.reason, "should_nudge": True},
            )
            return None

        return turn.text

    def _reset_text(self, session: _SessionRun) -> None:
        if session.observer is not None:
            session.observer.on_reset()

    async def _run_tools(self, session: _SessionRun, calls: Sequence[ToolCall]) -> None:
        """Execute the calls one after another and record one tool-result turn."""
        iteration = session.state.iteration
        trace = session.trace
        policy = self.reflection_policy
        parts: list[ToolResultPart] = []
        outcomes: list[ToolCallOutcome] = []
        nudges: list[str] = []

        for call in calls:
            trace.emit(
                TracePhase.TOOL_CALL,
                iteration,
                {
                    "tool_name": call.name,
                    "tool_call_id": call.id,
                    "args": truncate_args_for_audit(call.arguments),
                },
            )

            check = pre_check(call.name, call.arguments, self.registry.get_definition(call.name), policy)
            session.reflection.record_pre_check(check)
            trace.emit(
                TracePhase.REFLECTION_PRE,
                iteration,
                {
                    "tool_name": call.name,
                    "risk": check.risk.value,
                    "should_block": check.should_block,
                    "summary": check.summary,
                    "recommendation": check.recommendation,
                },
            )

            if check.should_block:
                log.warning(
                    REFLECTION_CALL_BLOCKED,
                    session_id=session.session_id,
                    tool_name=call.name,
                    summary=check.summary,
                )
                error = check.summary
                if check.recommendation:
                    error = f"{error} {check.recommendation}"
                result = ToolExecResult(error=error)
            else:
                result = await session.executor.execute(
                    call.name,
                    dict(call.arguments),
                    iteration=iteration,
                    deadline=session.deadline.when,
                )

            trace.emit(
                TracePhase.TOOL_RESULT,
                iteration,
                {
                    "tool_name": call.name,
                    "tool_call_id": call.id,
                    "is_error": result.is_error,
                    "duration_ms": result.duration_ms,
                    "output": truncate(result.as_model_text(), TRACE_TEXT_MAX_CHARS),
                },
            )

            review = post_check(
                call.name, call.arguments, result.result, result.error, session.behavior, policy
            )
            session.reflection.record_post_check(review)
            trace.emit(
                TracePhase.REFLECTION_POST,
                iteration,
                {
                    "tool_name": call.name,
                    "outcome": review.outcome,
                    "should_nudge": review.should_nudge,
                    "reason": review.reason,
                    "recommendation": review.recommendation,
                },
            )
            session.behavior.record(call.name, call.arguments, result.is_error, policy)
            if review.should_nudge:
                nudges.append(review.nudge_message(call.name))

            parts.append(
                ToolResultPart(
                    tool_call_id=call.id,
                    tool_name=call.name,
                    content=result.as_model_text(),
                    is_error=result.is_error,
                )
            )
            outcomes.append(ToolCallOutcome(call.name, result.is_error, call.id))

        session.messages.append(ToolResultMessage(results=parts))
        session.tool_output_meta.append(ToolOutputMeta(len(session.messages) - 1, iteration))

        action = process_tool_results(session.failures, outcomes)
        if action is not None:
            session.messages.append(UserMessage(content=action.message))
            log.warning(
                TOOL_FAILURE_RECOVERY,
                session_id=session.session_id,
                iteration=iteration,
                reason=action.reason.value,
                failed_tools=action.failed_tools,
            )
            trace.emit(
                TracePhase.TOOL_FAILURE_RECOVERY,
                iteration,
                {
                    "reason": action.reason.value,
                    "failed_tools": action.failed_tools,
                    "failure_counts": action.failure_counts,
                    "consecutive_all_fail_iterations": action.consecutive_all_fail_iterations,
                },
            )
            return

        pattern = behavioral_patterns(session.behavior, policy)
        if pattern.detected and pattern.message:
            nudges.append(pattern.message)
        if nudges and session.reflection_nudges < self.config.max_reflection_nudges:
            message = "\n\n".join(nudges)
            session.reflection_nudges += 1
            session.messages.append(UserMessage(content=message))
            session.reflection.record_nudge(message, self.pricing)
            log.info(
                REFLECTION_NUDGE_INJECTED,
                session_id=session.session_id,
                iteration=iteration,
                pattern=pattern.pattern.value,
                nudge=session.reflection_nudges,
            )

    async def _housekeeping(self, session: _SessionRun, usage: Usage) -> None:
        """Decay old tool output and compact history when the prompt is too large."""
        config = self.config
        iteration = session.state.iteration
        if config.decay_iterations is not None:
            decay_tool_outputs(
                session.messages,
                session.tool_output_meta,
                iteration,
                config.decay_iterations,
                config.decay_threshold_chars,
            )

        threshold = config.compaction_threshold_tokens
        if threshold is None or usage.prompt_tokens < threshold:
            return

        before = len(session.messages)
        async with session.deadline.scope():
            result = await self.summarizer(self.model, session.messages, self.full_system_prompt())
        if not result.summary:
            return
        session.messages[:] = result.compacted_messages
        session.tool_output_meta.clear()

        log.info(
            COMPACTION_COMPLETED,
            session_id=session.session_id,
            iteration=iteration,
            prompt_tokens=usage.prompt_tokens,
            messages_before=before,
            messages_after=len(session.messages),
        )
        session.trace.emit(
            TracePhase.COMPACTION,
            iteration,
            {
                "prompt_tokens": usage.prompt_tokens,
                "threshold_tokens": threshold,
                "messages_before": before,
                "messages_after": len(session.messages),
                "summary_chars": len(result.summary),
            },
        )
        if config.workspace_path is not None and result.summary:
            persist_compaction_summary(config.workspace_path, result.summary)

    def _check_leakage(self, session: _SessionRun, output: str) -> None:
        if not self.system_prompt or not output:
            return
        if not detect_system_prompt_leakage(output, self.system_prompt, self.injection_policy):
            return
        log.warning(PROMPT_LEAKAGE_DETECTED, session_id=session.session_id)
        session.trace.emit(
            TracePhase.GOVERNANCE,
            session.state.iteration,
            {"type": "prompt_leakage", "decision": "flagged"},
        )
