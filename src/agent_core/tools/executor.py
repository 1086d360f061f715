"""Raw tool execution with argument validation, timeouts and telemetry.

``ToolExecutionLayer`` runs a registered tool and always returns a
``ToolExecResult``: unknown tools, bad arguments, timeouts and exceptions
become error results instead of propagating. Governance is layered on top
by ``GovernedToolExecutor``.
"""

import asyncio
import inspect
import json
import time
from typing import Any

from agent_core.telemetry import (
    TOOL_CALL_COMPLETED,
    TOOL_CALL_FAILED,
    TOOL_CALL_INVALID_PARAMETERS_FILTERED,
    TOOL_CALL_STARTED,
    TraceContext,
    get_logger,
)
from agent_core.tools.registry import ToolRegistry
from agent_core.tools.types import ToolExecResult

log = get_logger(__name__)

DEFAULT_TOOL_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_OUTPUT_CHARS = 10_000


class ToolExecutionError(Exception):
    """Raised by tool functions to report an expected failure."""

    pass


def render_output(output: Any) -> str:
    """Render a tool's return value as text for the model."""
    if output is None:
        return ""
    if isinstance(output, str):
        return output
    try:
        return json.dumps(output, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(output)


def truncate_output(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}\n\n[...truncated at {max_chars} chars]"


class ToolExecutionLayer:
    """Executes registered tools."""

    def __init__(
        self,
        registry: ToolRegistry,
        default_timeout_seconds: float = DEFAULT_TOOL_TIMEOUT_SECONDS,
        max_output_chars: int = DEFAULT_MAX_OUTPUT_CHARS,
        trace_ctx: TraceContext | None = None,
    ) -> None:
        """Initialize tool execution layer.

        Args:
            registry: Tool registry containing registered tools.
            default_timeout_seconds: Timeout for tools that do not set their own.
            max_output_chars: Output is truncated past this length.
            trace_ctx: Trace context used to correlate tool logs with a session.
        """
        self.registry = registry
        self.default_timeout_seconds = default_timeout_seconds
        self.max_output_chars = max_output_chars
        self.trace_ctx = trace_ctx or TraceContext.new_trace()

    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> ToolExecResult:
        """Execute a tool.

        Args:
            tool_name: Name of the tool to execute.
            arguments: Tool arguments (keyword arguments for the tool function).

        Returns:
            ToolExecResult with the rendered output or an error message.
        """
        entry = self.registry.get_tool(tool_name)
        if entry is None:
            error_msg = f'Unknown tool: "{tool_name}"'
            log.warning(
                TOOL_CALL_FAILED,
                tool_name=tool_name,
                error=error_msg,
                available=self.registry.list_tool_names(),
                trace_id=self.trace_ctx.trace_id,
            )
            return ToolExecResult(error=error_msg)

        tool_def, function = entry

        # Drop parameters the model invented; they would break the call.
        valid_param_names = {param.name for param in tool_def.parameters}
        filtered_arguments = {k: v for k, v in arguments.items() if k in valid_param_names}
        invalid_params = set(arguments) - valid_param_names
        if invalid_params:
            log.warning(
                TOOL_CALL_INVALID_PARAMETERS_FILTERED,
                tool_name=tool_name,
                invalid_parameters=sorted(invalid_params),
                valid_parameters=sorted(valid_param_names),
                trace_id=self.trace_ctx.trace_id,
            )

        missing = [
            param.name
            for param in tool_def.parameters
            if param.required and param.name not in filtered_arguments
        ]
        if missing:
            error_msg = f'Missing required parameter(s) for "{tool_name}": {", ".join(missing)}'
            log.warning(TOOL_CALL_FAILED, tool_name=tool_name, error=error_msg)
            return ToolExecResult(error=error_msg)

        for param in tool_def.parameters:
            if not param.required and param.name not in filtered_arguments and param.default is not None:
                filtered_arguments[param.name] = param.default

        _, span_id = self.trace_ctx.new_span()
        log.info(
            TOOL_CALL_STARTED,
            tool_name=tool_name,
            arguments=filtered_arguments,
            trace_id=self.trace_ctx.trace_id,
            span_id=span_id,
        )

        timeout = tool_def.timeout_seconds or self.default_timeout_seconds
        start_time = time.monotonic()
        try:
            if inspect.iscoroutinefunction(function):
                output = await asyncio.wait_for(function(**filtered_arguments), timeout)
            else:
                # Sync tool: run in the default thread pool so the loop stays free.
                loop = asyncio.get_running_loop()
                output = await asyncio.wait_for(
                    loop.run_in_executor(None, lambda: function(**filtered_arguments)), timeout
                )
        except TimeoutError:
            duration_ms = (time.monotonic() - start_time) * 1000
            error_msg = f'Tool "{tool_name}" timed out after {timeout:g}s'
            log.warning(
                TOOL_CALL_FAILED,
                tool_name=tool_name,
                error=error_msg,
                duration_ms=duration_ms,
                trace_id=self.trace_ctx.trace_id,
                span_id=span_id,
            )
            return ToolExecResult(error=error_msg, duration_ms=duration_ms)
        except Exception as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            log.error(
                TOOL_CALL_FAILED,
                tool_name=tool_name,
                error=str(e),
                duration_ms=duration_ms,
                trace_id=self.trace_ctx.trace_id,
                span_id=span_id,
                exc_info=not isinstance(e, ToolExecutionError),
            )
            return ToolExecResult(error=str(e) or type(e).__name__, duration_ms=duration_ms)

        duration_ms = (time.monotonic() - start_time) * 1000
        text = truncate_output(render_output(output), self.max_output_chars)
        log.info(
            TOOL_CALL_COMPLETED,
            tool_name=tool_name,
            duration_ms=duration_ms,
            output_chars=len(text),
            trace_id=self.trace_ctx.trace_id,
            span_id=span_id,
        )
        return ToolExecResult(result=text, duration_ms=duration_ms)
