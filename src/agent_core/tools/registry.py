"""Tool registry for tool discovery and registration.

The registry is an explicit object handed to each session; there is no
process-wide default instance. Tools can be added and removed at runtime
(e.g. when a plugin loads or unloads).
"""

from collections.abc import Callable
from typing import Any

from agent_core.telemetry import get_logger
from agent_core.tools.types import ToolDefinition

log = get_logger(__name__)

ToolFunction = Callable[..., Any]


class ToolRegistry:
    """Registry of available tools and their executor functions."""

    def __init__(self) -> None:
        """Initialize empty tool registry."""
        self._tools: dict[str, tuple[ToolDefinition, ToolFunction]] = {}
        log.debug("tool_registry_initialized")

    def register(self, tool_def: ToolDefinition, executor: ToolFunction) -> None:
        """Register a tool with its definition and executor function.

        Args:
            tool_def: Tool definition with metadata.
            executor: Callable (sync or async) accepting the tool parameters as
                keyword arguments. Its return value is rendered as the tool output.

        Raises:
            ValueError: If tool name already registered.
        """
        if tool_def.name in self._tools:
            raise ValueError(f"Tool '{tool_def.name}' is already registered")

        self._tools[tool_def.name] = (tool_def, executor)
        log.debug(
            "tool_registered",
            tool_name=tool_def.name,
            permission=tool_def.permission.value,
        )

    def unregister(self, name: str) -> bool:
        """Remove a tool.

        Returns:
            True if the tool was registered.
        """
        removed = self._tools.pop(name, None) is not None
        if removed:
            log.debug("tool_unregistered", tool_name=name)
        return removed

    def get_tool(self, name: str) -> tuple[ToolDefinition, ToolFunction] | None:
        """Retrieve tool definition and executor.

        Args:
            name: Tool name to retrieve.

        Returns:
            Tuple of (ToolDefinition, executor) if found, None otherwise.
        """
        return self._tools.get(name)

    def get_definition(self, name: str) -> ToolDefinition | None:
        entry = self._tools.get(name)
        return entry[0] if entry else None

    def list_tools(self) -> list[ToolDefinition]:
        """List definitions of all registered tools."""
        return [tool_def for tool_def, _ in self._tools.values()]

    def list_tool_names(self) -> list[str]:
        """List names of all registered tools."""
        return list(self._tools.keys())

    def get_tool_definitions_for_llm(self) -> list[dict[str, Any]]:
        """Get tool definitions in OpenAI function calling format."""
        return [tool_def.to_llm_schema() for tool_def, _ in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
