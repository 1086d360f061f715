"""Tool layer: registry, raw execution and governance.

This module provides:
- ToolRegistry: explicit registry of tool definitions and functions
- ToolExecutionLayer: raw execution with validation, timeouts and truncation
- GovernedToolExecutor: permission gate, confirmation and rate limiting
"""

from agent_core.tools.executor import ToolExecutionError, ToolExecutionLayer
from agent_core.tools.governed import GovernedToolExecutor
from agent_core.tools.registry import ToolRegistry
from agent_core.tools.types import ToolDefinition, ToolExecResult, ToolExecutor, ToolParameter

__all__ = [
    "GovernedToolExecutor",
    "ToolDefinition",
    "ToolExecResult",
    "ToolExecutionError",
    "ToolExecutionLayer",
    "ToolExecutor",
    "ToolParameter",
    "ToolRegistry",
]
