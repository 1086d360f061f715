"""Type definitions for the tool layer.

This module defines the Pydantic models for tool definitions, parameters
and execution results shared by the raw and governed executors.
"""

from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

from agent_core.governance.models import ToolPermission


class ToolParameter(BaseModel):
    """Parameter definition for a tool."""

    name: str = Field(..., description="Parameter name")
    type: Literal["string", "number", "integer", "boolean", "object", "array"] = Field(
        ..., description="Parameter type"
    )
    description: str = Field(..., description="Parameter description for the model")
    required: bool = Field(True, description="Whether parameter is required")
    default: Any | None = Field(None, description="Default value if not required")
    # Full JSON Schema for complex types (array items, object properties, etc.)
    json_schema: dict[str, Any] | None = Field(
        None, description="Full JSON Schema for complex nested types"
    )


class ToolDefinition(BaseModel):
    """Function-calling tool definition plus governance metadata."""

    name: str = Field(..., description="Tool name (e.g., 'file_read', 'shell_exec')")
    description: str = Field(..., description="Clear description for the model")
    parameters: list[ToolParameter] = Field(default_factory=list, description="Tool parameters")
    permission: ToolPermission = Field(
        ToolPermission.READ, description="Permission tier used by governance"
    )
    category: str | None = Field(None, description="Free-form grouping (e.g., 'scheduler')")
    timeout_seconds: float | None = Field(
        None, gt=0, description="Execution timeout; None uses the executor default"
    )

    def to_llm_schema(self) -> dict[str, Any]:
        """Render the definition in OpenAI function-calling format."""
        properties: dict[str, Any] = {}
        for param in self.parameters:
            if param.json_schema:
                properties[param.name] = param.json_schema
            else:
                properties[param.name] = {"type": param.type, "description": param.description}

        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": [param.name for param in self.parameters if param.required],
                    "additionalProperties": False,
                },
            },
        }


class ToolExecResult(BaseModel):
    """Result of executing one tool call."""

    result: str = Field("", description="Tool output rendered as text")
    error: str | None = Field(None, description="Error message if the call failed or was refused")
    duration_ms: float = Field(0.0, ge=0, description="Execution latency in milliseconds")

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def as_model_text(self) -> str:
        """Text the model sees in the tool-result turn."""
        return f"Error: {self.error}" if self.error is not None else self.result


class ToolExecutor(Protocol):
    """Anything that can execute a named tool with arguments."""

    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> ToolExecResult: ...
