"""Model interface, pricing and provider fallback.

The wire protocol of each backend is out of scope: backends implement
``StreamingModel`` and the rest of the package works against that protocol.
"""

from agent_core.llm_client.fallback import (
    FallbackEvent,
    FallbackModel,
    FallbackObserver,
    FallbackReason,
    MultiplexedFallbackModel,
    classify_fallback_reason,
)
from agent_core.llm_client.pricing import DEFAULT_PRICING, ModelPricing, resolve_pricing
from agent_core.llm_client.registry import ModelRegistry
from agent_core.llm_client.types import (
    AllModelsCoolingDown,
    AssistantMessage,
    LLMAborted,
    LLMClientError,
    LLMConnectionError,
    LLMInvalidResponse,
    LLMRateLimit,
    LLMServerError,
    LLMTimeout,
    Message,
    ReasoningDelta,
    StreamEvent,
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
    dump_history,
    endpoint_key,
    validate_history,
)

__all__ = [
    # Messages
    "AssistantMessage",
    "Message",
    "SystemMessage",
    "ToolCall",
    "ToolResultMessage",
    "ToolResultPart",
    "UserMessage",
    "dump_history",
    "validate_history",
    # Streaming
    "ReasoningDelta",
    "StreamEvent",
    "StreamFinish",
    "StreamingModel",
    "TextDelta",
    "ToolCallRequest",
    "Usage",
    "endpoint_key",
    # Fallback
    "FallbackEvent",
    "FallbackModel",
    "FallbackObserver",
    "FallbackReason",
    "MultiplexedFallbackModel",
    "classify_fallback_reason",
    "ModelRegistry",
    # Pricing
    "DEFAULT_PRICING",
    "ModelPricing",
    "resolve_pricing",
    # Errors
    "AllModelsCoolingDown",
    "LLMAborted",
    "LLMClientError",
    "LLMConnectionError",
    "LLMInvalidResponse",
    "LLMRateLimit",
    "LLMServerError",
    "LLMTimeout",
]
