"""Governance module for tool permission enforcement.

This module provides:
- Permission tiers, tier policies and per-tool overrides
- Prompt injection heuristics and argument sanitization
- Sliding-window rate limiting shared across sessions
- Interactive confirmation of tool calls

The YAML loader lives in ``agent_core.config``.
"""

from agent_core.governance.confirmation import ConfirmationDelegate, ConfirmationManager
from agent_core.governance.injection import (
    INJECTION_DEFENSE_PREAMBLE,
    InjectionPolicy,
    detect_injection_attempt,
    detect_system_prompt_leakage,
    matched_injection_patterns,
    sanitize_args,
    sanitize_string_arg,
    wrap_user_input,
)
from agent_core.governance.models import (
    ConfirmationDecision,
    GovernanceDecision,
    GovernancePolicy,
    TierPolicies,
    ToolPermission,
    ToolPolicy,
)
from agent_core.governance.rate_limit import RateLimitResult, SlidingWindowLimiter

__all__ = [
    "ConfirmationDecision",
    "ConfirmationDelegate",
    "ConfirmationManager",
    "GovernanceDecision",
    "GovernancePolicy",
    "INJECTION_DEFENSE_PREAMBLE",
    "InjectionPolicy",
    "RateLimitResult",
    "SlidingWindowLimiter",
    "TierPolicies",
    "ToolPermission",
    "ToolPolicy",
    "detect_injection_attempt",
    "detect_system_prompt_leakage",
    "matched_injection_patterns",
    "sanitize_args",
    "sanitize_string_arg",
    "wrap_user_input",
]
