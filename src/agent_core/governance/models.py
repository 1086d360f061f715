"""Pydantic models for tool governance.

This module defines the schema for the per-session governance policy:
- Permission tiers (read, write, exec) a tool is classified into
- The policy applied to each tier (auto-allow, confirm, deny)
- Per-tool overrides that take precedence over the tier default
- Audit decisions recorded for every governed tool call
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ToolPermission(str, Enum):
    """Coarse permission class of a tool."""

    READ = "read"
    WRITE = "write"
    EXEC = "exec"


class ToolPolicy(str, Enum):
    """What happens when a tool of a given tier is called."""

    AUTO_ALLOW = "auto-allow"
    CONFIRM = "confirm"
    DENY = "deny"


class GovernanceDecision(str, Enum):
    """Outcome recorded in the audit trail for a governed call."""

    DENIED = "denied"
    SKIPPED_NO_DELEGATE = "skipped_no_delegate"
    REJECTED = "rejected"
    RATE_LIMITED = "rate_limited"
    APPROVED = "approved"
    AUTO_ALLOWED = "auto_allowed"


class TierPolicies(BaseModel):
    """Base policy per permission tier."""

    model_config = ConfigDict(frozen=True)

    read: ToolPolicy = Field(ToolPolicy.AUTO_ALLOW, description="Policy for read tools")
    write: ToolPolicy = Field(ToolPolicy.CONFIRM, description="Policy for write tools")
    exec: ToolPolicy = Field(ToolPolicy.CONFIRM, description="Policy for exec tools")


class GovernancePolicy(BaseModel):
    """Immutable governance policy for one session.

    Non-interactive sessions (scheduled jobs and the like) have no
    confirmation delegate, so every tool they use must resolve to
    ``auto-allow``.
    """

    model_config = ConfigDict(frozen=True)

    tiers: TierPolicies = Field(default_factory=TierPolicies, description="Tier defaults")
    tool_overrides: dict[str, ToolPolicy] = Field(
        default_factory=dict, description="Per-tool policy, wins over the tier default"
    )

    def policy_for(self, tool_name: str, permission: ToolPermission) -> ToolPolicy:
        """Return the effective policy for a tool.

        Args:
            tool_name: Name of the tool being called.
            permission: Tier the tool is classified into.

        Returns:
            The override for the tool if one exists, else the tier default.
        """
        override = self.tool_overrides.get(tool_name)
        if override is not None:
            return override
        return getattr(self.tiers, permission.value)

    @classmethod
    def allow_all(cls) -> "GovernancePolicy":
        """Policy for non-interactive sessions: every tier auto-allowed."""
        return cls(
            tiers=TierPolicies(
                read=ToolPolicy.AUTO_ALLOW,
                write=ToolPolicy.AUTO_ALLOW,
                exec=ToolPolicy.AUTO_ALLOW,
            )
        )


class ConfirmationDecision(BaseModel):
    """Reply from a confirmation delegate."""

    approved: bool = Field(..., description="Whether the call may proceed")
    reason: str | None = Field(None, description="Why the call was rejected")
