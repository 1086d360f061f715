"""Test governance policy models."""

import pytest
from pydantic import ValidationError

from agent_core.governance.models import (
    GovernancePolicy,
    TierPolicies,
    ToolPermission,
    ToolPolicy,
)


def test_default_tiers() -> None:
    """Test reads are allowed and writes and execs need confirmation."""
    policy = GovernancePolicy()

    assert policy.policy_for("file_read", ToolPermission.READ) == ToolPolicy.AUTO_ALLOW
    assert policy.policy_for("file_write", ToolPermission.WRITE) == ToolPolicy.CONFIRM
    assert policy.policy_for("shell_exec", ToolPermission.EXEC) == ToolPolicy.CONFIRM


def test_override_wins_over_tier() -> None:
    """Test a per-tool override takes precedence."""
    policy = GovernancePolicy(
        tiers=TierPolicies(write=ToolPolicy.DENY),
        tool_overrides={"memory_write": ToolPolicy.AUTO_ALLOW, "web_fetch": ToolPolicy.DENY},
    )

    assert policy.policy_for("memory_write", ToolPermission.WRITE) == ToolPolicy.AUTO_ALLOW
    assert policy.policy_for("file_write", ToolPermission.WRITE) == ToolPolicy.DENY
    assert policy.policy_for("web_fetch", ToolPermission.READ) == ToolPolicy.DENY


def test_allow_all() -> None:
    """Test the non-interactive policy allows every tier."""
    policy = GovernancePolicy.allow_all()

    assert {policy.policy_for("x", permission) for permission in ToolPermission} == {
        ToolPolicy.AUTO_ALLOW
    }


def test_policy_is_immutable() -> None:
    """Test a session's policy cannot be changed after creation."""
    policy = GovernancePolicy()

    with pytest.raises(ValidationError):
        policy.tool_overrides = {}


def test_policy_values_from_strings() -> None:
    """Test YAML-style strings validate into enums."""
    policy = GovernancePolicy.model_validate(
        {"tiers": {"exec": "deny"}, "tool_overrides": {"think": "auto-allow"}}
    )

    assert policy.tiers.exec == ToolPolicy.DENY
    assert policy.tiers.read == ToolPolicy.AUTO_ALLOW
    assert policy.tool_overrides["think"] == ToolPolicy.AUTO_ALLOW


def test_unknown_policy_value_rejected() -> None:
    """Test misspelled policies fail validation."""
    with pytest.raises(ValidationError):
        GovernancePolicy.model_validate({"tiers": {"write": "maybe"}})
