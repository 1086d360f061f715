"""Tests for the YAML loader and governance policy loading."""

from pathlib import Path

import pytest

from agent_core.config import ConfigLoadError, GovernanceConfigError, load_governance_config
from agent_core.config.loader import load_yaml_file
from agent_core.config.validators import project_root
from agent_core.governance.models import ToolPermission, ToolPolicy


@pytest.fixture
def policy_file(tmp_path: Path) -> Path:
    """Fixture for a policy file that denies exec tools."""
    path = tmp_path / "policy.yaml"
    path.write_text(
        "tiers:\n"
        "  read: auto-allow\n"
        "  write: confirm\n"
        "  exec: deny\n"
        "tool_overrides:\n"
        "  shell_status: auto-allow\n"
    )
    return path


class TestLoadGovernanceConfig:
    """Test load_governance_config."""

    def test_load_from_file(self, policy_file: Path) -> None:
        """Test loading an explicit file."""
        policy = load_governance_config(policy_file)

        assert policy.tiers.exec == ToolPolicy.DENY
        assert policy.policy_for("shell_status", ToolPermission.EXEC) == ToolPolicy.AUTO_ALLOW
        assert policy.policy_for("shell_exec", ToolPermission.EXEC) == ToolPolicy.DENY

    def test_load_from_directory(self, policy_file: Path) -> None:
        """Test a directory resolves to its policy.yaml."""
        policy = load_governance_config(policy_file.parent)

        assert policy.tiers.exec == ToolPolicy.DENY

    def test_repository_policy(self) -> None:
        """Test the shipped policy file loads with its documented tiers."""
        policy = load_governance_config(project_root() / "config" / "governance")

        assert policy.tiers.read == ToolPolicy.AUTO_ALLOW
        assert policy.tiers.write == ToolPolicy.CONFIRM
        assert policy.tiers.exec == ToolPolicy.CONFIRM
        for name in ("think", "finish", "memory_write"):
            assert policy.tool_overrides[name] == ToolPolicy.AUTO_ALLOW

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        """Test an empty policy file falls back to model defaults."""
        path = tmp_path / "policy.yaml"
        path.write_text("")

        policy = load_governance_config(path)

        assert policy.tiers.write == ToolPolicy.CONFIRM
        assert policy.tool_overrides == {}

    def test_validation_error_names_field(self, tmp_path: Path) -> None:
        """Test validation failures list the offending field path."""
        path = tmp_path / "policy.yaml"
        path.write_text("tiers:\n  write: maybe\n")

        with pytest.raises(GovernanceConfigError) as exc_info:
            load_governance_config(path)

        message = str(exc_info.value)
        assert message.startswith("Governance configuration validation failed:")
        assert "tiers -> write" in message

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file raises GovernanceConfigError with the path."""
        missing = tmp_path / "nowhere.yaml"

        with pytest.raises(GovernanceConfigError, match="Configuration file not found"):
            load_governance_config(missing)

    def test_error_is_config_load_error(self, tmp_path: Path) -> None:
        """Test governance errors can be caught as ConfigLoadError."""
        with pytest.raises(ConfigLoadError):
            load_governance_config(tmp_path / "nowhere.yaml")


class TestLoadYamlFile:
    """Test load_yaml_file."""

    def test_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "a.yaml"
        path.write_text("key: value\nnested:\n  n: 1\n")

        assert load_yaml_file(path) == {"key": "value", "nested": {"n": 1}}

    def test_empty_file(self, tmp_path: Path) -> None:
        """Test an empty file loads as an empty dict."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_yaml_file(path) == {}

    def test_list_top_level_rejected(self, tmp_path: Path) -> None:
        """Test a non-mapping document is an error."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigLoadError, match="Expected a mapping"):
            load_yaml_file(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test parse errors carry the file path."""
        path = tmp_path / "bad.yaml"
        path.write_text("key: [unclosed\n")

        with pytest.raises(ConfigLoadError) as exc_info:
            load_yaml_file(path)

        assert str(path) in str(exc_info.value)

    def test_custom_error_class(self, tmp_path: Path) -> None:
        """Test the caller's exception class is raised."""
        with pytest.raises(GovernanceConfigError):
            load_yaml_file(tmp_path / "missing.yaml", error_class=GovernanceConfigError)
