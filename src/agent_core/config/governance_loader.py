"""Load and validate the governance policy from YAML.

The policy file maps permission tiers to policies and lists per-tool
overrides::

    tiers:
      read: auto-allow
      write: confirm
      exec: confirm
    tool_overrides:
      think: auto-allow
"""

from pathlib import Path

import structlog
from pydantic import ValidationError

from agent_core.config.loader import ConfigLoadError, load_yaml_file
from agent_core.governance.models import GovernancePolicy

log = structlog.get_logger(__name__)

POLICY_FILE_NAME = "policy.yaml"


class GovernanceConfigError(ConfigLoadError):
    """Raised when governance configuration cannot be loaded or validated."""

    pass


def load_governance_config(config_path: Path | str | None = None) -> GovernancePolicy:
    """Load and validate the governance policy.

    Args:
        config_path: Policy YAML file, or a directory containing ``policy.yaml``.
            If None, uses ``settings.governance_config_path``.

    Returns:
        Validated, immutable GovernancePolicy.

    Raises:
        GovernanceConfigError: If the file cannot be loaded or validated.
            Validation messages name the offending field path.

    Example:
        >>> from agent_core.config import load_governance_config
        >>> policy = load_governance_config()
        >>> policy.tiers.write
        <ToolPolicy.CONFIRM: 'confirm'>
    """
    if config_path is None:
        from agent_core.config import settings  # noqa: PLC0415

        path = settings.governance_config_path
        log.debug("using_governance_path_from_settings", path=str(path))
    else:
        path = Path(config_path)

    if path.is_dir():
        path = path / POLICY_FILE_NAME

    log.info("loading_governance_config", config_path=str(path))

    data = load_yaml_file(path, error_class=GovernanceConfigError)

    try:
        policy = GovernancePolicy.model_validate(data)
    except ValidationError as e:
        error_messages = []
        for error in e.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"])
            error_messages.append(f"{field_path}: {error['msg']}")

        error_summary = "\n".join(error_messages)
        raise GovernanceConfigError(
            f"Governance configuration validation failed:\n{error_summary}"
        ) from None

    log.info(
        "governance_config_loaded",
        read=policy.tiers.read.value,
        write=policy.tiers.write.value,
        exec=policy.tiers.exec.value,
        overrides_count=len(policy.tool_overrides),
    )
    return policy
