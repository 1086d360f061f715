"""Application configuration settings.

This module provides the AppConfig class and settings singleton.
"""

from pathlib import Path

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from agent_core.config.env_loader import Environment, get_environment, load_env_files
from agent_core.config.validators import (
    resolve_path,
    validate_fallback_reasons,
    validate_log_format,
    validate_log_level,
)

log = structlog.get_logger(__name__)


class AppConfig(BaseSettings):
    """Unified application configuration.

    Loads configuration from environment variables (``AGENT_`` prefix), .env
    files and defaults. Validates all values using Pydantic.
    """

    model_config = SettingsConfigDict(
        # .env files are loaded manually via env_loader to support
        # environment-specific files with priority order.
        env_prefix="AGENT_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        protected_namespaces=(),
    )

    # Environment
    environment: Environment = Field(
        default_factory=get_environment, description="Current environment"
    )
    debug: bool = Field(default=False, alias="APP_DEBUG", description="Debug mode flag")

    # Telemetry
    log_dir: Path | None = Field(
        default=None, description="Directory for JSON log files (None disables file logging)"
    )
    log_level: str = Field(
        default="INFO",
        alias="APP_LOG_LEVEL",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(
        default="console", alias="APP_LOG_FORMAT", description="Log format (json or console)"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        return validate_log_level(v)

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        return validate_log_format(v)

    @field_validator("log_dir", "workspace_path", "governance_config_path", mode="before")
    @classmethod
    def resolve_paths(cls, v: Path | str | None) -> Path | None:
        """Resolve relative paths to absolute."""
        return resolve_path(v)

    # Session budgets
    agent_max_iterations: int = Field(default=25, ge=1, description="Iterations per session")
    agent_timeout_seconds: float = Field(
        default=300.0, gt=0, description="Wall-clock budget for a whole session"
    )
    agent_cost_cap_usd: float = Field(default=1.0, ge=0, description="Cost cap per session (USD)")

    # Loop behaviour
    loop_max_narration_nudges: int = Field(
        default=2, ge=0, description="Corrective nudges for narrated or faked tool use"
    )
    loop_max_completion_gate_nudges: int = Field(
        default=1, ge=0, description="Nudges when a final answer claims unverified work"
    )
    loop_max_reflection_nudges: int = Field(
        default=3, ge=0, description="Post-check and behavioural nudges per session"
    )
    tool_output_decay_iterations: int | None = Field(
        default=3,
        ge=1,
        description="Age (in iterations) after which tool output is truncated; None disables",
    )
    tool_output_decay_threshold_chars: int = Field(
        default=500, ge=1, description="Characters kept when decaying old tool output"
    )
    compaction_threshold_tokens: int | None = Field(
        default=120_000,
        ge=1,
        description="Prompt tokens that trigger history compaction; None disables",
    )
    compaction_keep_recent_messages: int = Field(
        default=4, ge=0, description="Most recent turns kept verbatim after compaction"
    )
    workspace_path: Path | None = Field(
        default=None, description="Workspace receiving MEMORY.md compaction summaries"
    )

    # Pricing (USD per million tokens)
    llm_cost_per_million_input_tokens: float = Field(default=3.0, ge=0)
    llm_cost_per_million_output_tokens: float = Field(default=15.0, ge=0)

    # Model fallback
    fallback_cooldown_seconds: float = Field(
        default=1800.0, ge=0, description="How long a failed model is skipped"
    )
    fallback_cooldown_reasons: list[str] = Field(
        default_factory=lambda: ["quota-window"],
        description="Failure reasons that put a model into cooldown",
    )

    @field_validator("fallback_cooldown_reasons", mode="before")
    @classmethod
    def parse_cooldown_reasons(cls, v: str | list[str]) -> list[str]:
        """Accept a comma-separated string or a list."""
        if isinstance(v, str):
            v = [part for part in v.split(",") if part.strip()]
        return validate_fallback_reasons(v)

    # Tools and governance
    tool_timeout_seconds: float = Field(default=30.0, gt=0, description="Per-tool timeout")
    tool_max_output_chars: int = Field(
        default=10_000, ge=1, description="Tool output is truncated past this length"
    )
    tool_rate_limit_max_calls: int | None = Field(
        default=None, ge=1, description="Tool calls allowed per window per session; None disables"
    )
    tool_rate_limit_window_seconds: float = Field(default=60.0, gt=0)
    confirmation_timeout_seconds: float = Field(
        default=60.0, gt=0, description="How long a confirmation request waits for a reply"
    )
    governance_config_path: Path = Field(
        default=Path("config/governance/policy.yaml"),
        description="Governance policy YAML file",
    )


_settings: AppConfig | None = None


def load_app_config() -> AppConfig:
    """Load and validate application configuration.

    This function:
    1. Loads .env files in priority order (via env_loader)
    2. Creates AppConfig instance (reads from environment variables)
    3. Validates all values using Pydantic

    Returns:
        Validated AppConfig instance.

    Raises:
        ValidationError: If configuration validation fails.
    """
    log.info("loading_app_config", environment=get_environment().value)

    load_env_files()

    try:
        config = AppConfig()
    except Exception as e:
        log.error("app_config_load_failed", error=str(e), error_type=type(e).__name__)
        raise

    log.info(
        "app_config_loaded",
        environment=config.environment.value,
        debug=config.debug,
        log_level=config.log_level,
        max_iterations=config.agent_max_iterations,
        cost_cap_usd=config.agent_cost_cap_usd,
    )
    return config


def get_settings() -> AppConfig:
    """Get the application settings singleton.

    Returns:
        AppConfig instance (singleton pattern).
    """
    global _settings
    if _settings is None:
        _settings = load_app_config()
    return _settings
