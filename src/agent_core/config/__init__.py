"""Unified configuration management for agent_core.

This module provides a single source of truth for all configuration,
integrating environment variables, .env files, YAML files, and defaults.
"""

from agent_core.config.env_loader import Environment, get_environment
from agent_core.config.governance_loader import (
    GovernanceConfigError,
    load_governance_config,
)
from agent_core.config.loader import ConfigLoadError
from agent_core.config.settings import AppConfig, get_settings, load_app_config

# Singleton instance
settings = get_settings()

__all__ = [
    "settings",
    "AppConfig",
    "get_settings",
    "load_app_config",
    "Environment",
    "get_environment",
    "load_governance_config",
    "ConfigLoadError",
    "GovernanceConfigError",
]
