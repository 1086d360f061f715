"""Environment variable file loader with priority-based loading.

``.env`` files are layered so that environment-specific and local overrides
win over the base file, while real environment variables always win.
"""

from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

from agent_core.config.validators import project_root as default_project_root
from agent_core.telemetry import get_logger

log = get_logger(__name__)


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


def get_environment() -> Environment:
    """Detect current environment from APP_ENV environment variable.

    Returns:
        Environment enum value.

    Environment variable mapping:
    - "production" or "prod" → Environment.PRODUCTION
    - "staging" or "stage" → Environment.STAGING
    - "test" → Environment.TEST
    - Default → Environment.DEVELOPMENT

    Note: This reads os.getenv() directly because environment detection must
    happen before settings are loaded.
    """
    import os  # noqa: PLC0415

    app_env = os.getenv("APP_ENV", "").lower()

    if app_env in ("production", "prod"):
        return Environment.PRODUCTION
    elif app_env in ("staging", "stage"):
        return Environment.STAGING
    elif app_env == "test":
        return Environment.TEST
    else:
        return Environment.DEVELOPMENT


def env_file_candidates(project_root: Path, environment: Environment) -> list[Path]:
    """List .env files in load order (lowest priority first).

    Args:
        project_root: Directory holding the .env files.
        environment: Active environment.

    Returns:
        Candidate paths; missing files are skipped by the loader.
    """
    env_name = environment.value
    return [
        project_root / ".env",
        project_root / ".env.local",
        project_root / f".env.{env_name}",
        project_root / f".env.{env_name}.local",
    ]


def load_env_files(project_root: Path | None = None) -> list[Path]:
    """Load .env files in priority order.

    Priority order (highest to lowest):
    1. `.env.{environment}.local`
    2. `.env.{environment}`
    3. `.env.local`
    4. `.env`

    Args:
        project_root: Path to project root. If None, detects from this package location.

    Returns:
        The files that were found and loaded.
    """
    if project_root is None:
        project_root = default_project_root()

    environment = get_environment()

    # dotenv with override=False keeps the first value it sees, so walk the
    # list from highest priority down.
    loaded: list[Path] = []
    for env_file in reversed(env_file_candidates(project_root, environment)):
        if env_file.exists():
            load_dotenv(env_file, override=False)
            loaded.append(env_file)

    if loaded:
        log.info(
            "env_files_loaded",
            environment=environment.value,
            files=[str(p.relative_to(project_root)) for p in loaded],
            project_root=str(project_root),
        )
    else:
        log.debug(
            "no_env_files_found",
            environment=environment.value,
            project_root=str(project_root),
        )
    return loaded
