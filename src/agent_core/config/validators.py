"""Custom Pydantic validators for configuration.

This module provides validators for cross-field validation and
custom type conversions.
"""

from pathlib import Path

VALID_FALLBACK_REASONS = frozenset({"rate-limit", "quota-window", "auth", "network", "unknown"})


def validate_log_level(value: str) -> str:
    """Validate log level is one of the standard levels.

    Args:
        value: Log level string.

    Returns:
        Validated log level.

    Raises:
        ValueError: If log level is not valid.
    """
    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if value.upper() not in valid_levels:
        raise ValueError(f"log_level must be one of {valid_levels}, got {value}")
    return value.upper()


def validate_log_format(value: str) -> str:
    """Validate log format is 'json' or 'console'.

    Args:
        value: Log format string.

    Returns:
        Validated log format.

    Raises:
        ValueError: If log format is not valid.
    """
    valid_formats = {"json", "console"}
    if value.lower() not in valid_formats:
        raise ValueError(f"log_format must be one of {valid_formats}, got {value}")
    return value.lower()


def validate_fallback_reasons(values: list[str]) -> list[str]:
    """Validate cooldown-triggering fallback reasons.

    Args:
        values: Reason names, e.g. ``["quota-window", "rate-limit"]``.

    Returns:
        Lowercased, de-duplicated reasons in their original order.

    Raises:
        ValueError: If any reason is not a known fallback reason.
    """
    seen: list[str] = []
    for raw in values:
        reason = raw.strip().lower()
        if reason not in VALID_FALLBACK_REASONS:
            raise ValueError(
                f"fallback reason must be one of {sorted(VALID_FALLBACK_REASONS)}, got {raw}"
            )
        if reason not in seen:
            seen.append(reason)
    return seen


def project_root() -> Path:
    """Return the repository root (three levels above this package)."""
    # src/agent_core/config -> project root
    return Path(__file__).parent.parent.parent.parent


def resolve_path(value: Path | str | None) -> Path | None:
    """Resolve relative paths to absolute paths.

    Args:
        value: Path value (can be string, Path or None).

    Returns:
        Resolved Path object, or None when no path was configured.
    """
    if value is None or value == "":
        return None

    path = Path(value) if isinstance(value, str) else value

    # If relative, resolve relative to project root
    if not path.is_absolute():
        path = (project_root() / path).resolve()
    else:
        path = path.resolve()

    return path
