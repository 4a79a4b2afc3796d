"""Utility functions for configuration loading.

These helpers are used by other config modules for parsing values
and loading sections from curator.yaml.
"""

from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "curator.yaml"


def parse_env_value(value: str) -> Any:
    """Parse environment variable value to appropriate type.

    Args:
        value: String value from environment variable

    Returns:
        Parsed value (bool, int, float, or str)

    Example:
        >>> parse_env_value("0.25")
        0.25
        >>> parse_env_value("true")
        True
        >>> parse_env_value("active")
        'active'
    """
    # Try boolean
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False

    # Try int
    try:
        return int(value)
    except ValueError:
        pass

    # Try float
    try:
        return float(value)
    except ValueError:
        pass

    # Return as string
    return value


def config_search_paths() -> list[Path]:
    """Candidate locations for curator.yaml, highest priority first."""
    return [
        Path(__file__).parent.parent.parent.parent / CONFIG_FILENAME,  # Project root
        Path.cwd() / CONFIG_FILENAME,  # Current directory
    ]


def load_yaml_section(section: str) -> dict[str, Any] | None:
    """Load one top-level section of curator.yaml.

    Args:
        section: Top-level key (learning, priors, reference, ...)

    Returns:
        Section dict, or None if no config file defines a usable section
    """
    for config_path in config_search_paths():
        if not config_path.exists():
            continue
        try:
            with open(config_path) as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError):
            continue
        if not isinstance(config, dict):
            continue
        value = config.get(section)
        if isinstance(value, dict) and value:
            return value
    return None
