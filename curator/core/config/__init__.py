"""Configuration management for Curator.

This package provides centralized configuration loading from environment
variables and curator.yaml with validation and type safety.
"""

# YAML configuration loaders
from curator.core.config.loaders import (
    load_learning_config,
    load_prior_config,
    load_reference_config,
)

# Settings class and global instance
from curator.core.config.settings import Settings, settings

# Utility functions
from curator.core.config.utils import load_yaml_section, parse_env_value

__all__ = [
    # Settings
    "Settings",
    "settings",
    # Loaders
    "load_learning_config",
    "load_prior_config",
    "load_reference_config",
    # Utilities
    "load_yaml_section",
    "parse_env_value",
]
