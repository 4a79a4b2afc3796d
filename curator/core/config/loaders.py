"""YAML configuration loaders for Curator.

All functions follow a 3-tier fallback chain:
    1. YAML config (curator.yaml)
    2. Environment variables
    3. Hardcoded defaults
"""

import os
from typing import Any

from curator.core.config.utils import load_yaml_section, parse_env_value
from curator.core.defaults import (
    CURATED_PRIOR,
    LEARNED_PRIOR,
    ReferenceDetectionConfig,
)

_LEARNING_KEYS = (
    "enabled",
    "phase",
    "token_budget",
    "baseline_rate",
    "min_pulls",
    "learner_name",
    "seed_arm_ids",
    "count_baseline_runs",
)


def load_learning_config() -> dict[str, Any]:
    """Load the learning section (phase, budget, baseline rate, ...).

    3-tier fallback chain:
        1. YAML config (curator.yaml learning)
        2. Environment variables (LEARNING_{KEY})
        3. Empty dict (model defaults apply)

    Returns:
        Dict of overrides suitable for ``LearningConfig(**overrides)``

    Example:
        >>> overrides = load_learning_config()
        >>> overrides.get("phase", "passive")
        'passive'
    """
    section = load_yaml_section("learning")
    if section is not None:
        return {key: section[key] for key in _LEARNING_KEYS if key in section}

    result: dict[str, Any] = {}
    for key in _LEARNING_KEYS:
        env_value = os.getenv(f"LEARNING_{key.upper()}")
        if env_value is None:
            continue
        if key == "seed_arm_ids":
            result[key] = [part.strip() for part in env_value.split(",") if part.strip()]
        elif key in ("learner_name", "phase"):
            result[key] = env_value
        else:
            result[key] = parse_env_value(env_value)
    return result


def load_prior_config() -> dict[str, tuple[float, float]]:
    """Load initial Beta priors for curated and learned arms.

    YAML shape::

        priors:
          curated: [3, 1]
          learned: [1, 1]

    Invalid entries (non-positive or malformed) are ignored.

    Returns:
        Mapping of prior source ("curated", "learned") to (alpha, beta)
    """
    result: dict[str, tuple[float, float]] = {
        "curated": CURATED_PRIOR,
        "learned": LEARNED_PRIOR,
    }

    section = load_yaml_section("priors")
    if section is not None:
        for source in result:
            value = section.get(source)
            if (
                isinstance(value, (list, tuple))
                and len(value) == 2
                and all(isinstance(v, (int, float)) and v > 0 for v in value)
            ):
                result[source] = (float(value[0]), float(value[1]))
        return result

    for source in result:
        alpha = os.getenv(f"PRIOR_{source.upper()}_ALPHA")
        beta = os.getenv(f"PRIOR_{source.upper()}_BETA")
        if alpha is not None and beta is not None:
            parsed = (parse_env_value(alpha), parse_env_value(beta))
            if all(isinstance(v, (int, float)) and v > 0 for v in parsed):
                result[source] = (float(parsed[0]), float(parsed[1]))
    return result


def load_reference_config() -> ReferenceDetectionConfig:
    """Load reference-detection thresholds.

    3-tier fallback chain:
        1. YAML config (curator.yaml reference)
        2. Environment variables (REFERENCE_{KEY})
        3. ReferenceDetectionConfig defaults (20 / 60 chars)
    """
    defaults = ReferenceDetectionConfig()
    keys = ("memory_exact_match_max_chars", "memory_fingerprint_chars")

    section = load_yaml_section("reference")
    if section is not None:
        overrides = {
            key: section[key]
            for key in keys
            if isinstance(section.get(key), int) and section[key] > 0
        }
        return ReferenceDetectionConfig(**{**defaults.__dict__, **overrides})

    overrides = {}
    for key in keys:
        env_value = os.getenv(f"REFERENCE_{key.upper()}")
        if env_value is None:
            continue
        parsed = parse_env_value(env_value)
        if isinstance(parsed, int) and not isinstance(parsed, bool) and parsed > 0:
            overrides[key] = parsed
    return ReferenceDetectionConfig(**{**defaults.__dict__, **overrides})

