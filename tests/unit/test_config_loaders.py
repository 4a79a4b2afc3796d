"""Tests for configuration loaders in curator/core/config.

Tests verify 3-tier fallback chain:
1. YAML config file (curator.yaml)
2. Environment variables
3. Hardcoded defaults (embedded in loaders)
"""

import pytest
import yaml

from curator.core.config import (
    Settings,
    load_learning_config,
    load_prior_config,
    load_reference_config,
    parse_env_value,
)


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Isolate curator.yaml lookup to a temp directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        "curator.core.config.utils.config_search_paths",
        lambda: [tmp_path / "curator.yaml"],
    )
    return tmp_path


def write_config(directory, content: dict) -> None:
    with open(directory / "curator.yaml", "w") as f:
        yaml.dump(content, f)


class TestParseEnvValue:
    """Test environment variable parsing."""

    def test_parse_bool(self):
        assert parse_env_value("true") is True
        assert parse_env_value("YES") is True
        assert parse_env_value("False") is False

    def test_parse_numbers(self):
        assert parse_env_value("42") == 42
        assert parse_env_value("0.25") == 0.25

    def test_parse_string(self):
        assert parse_env_value("active") == "active"


class TestLoadLearningConfig:
    """Test learning section loader."""

    def test_hardcoded_defaults(self, config_dir):
        assert load_learning_config() == {}

    def test_yaml_loading(self, config_dir):
        write_config(
            config_dir,
            {"learning": {"phase": "active", "token_budget": 4000, "unknown": 1}},
        )

        config = load_learning_config()

        assert config == {"phase": "active", "token_budget": 4000}

    def test_env_override(self, config_dir, monkeypatch):
        monkeypatch.setenv("LEARNING_PHASE", "active")
        monkeypatch.setenv("LEARNING_BASELINE_RATE", "0.2")
        monkeypatch.setenv("LEARNING_SEED_ARM_IDS", "tool:fs:Read, tool:exec:Bash,")

        config = load_learning_config()

        assert config["phase"] == "active"
        assert config["baseline_rate"] == 0.2
        assert config["seed_arm_ids"] == ["tool:fs:Read", "tool:exec:Bash"]

    def test_yaml_wins_over_env(self, config_dir, monkeypatch):
        write_config(config_dir, {"learning": {"phase": "passive"}})
        monkeypatch.setenv("LEARNING_PHASE", "active")

        assert load_learning_config()["phase"] == "passive"


class TestLoadPriorConfig:
    """Test prior loader."""

    def test_defaults(self, config_dir):
        assert load_prior_config() == {"curated": (3.0, 1.0), "learned": (1.0, 1.0)}

    def test_yaml_with_invalid_entry(self, config_dir):
        write_config(config_dir, {"priors": {"curated": [5, 2], "learned": [0, 1]}})

        priors = load_prior_config()

        assert priors["curated"] == (5.0, 2.0)
        assert priors["learned"] == (1.0, 1.0)

    def test_env_override(self, config_dir, monkeypatch):
        monkeypatch.setenv("PRIOR_LEARNED_ALPHA", "2")
        monkeypatch.setenv("PRIOR_LEARNED_BETA", "3")

        assert load_prior_config()["learned"] == (2.0, 3.0)


class TestLoadReferenceConfig:
    """Test reference-detection threshold loader."""

    def test_defaults(self, config_dir):
        config = load_reference_config()

        assert config.memory_exact_match_max_chars == 20
        assert config.memory_fingerprint_chars == 60

    def test_yaml_loading(self, config_dir):
        write_config(config_dir, {"reference": {"memory_fingerprint_chars": 80}})

        config = load_reference_config()

        assert config.memory_fingerprint_chars == 80
        assert config.memory_exact_match_max_chars == 20

    def test_env_ignores_non_positive(self, config_dir, monkeypatch):
        monkeypatch.setenv("REFERENCE_MEMORY_EXACT_MATCH_MAX_CHARS", "-5")

        assert load_reference_config().memory_exact_match_max_chars == 20


class TestSettings:
    """Test Settings picks up learning defaults and env overrides."""

    def test_learning_defaults_from_yaml(self, config_dir):
        write_config(config_dir, {"learning": {"phase": "active", "min_pulls": 3}})

        learning = Settings().learning_config

        assert learning.phase == "active"
        assert learning.min_pulls == 3

    def test_prefixed_env_overrides(self, config_dir, monkeypatch):
        monkeypatch.setenv("CURATOR_TOKEN_BUDGET", "1234")
        monkeypatch.setenv("CURATOR_ORACLE_URL", "http://oracle.test/learning/")

        config = Settings()

        assert config.token_budget == 1234
        assert config.oracle_url == "http://oracle.test/learning"

    def test_invalid_phase_rejected(self, config_dir, monkeypatch):
        monkeypatch.setenv("CURATOR_PHASE", "sometimes")

        with pytest.raises(ValueError):
            Settings()
