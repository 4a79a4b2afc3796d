"""Application settings for Curator.

Settings load from environment variables (prefix ``CURATOR_``) and a
``.env`` file. Learning defaults are seeded from the ``learning`` section
of curator.yaml, so an environment variable overrides YAML, which
overrides the hardcoded default.
"""

from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from curator.core.config.loaders import load_learning_config
from curator.core.defaults import (
    DEFAULT_BASELINE_RATE,
    DEFAULT_LEARNER_NAME,
    DEFAULT_MIN_PULLS,
    DEFAULT_TOKEN_BUDGET,
    ORACLE_OBSERVE_TIMEOUT,
    ORACLE_QUERY_TIMEOUT,
    ORACLE_SELECT_TIMEOUT,
    SEED_ARM_IDS,
)
from curator.core.models import LearningConfig, LearningPhase


def _learning_default(key: str, fallback: Any) -> Any:
    return load_learning_config().get(key, fallback)


class Settings(BaseSettings):
    """Application configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CURATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Learning
    enabled: bool = Field(
        default_factory=lambda: _learning_default("enabled", True),
        description="Enable context selection and trace capture",
    )
    phase: LearningPhase = Field(
        default_factory=lambda: _learning_default("phase", "passive"),
        description="passive = observe only, active = update posteriors and steer",
    )
    token_budget: int = Field(
        default_factory=lambda: _learning_default("token_budget", DEFAULT_TOKEN_BUDGET),
        description="Token budget for optional prompt components (0 = unlimited)",
        ge=0,
    )
    baseline_rate: float = Field(
        default_factory=lambda: _learning_default("baseline_rate", DEFAULT_BASELINE_RATE),
        description="Fraction of runs using the full, unfiltered context",
        ge=0.0,
        le=1.0,
    )
    min_pulls: int = Field(
        default_factory=lambda: _learning_default("min_pulls", DEFAULT_MIN_PULLS),
        description="Arms with fewer observations are always included",
        ge=0,
    )
    learner_name: str = Field(
        default_factory=lambda: _learning_default("learner_name", DEFAULT_LEARNER_NAME),
        description="Learner namespace for posteriors and oracle calls",
    )
    seed_arm_ids: list[str] = Field(
        default_factory=lambda: _learning_default("seed_arm_ids", list(SEED_ARM_IDS)),
        description="Arms the local Thompson oracle never excludes",
    )
    count_baseline_runs: bool = Field(
        default_factory=lambda: _learning_default("count_baseline_runs", True),
        description="Apply posterior updates for baseline (full-context) runs",
    )

    # Storage
    store_backend: Literal["memory", "sqlite", "postgres"] = Field(
        default="sqlite", description="Posterior store backend"
    )
    store_dir: str = Field(
        default="~/.curator/learning", description="Directory holding learning.db"
    )
    database_url: str = Field(default="", description="PostgreSQL connection string")
    database_pool_size: int = Field(
        default=5, description="Connection pool size", ge=1, le=100
    )

    # Decision oracle
    oracle: Literal["none", "local", "remote"] = Field(
        default="local",
        description="Selection oracle: none (fallback only), local Thompson, or remote service",
    )
    oracle_url: str = Field(default="", description="Remote learner service base URL")
    oracle_api_key: str = Field(default="", description="Bearer token for the remote learner")
    oracle_select_timeout: float = Field(
        default=ORACLE_SELECT_TIMEOUT, description="Select call timeout seconds", gt=0.0
    )
    oracle_observe_timeout: float = Field(
        default=ORACLE_OBSERVE_TIMEOUT, description="Observe call timeout seconds", gt=0.0
    )
    oracle_query_timeout: float = Field(
        default=ORACLE_QUERY_TIMEOUT, description="Query call timeout seconds", gt=0.0
    )

    # API Server
    api_host: str = Field(default="127.0.0.1", description="API host")
    api_port: int = Field(default=8741, description="API port", ge=1, le=65535)
    api_url: str = Field(
        default="http://127.0.0.1:8741",
        description="Base URL operator commands use to reach the learning API",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    environment: str = Field(
        default="development", description="Environment (development, production)"
    )

    # OpenTelemetry Configuration
    otel_enabled: bool = Field(
        default=False, description="Enable OpenTelemetry instrumentation"
    )
    otel_metrics_enabled: bool = Field(
        default=True, description="Enable metrics collection"
    )

    @field_validator("oracle_url", "api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs so paths can be appended."""
        return v.rstrip("/")

    @property
    def learning_config(self) -> LearningConfig:
        """Validated learning configuration built from these settings."""
        return LearningConfig(
            enabled=self.enabled,
            phase=self.phase,
            token_budget=self.token_budget,
            baseline_rate=self.baseline_rate,
            min_pulls=self.min_pulls,
            learner_name=self.learner_name,
            seed_arm_ids=list(self.seed_arm_ids),
            count_baseline_runs=self.count_baseline_runs,
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"


settings = Settings()
