"""Exception hierarchy for Curator.

This module defines custom exceptions for the failure modes of the
context-selection pipeline. Hot-path entry points never let these escape
into the host turn; operator surfaces report them.
"""

from typing import Any


class CuratorError(Exception):
    """Base exception for all Curator errors."""

    code: str = "CURATOR_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StoreError(CuratorError):
    """Posterior store or trace log operation failed (connection, query, transaction)."""

    code: str = "STORE_ERROR"


class OracleError(CuratorError):
    """Remote decision oracle call failed (transport, timeout, bad payload)."""

    code: str = "ORACLE_ERROR"


class ValidationError(CuratorError):
    """Input validation failed (arm IDs, rewards, report shape)."""

    code: str = "VALIDATION_ERROR"


class ConfigurationError(CuratorError):
    """Configuration error (invalid phase, budget, backend settings)."""

    code: str = "CONFIGURATION_ERROR"
