"""Remote decision oracle client."""

from curator.oracle.client import OracleClient
from curator.oracle.models import (
    OracleMetrics,
    OracleObservation,
    OraclePosteriors,
    OracleReset,
    OracleSelectResponse,
    OracleStatus,
)

__all__ = [
    "OracleClient",
    "OracleMetrics",
    "OracleObservation",
    "OraclePosteriors",
    "OracleReset",
    "OracleSelectResponse",
    "OracleStatus",
]
