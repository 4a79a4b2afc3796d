"""Posterior store and trace log interface.

This module provides the abstract interface for persisting arm posteriors
and the append-only run trace log, plus an in-memory implementation for
tests and development. The store is constructed once per process and
injected into the updater, selector, and operator surfaces.

Consistency model:
    Single writer per process. A ``load`` reflects every save that
    completed before it in the same process. ``save_many`` applies all
    posterior writes of one trace atomically (all or nothing).
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from curator.core.defaults import DEFAULT_TRACE_LIST_LIMIT, RESET_PRIOR
from curator.core.exceptions import StoreError
from curator.core.models import (
    ArmOutcome,
    ArmPosterior,
    RunTrace,
    SelectionContext,
    TokenUsage,
)

logger = logging.getLogger(__name__)

__all__ = [
    "PosteriorStore",
    "InMemoryPosteriorStore",
    "StoreError",
    "deserialize_trace",
    "reset_posterior",
    "serialize_trace",
]


def serialize_trace(trace: RunTrace) -> dict[str, Any]:
    """Flatten a trace into column values (nested parts as JSON text)."""
    return {
        "trace_id": trace.trace_id,
        "run_id": trace.run_id,
        "session_id": trace.session_id,
        "session_key": trace.session_key,
        "timestamp": trace.timestamp,
        "provider": trace.provider,
        "model": trace.model,
        "channel": trace.channel,
        "is_baseline": trace.is_baseline,
        "context_json": trace.context.model_dump_json(),
        "arms_json": json.dumps([arm.model_dump() for arm in trace.arms]),
        "usage_json": trace.usage.model_dump_json() if trace.usage else None,
        "duration_ms": trace.duration_ms,
        "system_prompt_chars": trace.system_prompt_chars,
        "aborted": trace.aborted,
        "error": trace.error,
    }


def deserialize_trace(row: Mapping[str, Any]) -> RunTrace:
    """Rebuild a trace from column values produced by serialize_trace."""
    usage_json = row["usage_json"]
    return RunTrace(
        trace_id=row["trace_id"],
        run_id=row["run_id"],
        session_id=row["session_id"],
        session_key=row["session_key"],
        timestamp=row["timestamp"],
        provider=row["provider"],
        model=row["model"],
        channel=row["channel"],
        is_baseline=bool(row["is_baseline"]),
        context=SelectionContext.model_validate_json(row["context_json"]),
        arms=[ArmOutcome.model_validate(arm) for arm in json.loads(row["arms_json"])],
        usage=TokenUsage.model_validate_json(usage_json) if usage_json else None,
        duration_ms=row["duration_ms"],
        system_prompt_chars=row["system_prompt_chars"] or 0,
        aborted=bool(row["aborted"]),
        error=row["error"],
    )


def reset_posterior(posterior: ArmPosterior) -> ArmPosterior:
    """Return a copy of ``posterior`` reset to Beta(1,1) with zero pulls."""
    alpha, beta = RESET_PRIOR
    return posterior.model_copy(
        update={
            "alpha": alpha,
            "beta": beta,
            "pulls": 0,
            "last_updated": datetime.now(UTC),
        }
    )


class PosteriorStore(ABC):
    """Abstract interface for posterior and trace persistence.

    Implementations:
    - InMemoryPosteriorStore: dict-backed, for tests and development
    - SqlitePosteriorStore: embedded SQLite file
    - PostgresPosteriorStore: asyncpg pool with JSONB trace columns

    All failures surface as StoreError; hot-path callers treat that as
    "posterior unknown" and never let it reach the host turn.
    """

    @abstractmethod
    async def load(self) -> dict[str, ArmPosterior]:
        """Load every known posterior keyed by arm ID.

        Raises:
            StoreError: If the store is unavailable
        """
        pass

    @abstractmethod
    async def save(self, posterior: ArmPosterior) -> None:
        """Upsert a single posterior by arm ID.

        Raises:
            StoreError: If the write fails
        """
        pass

    @abstractmethod
    async def save_many(self, posteriors: list[ArmPosterior]) -> None:
        """Upsert several posteriors atomically.

        Either every posterior is written or none is.

        Raises:
            StoreError: If the write fails (nothing is persisted)
        """
        pass

    @abstractmethod
    async def reset(self, arm_id: str | None = None) -> int:
        """Reset one arm (or all arms) to Beta(1,1), pulls=0.

        Args:
            arm_id: Arm to reset, or None for every known arm

        Returns:
            Number of arms reset (0 when ``arm_id`` is unknown)

        Raises:
            StoreError: If the reset fails
        """
        pass

    @abstractmethod
    async def insert_trace(self, trace: RunTrace) -> None:
        """Append a run trace to the trace log.

        Raises:
            StoreError: If the write fails
        """
        pass

    @abstractmethod
    async def list_traces(
        self,
        limit: int = DEFAULT_TRACE_LIST_LIMIT,
        offset: int = 0,
        session_key: str | None = None,
    ) -> list[RunTrace]:
        """List traces, newest first.

        Args:
            limit: Maximum number of traces (0 = no limit)
            offset: Number of newest traces to skip
            session_key: Only traces from this session

        Raises:
            StoreError: If the read fails
        """
        pass

    @abstractmethod
    async def get_trace(self, trace_id: str) -> RunTrace | None:
        """Fetch a single trace by ID (None if unknown)."""
        pass

    @abstractmethod
    async def count_traces(self) -> int:
        """Total number of traces in the log."""
        pass

    async def close(self) -> None:
        """Release backend resources. Default: nothing to release."""
        return None


class InMemoryPosteriorStore(PosteriorStore):
    """Dict-backed store for tests and development.

    All mutations run under an asyncio.Lock so one trace's writes are
    applied as a unit. Not durable across restarts.
    """

    def __init__(self) -> None:
        self._posteriors: dict[str, ArmPosterior] = {}
        self._traces: dict[str, RunTrace] = {}
        self._lock = asyncio.Lock()

    async def load(self) -> dict[str, ArmPosterior]:
        async with self._lock:
            return dict(self._posteriors)

    async def save(self, posterior: ArmPosterior) -> None:
        async with self._lock:
            self._posteriors[posterior.arm_id] = posterior

    async def save_many(self, posteriors: list[ArmPosterior]) -> None:
        async with self._lock:
            staged = dict(self._posteriors)
            for posterior in posteriors:
                staged[posterior.arm_id] = posterior
            self._posteriors = staged
        logger.debug(f"Saved {len(posteriors)} posteriors")

    async def reset(self, arm_id: str | None = None) -> int:
        async with self._lock:
            if arm_id is not None:
                existing = self._posteriors.get(arm_id)
                if existing is None:
                    return 0
                self._posteriors[arm_id] = reset_posterior(existing)
                return 1

            self._posteriors = {
                key: reset_posterior(posterior)
                for key, posterior in self._posteriors.items()
            }
            return len(self._posteriors)

    async def insert_trace(self, trace: RunTrace) -> None:
        async with self._lock:
            self._traces[trace.trace_id] = trace

    async def list_traces(
        self,
        limit: int = DEFAULT_TRACE_LIST_LIMIT,
        offset: int = 0,
        session_key: str | None = None,
    ) -> list[RunTrace]:
        async with self._lock:
            traces = [
                trace
                for trace in self._traces.values()
                if session_key is None or trace.session_key == session_key
            ]
        traces.sort(key=lambda t: t.timestamp, reverse=True)
        if limit:
            return traces[offset : offset + limit]
        return traces[offset:]

    async def get_trace(self, trace_id: str) -> RunTrace | None:
        async with self._lock:
            return self._traces.get(trace_id)

    async def count_traces(self) -> int:
        async with self._lock:
            return len(self._traces)
