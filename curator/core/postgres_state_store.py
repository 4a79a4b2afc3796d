"""PostgreSQL implementation of PosteriorStore.

Uses an asyncpg connection pool. Posterior writes for one trace run inside
a single transaction so a partial update is never visible. Trace payloads
(context, arm outcomes, usage) are stored as JSONB for ad hoc querying.

pgBouncer Compatibility:
    When using pgBouncer in transaction pooling mode, create the pool with
    statement_cache_size=0 to avoid prepared statement conflicts:

        pool = await asyncpg.create_pool(database_url, statement_cache_size=0)
"""

import logging
from datetime import UTC, datetime
from typing import Any

import asyncpg

from curator.core.defaults import DEFAULT_TRACE_LIST_LIMIT, RESET_PRIOR
from curator.core.models import ArmPosterior, RunTrace
from curator.core.state_store import (
    PosteriorStore,
    StoreError,
    deserialize_trace,
    serialize_trace,
)

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS arm_posteriors (
    learner VARCHAR(255) NOT NULL,
    arm_id TEXT NOT NULL,
    alpha DOUBLE PRECISION NOT NULL DEFAULT 1.0,
    beta DOUBLE PRECISION NOT NULL DEFAULT 1.0,
    pulls INTEGER NOT NULL DEFAULT 0,
    last_updated TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (learner, arm_id)
);

CREATE TABLE IF NOT EXISTS run_traces (
    trace_id TEXT PRIMARY KEY,
    learner VARCHAR(255) NOT NULL,
    run_id TEXT NOT NULL,
    session_id TEXT NOT NULL,
    session_key TEXT,
    timestamp BIGINT NOT NULL,
    provider TEXT,
    model TEXT,
    channel TEXT,
    is_baseline BOOLEAN NOT NULL DEFAULT FALSE,
    context_json JSONB NOT NULL,
    arms_json JSONB NOT NULL,
    usage_json JSONB,
    duration_ms INTEGER,
    system_prompt_chars INTEGER,
    aborted BOOLEAN NOT NULL DEFAULT FALSE,
    error TEXT
);

CREATE INDEX IF NOT EXISTS idx_run_traces_learner_ts ON run_traces(learner, timestamp DESC);
CREATE INDEX IF NOT EXISTS idx_run_traces_session ON run_traces(session_key, timestamp);
"""

_UPSERT_POSTERIOR_SQL = """
INSERT INTO arm_posteriors (learner, arm_id, alpha, beta, pulls, last_updated)
VALUES ($1, $2, $3, $4, $5, $6)
ON CONFLICT (learner, arm_id)
DO UPDATE SET
    alpha = EXCLUDED.alpha,
    beta = EXCLUDED.beta,
    pulls = EXCLUDED.pulls,
    last_updated = EXCLUDED.last_updated
"""

_INSERT_TRACE_SQL = """
INSERT INTO run_traces
    (trace_id, learner, run_id, session_id, session_key, timestamp, provider, model,
     channel, is_baseline, context_json, arms_json, usage_json, duration_ms,
     system_prompt_chars, aborted, error)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11::jsonb, $12::jsonb, $13::jsonb,
        $14, $15, $16, $17)
ON CONFLICT (trace_id) DO NOTHING
"""

_TRACE_COLUMNS = """
trace_id, run_id, session_id, session_key, timestamp, provider, model, channel,
is_baseline, context_json::text AS context_json, arms_json::text AS arms_json,
usage_json::text AS usage_json, duration_ms, system_prompt_chars, aborted, error
"""


class PostgresPosteriorStore(PosteriorStore):
    """PostgreSQL posterior store and trace log, namespaced by learner.

    Table Schema:
        arm_posteriors(learner, arm_id, alpha, beta, pulls, last_updated),
            PRIMARY KEY (learner, arm_id)
        run_traces(trace_id PK, learner, ..., context_json JSONB,
            arms_json JSONB, usage_json JSONB, ...)

    Attributes:
        pool: asyncpg connection pool
        learner: Learner namespace (flat name, no multi-tenancy)
    """

    def __init__(self, pool: Any, learner: str = "curator") -> None:
        """Initialize PostgreSQL posterior store.

        Args:
            pool: asyncpg connection pool
            learner: Learner namespace for every row this store touches
        """
        self.pool = pool
        self.learner = learner
        self._tables_ready = False

    @classmethod
    async def connect(
        cls, database_url: str, learner: str = "curator", pool_size: int = 5
    ) -> "PostgresPosteriorStore":
        """Create a pool and a store on top of it.

        Raises:
            StoreError: If the database is unreachable
        """
        try:
            pool = await asyncpg.create_pool(
                database_url, min_size=1, max_size=pool_size, statement_cache_size=0
            )
        except (OSError, asyncpg.PostgresError) as e:
            raise StoreError(f"Failed to connect to PostgreSQL: {e}") from e
        return cls(pool, learner=learner)

    async def _ensure_table_exists(self) -> None:
        """Create tables on first use."""
        if self._tables_ready:
            return
        async with self.pool.acquire() as conn:
            await conn.execute(_CREATE_TABLES_SQL)
        self._tables_ready = True

    async def load(self) -> dict[str, ArmPosterior]:
        try:
            await self._ensure_table_exists()
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    "SELECT arm_id, alpha, beta, pulls, last_updated "
                    "FROM arm_posteriors WHERE learner = $1",
                    self.learner,
                )
        except Exception as e:
            logger.error(f"Failed to load posteriors for learner={self.learner}: {e}")
            raise StoreError(f"Failed to load posteriors: {e}") from e

        return {
            row["arm_id"]: ArmPosterior(
                arm_id=row["arm_id"],
                alpha=row["alpha"],
                beta=row["beta"],
                pulls=row["pulls"],
                last_updated=row["last_updated"],
            )
            for row in rows
        }

    async def save(self, posterior: ArmPosterior) -> None:
        await self.save_many([posterior])

    async def save_many(self, posteriors: list[ArmPosterior]) -> None:
        if not posteriors:
            return
        try:
            await self._ensure_table_exists()
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.executemany(
                        _UPSERT_POSTERIOR_SQL,
                        [
                            (
                                self.learner,
                                p.arm_id,
                                p.alpha,
                                p.beta,
                                p.pulls,
                                p.last_updated,
                            )
                            for p in posteriors
                        ],
                    )
            logger.debug(f"Saved {len(posteriors)} posteriors for learner={self.learner}")
        except Exception as e:
            logger.error(f"Failed to save posteriors for learner={self.learner}: {e}")
            raise StoreError(f"Failed to save posteriors: {e}") from e

    async def reset(self, arm_id: str | None = None) -> int:
        alpha, beta = RESET_PRIOR
        now = datetime.now(UTC)
        try:
            await self._ensure_table_exists()
            async with self.pool.acquire() as conn:
                if arm_id is None:
                    status = await conn.execute(
                        "UPDATE arm_posteriors SET alpha = $2, beta = $3, pulls = 0, "
                        "last_updated = $4 WHERE learner = $1",
                        self.learner,
                        alpha,
                        beta,
                        now,
                    )
                else:
                    status = await conn.execute(
                        "UPDATE arm_posteriors SET alpha = $3, beta = $4, pulls = 0, "
                        "last_updated = $5 WHERE learner = $1 AND arm_id = $2",
                        self.learner,
                        arm_id,
                        alpha,
                        beta,
                        now,
                    )
        except Exception as e:
            logger.error(f"Failed to reset posteriors for learner={self.learner}: {e}")
            raise StoreError(f"Failed to reset posteriors: {e}") from e

        # asyncpg returns the command tag, e.g. "UPDATE 3"
        count = int(status.split()[-1])
        logger.info(f"Reset {count} posteriors for learner={self.learner}")
        return count

    async def insert_trace(self, trace: RunTrace) -> None:
        row = serialize_trace(trace)
        try:
            await self._ensure_table_exists()
            async with self.pool.acquire() as conn:
                await conn.execute(
                    _INSERT_TRACE_SQL,
                    row["trace_id"],
                    self.learner,
                    row["run_id"],
                    row["session_id"],
                    row["session_key"],
                    row["timestamp"],
                    row["provider"],
                    row["model"],
                    row["channel"],
                    row["is_baseline"],
                    row["context_json"],
                    row["arms_json"],
                    row["usage_json"],
                    row["duration_ms"],
                    row["system_prompt_chars"],
                    row["aborted"],
                    row["error"],
                )
        except Exception as e:
            logger.error(f"Failed to insert trace {trace.trace_id}: {e}")
            raise StoreError(f"Failed to insert trace: {e}") from e

    async def list_traces(
        self,
        limit: int = DEFAULT_TRACE_LIST_LIMIT,
        offset: int = 0,
        session_key: str | None = None,
    ) -> list[RunTrace]:
        sql = f"SELECT {_TRACE_COLUMNS} FROM run_traces WHERE learner = $1"
        params: list[Any] = [self.learner]
        if session_key:
            params.append(session_key)
            sql += f" AND session_key = ${len(params)}"
        sql += " ORDER BY timestamp DESC"
        if limit:
            params.append(limit)
            sql += f" LIMIT ${len(params)}"
        params.append(offset)
        sql += f" OFFSET ${len(params)}"

        try:
            await self._ensure_table_exists()
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(sql, *params)
        except Exception as e:
            logger.error(f"Failed to list traces for learner={self.learner}: {e}")
            raise StoreError(f"Failed to list traces: {e}") from e
        return [deserialize_trace(row) for row in rows]

    async def get_trace(self, trace_id: str) -> RunTrace | None:
        try:
            await self._ensure_table_exists()
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {_TRACE_COLUMNS} FROM run_traces "
                    "WHERE learner = $1 AND trace_id = $2",
                    self.learner,
                    trace_id,
                )
        except Exception as e:
            raise StoreError(f"Failed to get trace: {e}") from e
        return deserialize_trace(row) if row else None

    async def count_traces(self) -> int:
        try:
            await self._ensure_table_exists()
            async with self.pool.acquire() as conn:
                count = await conn.fetchval(
                    "SELECT COUNT(*) FROM run_traces WHERE learner = $1", self.learner
                )
        except Exception as e:
            raise StoreError(f"Failed to count traces: {e}") from e
        return int(count or 0)

    async def close(self) -> None:
        await self.pool.close()
