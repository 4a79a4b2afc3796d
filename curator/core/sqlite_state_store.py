"""SQLite implementation of PosteriorStore.

Stores posteriors and the run trace log in an embedded database file
(``<store_dir>/learning.db``). WAL journaling plus a busy timeout lets a
dashboard read while the agent process writes. Blocking sqlite3 calls run
in a worker thread so the event loop is never stalled.

Table Schema:
    run_traces(trace_id PK, run_id, session_id, session_key, timestamp,
               provider, model, channel, is_baseline, context_json,
               arms_json, usage_json, duration_ms, system_prompt_chars,
               aborted, error)
    arm_posteriors(arm_id PK, alpha, beta, pulls, last_updated)
"""

import asyncio
import logging
import sqlite3
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable, TypeVar

from curator.core.defaults import (
    DEFAULT_TRACE_LIST_LIMIT,
    RESET_PRIOR,
    SQLITE_BUSY_TIMEOUT_MS,
    SQLITE_DB_FILENAME,
)
from curator.core.models import ArmPosterior, RunTrace
from curator.core.state_store import (
    PosteriorStore,
    StoreError,
    deserialize_trace,
    serialize_trace,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS run_traces (
    trace_id TEXT PRIMARY KEY,
    run_id TEXT NOT NULL,
    session_id TEXT NOT NULL,
    session_key TEXT,
    timestamp INTEGER NOT NULL,
    provider TEXT,
    model TEXT,
    channel TEXT,
    is_baseline INTEGER NOT NULL DEFAULT 0,
    context_json TEXT NOT NULL,
    arms_json TEXT NOT NULL,
    usage_json TEXT,
    duration_ms INTEGER,
    system_prompt_chars INTEGER,
    aborted INTEGER NOT NULL DEFAULT 0,
    error TEXT
);
CREATE INDEX IF NOT EXISTS idx_traces_session ON run_traces(session_key, timestamp);
CREATE INDEX IF NOT EXISTS idx_traces_timestamp ON run_traces(timestamp);
CREATE INDEX IF NOT EXISTS idx_traces_baseline ON run_traces(is_baseline);

CREATE TABLE IF NOT EXISTS arm_posteriors (
    arm_id TEXT PRIMARY KEY,
    alpha REAL NOT NULL DEFAULT 1.0,
    beta REAL NOT NULL DEFAULT 1.0,
    pulls INTEGER NOT NULL DEFAULT 0,
    last_updated INTEGER NOT NULL
);
"""

_UPSERT_POSTERIOR = """
INSERT OR REPLACE INTO arm_posteriors (arm_id, alpha, beta, pulls, last_updated)
VALUES (?, ?, ?, ?, ?)
"""

_INSERT_TRACE = """
INSERT OR REPLACE INTO run_traces
    (trace_id, run_id, session_id, session_key, timestamp, provider, model, channel,
     is_baseline, context_json, arms_json, usage_json, duration_ms,
     system_prompt_chars, aborted, error)
VALUES (:trace_id, :run_id, :session_id, :session_key, :timestamp, :provider, :model,
        :channel, :is_baseline, :context_json, :arms_json, :usage_json, :duration_ms,
        :system_prompt_chars, :aborted, :error)
"""


def _to_epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def _from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=UTC)


def _posterior_params(posterior: ArmPosterior) -> tuple[Any, ...]:
    return (
        posterior.arm_id,
        posterior.alpha,
        posterior.beta,
        posterior.pulls,
        _to_epoch_ms(posterior.last_updated),
    )


class SqlitePosteriorStore(PosteriorStore):
    """Embedded SQLite posterior store and trace log.

    Attributes:
        db_path: Path to the database file (":memory:" for an ephemeral db)

    Example:
        >>> store = SqlitePosteriorStore.open("~/.curator")
        >>> posteriors = await store.load()
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = str(db_path)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=SQLITE_BUSY_TIMEOUT_MS / 1000,
            )
            self._conn.row_factory = sqlite3.Row
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute(f"PRAGMA busy_timeout = {SQLITE_BUSY_TIMEOUT_MS}")
            self._conn.executescript(_SCHEMA)
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to open learning database at {self.db_path}: {e}") from e
        logger.debug(f"Opened learning database at {self.db_path}")

    @classmethod
    def open(cls, store_dir: str | Path) -> "SqlitePosteriorStore":
        """Open (creating if needed) ``<store_dir>/learning.db``."""
        directory = Path(store_dir).expanduser()
        directory.mkdir(parents=True, exist_ok=True)
        return cls(directory / SQLITE_DB_FILENAME)

    async def _run(self, operation: str, fn: Callable[[sqlite3.Connection], T]) -> T:
        def locked() -> T:
            with self._lock:
                return fn(self._conn)

        try:
            return await asyncio.to_thread(locked)
        except sqlite3.Error as e:
            logger.error(f"SQLite {operation} failed: {e}")
            raise StoreError(f"Failed to {operation}: {e}") from e

    async def load(self) -> dict[str, ArmPosterior]:
        def query(conn: sqlite3.Connection) -> dict[str, ArmPosterior]:
            rows = conn.execute("SELECT * FROM arm_posteriors").fetchall()
            return {
                row["arm_id"]: ArmPosterior(
                    arm_id=row["arm_id"],
                    alpha=row["alpha"],
                    beta=row["beta"],
                    pulls=row["pulls"],
                    last_updated=_from_epoch_ms(row["last_updated"]),
                )
                for row in rows
            }

        return await self._run("load posteriors", query)

    async def save(self, posterior: ArmPosterior) -> None:
        await self.save_many([posterior])

    async def save_many(self, posteriors: list[ArmPosterior]) -> None:
        if not posteriors:
            return

        def write(conn: sqlite3.Connection) -> None:
            # Connection context manager commits, or rolls back on error
            with conn:
                conn.executemany(
                    _UPSERT_POSTERIOR, [_posterior_params(p) for p in posteriors]
                )

        await self._run("save posteriors", write)
        logger.debug(f"Saved {len(posteriors)} posteriors")

    async def reset(self, arm_id: str | None = None) -> int:
        alpha, beta = RESET_PRIOR
        now = _to_epoch_ms(datetime.now(UTC))

        def write(conn: sqlite3.Connection) -> int:
            with conn:
                if arm_id is None:
                    cursor = conn.execute(
                        "UPDATE arm_posteriors SET alpha = ?, beta = ?, pulls = 0, last_updated = ?",
                        (alpha, beta, now),
                    )
                else:
                    cursor = conn.execute(
                        "UPDATE arm_posteriors SET alpha = ?, beta = ?, pulls = 0, last_updated = ? "
                        "WHERE arm_id = ?",
                        (alpha, beta, now, arm_id),
                    )
                return cursor.rowcount

        count = await self._run("reset posteriors", write)
        logger.info(f"Reset {count} posteriors")
        return count

    async def insert_trace(self, trace: RunTrace) -> None:
        row = serialize_trace(trace)
        row["is_baseline"] = int(row["is_baseline"])
        row["aborted"] = int(row["aborted"])

        def write(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute(_INSERT_TRACE, row)

        await self._run("insert trace", write)

    async def list_traces(
        self,
        limit: int = DEFAULT_TRACE_LIST_LIMIT,
        offset: int = 0,
        session_key: str | None = None,
    ) -> list[RunTrace]:
        sql = "SELECT * FROM run_traces"
        params: list[Any] = []
        if session_key:
            sql += " WHERE session_key = ?"
            params.append(session_key)
        sql += " ORDER BY timestamp DESC"
        if limit:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        elif offset:
            sql += " LIMIT -1 OFFSET ?"
            params.append(offset)

        def query(conn: sqlite3.Connection) -> list[RunTrace]:
            return [deserialize_trace(row) for row in conn.execute(sql, params).fetchall()]

        return await self._run("list traces", query)

    async def get_trace(self, trace_id: str) -> RunTrace | None:
        def query(conn: sqlite3.Connection) -> RunTrace | None:
            row = conn.execute(
                "SELECT * FROM run_traces WHERE trace_id = ?", (trace_id,)
            ).fetchone()
            return deserialize_trace(row) if row else None

        return await self._run("get trace", query)

    async def count_traces(self) -> int:
        def query(conn: sqlite3.Connection) -> int:
            row = conn.execute("SELECT COUNT(*) AS cnt FROM run_traces").fetchone()
            return int(row["cnt"])

        return await self._run("count traces", query)

    async def close(self) -> None:
        with self._lock:
            self._conn.close()
