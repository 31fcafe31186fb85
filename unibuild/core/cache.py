"""Fingerprint-keyed outcome cache with optional SQLite persistence.

The cache is the only shared mutable structure of an orchestration run.
Every key has its own re-entrant lock, so the lookup-compute-record
sequence in ``get_or_compute`` is atomic per fingerprint: concurrent
callers for the same key wait for the first one and then read its
result.

Durable storage is injectable.  ``InMemoryOutcomeStore`` keeps nothing
beyond the process; ``SqliteOutcomeStore`` persists outcomes across
runs, one table per cache namespace.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Generic, Protocol, TypeVar, runtime_checkable

from pydantic import TypeAdapter

T = TypeVar("T")


@runtime_checkable
class OutcomeStore(Protocol):
    """Persistent key -> JSON text mapping."""

    def get(self, key: str) -> str | None:
        ...

    def put(self, key: str, text: str) -> None:
        ...


class InMemoryOutcomeStore:
    """Dict-backed store, lives as long as the process."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, text: str) -> None:
        with self._lock:
            self._data[key] = text

    def __len__(self) -> int:
        return len(self._data)


_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    fingerprint   TEXT PRIMARY KEY,
    outcome_json  TEXT NOT NULL
);
"""


class SqliteOutcomeStore:
    """SQLite-backed store, one table per namespace.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    namespace:
        Table name, e.g. ``"extraction"`` or ``"build"``.
    """

    def __init__(self, db_path: Path, namespace: str) -> None:
        if not namespace.isidentifier():
            raise ValueError(f"Invalid outcome store namespace: {namespace!r}")
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._table = f"outcomes_{namespace}"
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_TABLE.format(table=self._table))
            conn.commit()

    def get(self, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT outcome_json FROM {self._table} WHERE fingerprint = ?",
                (key,),
            ).fetchone()
        return row[0] if row else None

    def put(self, key: str, text: str) -> None:
        with self._connect() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO {self._table} (fingerprint, outcome_json) VALUES (?, ?)",
                (key, text),
            )
            conn.commit()


class OutcomeCache(Generic[T]):
    """Typed, fingerprint-keyed outcome cache.

    Outcomes are always kept in memory for the life of the cache object.
    Only outcomes accepted by the ``durable`` predicate are written to the
    backing store, so failures are retried by the next process while
    successes are reused.

    Parameters
    ----------
    adapter:
        ``TypeAdapter`` used to (de)serialize outcomes for the store.
    store:
        Optional durable store.
    """

    def __init__(self, adapter: TypeAdapter[T], store: OutcomeStore | None = None) -> None:
        self._adapter = adapter
        self._store = store
        self._memory: dict[str, T] = {}
        self._guard = threading.Lock()
        # Only keys without a recorded outcome hold a lock here
        self._locks: dict[str, threading.RLock] = {}

    def _lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    def _remember(self, key: str, value: T) -> None:
        # Callers still waiting on the dropped lock find the value in memory
        with self._guard:
            self._memory[key] = value
            self._locks.pop(key, None)

    def get(self, key: str) -> T | None:
        """Return the recorded outcome for *key*, or None."""
        value = self._memory.get(key)
        if value is not None or self._store is None:
            return value
        with self._lock_for(key):
            if key in self._memory:
                return self._memory[key]
            text = self._store.get(key)
            if text is None:
                return None
            value = self._adapter.validate_json(text)
            self._remember(key, value)
            return value

    def put(self, key: str, value: T, *, durable: bool = True) -> None:
        """Record *value* for *key*; write through to the store if durable."""
        with self._lock_for(key):
            if durable and self._store is not None:
                self._store.put(key, self._adapter.dump_json(value).decode("utf-8"))
            self._remember(key, value)

    def get_or_compute(
        self,
        key: str,
        compute: Callable[[], T],
        *,
        durable: Callable[[T], bool] = lambda value: True,
    ) -> T:
        """Return the outcome for *key*, computing it at most once.

        The per-key lock is held while computing, so concurrent callers
        with the same key block until the first caller has recorded its
        result.  Exceptions from *compute* propagate and record nothing.
        """
        existing = self.get(key)
        if existing is not None:
            return existing
        with self._lock_for(key):
            existing = self.get(key)
            if existing is not None:
                return existing
            value = compute()
            self.put(key, value, durable=durable(value))
            return value

    def pending_locks(self) -> int:
        """Number of keys that have been asked for but have no outcome yet."""
        with self._guard:
            return len(self._locks)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
