"""Key-value storage backends for the TrustLink registry.

Every registry component receives a `Store` explicitly; there is no ambient
global storage. Values must be JSON-compatible.
"""

from __future__ import annotations

import copy
import fcntl
import json
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Any

logger = logging.getLogger(__name__)


class Store(ABC):
    """Abstract key-value store with all-or-nothing transactions.

    `transaction()` holds a re-entrant lock for its whole duration, which
    serializes writers. Nested transactions join the outermost one.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._depth = 0

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under `key`, or `default`."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store `value` under `key`, replacing any previous value."""

    @abstractmethod
    def has(self, key: str) -> bool:
        """Return True if `key` holds a value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove `key`; missing keys are ignored."""

    def extend_ttl(self, key: str, lifetime: int) -> None:
        """Retention hook called after persistent writes.

        Backends without expiry ignore it.
        """

    @property
    def in_transaction(self) -> bool:
        """Return True while a transaction is open on this store."""
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator[Store]:
        """Apply every write in the block, or none of them."""
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                self._begin()
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if outermost:
                    logger.debug("Rolling back store transaction")
                    self._rollback()
                raise
            self._depth -= 1
            if outermost:
                self._commit()

    def _begin(self) -> None:
        """Start tracking writes for the outermost transaction."""

    def _commit(self) -> None:
        """Make the outermost transaction's writes durable."""

    def _rollback(self) -> None:
        """Discard the outermost transaction's writes."""


_MISSING = object()


class InMemoryStore(Store):
    """Dictionary-backed store, suitable for tests and single-process use.

    Transactions keep an undo log holding the previous value of each key
    they touch, so rollback cost is proportional to the writes made.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        super().__init__()
        self._data: dict[str, Any] = copy.deepcopy(data) if data else {}
        self._undo: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._remember(key)
            self._data[key] = copy.deepcopy(value)

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def delete(self, key: str) -> None:
        with self._lock:
            self._remember(key)
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        """Return all stored keys in insertion order."""
        with self._lock:
            return list(self._data)

    def _remember(self, key: str) -> None:
        """Record the value `key` held before its first write in this transaction."""
        if self.in_transaction and key not in self._undo:
            # Stored values are private copies and never mutated in place.
            self._undo[key] = self._data.get(key, _MISSING)

    def _begin(self) -> None:
        self._undo = {}

    def _commit(self) -> None:
        self._undo = {}

    def _rollback(self) -> None:
        for key, previous in self._undo.items():
            if previous is _MISSING:
                self._data.pop(key, None)
            else:
                self._data[key] = previous
        self._undo = {}


class JsonFileStore(InMemoryStore):
    """Store persisted as a single JSON document on disk.

    Every write runs in a transaction that holds an exclusive `flock` on a
    sidecar lock file, re-reads the document, and replaces the file
    atomically on commit. Separate processes sharing the file are therefore
    serialized. Reads outside a transaction reload the document when it has
    changed on disk.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self._lock_file: IO[str] | None = None
        self._signature: tuple[int, int] | None = None
        super().__init__(self._load(self.path))
        self._signature = self._file_signature()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            self._refresh()
            return super().get(key, default)

    def has(self, key: str) -> bool:
        with self._lock:
            self._refresh()
            return super().has(key)

    def keys(self) -> list[str]:
        with self._lock:
            self._refresh()
            return super().keys()

    def set(self, key: str, value: Any) -> None:
        with self.transaction():
            super().set(key, value)

    def delete(self, key: str) -> None:
        with self.transaction():
            super().delete(key)

    def _begin(self) -> None:
        self._acquire(fcntl.LOCK_EX)
        try:
            self._data = self._load(self.path)
        except BaseException:
            self._release()
            raise
        super()._begin()

    def _commit(self) -> None:
        try:
            self._flush()
        except BaseException:
            logger.warning("Flush to %s failed, discarding transaction", self.path)
            self._rollback()
            raise
        super()._commit()
        self._release()

    def _rollback(self) -> None:
        try:
            super()._rollback()
        finally:
            self._release()

    def _refresh(self) -> None:
        """Reload the document under a shared lock if another writer changed it."""
        if self.in_transaction:
            return
        signature = self._file_signature()
        if signature == self._signature:
            return
        self._acquire(fcntl.LOCK_SH)
        try:
            self._data = self._load(self.path)
            self._signature = self._file_signature()
        finally:
            self._release()
        logger.debug("Reloaded %s", self.path)

    def _acquire(self, mode: int) -> None:
        """Take the sidecar file lock in `mode`."""
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock_file = open(self.lock_path, "a")
        try:
            fcntl.flock(lock_file.fileno(), mode)
        except BaseException:
            lock_file.close()
            raise
        self._lock_file = lock_file

    def _release(self) -> None:
        """Drop the sidecar file lock if held."""
        if self._lock_file is None:
            return
        try:
            fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_UN)
        finally:
            self._lock_file.close()
            self._lock_file = None

    def _file_signature(self) -> tuple[int, int] | None:
        """Return (mtime_ns, size) of the document, or None if it is missing."""
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def _flush(self) -> None:
        """Write the whole document to disk via a temporary file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(self._data, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self.path)
        self._signature = self._file_signature()
        logger.debug("Flushed %d keys to %s", len(self._data), self.path)

    @staticmethod
    def _load(path: Path) -> dict[str, Any]:
        """Load the JSON document, or start empty if the file is missing."""
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in store file: {e}")
        if not isinstance(data, dict):
            raise ValueError("Store file must contain a JSON object")
        return data
