"""JSON state file persistence with serialized, all-or-nothing transactions."""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from .constants import LOCK_FILE_SUFFIX
from .errors import StorageError
from .models import Database


def load_database(path: Path) -> Database:
    """Load database from JSON file. Returns an empty Database if file does not exist."""
    if not path.exists():
        return Database()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return Database.model_validate(data)
    except json.JSONDecodeError as exc:
        raise StorageError(f"Invalid JSON in data file: {exc}") from exc
    except PydanticValidationError as exc:
        raise StorageError(f"Invalid data file structure: {exc}") from exc
    except OSError as exc:
        raise StorageError(f"Failed to read data file: {path}: {exc}") from exc


def save_database(db: Database, path: Path) -> None:
    """Serialize database to JSON and atomically replace the file at path.

    Uses indent=2 and preserves field declaration order.
    Creates parent directories if needed.
    Appends a trailing newline.
    """
    data = db.model_dump(mode="json")
    text = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    try:
        _atomic_write_text(path, text)
    except OSError as exc:
        raise StorageError(f"Failed to save data file: {path}: {exc}") from exc


class Store:
    """Holds the database and hands out transactional working copies.

    With a path, every transaction re-reads the file under an exclusive
    sidecar lock and commits by atomic replace, so separate processes sharing
    one data file are serialized too. Without a path the store is memory-only.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._lock = threading.RLock()
        self._db = load_database(path) if path is not None else Database()
        self._in_transaction = False

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """Yield a working copy; commit it if the block returns normally.

        Any exception discards every change made inside the block.
        Nested use joins the outer transaction.
        """
        with self._lock:
            if self._in_transaction:
                yield self._working
                return
            with self._file_lock():
                if self.path is not None:
                    self._db = load_database(self.path)
                self._working = self._db.model_copy(deep=True)
                self._in_transaction = True
                try:
                    yield self._working
                    if self.path is not None:
                        save_database(self._working, self.path)
                    self._db = self._working
                finally:
                    self._in_transaction = False
                    del self._working

    @contextmanager
    def snapshot(self) -> Iterator[Database]:
        """Yield a consistent read-only copy of the current state."""
        with self._lock:
            if self._in_transaction:
                yield self._working
                return
            with self._file_lock():
                if self.path is not None:
                    self._db = load_database(self.path)
                copy = self._db.model_copy(deep=True)
        yield copy

    @contextmanager
    def _file_lock(self) -> Iterator[None]:
        if self.path is None:
            yield
            return
        with _locked_file(self.path):
            yield


@contextmanager
def _locked_file(path: Path) -> Iterator[None]:
    """Hold an exclusive lock on a '.lock' sidecar so the data file can be replaced."""
    lock_path = path.with_suffix(path.suffix + LOCK_FILE_SUFFIX)
    try:
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock_handle = lock_path.open("a+", encoding="utf-8")
    except OSError as exc:
        raise StorageError(f"Failed to open lock file: {lock_path}: {exc}") from exc
    with lock_handle:
        fcntl.flock(lock_handle.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(lock_handle.fileno(), fcntl.LOCK_UN)


def _atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_handle:
            tmp_handle.write(content)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
