"""Durable ``{collection_id: {key: value}}`` JSON documents on disk.

Writes go to a temporary file in the same directory which is fsynced and then
renamed over the target, so a crash mid-write never leaves a truncated file.
Every read-modify-write runs under the store's lock.
"""

import json
import os
import tempfile
import threading
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Iterator

import structlog

from syosetu_reader.errors import StorageReadDegraded, StorageWriteError

logger = structlog.get_logger()

StoreData = dict[str, dict[str, str]]


class JsonFileStore:
    """A whole-file JSON key-value document with atomic replacement."""

    def __init__(self, path: Path, strict_reads: bool = False):
        """Initialize the store.

        Args:
            path: Backing JSON file
            strict_reads: Raise StorageReadDegraded on a corrupt file instead
                of treating it as empty
        """
        self.path = Path(path)
        self.strict_reads = strict_reads
        self._lock = threading.RLock()

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the store's write lock (re-entrant)."""
        with self._lock:
            yield

    def ensure_writable(self) -> None:
        """Create the parent directory and check it accepts new files.

        Raises:
            StorageWriteError: If the directory cannot be created or written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(dir=self.path.parent, prefix=".writecheck-"):
                pass
        except OSError as e:
            raise StorageWriteError(f"cannot write to {self.path.parent}: {e}") from e

    def read_all(self) -> StoreData:
        """Read and validate the whole document.

        Returns:
            The stored data, or an empty dict if the file is missing, or
            (in lenient mode) unreadable or corrupt
        """
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return self._validate(data)
        except (OSError, ValueError) as e:
            logger.warning(
                "store_read_degraded",
                path=str(self.path),
                error=str(e),
                strict=self.strict_reads,
            )
            if self.strict_reads:
                raise StorageReadDegraded(f"{self.path}: {e}") from e
            return {}

    def _validate(self, data: object) -> StoreData:
        if not isinstance(data, dict):
            raise ValueError("top level is not an object")
        for collection, entries in data.items():
            if not isinstance(entries, dict):
                raise ValueError(f"collection {collection!r} is not an object")
            for key, value in entries.items():
                if not isinstance(value, str):
                    raise ValueError(f"value for {collection!r}/{key!r} is not a string")
        return data

    def write_all(self, data: StoreData) -> None:
        """Atomically replace the whole document.

        Raises:
            StorageWriteError: If writing or renaming fails; the previous
                file is left untouched
        """
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp_file:
                tmp_path = tmp_file.name
                json.dump(data, tmp_file, ensure_ascii=False, indent=2)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path:
                with suppress(OSError):
                    os.remove(tmp_path)
            logger.error("store_write_failed", path=str(self.path), error=str(e))
            raise StorageWriteError(f"{self.path}: {e}") from e

    def collections(self) -> list[str]:
        """List collection ids present in the document."""
        return sorted(self.read_all())
