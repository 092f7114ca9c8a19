"""JSON document store (one file per document, fcntl.flock + atomic write).

Documents live at ``<root>/<collection>/<doc_id>.json``. Every collection has a
``.lock`` file; readers take a shared lock on it and writers an exclusive one,
so a read-modify-write inside :meth:`JsonDocumentStore.transaction` is atomic
with respect to every other store operation on that collection.
"""

import fcntl
import json
import os
import re
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import structlog

from ielts_mock_test.errors import StorageError

logger = structlog.get_logger()

_DOC_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
LOCK_FILENAME = ".lock"
# In-flight writes; never matched by the "*.json" document glob.
TEMP_PREFIX = "."
TEMP_SUFFIX = ".tmp"


def _valid_doc_id(doc_id: str) -> bool:
    return bool(_DOC_ID_RE.match(doc_id))


@contextmanager
def _storage_errors(action: str, collection: str) -> Iterator[None]:
    try:
        yield
    except (OSError, json.JSONDecodeError) as e:
        logger.error("document_store_failed", action=action, collection=collection, error=str(e))
        raise StorageError(f"Failed to {action} {collection}") from e


class Collection:
    """Unlocked view of one collection, used while the caller holds its lock."""

    def __init__(self, directory: Path, name: str):
        self.directory = directory
        self.name = name

    def _path(self, doc_id: str) -> Path:
        return self.directory / f"{doc_id}.json"

    def get(self, doc_id: str) -> dict | None:
        if not _valid_doc_id(doc_id):
            return None
        path = self._path(doc_id)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def find(self, **filters: Any) -> list[dict]:
        matches = []
        for path in sorted(self.directory.glob("*.json")):
            if not _valid_doc_id(path.stem):
                continue
            data = json.loads(path.read_text(encoding="utf-8"))
            if all(data.get(key) == value for key, value in filters.items()):
                matches.append(data)
        return matches

    def put(self, doc_id: str, data: dict) -> None:
        if not _valid_doc_id(doc_id):
            raise StorageError(f"Invalid document id for {self.name}: {doc_id!r}")
        with _storage_errors("save", self.name):
            tmp = tempfile.NamedTemporaryFile(
                "w",
                dir=self.directory,
                delete=False,
                prefix=TEMP_PREFIX,
                suffix=TEMP_SUFFIX,
                encoding="utf-8",
            )
            try:
                with tmp:
                    json.dump(data, tmp, indent=2, default=str)
                os.replace(tmp.name, self._path(doc_id))
            except BaseException:
                Path(tmp.name).unlink(missing_ok=True)
                raise


class JsonDocumentStore:
    """File-backed document database.

    Args:
        root: Directory holding one sub-directory per collection.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _collection(self, name: str) -> Collection:
        directory = self.root / name
        directory.mkdir(parents=True, exist_ok=True)
        return Collection(directory, name)

    @contextmanager
    def _lock(self, name: str, mode: int) -> Iterator[Collection]:
        with _storage_errors("access", name):
            collection = self._collection(name)
            lock_file = open(collection.directory / LOCK_FILENAME, "a")
        try:
            fcntl.flock(lock_file, mode)
            yield collection
        finally:
            fcntl.flock(lock_file, fcntl.LOCK_UN)
            lock_file.close()

    @contextmanager
    def transaction(self, name: str) -> Iterator[Collection]:
        """Hold the collection's exclusive lock for a read-modify-write."""
        with self._lock(name, fcntl.LOCK_EX) as collection:
            with _storage_errors("access", name):
                yield collection

    def get(self, name: str, doc_id: str) -> dict | None:
        with self._lock(name, fcntl.LOCK_SH) as collection:
            with _storage_errors("load", name):
                return collection.get(doc_id)

    def find(self, name: str, **filters: Any) -> list[dict]:
        with self._lock(name, fcntl.LOCK_SH) as collection:
            with _storage_errors("load", name):
                return collection.find(**filters)

    def put(self, name: str, doc_id: str, data: dict) -> None:
        with self.transaction(name) as collection:
            collection.put(doc_id, data)

    def update(self, name: str, doc_id: str, mutate: Callable[[dict], dict]) -> dict | None:
        """Apply ``mutate`` to a stored document atomically.

        Returns the written document, or None if ``doc_id`` does not exist.
        """
        with self.transaction(name) as collection:
            current = collection.get(doc_id)
            if current is None:
                return None
            updated = mutate(current)
            collection.put(doc_id, updated)
            return updated
