"""Record storage.

All state lives in three JSON collections, each stored as one flat array of
records. There is no database, no index and no transaction: callers load a
whole collection, modify it in memory and save the whole collection back.

Directory layout (JsonFileStore):

    {data_dir}/
      users.json        ← list of User records
      characters.json   ← list of Character records
      chats.json        ← list of Chat records (messages embedded)

Backends implement the RecordStore protocol and are injected into the
repositories. Two are provided:

    JsonFileStore  — file-backed, for single-node deployment.
    MemoryStore    — in-process, for tests.

Neither backend locks. Two requests doing read-modify-write on the same
collection can interleave and the last save_all wins.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

COLLECTIONS = ("users", "characters", "chats")


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection {collection!r}")


class RecordStore(Protocol):
    def load_all(self, collection: str) -> list[dict[str, Any]]: ...

    def save_all(self, collection: str, records: list[dict[str, Any]]) -> None: ...


class JsonFileStore:
    def __init__(self, data_dir: Path) -> None:
        self._base = Path(data_dir)
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def data_dir(self) -> Path:
        return self._base

    def path_for(self, collection: str) -> Path:
        _check_collection(collection)
        return self._base / f"{collection}.json"

    def load_all(self, collection: str) -> list[dict[str, Any]]:
        """Load every record of a collection. Returns [] if missing or unreadable."""
        path = self.path_for(collection)
        if not path.is_file():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Could not read %s, treating as empty: %s", path, e)
            return []
        if not isinstance(data, list):
            logger.warning("%s does not hold a JSON array, treating as empty", path)
            return []
        return data

    def save_all(self, collection: str, records: list[dict[str, Any]]) -> None:
        """Replace the whole collection file."""
        path = self.path_for(collection)
        fd, tmp = tempfile.mkstemp(dir=self._base, prefix=f".{collection}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise


class MemoryStore:
    def __init__(self) -> None:
        self._data: dict[str, list[dict[str, Any]]] = {}

    def load_all(self, collection: str) -> list[dict[str, Any]]:
        _check_collection(collection)
        return copy.deepcopy(self._data.get(collection, []))

    def save_all(self, collection: str, records: list[dict[str, Any]]) -> None:
        _check_collection(collection)
        self._data[collection] = copy.deepcopy(records)
