"""
Durable key-value JSON storage.

The reply engine only needs to write and read small JSON documents
(stats snapshots). JsonFileStore keeps one file per key.
"""

import asyncio
import json
import os
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from replybot.errors import PersistenceFailure


class DurableStore(ABC):
    """
    Key-value store for JSON documents.

    Implementations report storage problems as PersistenceFailure.
    """

    @abstractmethod
    async def write_json(self, key: str, value: Any) -> None:
        """Persist a JSON-serializable value under key."""
        pass

    @abstractmethod
    async def read_json(self, key: str) -> Any | None:
        """Read a value, or None if the key does not exist."""
        pass


class JsonFileStore(DurableStore):
    """
    Stores each key as a JSON file in a directory.

    Each write goes to its own temp file and is renamed into place, so
    readers never see a half-written document and concurrent writes to one
    key do not collide.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise PersistenceFailure(f"Invalid storage key: {key!r}")
        return self.directory / key

    async def write_json(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            await asyncio.to_thread(self._write, path, value)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceFailure(f"Failed to write {key}: {e}") from e

    async def read_json(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return await asyncio.to_thread(self._read, path)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceFailure(f"Failed to read {key}: {e}") from e

    def _write(self, path: Path, value: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        finally:
            tmp_path.unlink(missing_ok=True)

    def _read(self, path: Path) -> Any:
        with open(path, encoding="utf-8") as f:
            return json.load(f)


class MemoryStore(DurableStore):
    """In-process store, used when no storage directory is configured."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def write_json(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise PersistenceFailure(f"Failed to write {key}: {e}") from e

    async def read_json(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None
