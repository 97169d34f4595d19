"""
Key-value persistence for the monitor state.
The store is deliberately dumb: named operations and atomicity live in
``StateRepository``.
"""

import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Union

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract async key-value store.

    Implementations include:
    - JsonFileStore: one JSON document on disk
    - FakeStore (tests): in-memory dictionary
    """

    @abstractmethod
    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return the stored values for ``keys``; absent keys are omitted."""
        ...

    @abstractmethod
    async def set(self, data: dict[str, Any]) -> None:
        """Store every key of ``data``, leaving other keys untouched."""
        ...

    @abstractmethod
    async def remove(self, keys: Iterable[str]) -> None:
        """Delete ``keys``; missing keys are ignored."""
        ...


class JsonFileStore(KeyValueStore):
    """Store backed by a single JSON file, replaced atomically on write."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            content = f.read()
        if not content.strip():
            return {}
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"State file {self.path} does not hold a JSON object")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _update(self, data: dict[str, Any]) -> None:
        current = self._read()
        current.update(data)
        self._write(current)

    def _delete(self, keys: list[str]) -> None:
        current = self._read()
        if any(key in current for key in keys):
            for key in keys:
                current.pop(key, None)
            self._write(current)

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        wanted = list(keys)
        data = await asyncio.to_thread(self._read)
        return {key: data[key] for key in wanted if key in data}

    async def set(self, data: dict[str, Any]) -> None:
        await asyncio.to_thread(self._update, dict(data))
        logger.debug(f"Persisted keys {sorted(data)} to {self.path}")

    async def remove(self, keys: Iterable[str]) -> None:
        await asyncio.to_thread(self._delete, list(keys))
