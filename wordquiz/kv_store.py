"""
Durable namespaced key/value store.

Values are plain strings (callers serialize JSON themselves). The file-backed
store keeps one file per key so that a cache write never rewrites the category
collection; each write goes to a temp file first and is swapped in with
os.replace. File I/O runs in a worker thread to keep the event loop free.
"""

import os
import asyncio
import hashlib
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from .errors import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value or None when the key is unknown."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key; raises StorageError when the write fails."""


def hash_key(namespace: str, key: str) -> str:
    raw = f"{namespace}|{key}".encode("utf-8", "ignore")
    return hashlib.sha1(raw).hexdigest()


class FileKeyValueStore(KeyValueStore):
    def __init__(self, root: Path, namespace: str = "wordquiz"):
        self.namespace = namespace
        self.root = Path(root) / namespace

    def _path(self, key: str) -> Path:
        return self.root / f"{hash_key(self.namespace, key)}.json"

    def _read(self, path: Path) -> Optional[str]:
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def _write(self, path: Path, value: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    async def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return await asyncio.to_thread(self._read, path)
        except OSError as e:
            logger.error(f"Failed to read key '{key}' from {path}: {e}")
            return None

    async def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            await asyncio.to_thread(self._write, path, value)
        except OSError as e:
            logger.error(f"Failed to write key '{key}' to {path}: {e}")
            raise StorageError(f"could not write '{key}': {e}") from e


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store; handy for tests and throwaway sessions."""

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(data or {})
        self.writes = 0

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value
        self.writes += 1
