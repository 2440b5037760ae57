from __future__ import annotations

import threading
from typing import Dict, List

from radiocast.domain.errors import StorageNotFoundError
from radiocast.repositories.storage import StorageBackend, select_keys


class MemoryStorage(StorageBackend):
    """Dict-backed store for tests and --test-charts runs."""
    name = "memory"

    def __init__(self, files: Dict[str, bytes] | None = None):
        self._files: Dict[str, bytes] = dict(files or {})
        self._lock = threading.Lock()

    def store(self, key: str, data: bytes) -> None:
        with self._lock:
            self._files[key.lstrip("/")] = bytes(data)

    def get(self, key: str) -> bytes:
        with self._lock:
            try:
                return self._files[key.lstrip("/")]
            except KeyError:
                raise StorageNotFoundError(key) from None

    def exists(self, key: str) -> bool:
        with self._lock:
            return key.lstrip("/") in self._files

    def list(self, prefix: str = "", recursive: bool = False) -> List[str]:
        with self._lock:
            keys = list(self._files)
        return select_keys(keys, prefix, recursive)

    def snapshot(self) -> Dict[str, bytes]:
        with self._lock:
            return dict(self._files)
