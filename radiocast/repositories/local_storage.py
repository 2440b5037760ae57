from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import List

from radiocast.domain.errors import StorageError, StorageNotFoundError, StorageWriteError
from radiocast.repositories.storage import StorageBackend, select_keys

logger = logging.getLogger(__name__)

LOCAL_ROOT = "local_gcs"
# Name prefix of the per-write staging files; never reported by list().
STAGING_PREFIX = ".radiocast-staging-"


class LocalStorage(StorageBackend):
    """
    Directory tree standing in for the bucket during local development.
    Keys map to files below `root`.
    """
    name = "local"

    def __init__(self, root: Path | str = LOCAL_ROOT):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info("Local storage rooted at %s", self.root)

    def _path(self, key: str) -> Path:
        path = (self.root / key.lstrip("/")).resolve()
        if path != self.root and self.root not in path.parents:
            raise StorageError(f"key escapes storage root: {key}")
        return path

    def store(self, key: str, data: bytes) -> None:
        path = self._path(key)
        tmp = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(dir=path.parent, prefix=STAGING_PREFIX, delete=False) as fh:
                tmp = Path(fh.name)
                fh.write(data)
            os.chmod(tmp, 0o644)
            os.replace(tmp, path)
        except OSError as e:
            if tmp is not None:
                tmp.unlink(missing_ok=True)
            raise StorageWriteError(f"write {key}: {e}") from e

    def get(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise StorageNotFoundError(key)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"read {key}: {e}") from e

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def list(self, prefix: str = "", recursive: bool = False) -> List[str]:
        base = self._path(prefix) if prefix.strip("/") else self.root
        if not base.is_dir():
            return []
        if recursive:
            candidates = [p for p in base.rglob("*") if p.is_file()]
        else:
            candidates = list(base.iterdir())
        keys = [p.relative_to(self.root).as_posix() for p in candidates if not p.name.startswith(STAGING_PREFIX)]
        return select_keys(keys, prefix, recursive)

    def create_dir(self, key: str) -> None:
        try:
            self._path(key).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageWriteError(f"mkdir {key}: {e}") from e
