from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List

CONTENT_TYPES = {
    ".html": "text/html",
    ".png": "image/png",
    ".json": "application/json",
    ".css": "text/css",
    ".gif": "image/gif",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".md": "text/markdown",
    ".txt": "text/plain",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"

REPORT_INDEX = "index.html"


def content_type(key: str) -> str:
    name = key.rsplit("/", 1)[-1].lower()
    dot = name.rfind(".")
    if dot == -1:
        return DEFAULT_CONTENT_TYPE
    return CONTENT_TYPES.get(name[dot:], DEFAULT_CONTENT_TYPE)


def folder_path(ts: datetime) -> str:
    """YYYY/MM/DD/PropagationReport-YYYY-MM-DD-HH-MM-SS, always in UTC."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime("%Y/%m/%d/PropagationReport-%Y-%m-%d-%H-%M-%S")


def normalize_prefix(prefix: str) -> str:
    prefix = (prefix or "").strip("/")
    return prefix + "/" if prefix else ""


def select_keys(keys: Iterable[str], prefix: str, recursive: bool) -> List[str]:
    """
    Listing over a flat key space.
    Recursive: every key below the prefix. Otherwise: immediate children,
    sub-directories reported once without a trailing slash. The prefix itself
    is never an entry.
    """
    base = normalize_prefix(prefix)
    out: list[str] = []
    seen: set[str] = set()
    for key in keys:
        if not key.startswith(base) or key == base:
            continue
        rest = key[len(base):]
        if not recursive and "/" in rest:
            entry = base + rest.split("/", 1)[0]
        else:
            entry = key
        if entry not in seen:
            seen.add(entry)
            out.append(entry)
    return sorted(out)


def report_index_keys(keys: Iterable[str]) -> List[str]:
    """index.html keys of stored reports, newest first."""
    return sorted((k for k in keys if k.endswith("/" + REPORT_INDEX)), reverse=True)


class StorageBackend:
    """
    Key-value file store. Keys are slash-separated with no leading slash.
    Back-ends are shared by every request thread and must be thread-safe.
    """
    name = "storage"

    def store(self, key: str, data: bytes) -> None:
        raise NotImplementedError

    def get(self, key: str) -> bytes:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def list(self, prefix: str = "", recursive: bool = False) -> List[str]:
        raise NotImplementedError

    def create_dir(self, key: str) -> None:
        pass

    def close(self) -> None:
        pass
