from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "FATAL": logging.CRITICAL,
    "CRITICAL": logging.CRITICAL,
}

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def resolve_level(name: str | None) -> int:
    return _LEVELS.get((name or "INFO").strip().upper(), logging.INFO)


def setup_logging(level: str | None = "INFO", fmt: str | None = "text") -> None:
    handler = logging.StreamHandler(sys.stderr)
    if (fmt or "").lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(resolve_level(level))

    # Third-party clients are chatty at DEBUG.
    for noisy in ("urllib3", "httpx", "openai", "google"):
        logging.getLogger(noisy).setLevel(max(logging.WARNING, root.level))
