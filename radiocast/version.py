from __future__ import annotations

from pathlib import Path

DEFAULT_VERSION = "0.1.0"


def get_version(version_file: Path | None = None) -> str:
    """Reads the VERSION file at the repo root; falls back to DEFAULT_VERSION."""
    path = version_file or (Path(__file__).resolve().parents[1] / "VERSION")
    try:
        raw = path.read_text(encoding="utf-8").strip()
    except OSError:
        return DEFAULT_VERSION
    return raw or DEFAULT_VERSION
