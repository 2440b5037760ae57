from __future__ import annotations

from pathlib import Path

from radiocast.config.env_config import AppSettings
from radiocast.domain.errors import ConfigError
from radiocast.repositories.local_storage import LOCAL_ROOT, LocalStorage
from radiocast.repositories.storage import StorageBackend

DEPLOYMENTS = ("local", "gcs")


def create_storage(deployment: str, settings: AppSettings) -> StorageBackend:
    if deployment == "gcs":
        from radiocast.repositories.gcs_storage import GCSStorage

        return GCSStorage(settings.gcs_bucket, project_id=settings.gcp_project_id)
    if deployment == "local":
        return LocalStorage(Path(LOCAL_ROOT))
    raise ConfigError(f"unknown deployment {deployment!r} (expected one of {', '.join(DEPLOYMENTS)})")
