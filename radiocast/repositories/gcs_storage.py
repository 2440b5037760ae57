from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from google.api_core import exceptions as gapi_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage

from radiocast.domain.errors import StorageError, StorageNotFoundError, StorageWriteError
from radiocast.repositories.storage import StorageBackend, content_type, normalize_prefix

logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=3600"


class GCSStorage(StorageBackend):
    """Google Cloud Storage bucket. Object names are the storage keys."""
    name = "gcs"

    def __init__(self, bucket_name: str, project_id: str = "", client: Optional[storage.Client] = None):
        if not bucket_name:
            raise StorageError("GCS bucket name is empty")
        try:
            self._client = client or storage.Client(project=project_id or None)
        except auth_exceptions.GoogleAuthError as e:
            raise StorageError(f"failed to create GCS client: {e}") from e
        self.bucket_name = bucket_name
        self._bucket = self._client.bucket(bucket_name)
        logger.info("GCS storage using bucket gs://%s", bucket_name)

    def store(self, key: str, data: bytes) -> None:
        key = key.lstrip("/")
        blob = self._bucket.blob(key)
        blob.cache_control = CACHE_CONTROL
        blob.metadata = {
            "generated-at": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "filename": key.rsplit("/", 1)[-1],
        }
        logger.debug("Storing gs://%s/%s (%d bytes)", self.bucket_name, key, len(data))
        try:
            blob.upload_from_string(data, content_type=content_type(key))
        except gapi_exceptions.GoogleAPIError as e:
            raise StorageWriteError(f"write {key}: {e}") from e

    def get(self, key: str) -> bytes:
        key = key.lstrip("/")
        try:
            return self._bucket.blob(key).download_as_bytes()
        except gapi_exceptions.NotFound:
            raise StorageNotFoundError(key) from None
        except gapi_exceptions.GoogleAPIError as e:
            raise StorageError(f"read {key}: {e}") from e

    def exists(self, key: str) -> bool:
        try:
            return self._bucket.blob(key.lstrip("/")).exists()
        except gapi_exceptions.GoogleAPIError as e:
            raise StorageError(f"exists {key}: {e}") from e

    def list(self, prefix: str = "", recursive: bool = False) -> List[str]:
        base = normalize_prefix(prefix)
        try:
            it = self._client.list_blobs(self.bucket_name, prefix=base or None, delimiter=None if recursive else "/")
            keys = [b.name for b in it if b.name != base]
            # Sub-"directories" are only known once the pages have been consumed.
            dirs = [] if recursive else [p.rstrip("/") for p in it.prefixes]
        except gapi_exceptions.GoogleAPIError as e:
            raise StorageError(f"list {prefix}: {e}") from e
        return sorted(set(keys) | set(dirs))

    def close(self) -> None:
        self._client.close()
