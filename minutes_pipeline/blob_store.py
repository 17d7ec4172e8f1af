"""
Content store access.

Recordings are uploaded by the web client before the pipeline runs; this
module only reads them back.  A missing or unreadable object is not a
transient condition, so nothing here is retried.

Two backends are available:

* :class:`SupabaseBlobStore` – the Supabase Storage bucket the upload flow
  writes to.  This is the default.
* :class:`GcsBlobStore` – a Google Cloud Storage bucket, selected with
  ``STORAGE_BACKEND=gcs``.
"""

import logging
from typing import Optional

import requests
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage

from .errors import StorageError

logger = logging.getLogger(__name__)


def _log_size(data: bytes) -> None:
    logger.info(
        "[STORAGE] Downloaded %d bytes (%.2f MB)", len(data), len(data) / 1024 / 1024
    )


class SupabaseBlobStore:
    """Read objects from a Supabase Storage bucket over its REST API."""

    def __init__(
        self,
        url: str,
        service_key: str,
        bucket_name: str,
        *,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._endpoint = f"{url.rstrip('/')}/storage/v1/object/{bucket_name}"
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
        }
        self._timeout = timeout
        self._session = session or requests.Session()
        self.bucket_name = bucket_name

    @staticmethod
    def _error_text(response: requests.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
        return response.text or f"HTTP {response.status_code}"

    def download(self, path: str) -> bytes:
        """Return the raw bytes stored at ``path``.

        Raises:
            StorageError: If the object is missing or cannot be read.
        """
        logger.info("[STORAGE] Downloading %s/%s", self.bucket_name, path)
        url = f"{self._endpoint}/{requests.utils.quote(path.lstrip('/'), safe='/')}"
        try:
            response = self._session.get(url, headers=self._headers, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.error("[STORAGE] Failed to download %s: %s", path, exc)
            raise StorageError(f"Failed to download file: {exc}") from exc
        if not response.ok:
            message = self._error_text(response)
            logger.error("[STORAGE] Failed to download %s: %s", path, message)
            raise StorageError(f"Failed to download file: {message}")
        data = response.content
        _log_size(data)
        return data


class GcsBlobStore:
    """Read objects from a single Cloud Storage bucket.

    The client is created on first download, so missing Google credentials
    surface as a :class:`StorageError` for that run.
    """

    def __init__(self, bucket_name: str, *, client: Optional[storage.Client] = None) -> None:
        self._client = client
        self.bucket_name = bucket_name

    def download(self, path: str) -> bytes:
        """Return the raw bytes stored at ``path``.

        Raises:
            StorageError: If the object is missing or cannot be read.
        """
        logger.info("[STORAGE] Downloading gs://%s/%s", self.bucket_name, path)
        try:
            if self._client is None:
                self._client = storage.Client()
            data = self._client.bucket(self.bucket_name).blob(path).download_as_bytes()
        except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError, OSError) as exc:
            logger.error("[STORAGE] Failed to download %s: %s", path, exc)
            raise StorageError(f"Failed to download file: {exc}") from exc
        _log_size(data)
        return data
