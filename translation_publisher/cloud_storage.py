from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List

import logging
import ssl
import time

from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import Resource
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import HttpRequest, MediaFileUpload
from httplib2 import HttpLib2Error

from .config import StorageConfig

SCOPES = ["https://www.googleapis.com/auth/devstorage.full_control"]

LOGGER = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_INITIAL_BACKOFF_SECONDS = 1.0
_MAX_BACKOFF_SECONDS = 8.0
_RETRYABLE_EXCEPTIONS = (ssl.SSLEOFError, HttpLib2Error)


class CredentialsError(Exception):
    """Raised when the service account file is missing or unusable."""


def load_credentials(path: Path) -> Credentials:
    """Read the service account JSON once for the whole run."""

    if not path.exists():
        raise CredentialsError(f"Service account file not found: {path}")
    try:
        return Credentials.from_service_account_file(str(path), scopes=SCOPES)
    except (ValueError, KeyError, GoogleAuthError) as exc:
        raise CredentialsError(f"Invalid service account file {path}: {exc}") from exc


class CloudStorageClient:
    """Thin wrapper around the Cloud Storage JSON API for one bucket."""

    def __init__(
        self,
        conf: StorageConfig,
        credentials: Credentials | None = None,
        service: Resource | None = None,
    ) -> None:
        self._conf = conf
        self._credentials = credentials
        self._service = service

    def __enter__(self) -> "CloudStorageClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def bucket_name(self) -> str:
        return self._conf.bucket_name

    def _service_client(self) -> Resource:
        if self._service is None:
            if self._credentials is None:
                raise CredentialsError("No credentials available to build the storage client")
            self._service = build("storage", "v1", credentials=self._credentials)
        return self._service

    # Objects -----------------------------------------------------------------
    def list_object_names(self, prefix: str = "") -> List[str]:
        """Return the names of every object under ``prefix``, across pages."""

        names: List[str] = []
        page_token: str | None = None
        while True:

            def _build_request(token: str | None = page_token) -> HttpRequest:
                service = self._service_client()
                return service.objects().list(
                    bucket=self._conf.bucket_name,
                    prefix=prefix,
                    pageToken=token,
                )

            result = self._execute_with_retry(_build_request, operation="list objects")
            names.extend(item["name"] for item in result.get("items", []) if item.get("name"))
            page_token = result.get("nextPageToken")
            if not page_token:
                return names

    def delete_object(self, object_name: str) -> None:
        def _build_request() -> HttpRequest:
            service = self._service_client()
            return service.objects().delete(bucket=self._conf.bucket_name, object=object_name)

        self._execute_with_retry(_build_request, operation=f"delete {object_name}")

    def upload_file(self, path: Path, object_name: str) -> dict:
        """Stream a local JSON file into ``object_name``."""

        media = MediaFileUpload(str(path), mimetype="application/json")

        def _build_request() -> HttpRequest:
            service = self._service_client()
            media.stream().seek(0)
            return service.objects().insert(
                bucket=self._conf.bucket_name,
                name=object_name,
                media_body=media,
            )

        try:
            return self._execute_with_retry(_build_request, operation=f"upload {object_name}")
        finally:
            media.stream().close()

    # Access control ----------------------------------------------------------
    def list_object_acl(self, object_name: str) -> List[Dict[str, str]]:
        def _build_request() -> HttpRequest:
            service = self._service_client()
            return service.objectAccessControls().list(
                bucket=self._conf.bucket_name,
                object=object_name,
            )

        result = self._execute_with_retry(_build_request, operation=f"list ACL of {object_name}")
        return result.get("items", [])

    def insert_object_acl(self, object_name: str, entity: str, role: str) -> dict:
        def _build_request() -> HttpRequest:
            service = self._service_client()
            return service.objectAccessControls().insert(
                bucket=self._conf.bucket_name,
                object=object_name,
                body={"entity": entity, "role": role},
            )

        return self._execute_with_retry(_build_request, operation=f"grant {entity} on {object_name}")

    # Internal ----------------------------------------------------------------
    def close(self) -> None:
        if self._service is not None:
            self._service.close()
            self._service = None

    def _reset_service(self) -> None:
        # An injected service cannot be rebuilt without credentials.
        if self._credentials is not None:
            self.close()

    def _execute_with_retry(
        self,
        request_builder: Callable[[], HttpRequest],
        *,
        operation: str,
    ) -> dict:
        """Execute a Storage API request, retrying transient failures when allowed."""

        max_attempts = self._conf.max_attempts
        backoff = _INITIAL_BACKOFF_SECONDS
        last_exc: Exception | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                # objects.delete answers with an empty body
                return request_builder().execute() or {}
            except _RETRYABLE_EXCEPTIONS as exc:
                last_exc = exc
            except HttpError as exc:
                status = getattr(exc.resp, "status", None)
                if status not in _RETRYABLE_STATUS_CODES:
                    raise
                last_exc = exc

            if attempt == max_attempts:
                raise last_exc

            wait_time = min(backoff, _MAX_BACKOFF_SECONDS)
            LOGGER.warning(
                "Storage API %s failed on attempt %s/%s (%s); retrying in %.1f seconds",
                operation,
                attempt,
                max_attempts,
                last_exc,
                wait_time,
            )
            self._reset_service()
            time.sleep(wait_time)
            backoff *= 2

        if last_exc is not None:  # pragma: no cover
            raise last_exc
        raise RuntimeError("Storage API request failed without capturing an exception")
