"""Versioned publication of translation files to Cloud Storage.

A run moves through ``IDLE -> VERSION_RESOLVED -> OLD_DELETED -> UPLOADING ->
LOCAL_PURGED -> DONE``. Every remote object under the configured scope is
removed before the new batch is uploaded, so the bucket only ever holds the
current version. Nothing guards against another writer between version
resolution and upload; two overlapping runs can produce the same version.
"""

from __future__ import annotations

import enum
import logging
import socket
from pathlib import Path
from typing import List, Mapping

from .cloud_storage import CloudStorageClient
from .config import StorageConfig
from .models import PublishReport
from .versioning import is_versioned_artifact, latest_version, versioned_file_name

LOGGER = logging.getLogger(__name__)

PUBLIC_ENTITY = "allUsers"
PUBLIC_ROLE = "READER"


class PublishState(str, enum.Enum):
    IDLE = "idle"
    VERSION_RESOLVED = "version_resolved"
    OLD_DELETED = "old_deleted"
    UPLOADING = "uploading"
    LOCAL_PURGED = "local_purged"
    DONE = "done"
    ERROR = "error"


def is_network_available(host: str = "google.com", port: int = 443) -> bool:
    """Return True when ``host`` resolves through DNS."""

    try:
        return bool(socket.getaddrinfo(host, port))
    except (OSError, UnicodeError):
        return False


class VersionedPublisher:
    def __init__(
        self,
        client: CloudStorageClient,
        conf: StorageConfig,
        locales: Mapping[str, str],
        workdir: Path,
    ) -> None:
        self._client = client
        self._conf = conf
        self._locales = dict(locales)
        self._workdir = workdir
        self.state = PublishState.IDLE
        self.old_version = 0
        self.new_version = 1

    @classmethod
    def create(
        cls,
        client: CloudStorageClient,
        conf: StorageConfig,
        locales: Mapping[str, str],
        workdir: Path,
    ) -> "VersionedPublisher":
        """Build a publisher whose version is already resolved from the bucket."""

        publisher = cls(client, conf, locales, workdir)
        publisher.resolve_version()
        return publisher

    # Versioning --------------------------------------------------------------
    def resolve_version(self) -> int:
        try:
            names = self._client.list_object_names(prefix=self._conf.normalized_prefix)
        except Exception:
            LOGGER.exception("Unable to list %s; assuming no previous version", self._conf.scope_label)
            names = []
        if not names:
            LOGGER.info("No files exist inside bucket '%s'", self._conf.scope_label)
        self.old_version = latest_version(names)
        self.new_version = self.old_version + 1
        self.state = PublishState.VERSION_RESOLVED
        LOGGER.info("Old JSON files version = %s, new version = %s", self.old_version, self.new_version)
        return self.new_version

    def expected_file_names(self) -> List[str]:
        return [versioned_file_name(locale, self.new_version) for locale in self._locales.values()]

    def object_name(self, file_name: str) -> str:
        return f"{self._conf.normalized_prefix}{file_name}"

    # Steps -------------------------------------------------------------------
    def delete_remote_files(self, report: PublishReport) -> None:
        """Delete every object under the scope; failures are logged and skipped."""

        try:
            names = self._client.list_object_names(prefix=self._conf.normalized_prefix)
        except Exception:
            LOGGER.exception("Unable to list %s for deletion", self._conf.scope_label)
            return

        if not names:
            LOGGER.info("No files exist inside bucket '%s'", self._conf.scope_label)
        for name in names:
            try:
                self._client.delete_object(name)
            except Exception as exc:
                LOGGER.warning("Failed to delete %s/%s: %s", self._client.bucket_name, name, exc)
                report.failed_deletes.append(name)
                continue
            LOGGER.info("Deleted old JSON file: %s/%s", self._client.bucket_name, name)
            report.deleted.append(name)
        self.state = PublishState.OLD_DELETED

    def make_public(self, object_name: str) -> bool:
        """Grant anonymous read on ``object_name`` unless it is already granted."""

        try:
            entries = self._client.list_object_acl(object_name)
            already_public = any(
                entry.get("entity") == PUBLIC_ENTITY and entry.get("role") == PUBLIC_ROLE
                for entry in entries
            )
            if already_public:
                LOGGER.info("The object '%s/%s' is already public", self._client.bucket_name, object_name)
                return True
            self._client.insert_object_acl(object_name, PUBLIC_ENTITY, PUBLIC_ROLE)
        except Exception as exc:
            LOGGER.error("Unable to make the object '%s' public: %s", object_name, exc)
            return False
        LOGGER.info("The object '%s/%s' is now public", self._client.bucket_name, object_name)
        return True

    def upload_new_files(self, report: PublishReport) -> None:
        self.state = PublishState.UPLOADING
        for file_name in self.expected_file_names():
            path = self._workdir / file_name
            if not path.exists():
                LOGGER.warning("Local file not found: %s", path)
                report.missing_local.append(file_name)
                continue

            object_name = self.object_name(file_name)
            LOGGER.info("Uploading %s to %s/%s", file_name, self._client.bucket_name, object_name)
            try:
                self._client.upload_file(path, object_name)
            except Exception as exc:
                LOGGER.error("Failed to upload %s: %s", object_name, exc)
                report.failed_uploads.append(file_name)
                continue
            report.uploaded.append(file_name)

            if not self.make_public(object_name):
                report.failed_visibility.append(file_name)

    def purge_local_files(self, report: PublishReport) -> None:
        """Remove every versioned JSON file in the working directory."""

        for path in sorted(self._workdir.iterdir()):
            if not path.is_file() or not is_versioned_artifact(path.name):
                continue
            try:
                path.unlink()
            except OSError as exc:
                LOGGER.error("Failed to delete local JSON file %s: %s", path, exc)
                continue
            LOGGER.debug("Deleted local JSON file %s", path)
            report.purged_local.append(path)
        self.state = PublishState.LOCAL_PURGED

    def publish(self) -> PublishReport:
        """Replace the remote batch with the local files of ``new_version``."""

        report = PublishReport(version=self.new_version)
        if not is_network_available(self._conf.connectivity_host):
            LOGGER.error("No internet connection; nothing was deleted or uploaded")
            report.aborted = True
            self.state = PublishState.ERROR
            return report

        failed = False
        try:
            self.delete_remote_files(report)
            self.upload_new_files(report)
        except Exception:
            LOGGER.exception("Error during upload of version %s", self.new_version)
            failed = True
        self.purge_local_files(report)
        self.state = PublishState.ERROR if failed else PublishState.DONE
        LOGGER.info("Publication finished: %s", report.summary())
        return report
