from __future__ import annotations

import logging

import requests

from .config import NotificationConfig

LOGGER = logging.getLogger(__name__)


class RemoteConfigNotifier:
    """Ask a Cloud Function to bump the remote-config language version."""

    def __init__(self, conf: NotificationConfig) -> None:
        self._conf = conf

    def notify_lang_version_update(self) -> bool:
        if not self._conf.enabled:
            LOGGER.debug("Remote config notification disabled; skipping")
            return False

        url = self._conf.endpoint
        try:
            response = requests.post(url, timeout=self._conf.request_timeout)
        except requests.RequestException as exc:
            LOGGER.error("Error calling remote config updater %s: %s", url, exc)
            return False

        if response.status_code != 200:
            LOGGER.error(
                "Failed to increment remote config version: %s %s",
                response.status_code,
                response.text,
            )
            return False

        LOGGER.info("Remote config language version incremented successfully")
        return True
