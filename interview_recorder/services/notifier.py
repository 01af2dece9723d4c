"""Best-effort webhook notification when a session finishes."""
from __future__ import annotations

import logging

import requests

from interview_recorder.services.errors import NotificationError

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """POSTs finished-session metadata to a configured URL.  Never raises."""

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self._url = url
        self._timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    def notify(self, metadata: dict) -> bool:
        if not self.enabled:
            logger.debug("Webhook disabled, skipping notification for %s", metadata.get("folder"))
            return False
        try:
            self._post(metadata)
        except NotificationError as exc:
            logger.error("Webhook failed: %s", exc)
            return False
        logger.info("Webhook sent for %s", metadata.get("folder"))
        return True

    def _post(self, metadata: dict) -> None:
        try:
            resp = requests.post(self._url, json=metadata, timeout=self._timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise NotificationError(str(exc)) from exc
