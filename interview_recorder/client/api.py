"""HTTP client for the interview session endpoints."""
from __future__ import annotations

import logging

import requests

from interview_recorder.services.session_store import media_file_name

logger = logging.getLogger(__name__)


class UploadFailedError(Exception):
    """Transport error or non-2xx answer from the upload endpoint."""


class InterviewClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = 120.0,
        mime_type: str = "video/webm",
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._mime_type = mime_type
        self._http = session or requests.Session()

    def _post_json(self, path: str, payload: dict) -> dict:
        resp = self._http.post(f"{self.base_url}{path}", json=payload, timeout=self._timeout)
        resp.raise_for_status()
        return resp.json()

    def start_session(self, user_name: str) -> str:
        body = self._post_json("/api/session/start", {"token": self._token, "userName": user_name})
        return body["folder"]

    def upload(self, folder: str, question_index: int, blob: bytes) -> str:
        """Upload one answer; raises UploadFailedError on any failure."""
        form = {"token": self._token, "folder": folder, "questionIndex": str(question_index)}
        files = {"file": (media_file_name(question_index), blob, self._mime_type)}
        try:
            resp = self._http.post(
                f"{self.base_url}/api/upload-one", data=form, files=files, timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise UploadFailedError(f"Network error: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            raise UploadFailedError(f"Server error: HTTP {resp.status_code}")
        try:
            return resp.json()["savedAs"]
        except (ValueError, KeyError, TypeError) as exc:
            raise UploadFailedError(f"Unexpected upload response: {exc!r}") from exc

    def finish_session(self, folder: str, questions_count: int) -> None:
        self._post_json(
            "/api/session/finish",
            {"token": self._token, "folder": folder, "questionsCount": questions_count},
        )

    def playback_url(self, folder: str, question_index: int) -> str:
        return f"{self.base_url}/uploads/{folder}/{media_file_name(question_index)}"
