"""
OpenAI Whisper API wrapper for single interview answers.

Answers are sent as the recorded WebM container, untouched; Whisper accepts
webm directly, so no audio extraction step is needed.  One answer is one
request.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from openai import OpenAI, OpenAIError

from interview_recorder.services.errors import TranscriptionError

if TYPE_CHECKING:
    from interview_recorder.config import Settings

logger = logging.getLogger(__name__)

# Hard limit from Whisper API (bytes).  Uploads may be larger (50 MB cap);
# those requests are rejected by the API and end up as failed transcripts.
_WHISPER_LIMIT = 25 * 1024 * 1024


class Transcriber(Protocol):
    def transcribe(self, media_path: str) -> str: ...


class WhisperService:
    """Transcribes recorded answers using the OpenAI Whisper API."""

    def __init__(self, settings: "Settings") -> None:
        if not settings.openai_api_key:
            raise ValueError(
                "OPENAI_API_KEY is not set in .env; Whisper transcription requires it."
            )
        self._client = OpenAI(api_key=settings.openai_api_key)
        self._model = settings.whisper_model
        self._language = settings.transcription_language

    def transcribe(self, media_path: str) -> str:
        """Return the plain transcript text of *media_path*."""
        path = Path(media_path)
        size = path.stat().st_size
        if size > _WHISPER_LIMIT:
            logger.warning(
                "%s is %.1f MB, above the Whisper request limit", path.name, size / 1e6,
            )

        lang_kwarg: dict = {} if self._language in ("", "auto") else {"language": self._language}

        try:
            with open(path, "rb") as media_file:
                response = self._client.audio.transcriptions.create(
                    model=self._model,
                    file=media_file,
                    **lang_kwarg,
                )
        except OpenAIError as exc:
            raise TranscriptionError(f"Whisper request failed for {path.name}: {exc}") from exc

        text: str = getattr(response, "text", "") or ""
        logger.info("Whisper transcription of %s: %d chars", path.name, len(text))
        return text
