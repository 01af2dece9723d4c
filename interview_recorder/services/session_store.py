"""
Filesystem layout of interview sessions.

    <uploads_root>/
        <DD_MM_YYYY_HH_mm>_<name>/
            metadata.json     ← SessionMetadata, rewritten on every mutation
            transcript.txt    ← empty until the session is finished
            Q1.webm, Q2.webm  ← one answer per question index

The directory is the single source of truth for a session: nothing here
caches metadata between calls.  Callers that read-modify-write metadata must
hold the session's lock (see ``SessionCoordinator``).
"""
from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic import ValidationError as PydanticValidationError

from interview_recorder.config import Settings
from interview_recorder.schemas.session import SessionMetadata
from interview_recorder.services.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"
TRANSCRIPT_FILE = "transcript.txt"
MEDIA_EXTENSION = ".webm"

_FOLDER_TIME_FORMAT = "%d_%m_%Y_%H_%M"
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")
_FOLDER_RE = re.compile(r"^[A-Za-z0-9_]+$")


def sanitize_user_name(user_name: str | None) -> str:
    """Replace every non-alphanumeric character with ``_`` and lowercase."""
    return _UNSAFE_CHARS.sub("_", user_name or "user").lower()


def make_folder_name(user_name: str | None, now: datetime) -> str:
    """``<DD_MM_YYYY_HH_mm>_<sanitized name>``, unique to the minute only."""
    return f"{now.strftime(_FOLDER_TIME_FORMAT)}_{sanitize_user_name(user_name)}"


def media_file_name(question_index: int) -> str:
    return f"Q{question_index}{MEDIA_EXTENSION}"


class SessionStore:
    """Reads and writes session folders under ``settings.uploads_root``."""

    def __init__(self, settings: Settings) -> None:
        self.root = Path(settings.uploads_root)
        self._tz = ZoneInfo(settings.timezone)

    # ── time ─────────────────────────────────────────────────────────────
    def now(self) -> datetime:
        return datetime.now(self._tz)

    def timestamp(self) -> str:
        return self.now().isoformat(timespec="seconds")

    # ── paths ────────────────────────────────────────────────────────────
    def session_dir(self, folder: str) -> Path:
        if not folder or not _FOLDER_RE.match(folder):
            raise ValidationError(f"Invalid session folder: {folder!r}")
        return self.root / folder

    def media_path(self, folder: str, question_index: int) -> Path:
        return self.session_dir(folder) / media_file_name(question_index)

    def transcript_path(self, folder: str) -> Path:
        return self.session_dir(folder) / TRANSCRIPT_FILE

    def exists(self, folder: str) -> bool:
        return (self.session_dir(folder) / METADATA_FILE).is_file()

    # ── session lifecycle ────────────────────────────────────────────────
    def create(self, user_name: str | None) -> SessionMetadata:
        now = self.now()
        folder = make_folder_name(user_name, now)
        session_dir = self.session_dir(folder)

        metadata = SessionMetadata(
            user=user_name,
            folder=folder,
            started_at=now.isoformat(timespec="seconds"),
            uploads=[],
        )
        try:
            session_dir.mkdir(parents=True, exist_ok=True)
            self.write_metadata(metadata)
            (session_dir / TRANSCRIPT_FILE).write_text("", encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not create session folder {folder}: {exc}") from exc

        logger.info("[%s] Session directory created: %s", folder, session_dir)
        return metadata

    def read_metadata(self, folder: str) -> SessionMetadata:
        path = self.session_dir(folder) / METADATA_FILE
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return SessionMetadata.model_validate(raw)
        except FileNotFoundError as exc:
            raise StorageError(f"Unknown session: {folder}") from exc
        except (OSError, json.JSONDecodeError, PydanticValidationError) as exc:
            raise StorageError(f"Could not read metadata for {folder}: {exc}") from exc

    def write_metadata(self, metadata: SessionMetadata) -> None:
        path = self.session_dir(metadata.folder) / METADATA_FILE
        try:
            path.write_text(json.dumps(metadata.to_document(), indent=2), encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not write metadata for {metadata.folder}: {exc}") from exc

    def save_media(self, folder: str, question_index: int, data: bytes) -> Path:
        path = self.media_path(folder, question_index)
        try:
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Could not store {path.name} for {folder}: {exc}") from exc
        return path

    def write_transcript(self, folder: str, text: str) -> Path:
        path = self.transcript_path(folder)
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not write transcript for {folder}: {exc}") from exc
        return path
