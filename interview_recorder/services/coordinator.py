"""
Session/upload coordinator: the server-side state of an interview.

    start_session ──► accept_upload × N ──► finish_session
                          │
                          └─► TranscriptionJob (background executor)
                                    │
                                    ▼
                           SessionTranscripts[folder]  ──► transcript.txt

Metadata lives on disk and is re-read on every mutation; each session's
read-modify-write cycles are serialized by a per-session lock.  Transcripts
are the only in-memory state and are owned per session, so two sessions
that happen to use the same question numbers never see each other's text.
Uploading a question again starts a new take: the earlier take's job keeps
running but its result is discarded.

Finish does not wait for jobs still in flight unless a positive wait
timeout is configured; an unfinished job's question gets the placeholder.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path

from interview_recorder.config import Settings
from interview_recorder.schemas.session import SessionMetadata, UploadRecord
from interview_recorder.services.auth import SharedTokenVerifier, TokenVerifier
from interview_recorder.services.errors import (
    AuthorizationError,
    PayloadTooLargeError,
    UploadConflictError,
    ValidationError,
)
from interview_recorder.services.notifier import WebhookNotifier
from interview_recorder.services.session_store import SessionStore, media_file_name
from interview_recorder.services.transcript_cache import SessionTranscripts
from interview_recorder.services.transcription_job import TranscriptionJob
from interview_recorder.services.whisper_service import Transcriber, WhisperService

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    saved_as: str
    path: Path
    job: Future


def _parse_question_index(value: int | str | None) -> int:
    try:
        index = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid question index: {value!r}") from None
    if index < 1:
        raise ValidationError(f"Question index must be 1 or greater, got {index}")
    return index


class SessionCoordinator:
    def __init__(
        self,
        settings: Settings,
        *,
        store: SessionStore | None = None,
        verifier: TokenVerifier | None = None,
        transcriber: Transcriber | None = None,
        notifier: WebhookNotifier | None = None,
        executor: Executor | None = None,
    ) -> None:
        self.settings = settings
        self.store = store or SessionStore(settings)
        self.verifier = verifier or SharedTokenVerifier(settings.access_token)
        self.notifier = notifier or WebhookNotifier(settings.webhook_url, settings.webhook_timeout)

        self._transcriber = transcriber
        self._transcriber_lock = threading.Lock()

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=settings.background_workers,
            thread_name_prefix="interview-background",
        )

        self._registry_lock = threading.Lock()
        self._session_locks: dict[str, threading.Lock] = {}
        self._transcripts: dict[str, SessionTranscripts] = {}

    # ── helpers ──────────────────────────────────────────────────────────
    def authorize(self, token: str | None) -> None:
        if not self.verifier.verify(token):
            raise AuthorizationError("Invalid token")

    def _session_lock(self, folder: str) -> threading.Lock:
        with self._registry_lock:
            return self._session_locks.setdefault(folder, threading.Lock())

    def _transcripts_for(self, folder: str) -> SessionTranscripts:
        with self._registry_lock:
            transcripts = self._transcripts.get(folder)
            if transcripts is None:
                # Server restarted mid-session; start an empty cache.
                transcripts = self._transcripts[folder] = SessionTranscripts(folder)
            return transcripts

    def _get_transcriber(self) -> Transcriber:
        with self._transcriber_lock:
            if self._transcriber is None:
                self._transcriber = WhisperService(self.settings)
            return self._transcriber

    def _check_media_type(self, mime_type: str | None) -> None:
        base = (mime_type or "").split(";", 1)[0].strip().lower()
        if base != self.settings.accepted_mime_type.lower():
            raise ValidationError(
                f"Invalid file type {mime_type!r}; expected {self.settings.accepted_mime_type}"
            )

    # ── operations ───────────────────────────────────────────────────────
    def start_session(self, token: str | None, user_name: str | None) -> SessionMetadata:
        self.authorize(token)
        metadata = self.store.create(user_name)

        with self._registry_lock:
            self._transcripts[metadata.folder] = SessionTranscripts(metadata.folder)

        logger.info("[%s] Session START for %r", metadata.folder, user_name)
        return metadata

    def accept_upload(
        self,
        token: str | None,
        folder: str,
        question_index: int | str | None,
        data: bytes | None,
        mime_type: str | None,
    ) -> UploadResult:
        """Store one answer and schedule its transcription.  Returns without waiting on it."""
        self.authorize(token)

        if not data:
            raise ValidationError("No file uploaded")
        self._check_media_type(mime_type)
        if len(data) > self.settings.max_upload_bytes:
            raise PayloadTooLargeError(
                f"File exceeds the {self.settings.max_upload_bytes // (1024 * 1024)} MB limit."
            )
        index = _parse_question_index(question_index)
        self.store.session_dir(folder)  # rejects malformed folder names
        saved_as = media_file_name(index)

        with self._session_lock(folder):
            metadata = self.store.read_metadata(folder)

            if any(u.question == index for u in metadata.uploads):
                if self.settings.duplicate_upload_policy == "reject":
                    raise UploadConflictError(f"Question {index} was already uploaded")
                logger.warning("[%s] Q%d uploaded again, replacing %s", folder, index, saved_as)

            path = self.store.save_media(folder, index, data)
            metadata.uploads.append(
                UploadRecord(question=index, saved_as=saved_as, uploaded_at=self.store.timestamp())
            )
            self.store.write_metadata(metadata)
            job = self._schedule_transcription(folder, index, path)

        logger.info("[%s] Saved %s (%.1f MB)", folder, saved_as, len(data) / 1e6)
        return UploadResult(saved_as=saved_as, path=path, job=job)

    def _schedule_transcription(self, folder: str, index: int, path: Path) -> Future:
        transcripts = self._transcripts_for(folder)
        generation = transcripts.claim(index)
        job = TranscriptionJob(
            folder=folder,
            question_index=index,
            media_path=str(path),
            transcripts=transcripts,
            get_transcriber=self._get_transcriber,
            attempts=self.settings.transcription_attempts,
            retry_delay=self.settings.transcription_retry_delay,
            generation=generation,
        )
        future = self._executor.submit(job.run)
        transcripts.track(index, future)
        return future

    def pending_jobs(self, folder: str) -> list[Future]:
        with self._registry_lock:
            transcripts = self._transcripts.get(folder)
        return transcripts.pending() if transcripts else []

    def finish_session(
        self,
        token: str | None,
        folder: str,
        questions_count: int | None,
        wait_timeout: float | None = None,
    ) -> SessionMetadata:
        """Stamp the metadata, write the ordered transcript, drop the session's cache."""
        self.authorize(token)
        if isinstance(questions_count, bool) or not isinstance(questions_count, int) or questions_count < 0:
            raise ValidationError(f"Invalid questions count: {questions_count!r}")
        self.store.session_dir(folder)

        with self._session_lock(folder):
            metadata = self.store.read_metadata(folder)
            metadata.finished_at = self.store.timestamp()
            metadata.questions_count = questions_count
            self.store.write_metadata(metadata)

        with self._registry_lock:
            transcripts = self._transcripts.pop(folder, None) or SessionTranscripts(folder)
            self._session_locks.pop(folder, None)

        timeout = self.settings.finish_wait_seconds if wait_timeout is None else wait_timeout
        pending = transcripts.pending()
        if pending and timeout > 0:
            _done, not_done = wait(pending, timeout=timeout)
            if not_done:
                logger.warning(
                    "[%s] %d transcription job(s) still running after %.1fs",
                    folder, len(not_done), timeout,
                )
        elif pending:
            logger.info("[%s] Finishing with %d transcription job(s) in flight", folder, len(pending))

        self.store.write_transcript(folder, transcripts.assemble(questions_count))
        transcripts.clear()

        logger.info("[%s] Session FINISH (%d questions)", folder, questions_count)
        self._executor.submit(self.notifier.notify, metadata.to_document())
        return metadata

    def shutdown(self, wait: bool = False) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
