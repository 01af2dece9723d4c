"""
Client-side upload sequencer.

The record → stop → upload → advance loop is an explicit state machine:

    IDLE ─START─► RECORDING ─STOP─► STOPPING ─RECORDED─► UPLOADING
                      ▲                                   │   │
                      └──────── UPLOAD_SUCCEEDED ─────────┘   │ UPLOAD_FAILED
                                (FINISHED after the last)     ▼
                  UPLOADING ◄─RETRY_DUE─ RETRYING ◄─RETRY─ FAILED

``transition`` is the only place states change; ``UploadSequencer`` performs
the side effects (recorder, HTTP, waits) around it.  A failed upload outside
a retry run goes straight to FAILED and waits for a manual retry.  A retry
run makes up to three attempts, waiting 2 ** attempt seconds (1 s, 2 s, 4 s)
before each, and falls back to FAILED once they are used up.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Protocol

from interview_recorder.client.api import InterviewClient, UploadFailedError

logger = logging.getLogger(__name__)

MAX_RETRY_ATTEMPTS = 3
START_DELAY_SECONDS = 0.4     # camera warm-up before the first answer
ADVANCE_DELAY_SECONDS = 0.3
LARGE_BLOB_BYTES = 40 * 1024 * 1024


class State(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPING = "stopping"
    UPLOADING = "uploading"
    RETRYING = "retrying"
    FAILED = "failed"
    FINISHED = "finished"


class Event(str, Enum):
    START = "start"
    STOP = "stop"
    RECORDED = "recorded"
    UPLOAD_SUCCEEDED = "upload_succeeded"
    UPLOAD_FAILED = "upload_failed"
    RETRY = "retry"
    RETRY_DUE = "retry_due"


class InvalidTransition(Exception):
    def __init__(self, state: State, event: Event) -> None:
        super().__init__(f"{event.value!r} is not allowed in state {state.value!r}")
        self.state = state
        self.event = event


@dataclass(frozen=True)
class Snapshot:
    state: State
    question: int
    total_questions: int
    retry_attempt: int = 0
    in_retry_run: bool = False

    @property
    def is_last_question(self) -> bool:
        return self.question >= self.total_questions

    @property
    def retry_delay(self) -> float:
        return float(2 ** self.retry_attempt)


def initial_snapshot(total_questions: int) -> Snapshot:
    if total_questions < 1:
        raise ValueError("An interview needs at least one question.")
    return Snapshot(state=State.IDLE, question=0, total_questions=total_questions)


def can_advance(snapshot: Snapshot) -> bool:
    """The "next" control is enabled only while an answer is being recorded."""
    return snapshot.state is State.RECORDING


def transition(snapshot: Snapshot, event: Event) -> Snapshot:
    state = snapshot.state

    if state is State.IDLE and event is Event.START:
        return replace(snapshot, state=State.RECORDING, question=1)

    if state is State.RECORDING and event is Event.STOP:
        return replace(snapshot, state=State.STOPPING)

    if state is State.STOPPING and event is Event.RECORDED:
        return replace(snapshot, state=State.UPLOADING)

    if state is State.UPLOADING and event is Event.UPLOAD_SUCCEEDED:
        if snapshot.is_last_question:
            return replace(snapshot, state=State.FINISHED, retry_attempt=0, in_retry_run=False)
        return replace(
            snapshot,
            state=State.RECORDING,
            question=snapshot.question + 1,
            retry_attempt=0,
            in_retry_run=False,
        )

    if state is State.UPLOADING and event is Event.UPLOAD_FAILED:
        if not snapshot.in_retry_run:
            return replace(snapshot, state=State.FAILED)
        attempt = snapshot.retry_attempt + 1
        if attempt >= MAX_RETRY_ATTEMPTS:
            return replace(snapshot, state=State.FAILED, retry_attempt=attempt, in_retry_run=False)
        return replace(snapshot, state=State.RETRYING, retry_attempt=attempt)

    if state is State.FAILED and event is Event.RETRY:
        return replace(snapshot, state=State.RETRYING, retry_attempt=0, in_retry_run=True)

    if state is State.RETRYING and event is Event.RETRY_DUE:
        return replace(snapshot, state=State.UPLOADING)

    raise InvalidTransition(state, event)


# ─────────────────────────────────────────────────────────────────────────────
#  Driver
# ─────────────────────────────────────────────────────────────────────────────

class Recorder(Protocol):
    def start(self, question_index: int) -> None: ...
    def stop(self) -> bytes: ...
    def close(self) -> None: ...


class UploadSequencer:
    """Drives one interview through the state machine."""

    def __init__(
        self,
        client: InterviewClient,
        recorder: Recorder,
        total_questions: int,
        *,
        sleep: Callable[[float], None] = time.sleep,
        on_status: Callable[[str], None] | None = None,
        on_warning: Callable[[str], None] | None = None,
    ) -> None:
        self.client = client
        self.recorder = recorder
        self.snapshot = initial_snapshot(total_questions)
        self.folder: str | None = None
        self._sleep = sleep
        self._on_status = on_status or (lambda message: logger.info(message))
        self._on_warning = on_warning or (lambda message: logger.warning(message))
        self._blob: bytes | None = None

    @property
    def state(self) -> State:
        return self.snapshot.state

    def _apply(self, event: Event) -> Snapshot:
        before = self.snapshot.state
        self.snapshot = transition(self.snapshot, event)
        logger.debug("%s --%s--> %s", before.value, event.value, self.snapshot.state.value)
        return self.snapshot

    def _begin_recording(self, delay: float) -> None:
        self._sleep(delay)
        self.recorder.start(self.snapshot.question)
        self._on_status(f"Recording question {self.snapshot.question}...")

    # ── user actions ─────────────────────────────────────────────────────
    def start(self, user_name: str) -> str:
        if self.snapshot.state is not State.IDLE:
            raise InvalidTransition(self.snapshot.state, Event.START)
        self.folder = self.client.start_session(user_name)
        self._apply(Event.START)
        self._begin_recording(START_DELAY_SECONDS)
        return self.folder

    def next(self) -> State:
        """Stop the current answer and upload it."""
        self._apply(Event.STOP)
        self._on_status(f"Processing question {self.snapshot.question}...")
        self._blob = self.recorder.stop()

        size = len(self._blob)
        if size > LARGE_BLOB_BYTES:
            self._on_warning(f"File too large ({size / 1024 / 1024:.1f} MB), try a shorter answer")

        self._apply(Event.RECORDED)
        return self._upload()

    def retry(self) -> State:
        """Manual retry: up to three automatic attempts with exponential backoff."""
        self._apply(Event.RETRY)
        while self.snapshot.state is State.RETRYING:
            delay = self.snapshot.retry_delay
            self._on_status(f"Retry in {delay:g}s...")
            self._sleep(delay)
            self._apply(Event.RETRY_DUE)
            self._on_status(f"Retry attempt {self.snapshot.retry_attempt + 1}")
            self._upload()

        if self.snapshot.state is State.FAILED:
            self._on_status(f"Upload failed after {MAX_RETRY_ATTEMPTS} retries")
        return self.snapshot.state

    def finish(self) -> list[str]:
        """Finish the session server-side; playback URLs in question order."""
        if self.snapshot.state is not State.FINISHED or self.folder is None:
            raise RuntimeError("The interview is not finished yet.")
        total = self.snapshot.total_questions
        self.client.finish_session(self.folder, total)
        return [self.client.playback_url(self.folder, i) for i in range(1, total + 1)]

    # ── internals ────────────────────────────────────────────────────────
    def _upload(self) -> State:
        question = self.snapshot.question
        try:
            self.client.upload(self.folder, question, self._blob)
        except UploadFailedError as exc:
            self._on_status(f"Upload failed: {exc}")
            return self._apply(Event.UPLOAD_FAILED).state

        self._on_status(f"Question {question} uploaded")
        self._apply(Event.UPLOAD_SUCCEEDED)

        if self.snapshot.state is State.FINISHED:
            self.recorder.close()
            self._on_status("Finished")
        else:
            self._begin_recording(ADVANCE_DELAY_SECONDS)
        return self.snapshot.state
