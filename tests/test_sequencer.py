import pytest

from interview_recorder.client.api import UploadFailedError
from interview_recorder.client.sequencer import (
    ADVANCE_DELAY_SECONDS,
    LARGE_BLOB_BYTES,
    MAX_RETRY_ATTEMPTS,
    START_DELAY_SECONDS,
    Event,
    InvalidTransition,
    Snapshot,
    State,
    UploadSequencer,
    can_advance,
    initial_snapshot,
    transition,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class FakeClient:
    """Upload outcomes are consumed in order; True succeeds, False fails."""

    def __init__(self, outcomes=()):
        self.outcomes = list(outcomes)
        self.uploads: list[tuple[str, int, int]] = []
        self.finished: list[tuple[str, int]] = []

    def start_session(self, user_name):
        return "01_01_2025_08_00_guest"

    def upload(self, folder, question_index, blob):
        self.uploads.append((folder, question_index, len(blob)))
        if self.outcomes and not self.outcomes.pop(0):
            raise UploadFailedError("Server error: HTTP 500")
        return f"Q{question_index}.webm"

    def finish_session(self, folder, questions_count):
        self.finished.append((folder, questions_count))

    def playback_url(self, folder, question_index):
        return f"http://test/uploads/{folder}/Q{question_index}.webm"


class FakeRecorder:
    def __init__(self, size=10):
        self.size = size
        self.started: list[int] = []
        self.closed = False

    def start(self, question_index):
        self.started.append(question_index)

    def stop(self):
        return b"x" * self.size

    def close(self):
        self.closed = True


def _sequencer(total=2, outcomes=(), size=10):
    client = FakeClient(outcomes)
    recorder = FakeRecorder(size)
    sleeps: list[float] = []
    warnings: list[str] = []
    seq = UploadSequencer(
        client, recorder, total, sleep=sleeps.append, on_warning=warnings.append,
    )
    return seq, client, recorder, sleeps, warnings


# ---------------------------------------------------------------------------
# transition()
# ---------------------------------------------------------------------------

class TestTransition:
    def test_happy_path_walks_every_question(self):
        snap = initial_snapshot(2)
        for event in (Event.START, Event.STOP, Event.RECORDED, Event.UPLOAD_SUCCEEDED):
            snap = transition(snap, event)
        assert (snap.state, snap.question) == (State.RECORDING, 2)

        for event in (Event.STOP, Event.RECORDED, Event.UPLOAD_SUCCEEDED):
            snap = transition(snap, event)
        assert snap.state is State.FINISHED

    def test_first_failure_goes_to_manual_retry(self):
        snap = Snapshot(State.UPLOADING, question=1, total_questions=3)
        assert transition(snap, Event.UPLOAD_FAILED).state is State.FAILED

    def test_retry_run_backs_off_then_gives_up(self):
        snap = Snapshot(State.FAILED, question=1, total_questions=3)
        snap = transition(snap, Event.RETRY)
        delays = []
        while snap.state is State.RETRYING:
            delays.append(snap.retry_delay)
            snap = transition(snap, Event.RETRY_DUE)
            snap = transition(snap, Event.UPLOAD_FAILED)

        assert delays == [1.0, 2.0, 4.0]
        assert snap.state is State.FAILED
        assert snap.in_retry_run is False

    def test_success_during_retry_resets_attempts(self):
        snap = Snapshot(State.UPLOADING, question=1, total_questions=3, retry_attempt=2, in_retry_run=True)
        snap = transition(snap, Event.UPLOAD_SUCCEEDED)
        assert (snap.state, snap.question, snap.retry_attempt, snap.in_retry_run) == (
            State.RECORDING, 2, 0, False,
        )

    @pytest.mark.parametrize("state, event", [
        (State.IDLE, Event.STOP),
        (State.RECORDING, Event.START),
        (State.UPLOADING, Event.STOP),
        (State.RETRYING, Event.STOP),
        (State.FAILED, Event.STOP),
        (State.FINISHED, Event.STOP),
        (State.FINISHED, Event.RETRY),
        (State.RECORDING, Event.RETRY),
        (State.STOPPING, Event.UPLOAD_SUCCEEDED),
    ])
    def test_illegal_events(self, state, event):
        with pytest.raises(InvalidTransition):
            transition(Snapshot(state, question=1, total_questions=2), event)

    @pytest.mark.parametrize("state", list(State))
    def test_next_enabled_only_while_recording(self, state):
        assert can_advance(Snapshot(state, 1, 2)) is (state is State.RECORDING)

    def test_needs_a_question(self):
        with pytest.raises(ValueError):
            initial_snapshot(0)


# ---------------------------------------------------------------------------
# UploadSequencer
# ---------------------------------------------------------------------------

class TestUploadSequencer:
    def test_full_interview(self):
        seq, client, recorder, sleeps, _ = _sequencer(total=2)

        assert seq.start("guest") == "01_01_2025_08_00_guest"
        assert seq.state is State.RECORDING
        assert recorder.started == [1]

        assert seq.next() is State.RECORDING
        assert recorder.started == [1, 2]
        assert seq.next() is State.FINISHED

        assert sleeps == [START_DELAY_SECONDS, ADVANCE_DELAY_SECONDS]
        assert [u[1] for u in client.uploads] == [1, 2]
        assert recorder.closed is True

        urls = seq.finish()
        assert client.finished == [("01_01_2025_08_00_guest", 2)]
        assert urls == [
            "http://test/uploads/01_01_2025_08_00_guest/Q1.webm",
            "http://test/uploads/01_01_2025_08_00_guest/Q2.webm",
        ]

    def test_failed_upload_waits_for_manual_retry(self):
        seq, client, recorder, sleeps, _ = _sequencer(total=2, outcomes=[False])
        seq.start("guest")

        assert seq.next() is State.FAILED
        assert len(client.uploads) == 1
        assert recorder.started == [1]
        with pytest.raises(InvalidTransition):
            seq.next()

    def test_manual_retry_recovers(self):
        seq, client, recorder, sleeps, _ = _sequencer(total=2, outcomes=[False, False, True])
        seq.start("guest")
        seq.next()

        assert seq.retry() is State.RECORDING
        assert seq.snapshot.question == 2
        assert sleeps == [START_DELAY_SECONDS, 1.0, 2.0, ADVANCE_DELAY_SECONDS]
        assert [u[1] for u in client.uploads] == [1, 1, 1]

    def test_three_retry_failures_stop_automatic_attempts(self):
        seq, client, recorder, sleeps, _ = _sequencer(total=2, outcomes=[False] * 4)
        seq.start("guest")
        seq.next()

        assert seq.retry() is State.FAILED
        assert len(client.uploads) == 1 + MAX_RETRY_ATTEMPTS
        assert sleeps == [START_DELAY_SECONDS, 1.0, 2.0, 4.0]

        # nothing else is scheduled; only another manual retry uploads again
        assert len(client.uploads) == 4
        assert seq.retry() is State.RECORDING
        assert len(client.uploads) == 5

    def test_retry_on_last_question_finishes(self):
        seq, client, recorder, _, _ = _sequencer(total=1, outcomes=[False, True])
        seq.start("guest")
        seq.next()

        assert seq.retry() is State.FINISHED
        assert recorder.closed is True

    def test_large_answer_warns_but_uploads(self):
        seq, client, _, _, warnings = _sequencer(total=1, size=LARGE_BLOB_BYTES + 1)
        seq.start("guest")

        assert seq.next() is State.FINISHED
        assert len(warnings) == 1
        assert "too large" in warnings[0]
        assert client.uploads[0][2] == LARGE_BLOB_BYTES + 1

    def test_finish_requires_finished_state(self):
        seq, *_ = _sequencer(total=2)
        seq.start("guest")
        with pytest.raises(RuntimeError):
            seq.finish()

    def test_start_only_once(self):
        seq, *_ = _sequencer()
        seq.start("guest")
        with pytest.raises(InvalidTransition):
            seq.start("guest")
