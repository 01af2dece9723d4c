import os
import tempfile
import threading
from pathlib import Path

# interview_recorder.main builds a module-level app on import; keep its
# uploads folder out of the working tree.
os.environ.setdefault("UPLOADS_ROOT", tempfile.mkdtemp(prefix="interview_test_"))

import pytest
from starlette.testclient import TestClient

from interview_recorder.config import Settings
from interview_recorder.main import create_app
from interview_recorder.services.coordinator import SessionCoordinator
from interview_recorder.services.errors import TranscriptionError

TOKEN = "12345"
WEBM = b"\x1a\x45\xdf\xa3fake-webm-bytes"


class FakeTranscriber:
    """Returns a transcript naming the session folder and file.

    ``failures`` makes the first N calls raise; ``gate`` blocks every call
    until it is set.
    """

    def __init__(self, failures: int = 0, gate: threading.Event | None = None) -> None:
        self.failures = failures
        self.gate = gate
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def transcribe(self, media_path: str) -> str:
        if self.gate is not None:
            self.gate.wait(timeout=10)
        with self._lock:
            self.calls.append(media_path)
            if self.failures > 0:
                self.failures -= 1
                raise TranscriptionError("service unavailable")
        path = Path(media_path)
        return f"answer from {path.parent.name}/{path.name}"


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[dict] = []

    def notify(self, metadata: dict) -> bool:
        self.sent.append(metadata)
        return True


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        uploads_root=str(tmp_path / "uploads"),
        access_token=TOKEN,
        transcription_retry_delay=0.0,
    )


@pytest.fixture
def gate():
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def coordinator(settings, transcriber, notifier):
    coord = SessionCoordinator(settings, transcriber=transcriber, notifier=notifier)
    yield coord
    coord.shutdown(wait=True)


@pytest.fixture
def client(settings, coordinator):
    with TestClient(create_app(settings, coordinator)) as test_client:
        yield test_client
