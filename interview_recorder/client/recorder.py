"""Recorders feeding the upload sequencer.

Live camera capture belongs to the browser; ``FileRecorder`` replays answers
that were recorded beforehand, one file per question.
"""
from __future__ import annotations

from pathlib import Path


class FileRecorder:
    def __init__(self, answers: list[str | Path]) -> None:
        self._answers = [Path(p) for p in answers]
        self._current: int | None = None
        self.closed = False

    def start(self, question_index: int) -> None:
        if self.closed:
            raise RuntimeError("Recorder is closed.")
        if not 1 <= question_index <= len(self._answers):
            raise IndexError(f"No recorded answer for question {question_index}")
        self._current = question_index

    def stop(self) -> bytes:
        if self._current is None:
            raise RuntimeError("Recorder was not started.")
        path = self._answers[self._current - 1]
        self._current = None
        return path.read_bytes()

    def close(self) -> None:
        self._current = None
        self.closed = True
