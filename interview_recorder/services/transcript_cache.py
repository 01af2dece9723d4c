"""Per-session transcript cache.

One ``SessionTranscripts`` lives from session start to session finish.  Jobs
write their question's block into it; finish assembles the blocks in question
order and drops the whole object.  Nothing is shared between sessions.
"""
from __future__ import annotations

import threading
from concurrent.futures import Future

FAILED_TEXT = "[STT FAILED]"
MISSING_TEXT = "[NO TRANSCRIPT]"


def question_header(question_index: int) -> str:
    return f"===== Question {question_index} ====="


def format_block(question_index: int, text: str) -> str:
    return f"{question_header(question_index)}\n{text.strip()}\n"


class SessionTranscripts:
    """Question index → transcript block, plus the futures of the jobs filling it."""

    def __init__(self, folder: str) -> None:
        self.folder = folder
        self._blocks: dict[int, str] = {}
        self._jobs: dict[int, Future] = {}
        self._generations: dict[int, int] = {}
        self._lock = threading.Lock()

    def claim(self, question_index: int) -> int:
        """Start a new take of *question_index*.

        The previous take's block is dropped and its job can no longer write.
        """
        with self._lock:
            generation = self._generations.get(question_index, 0) + 1
            self._generations[question_index] = generation
            self._blocks.pop(question_index, None)
            return generation

    def put(self, question_index: int, text: str, generation: int | None = None) -> bool:
        """Store the block for *question_index*.

        With a *generation*, the write is dropped (and False returned) unless it
        is still the latest claim for that question.
        """
        with self._lock:
            if generation is not None and generation != self._generations.get(question_index):
                return False
            self._blocks[question_index] = format_block(question_index, text)
            return True

    def put_failure(self, question_index: int, generation: int | None = None) -> bool:
        return self.put(question_index, FAILED_TEXT, generation)

    def get(self, question_index: int) -> str | None:
        with self._lock:
            return self._blocks.get(question_index)

    def __contains__(self, question_index: int) -> bool:
        with self._lock:
            return question_index in self._blocks

    def __len__(self) -> int:
        with self._lock:
            return len(self._blocks)

    # ── job tracking ─────────────────────────────────────────────────────
    def track(self, question_index: int, future: Future) -> None:
        with self._lock:
            self._jobs[question_index] = future

    def pending(self) -> list[Future]:
        with self._lock:
            return [f for f in self._jobs.values() if not f.done()]

    # ── finish ───────────────────────────────────────────────────────────
    def assemble(self, questions_count: int) -> str:
        """Exactly ``questions_count`` blocks, ascending; absent ones get a placeholder."""
        with self._lock:
            blocks = [
                self._blocks.get(i) or format_block(i, MISSING_TEXT)
                for i in range(1, questions_count + 1)
            ]
        return "\n".join(blocks)

    def clear(self) -> None:
        with self._lock:
            self._blocks.clear()
            self._jobs.clear()
            self._generations.clear()
