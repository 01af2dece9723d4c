"""Background transcription of one uploaded answer.

A job is bound to one (folder, question, file) triple.  It never raises:
after ``run()`` returns, the session's cache holds either the transcript or
the failure block for that question, unless the answer was uploaded again
meanwhile, in which case the newer take's job owns the slot.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from interview_recorder.services.transcript_cache import SessionTranscripts
from interview_recorder.services.whisper_service import Transcriber

logger = logging.getLogger(__name__)


@dataclass
class TranscriptionJob:
    folder: str
    question_index: int
    media_path: str
    transcripts: SessionTranscripts
    get_transcriber: Callable[[], Transcriber]
    attempts: int = 3
    retry_delay: float = 2.0
    generation: int | None = None
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def run(self) -> bool:
        """Try up to ``attempts`` times with a fixed pause; True on success."""
        tag = f"[{self.folder}] Q{self.question_index}"

        for attempt in range(1, self.attempts + 1):
            logger.info("%s STT attempt %d/%d", tag, attempt, self.attempts)
            try:
                text = self.get_transcriber().transcribe(self.media_path)
            except Exception as exc:
                logger.error("%s STT attempt %d failed: %s", tag, attempt, exc)
                if attempt < self.attempts:
                    self.sleep(self.retry_delay)
                continue

            logger.info("%s STT succeeded (%d chars)", tag, len(text))
            if not self.transcripts.put(self.question_index, text, self.generation):
                logger.info("%s answer was uploaded again, discarding this transcript", tag)
            return True

        logger.error("%s STT gave up after %d attempts", tag, self.attempts)
        if not self.transcripts.put_failure(self.question_index, self.generation):
            logger.info("%s answer was uploaded again, discarding the failure", tag)
        return False
