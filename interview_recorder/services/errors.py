"""Error taxonomy shared by the coordinator and the HTTP routes.

Every error carries the HTTP status the routes answer with.  Transcription
and notification errors never leave the background work that raises them;
they exist so the logs and retry loops can name what went wrong.
"""


class InterviewError(Exception):
    status_code = 500


class AuthorizationError(InterviewError):
    """Missing or invalid shared token."""
    status_code = 401


class ValidationError(InterviewError):
    """Malformed request: wrong MIME type, missing file, bad index or folder."""
    status_code = 400


class PayloadTooLargeError(ValidationError):
    status_code = 413


class UploadConflictError(InterviewError):
    """An answer for this question already exists and the policy forbids redo."""
    status_code = 409


class StorageError(InterviewError):
    """Reading or writing session files failed."""
    status_code = 500


class TranscriptionError(InterviewError):
    status_code = 502


class NotificationError(InterviewError):
    status_code = 502
