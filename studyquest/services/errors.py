from __future__ import annotations

# Reason strings surfaced to callers.  The API puts them in the response
# body so a client can tell "finish last week first" from "your instructor
# hasn't published this yet".
PROGRESS_GATED = "progress-gated"
CONTENT_NOT_READY = "content-not-ready"
QUIZ_UNAVAILABLE = "quiz-unavailable"
NOT_ENROLLED = "not-enrolled"
COURSE_NOT_FOUND = "course-not-found"


class ProgressionError(Exception):
    """Base class for everything the progression engine raises on purpose."""

    def __init__(self, reason: str, message: str | None = None) -> None:
        super().__init__(message or reason)
        self.reason = reason
        self.message = message or reason


class ValidationError(ProgressionError, ValueError):
    """Bad input, rejected before any write."""


class NotFoundError(ProgressionError):
    pass


class AccessDeniedError(ProgressionError):
    """Week is locked (progress-gated) or unpublished (content-not-ready)."""


class QuizUnavailableError(ProgressionError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(QUIZ_UNAVAILABLE, message)


class StorageError(ProgressionError):
    """A backend read/write/transaction failed.  Fatal for this call."""

    def __init__(self, operation: str, key: str, message: str | None = None) -> None:
        super().__init__(
            "storage-failure",
            message or f"storage failure during {operation} on {key}",
        )
        self.operation = operation
        self.key = key


class AlreadyExistsError(ProgressionError):
    """Create of something that is already there (student, course id)."""
