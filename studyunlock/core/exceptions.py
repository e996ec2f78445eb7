"""Domain exceptions raised by the service layer."""


class StudyUnlockError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400


class NotFoundError(StudyUnlockError):
    """Raised when a referenced record does not exist."""

    status_code = 404


class PermissionDeniedError(StudyUnlockError):
    """Raised when a user acts on a record they do not own."""

    status_code = 403


class InvalidStateError(StudyUnlockError):
    """Raised when a state transition is not allowed."""

    status_code = 409
