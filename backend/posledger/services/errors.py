"""
Error taxonomy shared by every commerce service.

Routes map these to HTTP status codes; anything else escaping a service is
an unexpected failure and is logged with its stack trace.
"""


class CommerceError(Exception):
    """Base class for expected, user-reportable failures."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(CommerceError):
    """Row does not exist or belongs to another owner. Never says which."""


class ValidationError(CommerceError, ValueError):
    """400-level input problem, raised before any row is locked."""


class ConflictError(CommerceError):
    """409-level state conflict (e.g. refunding a refunded sale)."""


class StorageError(CommerceError):
    """Database failure; the whole unit has been rolled back."""


class DeadlineExceededError(CommerceError):
    """Request deadline passed mid-transaction; the unit has been rolled back."""
