class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a stream, timetable or override does not exist."""


class ForbiddenError(DomainError):
    """Raised when a user is not a member (or admin) of the stream."""


class AuthenticationError(DomainError):
    """Raised when no authenticated user is attached to the request."""


class DuplicateRecordError(DomainError):
    """Raised by repositories when an insert hits an existing unique key."""
