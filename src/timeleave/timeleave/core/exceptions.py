class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "DOMAIN_ERROR"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_ERROR"


class AuthenticationError(DomainError):
    """Raised when the caller is not logged in."""

    code = "UNAUTHENTICATED"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "FORBIDDEN"


class NotFoundError(DomainError):
    code = "NOT_FOUND"


class AlreadyClockedIn(DomainError):
    code = "ALREADY_CLOCKED_IN"


class NoOpenSession(DomainError):
    code = "NO_OPEN_SESSION"


class DuplicatePending(DomainError):
    code = "DUPLICATE_PENDING"


class InsufficientBalance(DomainError):
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, message: str, *, available=None, requested=None):
        super().__init__(message)
        self.available = available
        self.requested = requested


class InvalidTransition(DomainError):
    """Raised when a leave request is not in a status that allows the transition."""

    code = "INVALID_TRANSITION"

    def __init__(self, message: str, *, current_status=None):
        super().__init__(message)
        self.current_status = current_status


class InvalidDateRange(ValidationError):
    code = "INVALID_DATE_RANGE"
