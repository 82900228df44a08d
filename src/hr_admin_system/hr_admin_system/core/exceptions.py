class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""


class ConflictError(DomainError):
    """Raised when an operation would break a business invariant."""


class AuthenticationError(DomainError):
    """Raised when the caller is not authenticated."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class InvariantViolationError(DomainError):
    """Raised when stored data is found in a state the invariants forbid."""
