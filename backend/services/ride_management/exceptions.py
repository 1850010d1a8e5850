"""Custom exceptions for ride management, queries and analytics."""


class RideServiceError(Exception):
    """Base class for errors surfaced to the caller."""
    code = 'error'


class NotFoundError(RideServiceError):
    """Raised when a referenced ride or user does not exist."""
    code = 'not_found'


class AuthorizationError(RideServiceError):
    """Raised when the caller's role or ownership does not allow the operation."""
    code = 'forbidden'


class InvalidStateError(RideServiceError):
    """Raised when a ride is not in the state the transition requires."""
    code = 'invalid_state'


class ValidationError(RideServiceError):
    """Raised for malformed or inconsistent input."""
    code = 'validation_error'
