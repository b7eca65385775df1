"""Typed failures raised by the service layer.

Each carries the HTTP status the API layer maps it to; none of them are
retried, they describe caller or data errors.
"""


class PartakeError(Exception):
    """Base class for domain failures."""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(PartakeError):
    """Raised for bad confirmation text, malformed cursors and invalid amounts."""

    status_code = 422


class Conflict(PartakeError):
    """Raised when an attendee record already exists for an (event, user) pair."""

    status_code = 409


class InvalidTransition(PartakeError):
    """Raised for an attendance move the state machine does not allow."""

    status_code = 409


class InvalidState(PartakeError):
    """Raised when the target is in a state that forbids the operation."""

    status_code = 409


class NotFound(PartakeError):
    status_code = 404


class Forbidden(PartakeError):
    """Raised when a non-organizer attempts an organizer-only action."""

    status_code = 403
