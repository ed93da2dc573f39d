"""
Error taxonomy for dispatch operations.

Services raise these; the application factory renders them as
``{"error": code}`` with the matching HTTP status. All of them are
client-correctable conditions, none are fatal to the process.
"""


class DispatchError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 400

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code

    def to_dict(self) -> dict:
        return {'error': self.code}


class ValidationError(DispatchError):
    """Malformed input: bad callsign, route, schedule or credentials."""
    status_code = 400


class AuthenticationError(DispatchError):
    """Missing/unknown token or wrong credentials."""
    status_code = 401


class ForbiddenError(DispatchError):
    """Caller lacks the role or the zone authority for the action."""
    status_code = 403


class NotFoundError(DispatchError):
    status_code = 404


class ConflictError(DispatchError):
    """State conflict: callsign taken, zone busy, transfer pending, target offline."""
    status_code = 409


class LockedError(DispatchError):
    """Flight is locked by an admin."""
    status_code = 423

    def __init__(self, code: str = 'locked'):
        super().__init__(code)
