"""Error taxonomy shared by the services and the client.

Every error carries the HTTP status it maps to at the request boundary;
``main.py`` turns them into ``{"error": message}`` responses.
"""


class VotingError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(VotingError):
    """Malformed or missing input."""
    status_code = 400


class ConflictError(VotingError):
    """Duplicate account data, a second admin, a repeated vote or review."""
    status_code = 400


class AuthError(VotingError):
    """Bad credentials or a missing/invalid/expired token."""
    status_code = 401


class ForbiddenError(VotingError):
    """Authenticated, but the account's role does not allow the operation."""
    status_code = 403


class NotFoundError(VotingError):
    status_code = 404


class StorageError(VotingError):
    """The backing store cannot be read; nothing is written over it."""
    status_code = 500
