"""
Exceptions raised by the playout engine.

Every error carries an HTTP status and a short machine-readable code so the
API layer can map it without knowing about individual services.
"""


class PlayoutError(Exception):
    """Base exception for all playout engine errors."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or self.__class__.__doc__ or self.code


class NotFoundError(PlayoutError):
    """Requested record does not exist."""

    status_code = 404
    code = "not_found"


class ScreenNotFoundError(NotFoundError):
    """Screen not found."""

    code = "screen_not_found"


class PlayerNotFoundError(NotFoundError):
    """Player not found."""

    code = "player_not_found"


class UnauthorizedError(PlayoutError):
    """Invalid or expired authentication token."""

    status_code = 401
    code = "unauthorized"


class PlayerDisconnectedError(UnauthorizedError):
    """Player is disconnected or inactive. Please re-register this device."""

    code = "player_disconnected"


class ValidationError(PlayoutError):
    """Request payload failed validation."""

    status_code = 400
    code = "validation_error"


class ConflictOrInternalError(PlayoutError):
    """Unexpected database failure, retry the request later."""

    status_code = 500
    code = "conflict_or_internal"
