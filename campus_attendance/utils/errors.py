"""Application error taxonomy.

Services raise these; the view layer turns them into the
``{"success": false, "error": ...}`` envelope with ``status_code``.
"""


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = 400


class ConflictError(AppError):
    """A uniqueness rule was violated (duplicate login, email, ...)."""

    status_code = 400


class UnauthenticatedError(AppError):
    """Missing or wrong credentials."""

    status_code = 401


class AuthorizationError(AppError):
    """Role or ownership mismatch."""

    status_code = 403


class NotFoundError(AppError):
    """Referenced entity is absent or outside the caller's tenant."""

    status_code = 404
