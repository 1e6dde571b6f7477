"""Error taxonomy shared by services and the HTTP layer.

Services raise these; app.main maps each one to a status code and renders
the body as {"error": message, "status": code}.
"""


class AppError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class ValidationError(AppError):
    """Bad or missing input."""

    status_code = 400


class UnauthorizedError(AppError):
    """Missing or invalid session or credentials."""

    status_code = 401


class ForbiddenError(AppError):
    """Authenticated, but not allowed to act on this resource."""

    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """Uniqueness violation (e.g. email already registered)."""

    status_code = 409


class StorageError(AppError):
    """Database, cache or object store failure. Message is never shown to clients."""

    status_code = 500


class RequestTimeoutError(AppError):
    """The request deadline passed before a downstream call could complete."""

    status_code = 500
