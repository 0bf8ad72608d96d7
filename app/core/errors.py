"""Base error type for domain failures that map to an HTTP status at the request boundary."""


class AppError(Exception):
    """Raised by services; app.main translates it to a JSON error body."""

    status_code: int = 500

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class ServiceUnavailableError(AppError):
    """Raised when the primary database is unreachable and the operation cannot degrade."""

    status_code = 503


class InvalidIdError(AppError):
    """Raised when an identifier is not syntactically valid for the backing store."""

    status_code = 400
