"""Application error taxonomy.

Services and the policy layer raise these; the exception handlers
registered in `main.py` turn them into the JSON response envelope.
"""

from typing import Dict, List, Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""
    status_code = 500
    default_message = "Error - Something Went Wrong."

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)


class BadRequest(AppError):
    status_code = 400
    default_message = "Bad request."


class Unauthorized(AppError):
    status_code = 401
    default_message = "Unauthorized."


class NotFound(AppError):
    status_code = 404
    default_message = "Error 404 - Not Found."


class Conflict(AppError):
    status_code = 409
    default_message = "Resource already exists."


class ValidationError(AppError):
    """Malformed input. `errors` carries one entry per offending field."""
    status_code = 422
    default_message = "Validation failed."

    def __init__(self, message: Optional[str] = None, errors: Optional[List[dict]] = None):
        super().__init__(message)
        self.errors = errors or []


class RateLimited(AppError):
    status_code = 429
    default_message = "Too many requests."

    def __init__(self, retry_after: int, message: Optional[str] = None):
        super().__init__(
            message or f"rate limit exceeded; retry after {retry_after}s",
            headers={"Retry-After": str(retry_after)},
        )
        self.retry_after = retry_after


class InternalError(AppError):
    status_code = 500
