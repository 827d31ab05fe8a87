"""Error taxonomy shared by services and HTTP handlers.

Services raise these; the application factory registers handlers that
turn them into the standard `{success, message, data}` envelope with
`success: false` and the matching status code.
"""

from typing import Dict, Optional


class LMSError(Exception):
    status_code = 500
    default_message = "Server Error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {"type": type(self).__name__, "message": self.message}


class BadRequestError(LMSError):
    status_code = 400
    default_message = "Bad request"


class ValidationError(LMSError):
    """Input failed validation; `errors` maps field names to messages."""
    status_code = 422
    default_message = "Validation failed"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors: Dict[str, str] = dict(errors or {})

    def add(self, field: str, message: str) -> "ValidationError":
        self.errors[field] = message
        return self

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["errors"] = self.errors
        return out


class AuthError(LMSError):
    status_code = 401
    default_message = "Authentication required"


class ForbiddenError(LMSError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(LMSError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(LMSError):
    status_code = 409
    default_message = "Resource already exists"
