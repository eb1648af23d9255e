"""
Error Taxonomy
==============

Every failure surfaced to callers carries a structured kind, so clients can
pick a message without inspecting the human-readable text:

    {"detail": {"error": "bad_request", "message": "...", "field": null}}
"""

import enum
from typing import Optional

from fastapi import HTTPException, status


class ErrorKind(str, enum.Enum):
    """Machine-readable failure categories."""
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    INTERNAL_ERROR = "internal_error"


class AppError(HTTPException):
    """Base class for all application errors."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(
            status_code=type(self).status_code,
            detail={
                "error": self.kind.value,
                "message": message,
                "field": field,
            },
        )


class NotFoundError(AppError):
    """Resource absent or soft-deleted."""
    kind = ErrorKind.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(AppError):
    """Resource exists but the requester lacks the required relationship."""
    kind = ErrorKind.FORBIDDEN
    status_code = status.HTTP_403_FORBIDDEN


class BadRequestError(AppError):
    """Structurally invalid input."""
    kind = ErrorKind.BAD_REQUEST
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(AppError):
    """No authenticated principal on the request."""
    kind = ErrorKind.UNAUTHORIZED
    status_code = status.HTTP_401_UNAUTHORIZED


class InternalError(AppError):
    """Unexpected storage failure."""
    kind = ErrorKind.INTERNAL_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
