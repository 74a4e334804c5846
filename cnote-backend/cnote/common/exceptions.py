"""
Exception hierarchy for the cnote backend.

Every error carries a human-readable message plus optional details; the API
layer maps each class onto one HTTP status (see ``http_status``).
"""

from typing import Any, Optional

from fastapi import status


class CnoteError(Exception):
    """Base exception for all cnote application errors."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class UnauthenticatedError(CnoteError):
    """Raised when a request carries no valid caller identity."""

    http_status = status.HTTP_401_UNAUTHORIZED


class InvalidRequestError(CnoteError):
    """Raised when a request body or tool argument object fails validation."""

    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        self.field = field
        super().__init__(message, details)


class NotFoundOrForbiddenError(CnoteError):
    """
    Raised when a resource is absent or the caller may not read it.

    Both cases share one error so that responses never reveal whether a
    resource the caller cannot access exists.
    """

    http_status = status.HTTP_404_NOT_FOUND


class AccessDeniedError(NotFoundOrForbiddenError):
    """Raised when a shared note is requested without an active share."""


class UpstreamServiceError(CnoteError):
    """Raised when the embedding or completion provider fails or times out."""

    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        if service:
            details["service"] = service
        super().__init__(message, details)


class ToolExecutionError(CnoteError):
    """
    Raised inside a single tool call.

    The orchestrator turns it into the error payload of that call's result
    message; it never ends a chat turn.
    """

    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        tool: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        if tool:
            details["tool"] = tool
        super().__init__(message, details)
