"""Exception taxonomy shared by the store, services and HTTP layer."""
from __future__ import annotations

from typing import Any, Dict, Optional


class ExamError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(ExamError):
    """Malformed admin input."""

    status_code = 400
    message = "Invalid input"


class NotFoundError(ExamError):
    """Unknown or malformed token. Both cases share one message."""

    status_code = 404
    message = "Invalid or expired token"

    def __init__(self):
        super().__init__(self.message)


class GateRejection(ExamError):
    """The exam window is closed for this request."""

    def __init__(self, reason: str, server_now: int, open_at_utc: int, end_at_utc: int):
        super().__init__(reason)
        self.reason = reason
        self.status_code = 423 if reason == "locked" else 410
        self.server_now = server_now
        self.open_at_utc = open_at_utc
        self.end_at_utc = end_at_utc

    def payload(self) -> Dict[str, Any]:
        return {
            "error": self.reason,
            "serverNow": self.server_now,
            "openAtUtc": self.open_at_utc,
            "endAtUtc": self.end_at_utc,
        }


class AuthRequired(ExamError):
    """Missing or invalid admin credential."""

    status_code = 401
    message = "Auth required"
    challenge = 'Basic realm="Admin"'


class InternalError(ExamError):
    """Persistence or unexpected failure; the caller only sees a generic message."""

    status_code = 500


class UpstreamError(ExamError):
    """The external scoring service failed or is not configured."""

    status_code = 502
    message = "Scoring service unavailable"

    def __init__(self, message: Optional[str] = None, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code
