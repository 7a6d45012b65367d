"""
Tagged error values for standard execution.

Remote adapters raise their own exceptions (RemoteAPIError, SafetyViolation,
AuthenticationError, httpx errors). A standard wraps whatever it catches in a
StandardError so that outcomes carry the stage that failed plus the original
cause; the normalized message is derived from the cause on demand.
"""

from __future__ import annotations

import enum
from typing import Optional

import httpx

from .remote.base import RemoteAPIError


class ErrorKind(str, enum.Enum):
    CAPABILITY = "capability"
    FETCH = "fetch"
    WRITE = "write"
    SINK = "sink"


class StandardError(Exception):
    """A failure in one stage of a standard run."""

    def __init__(self, kind: ErrorKind, message: str, cause: Optional[BaseException] = None):
        self.kind = kind
        self.message = message
        self.cause = cause
        super().__init__(f"{message}: {self.normalized_message}" if cause else message)

    @property
    def normalized_message(self) -> str:
        if self.cause is None:
            return self.message
        return normalize_error(self.cause)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "normalized_error": self.normalized_message,
            "cause_type": type(self.cause).__name__ if self.cause else None,
        }


def normalize_error(exc: BaseException) -> str:
    """
    Reduce an exception to a single readable line.

    Remote API errors already carry the service's own message; transport
    errors are labelled by type so throttling, timeouts and DNS failures are
    distinguishable in the log.
    """
    if isinstance(exc, StandardError):
        return exc.normalized_message
    if isinstance(exc, RemoteAPIError):
        return exc.remote_message or f"HTTP {exc.status_code}"
    if isinstance(exc, httpx.TimeoutException):
        return f"Request timed out: {exc}" if str(exc) else "Request timed out"
    if isinstance(exc, httpx.HTTPError):
        return f"{type(exc).__name__}: {exc}"

    text = str(exc).strip()
    if not text:
        return type(exc).__name__
    return text.splitlines()[0]
