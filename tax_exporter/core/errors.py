"""
Fetch error hierarchy shared by all source adapters.

Adapters raise ``FetchError`` for batch-level failures only. The ``kind``
is what the dispatcher looks at when deciding between surfacing the error
and downgrading to synthetic data.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    INVALID_ACCOUNT = "InvalidAccount"
    UNSUPPORTED_SOURCE = "UnsupportedSource"
    UPSTREAM_UNAVAILABLE = "UpstreamUnavailable"
    UNAUTHORIZED = "Unauthorized"
    INTERNAL_ERROR = "InternalError"


class FetchError(Exception):
    """Batch-level failure while fetching records from a source."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
        rate_limited: bool = False,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.source = source
        self.status_code = status_code
        self.rate_limited = rate_limited
        self.original_error = original_error

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "source": self.source,
            "status_code": self.status_code,
            "rate_limited": self.rate_limited,
            "original_error": str(self.original_error) if self.original_error else None,
        }

    def __str__(self) -> str:
        parts = [f"{self.kind.value}: {self.message}"]
        if self.source:
            parts.append(f"[source={self.source}]")
        if self.status_code is not None:
            parts.append(f"[status={self.status_code}]")
        return " ".join(parts)


def error_kind_for_status(status_code: int) -> ErrorKind:
    """Map an upstream HTTP status to an error kind."""
    if status_code in (401, 403):
        return ErrorKind.UNAUTHORIZED
    if status_code == 429 or status_code >= 500:
        return ErrorKind.UPSTREAM_UNAVAILABLE
    return ErrorKind.INTERNAL_ERROR
