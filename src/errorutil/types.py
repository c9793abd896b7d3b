from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Severity(str, Enum):
    """Importance of a log record as understood by the backend."""
    LOW = "Low"
    MED = "Med"
    HIGH = "High"


def coerce_body(body: Any) -> dict[str, Any]:
    """Copy a response body into a fresh dict."""
    if isinstance(body, Mapping):
        return dict(body)
    # Non-mapping bodies (a bare string from a proxy, say) become the message.
    return {} if body is None else {"message": body}


class ErrorUtilError(Exception):
    """Base class for errors raised by errorutil itself."""


class ResponseError(ErrorUtilError):
    """
    An error response from a remote service.

    Raise (or pass) one of these when a failed call produced a structured body
    rather than a local exception. The reporter logs it as a response-style
    payload instead of a plain exception.

    Usage example
    -------------
        raise ResponseError(500, "Server Error", body={"message": "boom"})
    """

    def __init__(
        self,
        status: Optional[int],
        status_text: Optional[str],
        body: Any = None,
        *,
        error_type: Optional[str] = None,
    ) -> None:
        self.status = status
        self.status_text = status_text
        self.body = coerce_body(body)
        self.error_type = error_type
        super().__init__(f"{status} | {status_text}: {self.body.get('message')}")


@dataclass(frozen=True)
class LogRecord:
    """
    One structured error record, built per call and discarded after submission.

    Usage example
    -------------
        rec = LogRecord(
            object_type="Account",
            record_url="https://example.org/a/1",
            severity=Severity.MED,
            context_type="ValueError",
            error_type="JavaScript Error",
            full_message="boom",
        )
    """
    object_type: Optional[str]
    record_url: str
    severity: Severity
    context_type: str
    error_type: Optional[str]
    full_message: str
    stack_trace: Optional[str] = None
