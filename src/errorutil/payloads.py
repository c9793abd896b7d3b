"""Classification of error payloads into the shapes the reporter understands."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .types import ResponseError, coerce_body


@dataclass(frozen=True)
class ExceptionPayload:
    exc: BaseException


@dataclass(frozen=True)
class ResponsePayload:
    body: dict[str, Any] = field(default_factory=dict)
    status: Any = None
    status_text: Any = None
    error_type: Optional[str] = None


@dataclass(frozen=True)
class UnrecognizedPayload:
    value: Any


Payload = Union[ExceptionPayload, ResponsePayload, UnrecognizedPayload]


def _pick(source: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = source.get(key)
        if value is not None:
            return value
    return None


def _from_mapping(source: Mapping[str, Any]) -> ResponsePayload:
    return ResponsePayload(
        body=coerce_body(source.get("body")),
        status=_pick(source, "status"),
        status_text=_pick(source, "statusText", "status_text"),
        # Empty strings fall through to the enhanced type, like a falsy check.
        error_type=_pick(source, "errorType", "error_type") or _pick(
            source, "enhancedErrorType", "enhanced_error_type"
        ),
    )


def classify_payload(payload: Any) -> Payload:
    """
    Decide which record shape a payload maps to.

    Order
    -----
    1. ``ResponseError`` -> response-style.
    2. any other exception -> exception.
    3. a mapping with a ``body`` key, or an object whose own instance
       attributes include ``body`` -> response-style.
    4. anything else -> unrecognized.

    Usage example
    -------------
        kind = classify_payload({"body": {"message": "m"}, "status": 500})
        assert isinstance(kind, ResponsePayload)
    """
    if isinstance(payload, ResponseError):
        return ResponsePayload(
            body=coerce_body(payload.body),
            status=payload.status,
            status_text=payload.status_text,
            error_type=payload.error_type,
        )
    if isinstance(payload, BaseException):
        return ExceptionPayload(exc=payload)
    if isinstance(payload, Mapping):
        if "body" in payload:
            return _from_mapping(payload)
        return UnrecognizedPayload(value=payload)

    own = getattr(payload, "__dict__", None)
    if isinstance(own, dict) and "body" in own:
        return _from_mapping(own)
    return UnrecognizedPayload(value=payload)
