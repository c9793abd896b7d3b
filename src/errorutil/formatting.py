"""Record construction and envelope layout."""

from __future__ import annotations

import json
import traceback as _traceback
from typing import Any, Optional

from .config import FieldMap, ReporterConfig
from .payloads import ExceptionPayload, Payload, ResponsePayload, UnrecognizedPayload
from .types import LogRecord, Severity

EXCEPTION_ERROR_TYPE = "JavaScript Error"
RESPONSE_CONTEXT_PREFIX = "Lightning Component: "
UNRECOGNIZED_CONTEXT_TYPE = "Unrecognized error payload"
UNRECOGNIZED_ERROR_TYPE = "Unrecognized Error"


def format_traceback(exc: BaseException) -> str:
    return "".join(_traceback.format_exception(type(exc), exc, exc.__traceback__))


def format_detail(output: Any) -> str:
    """Serialize a response ``output`` blob as compact JSON."""
    return json.dumps(output, separators=(",", ":"), ensure_ascii=False, default=str)


def build_record(
    payload: Payload,
    *,
    severity: Severity,
    context_type: Optional[str],
    object_type: Optional[str],
    record_url: str,
) -> LogRecord:
    """
    Map a classified payload onto a ``LogRecord``.

    Exceptions use the exception class name as context; response payloads use
    the caller's context label behind a fixed prefix.
    """
    if isinstance(payload, ExceptionPayload):
        exc = payload.exc
        return LogRecord(
            object_type=object_type,
            record_url=record_url,
            severity=severity,
            context_type=type(exc).__name__,
            error_type=EXCEPTION_ERROR_TYPE,
            full_message=str(exc),
            stack_trace=format_traceback(exc),
        )

    if isinstance(payload, ResponsePayload):
        body = dict(payload.body)
        full_message = (
            f"{payload.status} | {payload.status_text}: {body.get('message')}"
            f"\n\nDetail:\n{format_detail(body.get('output'))}"
        )
        return LogRecord(
            object_type=object_type,
            record_url=record_url,
            severity=severity,
            context_type=f"{RESPONSE_CONTEXT_PREFIX}{context_type}",
            error_type=payload.error_type,
            full_message=full_message,
            stack_trace=body.get("stackTrace", body.get("stack_trace")),
        )

    if isinstance(payload, UnrecognizedPayload):
        return LogRecord(
            object_type=object_type,
            record_url=record_url,
            severity=severity,
            context_type=context_type or UNRECOGNIZED_CONTEXT_TYPE,
            error_type=UNRECOGNIZED_ERROR_TYPE,
            full_message=repr(payload.value),
        )

    raise TypeError(f"Unsupported payload kind: {type(payload).__name__}")


def record_fields(record: LogRecord, field_map: FieldMap) -> dict[str, Any]:
    """Key record values by the backend's field identifiers."""
    return {
        field_map.object_type: record.object_type,
        field_map.record_url: record.record_url,
        field_map.severity: record.severity.value,
        field_map.context_type: record.context_type,
        field_map.error_type: record.error_type,
        field_map.full_message: record.full_message,
        field_map.stack_trace: record.stack_trace,
    }


def build_envelope(record: LogRecord, cfg: ReporterConfig) -> dict[str, Any]:
    """
    Wrap a record for the log sink.

    Usage example
    -------------
        envelope = build_envelope(rec, ReporterConfig())
        # {"customExceptionLog": {"apiName": "Custom_Exception_Log__e", "fields": {...}}}
    """
    return {
        cfg.envelope_key: {
            "apiName": cfg.channel,
            "fields": record_fields(record, cfg.fields),
        }
    }
