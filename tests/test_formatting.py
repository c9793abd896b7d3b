from __future__ import annotations

from errorutil.config import FieldMap, ReporterConfig
from errorutil.formatting import (
    EXCEPTION_ERROR_TYPE,
    build_envelope,
    build_record,
    format_detail,
    record_fields,
)
from errorutil.payloads import ExceptionPayload, ResponsePayload, UnrecognizedPayload, classify_payload
from errorutil.types import Severity


def _record(payload, *, severity=Severity.MED, context_type="ctx", object_type="Account__c"):
    return build_record(
        classify_payload(payload),
        severity=severity,
        context_type=context_type,
        object_type=object_type,
        record_url="https://example.org/r/1",
    )


def test_exception_record_fields() -> None:
    try:
        raise ValueError("Test error")
    except ValueError as exc:
        rec = _record(exc, severity=Severity.HIGH)

    assert rec.severity == Severity.HIGH
    assert rec.context_type == "ValueError"
    assert rec.error_type == EXCEPTION_ERROR_TYPE == "JavaScript Error"
    assert rec.full_message == "Test error"
    assert rec.object_type == "Account__c"
    assert rec.record_url == "https://example.org/r/1"
    assert rec.stack_trace is not None
    assert rec.stack_trace.startswith("Traceback")
    assert "ValueError: Test error" in rec.stack_trace


def test_exception_never_raised_still_has_stack_text() -> None:
    rec = _record(KeyError("k"))
    assert rec.stack_trace == "KeyError: 'k'\n"


def test_response_record_full_message_and_stack() -> None:
    payload = {
        "body": {"message": "m", "stackTrace": "t", "output": {"k": "v"}},
        "status": 500,
        "statusText": "Server Error",
        "enhancedErrorType": "RecordError",
    }
    rec = _record(payload, context_type="accountCard")

    assert rec.full_message == '500 | Server Error: m\n\nDetail:\n{"k":"v"}'
    assert rec.stack_trace == "t"
    assert rec.context_type == "Lightning Component: accountCard"
    assert rec.error_type == "RecordError"


def test_response_without_output_serializes_null() -> None:
    rec = _record({"body": {"message": "m"}, "status": 404, "statusText": "Not Found"})
    assert rec.full_message == "404 | Not Found: m\n\nDetail:\nnull"
    assert rec.stack_trace is None


def test_format_detail_is_compact_and_keeps_unicode() -> None:
    assert format_detail({"a": [1, 2], "b": "é"}) == '{"a":[1,2],"b":"é"}'


def test_unrecognized_record() -> None:
    rec = build_record(
        UnrecognizedPayload(value="weird"),
        severity=Severity.MED,
        context_type=None,
        object_type=None,
        record_url="",
    )
    assert rec.context_type == "Unrecognized error payload"
    assert rec.error_type == "Unrecognized Error"
    assert rec.full_message == "'weird'"


def test_both_branches_produce_same_field_set() -> None:
    fm = FieldMap()
    exc_fields = record_fields(_record(ValueError("x")), fm)
    resp_fields = record_fields(_record({"body": {"message": "y"}}), fm)
    assert set(exc_fields) == set(resp_fields)
    assert len(exc_fields) == 7


def test_envelope_uses_configured_channel_and_field_ids() -> None:
    cfg = ReporterConfig(channel="App_Log__e", fields=FieldMap(full_message="Message__c"))
    envelope = build_envelope(_record(ValueError("boom")), cfg)

    inner = envelope["customExceptionLog"]
    assert inner["apiName"] == "App_Log__e"
    assert inner["fields"]["Message__c"] == "boom"
    assert inner["fields"]["Severity_Level__c"] == "Med"
    assert "Full_Message__c" not in inner["fields"]


def test_payload_kinds_are_distinct_types() -> None:
    assert isinstance(classify_payload(ValueError()), ExceptionPayload)
    assert isinstance(classify_payload({"body": None}), ResponsePayload)
