"""Tests for JSON log formatting and structured error events."""

import json
import logging

from infocapture.telemetry.errors import ErrorCode, emit_structured_error
from infocapture.telemetry.logging_setup import JsonFormatter


def _record(message, **extra):
    record = logging.LogRecord("infocapture.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_json_with_structured_keys():
    record = _record(
        "Chunk triggered fields",
        event="fields_matched",
        context={"labels": ["address"]},
    )
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "Chunk triggered fields"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "infocapture.test"
    assert payload["event"] == "fields_matched"
    assert payload["context"] == {"labels": ["address"]}


def test_formatter_skips_empty_extras():
    payload = json.loads(JsonFormatter().format(_record("plain", details={})))
    assert "details" not in payload
    assert "event" not in payload


def test_structured_error_carries_code(caplog):
    logger = logging.getLogger("infocapture.test")
    with caplog.at_level(logging.ERROR):
        emit_structured_error(
            logger,
            code=ErrorCode.SPEECH_SOURCE_FAILED,
            message="network",
            suppressed=True,
            session_id="session_1",
        )
    record = caplog.records[-1]
    assert record.error_code == ErrorCode.SPEECH_SOURCE_FAILED
    assert record.session_id == "session_1"

    payload = json.loads(JsonFormatter().format(record))
    assert payload["error_code"] == "SPEECH_SOURCE_FAILED"
    assert payload["suppressed"] is True
