"""Tests for structured logging."""

import json
import logging

from contactlink.core.request_context import clear_request_id, set_request_id
from contactlink.logging_config import ContextFilter, JSONFormatter


def make_record(message="hello", **extra):
    record = logging.LogRecord(
        name="contactlink.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_core_fields():
    """Test the fixed JSON fields."""
    payload = json.loads(JSONFormatter().format(make_record()))

    assert payload["message"] == "hello"
    assert payload["severity"] == "INFO"
    assert payload["logger"] == "contactlink.test"
    assert payload["timestamp"].endswith("Z")


def test_json_formatter_includes_extra_fields():
    """Test that extra={...} values are emitted."""
    payload = json.loads(JSONFormatter().format(make_record(primary_contact_id=7, contact_ids=[1, 2])))

    assert payload["primary_contact_id"] == 7
    assert payload["contact_ids"] == [1, 2]


def test_context_filter_adds_request_id():
    """Test that the request id from context lands on the record."""
    record = make_record()
    set_request_id("req-abc")
    try:
        assert ContextFilter().filter(record) is True
    finally:
        clear_request_id()

    payload = json.loads(JSONFormatter().format(record))
    assert payload["request_id"] == "req-abc"


def test_no_request_id_outside_requests():
    """Test that records outside a request carry no request id."""
    record = make_record()
    ContextFilter().filter(record)

    payload = json.loads(JSONFormatter().format(record))
    assert "request_id" not in payload
