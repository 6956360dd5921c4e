"""
Tests for structured logging and contact data masking.
"""
import json
import logging

from core.logging_config import (
    JSONFormatter,
    TextFormatter,
    clear_request_id,
    mask_email,
    mask_phone,
    mask_text,
    set_request_id,
)


def _record(msg, **extra):
    record = logging.LogRecord("services.patient_service", logging.WARNING, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_mask_email():
    assert mask_email("juan@test.com") == "j***@test.com"
    assert mask_email("no-at-sign") == "***"


def test_mask_phone():
    assert mask_phone("0999991234") == "******1234"


def test_mask_text():
    text = mask_text("duplicate juan@test.com phone 0999991234 id=12")
    assert "juan@test.com" not in text
    assert "j***@test.com" in text
    assert "******1234" in text
    assert "id=12" in text


def test_json_formatter_masks_extras_and_adds_request_id():
    set_request_id("abcd1234")
    try:
        line = JSONFormatter().format(_record("Email already in use", email="juan@test.com", patient_id=3))
    finally:
        clear_request_id()
    entry = json.loads(line)
    assert entry["level"] == "WARNING"
    assert entry["logger"] == "services.patient_service"
    assert entry["msg"] == "Email already in use"
    assert entry["request_id"] == "abcd1234"
    assert entry["email"] == "j***@test.com"
    assert entry["patient_id"] == 3
    assert entry["ts"].endswith("Z")


def test_json_formatter_masks_nested_context():
    entry = json.loads(JSONFormatter().format(_record("conflict", context={"email": "juan@test.com"})))
    assert entry["context"] == {"email": "j***@test.com"}


def test_text_formatter():
    line = TextFormatter().format(_record("Creating patient", email="maria@test.com"))
    assert "| WARNING  |" in line
    assert "[-]" in line
    assert "email=m***@test.com" in line
