"""Tests for structured log formatting."""

import logging

from docintel.core.logging import StructuredFormatter, get_logger, log_with_context


def _record(**attrs) -> logging.LogRecord:
    record = logging.LogRecord("docintel.test", logging.INFO, __file__, 1, "hello", None, None)
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


def test_formatter_renders_key_value_pairs():
    line = StructuredFormatter().format(
        _record(request_id="req-1", extra_data={"document_id": "doc-1"})
    )

    assert "level=INFO" in line
    assert "message=hello" in line
    assert "request_id=req-1" in line
    assert "document_id=doc-1" in line


def test_log_with_context_attaches_fields(caplog):
    logger = get_logger("docintel.test_context")

    with caplog.at_level(logging.INFO, logger="docintel.test_context"):
        log_with_context(logger, logging.INFO, "uploaded", request_id="r1", chunks=3)

    record = caplog.records[-1]
    assert record.request_id == "r1"
    assert record.extra_data == {"chunks": 3}
