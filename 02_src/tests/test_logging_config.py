"""Tests for logging configuration."""

import json
import logging

from icebreaker.logging_config import JSONFormatter, get_session_logger


def make_record(level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="icebreaker.sessions.session",
        level=level,
        pathname=__file__,
        lineno=10,
        msg="State %s -> %s",
        args=("introduction", "waiting_for_partner"),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_formats_message_and_context(self):
        line = JSONFormatter().format(make_record(user_id="zoe", partner_id=None))

        data = json.loads(line)
        assert data["message"] == "State introduction -> waiting_for_partner"
        assert data["level"] == "INFO"
        assert data["user_id"] == "zoe"
        assert "partner_id" not in data
        assert "location" not in data

    def test_warnings_carry_location(self):
        data = json.loads(JSONFormatter().format(make_record(logging.WARNING)))

        assert data["location"].endswith(":10")


class TestSessionLogger:
    def test_records_carry_user_id(self, caplog):
        log = get_session_logger("icebreaker.test", "zoe")

        with caplog.at_level(logging.INFO, logger="icebreaker.test"):
            log.info("hello", extra={"partner_id": "liam"})

        record = caplog.records[-1]
        assert record.user_id == "zoe"
        assert record.partner_id == "liam"
