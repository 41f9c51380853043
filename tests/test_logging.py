"""Debug logging emitted by the parser and by searches that run out of horizon."""

from __future__ import annotations

import logging

import pytest

from cronbits import Schedule, parse
from tests.conftest import dt

GONE = Schedule.parse("0 0 0 1 1 * 2030")


def _debug_records(caplog: pytest.LogCaptureFixture, name: str) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.name == name and r.levelno == logging.DEBUG]


def test_parse_logs_the_expression(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="cronbits")

    parse("0 0 * * *")

    records = _debug_records(caplog, "cronbits._cron")
    assert len(records) == 1
    assert "'0 0 * * *'" in records[0].getMessage()


def test_failed_parse_does_not_log(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="cronbits")

    assert Schedule.validate("61 * * * *") is False

    assert _debug_records(caplog, "cronbits._cron") == []


def test_exhausted_forward_search_logs_direction_and_start(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.DEBUG, logger="cronbits")
    now = dt(2035, 1, 1)

    assert GONE.next_from(now) is None

    records = _debug_records(caplog, "cronbits._search")
    assert len(records) == 1
    message = records[0].getMessage()
    assert "after" in message
    assert now.isoformat() in message


def test_exhausted_backward_search_logs_direction_and_start(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.DEBUG, logger="cronbits")
    now = dt(2036, 6, 1)

    assert GONE.previous_from(now) is None

    records = _debug_records(caplog, "cronbits._search")
    assert len(records) == 1
    message = records[0].getMessage()
    assert "before" in message
    assert now.isoformat() in message


def test_successful_search_does_not_log(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="cronbits")

    assert GONE.next_from(dt(2029, 6, 1)) is not None

    assert _debug_records(caplog, "cronbits._search") == []
