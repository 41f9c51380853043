"""Rendering SpecSchedules back to cron text."""

from __future__ import annotations

from zoneinfo import ZoneInfo

import pytest

from cronbits import RESTRICTION_BIT, CronError, Schedule, SpecSchedule, bits_of, parse, to_cron
from tests.conftest import at_second_zero

FLAG = 1 << RESTRICTION_BIT


@pytest.mark.parametrize(
    "expression,expected",
    [
        ("* * * * *", "0 * * * * * *"),
        ("*/15 9-17 * * mon-fri", "0 0,15,30,45 9-17 * * 1-5 *"),
        ("0 0 0 1,15 * *", "0 0 0 1,15 * * *"),
        ("0 0 0 29 feb *", "0 0 0 29 2 * *"),
        ("0 0 * * 0,7", "0 0 0 * * 0 *"),
        ("0 0 0 * * sat,sun", "0 0 0 * * 0,6 *"),
        ("0 0 0 1 1 * 2026,2028-2030", "0 0 0 1 1 * 2026,2028-2030"),
        ("@weekly", "0 0 0 * * 0 *"),
        ("0 0 0 15 * mon", "0 0 0 15 * 1 *"),
    ],
)
def test_to_cron(expression: str, expected: str) -> None:
    assert to_cron(parse(expression)) == expected


@pytest.mark.parametrize(
    "expression",
    [
        "*/15 9-17 * * mon-fri",
        "0 0 0 15 * mon",
        "0 0 0 15 * *",
        "0 0 0 * * 0",
        "5,10,15 0 12 1-31/3 * *",
        "TZ=America/New_York 0 30 2 * * *",
        "0 0 0 1 1 * 2030",
    ],
)
def test_rendered_text_parses_back(expression: str) -> None:
    spec = parse(expression)
    assert parse(to_cron(spec)) == spec


def test_zone_prefix() -> None:
    spec = parse("0 9 * * *", ZoneInfo("Asia/Tokyo"))
    assert to_cron(spec) == "TZ=Asia/Tokyo 0 0 9 * * * *"


def test_every_second() -> None:
    assert to_cron(SpecSchedule.every()) == "* * * * * * *"


def test_pairs_are_not_ranges() -> None:
    spec = at_second_zero(minute=bits_of([0, 1, 30, 31, 32]))
    assert to_cron(spec) == "0 0,1,30-32 * * * * *"


def test_empty_field_has_no_cron_spelling() -> None:
    with pytest.raises(CronError) as exc_info:
        to_cron(at_second_zero(hour=0))
    assert exc_info.value.kind == "render"


def test_flag_on_a_restricted_day_field_has_no_cron_spelling() -> None:
    spec = at_second_zero(dom=bits_of([15]) | FLAG, dow=bits_of([1]))
    with pytest.raises(CronError) as exc_info:
        to_cron(spec)
    assert exc_info.value.kind == "render"


def test_str_and_repr() -> None:
    schedule = Schedule.parse("30 9 * * mon-fri")
    assert str(schedule) == "0 30 9 * * 1-5 *"
    assert repr(schedule) == "Schedule('0 30 9 * * 1-5 *')"


def test_repr_of_schedule_without_cron_spelling() -> None:
    schedule = Schedule(at_second_zero(hour=0))
    assert repr(schedule).startswith("Schedule(SpecSchedule(")
