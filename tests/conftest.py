from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from cronbits import SpecSchedule, bits_of

UTC = ZoneInfo("UTC")


def parse_zoned(s: str) -> datetime:
    """Parse '2026-02-06T12:00:00+00:00[UTC]' into a timezone-aware datetime."""
    # Extract the IANA timezone name from brackets
    m = re.match(r"^(.+)\[(.+)\]$", s)
    if not m:
        raise ValueError(f"expected format 'ISO[TZ]', got: {s}")
    iso_part, tz_name = m.group(1), m.group(2)
    tz = ZoneInfo(tz_name)
    dt = datetime.fromisoformat(iso_part)
    # Convert to the named timezone
    return dt.astimezone(tz)


def format_zoned(dt: datetime) -> str:
    """Format a timezone-aware datetime as '2026-02-06T12:00:00+00:00[TZ]'."""
    tz = dt.tzinfo
    if tz is None:
        raise ValueError("datetime must be timezone-aware")
    tz_name = tz.key if hasattr(tz, "key") else str(tz)
    return f"{dt.isoformat()}[{tz_name}]"


def dt(year, month, day, hour=0, minute=0, second=0, tz=UTC):
    return datetime(year, month, day, hour, minute, second, tzinfo=tz)


def instant(moment: datetime) -> float:
    """Absolute position on the timeline; same-zone comparisons ignore fold."""
    return moment.timestamp()


def at_second_zero(**fields: int) -> SpecSchedule:
    """An every-second schedule pinned to second 0, with the given masks replaced."""
    return SpecSchedule.every().replace(second=bits_of([0]), **fields)


@pytest.fixture(scope="session")
def cases() -> dict:  # type: ignore[type-arg]
    with open(Path(__file__).parent / "cases.json") as f:
        return json.load(f)


@pytest.fixture
def utc_now() -> datetime:
    return datetime(2024, 5, 10, 10, 0, 30, tzinfo=timezone.utc)
