from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, tzinfo

from ._cron import parse
from ._display import to_cron
from ._error import CronError, CronErrorKind, Span
from ._fields import (
    DOM,
    DOW,
    HOURS,
    MAX_YEAR,
    MIN_YEAR,
    MINUTES,
    MONTHS,
    RESTRICTION_BIT,
    SEARCH_HORIZON_YEARS,
    SECONDS,
    YEARS,
    Bounds,
    Field,
    bit_range,
    bits_of,
    year_bits,
)
from ._search import between as _between
from ._search import day_matches, matches, next_from, previous_from
from ._search import next_n_from as _next_n_from
from ._search import occurrences as _occurrences
from ._spec import SpecSchedule


class Schedule:
    _spec: SpecSchedule

    def __init__(self, spec: SpecSchedule) -> None:
        self._spec = spec

    @classmethod
    def parse(cls, expression: str, tz: tzinfo | str | None = None) -> Schedule:
        return cls(parse(expression, tz))

    @classmethod
    def validate(cls, expression: str) -> bool:
        try:
            parse(expression)
            return True
        except CronError:
            return False

    def next_from(self, now: datetime) -> datetime | None:
        return next_from(self._spec, now)

    def previous_from(self, now: datetime) -> datetime | None:
        return previous_from(self._spec, now)

    def next_n_from(self, now: datetime, n: int) -> list[datetime]:
        return _next_n_from(self._spec, now, n)

    def matches(self, dt: datetime) -> bool:
        return matches(self._spec, dt)

    def occurrences(self, from_: datetime) -> Iterator[datetime]:
        """Returns a lazy iterator of activations strictly after `from_`.

        The iterator ends once no activation is found within the search
        horizon, which for most schedules means it runs until 2099.
        """
        return _occurrences(self._spec, from_)

    def between(self, from_: datetime, to: datetime) -> Iterator[datetime]:
        """Returns a bounded iterator of activations where `from_ < t <= to`."""
        return _between(self._spec, from_, to)

    def to_cron(self) -> str:
        return to_cron(self._spec)

    def __str__(self) -> str:
        return to_cron(self._spec)

    def __repr__(self) -> str:
        try:
            return f"Schedule({to_cron(self._spec)!r})"
        except CronError:
            # Hand-built masks may have no cron spelling
            return f"Schedule({self._spec!r})"

    @property
    def spec(self) -> SpecSchedule:
        return self._spec

    @property
    def timezone(self) -> tzinfo | None:
        return self._spec.tz


__all__ = [
    "Schedule",
    "SpecSchedule",
    "CronError",
    "CronErrorKind",
    "Span",
    "Field",
    "Bounds",
    "SECONDS",
    "MINUTES",
    "HOURS",
    "DOM",
    "MONTHS",
    "DOW",
    "YEARS",
    "MIN_YEAR",
    "MAX_YEAR",
    "RESTRICTION_BIT",
    "SEARCH_HORIZON_YEARS",
    "bit_range",
    "bits_of",
    "year_bits",
    "parse",
    "to_cron",
    "next_from",
    "previous_from",
    "matches",
    "day_matches",
]
