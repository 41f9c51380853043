from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum

from ._fields import MAX_YEAR, MIN_YEAR, SEARCH_HORIZON_YEARS, Field, has_bit
from ._spec import SpecSchedule

logger = logging.getLogger(__name__)

_UTC = timezone.utc

# =============================================================================
# Field Cascade
# =============================================================================
# Both searches walk the fields from coarsest to finest. A field that does not
# match is stepped one unit at a time until it does. When a step crosses into
# another unit of the coarser field (the hour rolls into the next day, the
# month into the next year, ...) every coarser field has to be checked again,
# so the cascade restarts from the year.
#
# Forward: the first step of the whole call truncates the cursor to the start
# of the stepped unit, so finer fields restart from their minimum. Later steps
# never truncate again.
#
# Backward: every step goes to the start of the previous unit. Once a stepped
# field matches, the cursor is moved to the last second of that unit so that
# finer fields search down from their maximum. The set of stepped fields is
# kept for the whole call: after a restart the cursor can sit at the start of
# a unit that was reached by an earlier step.
# =============================================================================

# =============================================================================
# DST Handling
# =============================================================================
# Calendar steps (years, months, days) are wall-clock steps; clock steps
# (hours, minutes, seconds) are elapsed-time steps. A wall-clock time that
# falls into a spring-forward gap is pushed past the gap; an ambiguous one
# takes its first occurrence.
#
# Hour steps land on the top of a local hour: forward on the first top past
# the cursor, backward on the top of the hour before it. Zones that shift by
# half an hour would otherwise leave the cursor at :30 for the rest of the day.
#
# A day step that should land on local midnight can land elsewhere when the
# zone skips midnight. Hours past noon are rounded up to the next midnight;
# earlier hours are pulled back to midnight when that stays on the same
# calendar day, otherwise the first instant of the day stands.
# =============================================================================

_CASCADE: tuple[Field, ...] = (
    Field.YEAR,
    Field.MONTH,
    Field.DOM,
    Field.HOUR,
    Field.MINUTE,
    Field.SECOND,
)

_PARENT: dict[Field, Field] = {
    Field.MONTH: Field.YEAR,
    Field.DOM: Field.MONTH,
    Field.HOUR: Field.DOM,
    Field.MINUTE: Field.HOUR,
    Field.SECOND: Field.MINUTE,
}


class _Outcome(Enum):
    MATCHED = "matched"
    ADVANCED = "advanced"
    WRAPPED = "wrapped"
    EXHAUSTED = "exhausted"


# --- Calendar arithmetic ---


def _resolve(d: date, t: time, tz: tzinfo) -> datetime:
    """Turn a wall-clock date and time in `tz` into a real instant."""
    aware = datetime.combine(d, t).replace(tzinfo=tz, fold=0)
    # Round-trip through the timestamp to push gap times forward
    return datetime.fromtimestamp(aware.timestamp(), tz=tz)


def _shift(moment: datetime, **delta: float) -> datetime:
    """Move by elapsed time rather than wall-clock time."""
    return (moment.astimezone(_UTC) + timedelta(**delta)).astimezone(moment.tzinfo)


def _add_months(moment: datetime, months: int) -> datetime:
    years, month0 = divmod(moment.month - 1 + months, 12)
    first = date(moment.year + years, month0 + 1, 1)
    # Day overflow spills into the following month (Jan 31 + 1 month = Mar 2/3)
    return _resolve(first + timedelta(days=moment.day - 1), moment.time(), moment.tzinfo)


def _add_days(moment: datetime, days: int) -> datetime:
    return _resolve(moment.date() + timedelta(days=days), moment.time(), moment.tzinfo)


def _settle_midnight(moment: datetime) -> datetime:
    hour = moment.hour
    if hour == 0:
        return moment
    if hour > 12:
        return _shift(moment, hours=24 - hour)
    earlier = _shift(moment, hours=-hour)
    if earlier.date() == moment.date():
        return earlier
    return moment


def _floor(moment: datetime, unit: Field) -> datetime:
    """Start of the `unit` containing `moment`."""
    tz = moment.tzinfo
    match unit:
        case Field.YEAR:
            return _resolve(date(moment.year, 1, 1), time(), tz)
        case Field.MONTH:
            return _resolve(date(moment.year, moment.month, 1), time(), tz)
        case Field.DOM:
            return _resolve(moment.date(), time(), tz)
        case Field.HOUR:
            top = moment.replace(minute=0, second=0, microsecond=0)
            return datetime.fromtimestamp(top.timestamp(), tz=tz)
        case Field.MINUTE:
            return moment.replace(second=0, microsecond=0)
        case _:
            return moment.replace(microsecond=0)


def _step(moment: datetime, unit: Field, sign: int) -> datetime:
    match unit:
        case Field.YEAR:
            return _add_months(moment, 12 * sign)
        case Field.MONTH:
            return _add_months(moment, sign)
        case Field.DOM:
            return _settle_midnight(_add_days(moment, sign))
        case Field.HOUR:
            return _step_hour(moment, sign)
        case Field.MINUTE:
            return _shift(moment, minutes=sign)
        case _:
            return _shift(moment, seconds=sign)


def _step_hour(moment: datetime, sign: int) -> datetime:
    if sign < 0:
        return _floor(_shift(moment, seconds=-1), Field.HOUR)
    later = _shift(moment, hours=1)
    top = _floor(later, Field.HOUR)
    # A half-hour transition leaves `later` mid-hour; its top may not be past `moment`
    return top if top.timestamp() > moment.timestamp() else later


def _crossed(before: datetime, after: datetime, unit: Field) -> bool:
    # Compare instants: same-zone datetime comparison ignores fold
    return _floor(before, unit).timestamp() != _floor(after, unit).timestamp()


# --- Matching ---


def day_matches(schedule: SpecSchedule, moment: datetime) -> bool:
    """Apply the day-of-month / day-of-week combination rule to `moment`'s date."""
    dom_match = has_bit(schedule.dom, moment.day)
    dow_match = has_bit(schedule.dow, moment.isoweekday() % 7)  # Sunday=0
    if schedule.conjunctive_days:
        return dom_match and dow_match
    return dom_match or dow_match


def _field_matches(schedule: SpecSchedule, unit: Field, moment: datetime) -> bool:
    match unit:
        case Field.YEAR:
            return moment.year >= MIN_YEAR and has_bit(schedule.year, moment.year - MIN_YEAR)
        case Field.MONTH:
            return has_bit(schedule.month, moment.month)
        case Field.DOM:
            return day_matches(schedule, moment)
        case Field.HOUR:
            return has_bit(schedule.hour, moment.hour)
        case Field.MINUTE:
            return has_bit(schedule.minute, moment.minute)
        case _:
            return has_bit(schedule.second, moment.second)


def matches(schedule: SpecSchedule, moment: datetime) -> bool:
    """True when `moment` (to the second) satisfies every field of the schedule."""
    local, _ = _localize(schedule, moment)
    return all(_field_matches(schedule, unit, local) for unit in _CASCADE)


# --- Search state ---


@dataclass(slots=True)
class _Search:
    schedule: SpecSchedule
    cursor: datetime
    forward: bool
    limit: int
    snapped: bool = False
    stepped: set[Field] = field(default_factory=set)

    def out_of_range(self) -> bool:
        year = self.cursor.year
        if self.forward:
            return year > self.limit or year > MAX_YEAR
        return year < self.limit or year < MIN_YEAR

    def seek(self, unit: Field) -> _Outcome:
        outcome = _Outcome.MATCHED
        while not _field_matches(self.schedule, unit, self.cursor):
            outcome = _Outcome.ADVANCED
            self.stepped.add(unit)
            before = self.cursor
            self.cursor = self._advance(unit)
            if unit is Field.YEAR:
                if self.out_of_range():
                    return _Outcome.EXHAUSTED
            elif _crossed(before, self.cursor, _PARENT[unit]):
                return _Outcome.WRAPPED
        return outcome

    def _advance(self, unit: Field) -> datetime:
        if not self.forward:
            return _step(_floor(self.cursor, unit), unit, -1)
        start = self.cursor
        if not self.snapped:
            self.snapped = True
            start = _floor(start, unit)
        return _step(start, unit, 1)

    def reposition(self, unit: Field) -> None:
        """Move a backward cursor from the start of a stepped unit to its last second."""
        if unit is Field.SECOND or unit not in self.stepped:
            return
        self.stepped.discard(unit)
        following = _step(_floor(self.cursor, unit), unit, 1)
        self.cursor = _shift(following, seconds=-1)


def _localize(schedule: SpecSchedule, moment: datetime) -> tuple[datetime, tzinfo | None]:
    """Return `moment` in the schedule's zone along with the caller's own zone."""
    origin = moment.tzinfo
    if origin is None:
        moment = moment.replace(tzinfo=_UTC)
    if schedule.tz is not None:
        moment = moment.astimezone(schedule.tz)
    return moment, origin


def _restore(found: datetime, origin: tzinfo | None) -> datetime:
    if origin is None:
        return found.astimezone(_UTC).replace(tzinfo=None)
    return found.astimezone(origin)


def _run(search: _Search) -> datetime | None:
    while True:
        if search.out_of_range():
            return None
        for unit in _CASCADE:
            outcome = search.seek(unit)
            if outcome is _Outcome.EXHAUSTED:
                return None
            if outcome is _Outcome.WRAPPED:
                break
            if not search.forward:
                search.reposition(unit)
        else:
            return search.cursor


# --- Public API ---


def next_from(schedule: SpecSchedule, now: datetime) -> datetime | None:
    """Earliest activation strictly after `now`, or None within the horizon.

    Naive datetimes are read as UTC and the result is returned naive as well;
    aware results are expressed in `now`'s zone.
    """
    local, origin = _localize(schedule, now)
    start = _shift(local.replace(microsecond=0), seconds=1)
    search = _Search(schedule, start, True, start.year + SEARCH_HORIZON_YEARS)
    found = _run(search)
    if found is None:
        logger.debug(
            "no activation within %d years after %s", SEARCH_HORIZON_YEARS, now.isoformat()
        )
        return None
    return _restore(found, origin)


def previous_from(schedule: SpecSchedule, now: datetime) -> datetime | None:
    """Latest activation strictly before `now`, or None within the horizon."""
    local, origin = _localize(schedule, now)
    if local.microsecond:
        start = local.replace(microsecond=0)
    else:
        start = _shift(local, seconds=-1)
    search = _Search(schedule, start, False, start.year - SEARCH_HORIZON_YEARS)
    found = _run(search)
    if found is None:
        logger.debug(
            "no activation within %d years before %s", SEARCH_HORIZON_YEARS, now.isoformat()
        )
        return None
    return _restore(found, origin)


def next_n_from(schedule: SpecSchedule, now: datetime, n: int) -> list[datetime]:
    results: list[datetime] = []
    current = now
    for _ in range(n):
        nxt = next_from(schedule, current)
        if nxt is None:
            break
        current = nxt
        results.append(nxt)
    return results


# --- Iterator functions ---


def occurrences(schedule: SpecSchedule, from_: datetime) -> Iterator[datetime]:
    """Returns a lazy iterator of activations strictly after `from_`.

    Each step searches from the previous activation, so the iterator stops
    only when a search runs out of horizon.
    """
    current = from_
    while True:
        nxt = next_from(schedule, current)
        if nxt is None:
            return
        current = nxt
        yield nxt


def between(schedule: SpecSchedule, from_: datetime, to: datetime) -> Iterator[datetime]:
    """Returns a bounded iterator of activations where `from_ < t <= to`."""
    for dt in occurrences(schedule, from_):
        if _instant(dt) > _instant(to):
            return
        yield dt


def _instant(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=_UTC)
    return moment.astimezone(_UTC)
