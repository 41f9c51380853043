from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

MIN_YEAR = 1970
MAX_YEAR = 2099

# Searches give up once they move this many years away from the start instant.
SEARCH_HORIZON_YEARS = 5

# Reserved bit on the day-of-month and day-of-week masks. It sits above every
# numeric position and toggles how the two day fields combine.
RESTRICTION_BIT = 160


class Field(Enum):
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DOM = "dom"
    MONTH = "month"
    DOW = "dow"
    YEAR = "year"

    @property
    def bounds(self) -> Bounds:
        return _BOUNDS[self]

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Bounds:
    min: int
    max: int
    names: dict[str, int] = field(default_factory=dict)

    def lookup(self, token: str) -> int | None:
        """Resolve a symbolic token (case-insensitive) to its bit position."""
        return self.names.get(token.lower())


SECONDS = Bounds(0, 59)
MINUTES = Bounds(0, 59)
HOURS = Bounds(0, 23)
DOM = Bounds(1, 31)
MONTHS = Bounds(
    1,
    12,
    {
        "jan": 1,
        "feb": 2,
        "mar": 3,
        "apr": 4,
        "may": 5,
        "jun": 6,
        "jul": 7,
        "aug": 8,
        "sep": 9,
        "oct": 10,
        "nov": 11,
        "dec": 12,
    },
)
DOW = Bounds(
    0,
    6,
    {
        "sun": 0,
        "mon": 1,
        "tue": 2,
        "wed": 3,
        "thu": 4,
        "fri": 5,
        "sat": 6,
    },
)
# Year bits are offsets from MIN_YEAR; the names map four-digit literals to them.
YEARS = Bounds(
    0,
    MAX_YEAR - MIN_YEAR,
    {str(y): y - MIN_YEAR for y in range(MIN_YEAR, MAX_YEAR + 1)},
)

_BOUNDS: dict[Field, Bounds] = {
    Field.SECOND: SECONDS,
    Field.MINUTE: MINUTES,
    Field.HOUR: HOURS,
    Field.DOM: DOM,
    Field.MONTH: MONTHS,
    Field.DOW: DOW,
    Field.YEAR: YEARS,
}


# --- Bit helpers ---


def bit_range(bounds: Bounds, step: int = 1) -> int:
    """Mask with every `step`-th bit set from bounds.min through bounds.max."""
    return bits_of(range(bounds.min, bounds.max + 1, step))


def bits_of(values: Iterable[int]) -> int:
    mask = 0
    for v in values:
        mask |= 1 << v
    return mask


def has_bit(mask: int, index: int) -> bool:
    return index >= 0 and (mask >> index) & 1 == 1


def values_of(mask: int, bounds: Bounds) -> list[int]:
    """Numeric values set in `mask`, ignoring anything outside `bounds`."""
    return [v for v in range(bounds.min, bounds.max + 1) if has_bit(mask, v)]


def year_bits(years: Iterable[int]) -> int:
    """Year mask for calendar years; years outside the supported range are dropped."""
    return bits_of(y - MIN_YEAR for y in years if MIN_YEAR <= y <= MAX_YEAR)
