from __future__ import annotations

import logging
import re
from datetime import tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ._error import CronError, Span
from ._fields import (
    MAX_YEAR,
    MIN_YEAR,
    RESTRICTION_BIT,
    YEARS,
    Field,
    bit_range,
    bits_of,
    has_bit,
)
from ._spec import SpecSchedule

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"\S+")

_LAYOUTS: dict[int, tuple[Field, ...]] = {
    5: (Field.MINUTE, Field.HOUR, Field.DOM, Field.MONTH, Field.DOW),
    6: (Field.SECOND, Field.MINUTE, Field.HOUR, Field.DOM, Field.MONTH, Field.DOW),
    7: (Field.SECOND, Field.MINUTE, Field.HOUR, Field.DOM, Field.MONTH, Field.DOW, Field.YEAR),
}

_DESCRIPTORS: dict[str, str] = {
    "@yearly": "0 0 0 1 1 *",
    "@annually": "0 0 0 1 1 *",
    "@monthly": "0 0 0 1 * *",
    "@weekly": "0 0 0 * * 0",
    "@daily": "0 0 0 * * *",
    "@midnight": "0 0 0 * * *",
    "@hourly": "0 0 * * * *",
}

_ZONE_PREFIXES = ("TZ=", "CRON_TZ=")


def parse(expression: str, tz: tzinfo | str | None = None) -> SpecSchedule:
    """Parse a cron expression into a SpecSchedule.

    Accepts 5 fields (minute hour dom month dow), 6 fields (a leading second)
    or 7 fields (a trailing year), an @ descriptor, and an optional leading
    ``TZ=<zone>`` / ``CRON_TZ=<zone>`` that overrides `tz`.
    """
    tokens = [(m.group(), Span(m.start(), m.end())) for m in _TOKEN.finditer(expression)]
    if not tokens:
        raise CronError.syntax("empty cron expression", input_text=expression)

    first = tokens[0][0]
    if first.startswith(_ZONE_PREFIXES):
        # The prefix wins; the argument is never looked up
        tz = _load_zone(first.split("=", 1)[1], expression)
        tokens = tokens[1:]
        if not tokens:
            raise CronError.syntax("missing cron fields after time zone", input_text=expression)
    elif isinstance(tz, str):
        tz = _load_zone(tz, expression)

    if tokens[0][0].startswith("@"):
        schedule = _parse_descriptor(tokens, expression, tz)
    else:
        schedule = _parse_fields(tokens, expression, tz)

    logger.debug("parsed cron expression %r", expression)
    return schedule


def _load_zone(name: str, input_text: str) -> ZoneInfo:
    if not name:
        raise CronError.timezone("empty time zone name", input_text)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise CronError.timezone(f"unknown time zone: {name}", input_text) from None


def _parse_descriptor(
    tokens: list[tuple[str, Span]], input_text: str, tz: tzinfo | None
) -> SpecSchedule:
    descriptor, span = tokens[0]
    if len(tokens) > 1:
        raise CronError.syntax(
            f"unexpected fields after {descriptor}", tokens[1][1], input_text
        )
    expanded = _DESCRIPTORS.get(descriptor.lower())
    if expanded is None:
        raise CronError.syntax(f"unknown descriptor: {descriptor}", span, input_text)
    # Descriptor fields have no position of their own in the input
    fields = [(part, span) for part in expanded.split()]
    return _parse_fields(fields, input_text, tz)


def _parse_fields(
    tokens: list[tuple[str, Span]], input_text: str, tz: tzinfo | None
) -> SpecSchedule:
    layout = _LAYOUTS.get(len(tokens))
    if layout is None:
        raise CronError.syntax(f"expected 5 to 7 cron fields, got {len(tokens)}", None, input_text)

    masks: dict[Field, int] = {
        Field.SECOND: 1 << 0,
        Field.YEAR: bit_range(YEARS),
    }
    for field, (text, span) in zip(layout, tokens, strict=True):
        masks[field] = _parse_field(text, field, span, input_text)

    return SpecSchedule(
        second=masks[Field.SECOND],
        minute=masks[Field.MINUTE],
        hour=masks[Field.HOUR],
        dom=masks[Field.DOM],
        month=masks[Field.MONTH],
        dow=masks[Field.DOW],
        year=masks[Field.YEAR],
        tz=tz,
    )


def _parse_field(text: str, field: Field, span: Span, input_text: str) -> int:
    mask = 0
    for term in text.split(","):
        mask |= _parse_term(term, field, span, input_text)

    if field is Field.DOW and has_bit(mask, 7):
        # 7 is an alias for Sunday
        mask = (mask & ~(1 << 7)) | 1

    # A bare wildcard on a day field lets the other day field decide alone
    if field in (Field.DOM, Field.DOW) and text in ("*", "?"):
        mask |= 1 << RESTRICTION_BIT
    return mask


def _parse_term(term: str, field: Field, span: Span, input_text: str) -> int:
    bounds = field.bounds
    range_part, slash, step_str = term.partition("/")

    if range_part in ("*", "?"):
        start, end = bounds.min, bounds.max
    else:
        lo, dash, hi = range_part.partition("-")
        start = _parse_value(lo, field, span, input_text)
        if dash:
            end = _parse_value(hi, field, span, input_text)
        elif slash:
            # Single value with step (e.g., 5/15) runs to the field maximum
            end = bounds.max
        else:
            end = start

    step = 1
    if slash:
        try:
            if not step_str.isdigit():
                raise ValueError(step_str)
            step = int(step_str)
        except ValueError:
            raise CronError.syntax(f"invalid {field} step: {term}", span, input_text) from None
        if step == 0:
            raise CronError.range("step cannot be 0", span, input_text)

    upper = 7 if field is Field.DOW else bounds.max
    if start < bounds.min or end > upper:
        raise CronError.range(
            f"{field} must be {_describe_bounds(field)}, got {range_part}", span, input_text
        )
    if start > end:
        raise CronError.range(f"range start must be <= end: {range_part}", span, input_text)

    return bits_of(range(start, end + 1, step))


def _parse_value(token: str, field: Field, span: Span, input_text: str) -> int:
    named = field.bounds.lookup(token)
    if named is not None:
        return named
    if field is Field.YEAR:
        raise CronError.range(
            f"year must be {MIN_YEAR}-{MAX_YEAR}, got {token}", span, input_text
        )
    # isdigit() also accepts digits such as "²" that int() rejects
    try:
        if not token.isdigit():
            raise ValueError(token)
        return int(token)
    except ValueError:
        raise CronError.syntax(f"invalid {field} value: {token!r}", span, input_text) from None


def _describe_bounds(field: Field) -> str:
    if field is Field.YEAR:
        return f"{MIN_YEAR}-{MAX_YEAR}"
    if field is Field.DOW:
        return "0-7"
    return f"{field.bounds.min}-{field.bounds.max}"
