from __future__ import annotations

from ._error import CronError
from ._fields import MIN_YEAR, RESTRICTION_BIT, Field, has_bit, values_of
from ._spec import SpecSchedule

_ORDER: tuple[Field, ...] = (
    Field.SECOND,
    Field.MINUTE,
    Field.HOUR,
    Field.DOM,
    Field.MONTH,
    Field.DOW,
    Field.YEAR,
)


def to_cron(schedule: SpecSchedule) -> str:
    """Render a 7-field cron expression that parses back to `schedule`."""
    out = " ".join(_display_field(schedule, f) for f in _ORDER)
    key = getattr(schedule.tz, "key", None)
    if key:
        out = f"TZ={key} {out}"
    return out


def _display_field(schedule: SpecSchedule, field: Field) -> str:
    mask = schedule.mask(field)
    values = values_of(mask, field.bounds)
    if not values:
        raise CronError.render(f"not expressible as cron ({field} has no values)")

    if field in (Field.DOM, Field.DOW):
        flagged = has_bit(mask, RESTRICTION_BIT)
        wildcard = schedule.is_wildcard(field)
        if flagged and wildcard:
            return "*"
        if flagged:
            raise CronError.render(
                f"not expressible as cron (restriction flag on a restricted {field} field)"
            )
    elif schedule.is_wildcard(field):
        return "*"

    offset = MIN_YEAR if field is Field.YEAR else 0
    return ",".join(_display_run(run, offset) for run in _runs(values))


def _runs(values: list[int]) -> list[list[int]]:
    runs: list[list[int]] = []
    for v in values:
        if runs and runs[-1][-1] == v - 1:
            runs[-1].append(v)
        else:
            runs.append([v])
    return runs


def _display_run(run: list[int], offset: int) -> str:
    if len(run) >= 3:
        return f"{run[0] + offset}-{run[-1] + offset}"
    return ",".join(str(v + offset) for v in run)
