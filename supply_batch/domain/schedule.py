"""
Pure schedule evaluation.

Contract:
    ``should_fire(schedule, as_of)`` and ``compute_next_run()`` are pure:
    no I/O, every timestamp comes from the caller.

Cron expressions use the five standard fields
``minute hour day_of_month month day_of_week`` with ``*``, single values,
lists, ranges and steps.  Day of week follows cron: 0 = Sunday.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from supply_batch.domain.types import JobSchedule, ScheduleFrequency

# (name, lowest, highest) per cron field, in expression order
_CRON_FIELDS = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day_of_month", 1, 31),
    ("month", 1, 12),
    ("day_of_week", 0, 6),
)

_FREQUENCY_DELTA = {
    ScheduleFrequency.HOURLY: timedelta(hours=1),
    ScheduleFrequency.DAILY: timedelta(days=1),
    ScheduleFrequency.WEEKLY: timedelta(weeks=1),
}

# One year of minutes
_MAX_CRON_SCAN = 366 * 24 * 60


@dataclass(frozen=True)
class CronSpec:
    """Parsed cron expression; each field is the set of allowed values."""

    minutes: frozenset[int]
    hours: frozenset[int]
    days_of_month: frozenset[int]
    months: frozenset[int]
    days_of_week: frozenset[int]

    def matches(self, moment: datetime) -> bool:
        cron_weekday = (moment.weekday() + 1) % 7
        return (
            moment.minute in self.minutes
            and moment.hour in self.hours
            and moment.day in self.days_of_month
            and moment.month in self.months
            and cron_weekday in self.days_of_week
        )


def _bounds(text: str, low: int, high: int, name: str) -> tuple[int, int]:
    if text == "*":
        return low, high
    if "-" in text:
        start_text, end_text = text.split("-", 1)
        start, end = int(start_text), int(end_text)
    else:
        start = end = int(text)
    if start > end:
        raise ValueError(f"Cron {name}: range {start}-{end} is reversed")
    if start < low or end > high:
        raise ValueError(f"Cron {name}: {text} outside [{low}, {high}]")
    return start, end


def _parse_field(text: str, low: int, high: int, name: str) -> frozenset[int]:
    values: set[int] = set()
    for part in text.split(","):
        part = part.strip()
        if not part:
            raise ValueError(f"Cron {name}: empty list element")
        step = 1
        if "/" in part:
            part, step_text = part.split("/", 1)
            step = int(step_text)
            if step <= 0:
                raise ValueError(f"Cron {name}: step must be positive, got {step}")
            if part.isdigit():
                # "5/15" means from 5 to the end of the field
                start, _ = _bounds(part, low, high, name)
                values.update(range(start, high + 1, step))
                continue
        start, end = _bounds(part, low, high, name)
        values.update(range(start, end + 1, step))
    return frozenset(values)


def parse_cron(expression: str) -> CronSpec:
    """
    Raises:
        ValueError: If the expression does not have five valid fields.
    """
    parts = expression.split()
    if len(parts) != len(_CRON_FIELDS):
        raise ValueError(
            f"Cron expression must have 5 fields, got {len(parts)}: {expression!r}"
        )
    fields = [
        _parse_field(text, low, high, name)
        for text, (name, low, high) in zip(parts, _CRON_FIELDS)
    ]
    return CronSpec(*fields)


def next_cron_match(spec: CronSpec, after: datetime) -> datetime:
    """
    First whole minute strictly after ``after`` that matches ``spec``.

    Raises:
        ValueError: If nothing matches within a year (e.g. 31 February).
    """
    candidate = after.replace(second=0, microsecond=0) + timedelta(minutes=1)
    for _ in range(_MAX_CRON_SCAN):
        if spec.matches(candidate):
            return candidate
        candidate += timedelta(minutes=1)
    raise ValueError(f"No cron match within a year after {after.isoformat()}")


def should_fire(schedule: JobSchedule, as_of: datetime) -> bool:
    """
    Whether ``schedule`` is due at ``as_of``.

    Rules:
        - Inactive and ON_DEMAND schedules never fire.
        - ONCE fires until it has run.
        - Otherwise the schedule is due once ``as_of`` reaches
          ``next_run_at``.  A schedule that has never been planned fires
          immediately, unless it has a cron expression, in which case it
          waits for a matching minute.
    """
    if not schedule.is_active or schedule.frequency == ScheduleFrequency.ON_DEMAND:
        return False
    if schedule.frequency == ScheduleFrequency.ONCE:
        return schedule.last_run_at is None
    if schedule.next_run_at is not None:
        return as_of >= schedule.next_run_at
    if schedule.cron_expression:
        try:
            return parse_cron(schedule.cron_expression).matches(as_of)
        except ValueError:
            return False
    return True


def compute_next_run(
    frequency: ScheduleFrequency,
    after: datetime,
    cron_expression: str | None = None,
) -> datetime | None:
    """
    Next due time after a run at ``after``.

    A cron expression takes precedence over the frequency's interval.
    ONCE and ON_DEMAND have no next run.
    """
    frequency = ScheduleFrequency(frequency)
    if frequency in (ScheduleFrequency.ONCE, ScheduleFrequency.ON_DEMAND):
        return None
    if cron_expression:
        return next_cron_match(parse_cron(cron_expression), after)
    return after + _FREQUENCY_DELTA[frequency]
