"""
Instance tracking for recurring tasks.

An occurrence becomes an instance when its date is added to
``active_instances``. That happens once per day, at process start and
again whenever the local date rolls over: `materialize_today` asks each
series template whether today is an occurrence and records it if so.
Running it again for the same day changes nothing.

Completion and skipping are recorded per instance, always keyed by the
original occurrence date.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta

from .occurrences import MAX_ITERATIONS, expand, is_occurrence
from .record import TaskRecord
from .recurrence import RecurrenceRule
from .rrule_codec import RRuleDecodeError, decode
from .shared import log_msg


@dataclass
class MaterializeResult:
    updated: list[str] = field(default_factory=list)
    errors: list[tuple[str, str]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.updated)


def series_rule(record: TaskRecord, strict: bool = False) -> RecurrenceRule | None:
    """The decoded rule of a series template, or None for other records."""
    if not record.is_series:
        return None
    return decode(record.recurrence, strict=strict)


def materialize_today(
    records: Mapping[str, TaskRecord], today: date, strict: bool = False
) -> MaterializeResult:
    """
    Add today to ``active_instances`` of every series template whose rule
    fires today. Records are updated in place; the result lists the keys
    of the records that changed and the records that could not be read.
    """
    result = MaterializeResult()
    for key, record in records.items():
        try:
            rule = series_rule(record, strict=strict)
        except RRuleDecodeError as e:
            log_msg(f"{key}: {e}")
            result.errors.append((key, str(e)))
            continue
        if rule is None or not is_occurrence(rule, today):
            continue
        if today in record.active_instances:
            continue
        record.active_instances.add(today)
        record.touch()
        result.updated.append(key)
    if result.updated:
        log_msg(f"materialized {today} for {result.count} series: {result.updated}")
    return result


def backfill(
    records: Mapping[str, TaskRecord],
    today: date,
    look_behind_days: int = 7,
    look_ahead_days: int = 0,
    strict: bool = False,
    max_iterations: int = MAX_ITERATIONS,
) -> MaterializeResult:
    """
    Add every occurrence in [today - look_behind_days, today +
    look_ahead_days] that is missing from ``active_instances``.

    Used when a series is first created and after the process has been
    down across several midnights.
    """
    window_start = today - timedelta(days=look_behind_days)
    window_end = today + timedelta(days=look_ahead_days)
    result = MaterializeResult()
    for key, record in records.items():
        try:
            rule = series_rule(record, strict=strict)
        except RRuleDecodeError as e:
            log_msg(f"{key}: {e}")
            result.errors.append((key, str(e)))
            continue
        if rule is None:
            continue
        found = expand(rule, window_start, window_end, max_iterations)
        missing = set(found.dates) - record.active_instances
        if not missing:
            continue
        record.active_instances |= missing
        record.touch()
        result.updated.append(key)
    return result


def complete_instance(record: TaskRecord, day: date) -> bool:
    """
    Mark the instance on `day` complete. Only active instances can be
    completed; a skipped instance stops being skipped. Returns True when
    the record changed.
    """
    if day not in record.active_instances or day in record.complete_instances:
        return False
    record.skipped_instances.discard(day)
    record.complete_instances.add(day)
    record.touch()
    return True


def skip_instance(record: TaskRecord, day: date) -> bool:
    if day not in record.active_instances or day in record.skipped_instances:
        return False
    record.complete_instances.discard(day)
    record.skipped_instances.add(day)
    record.touch()
    return True


def uncomplete_instance(record: TaskRecord, day: date) -> bool:
    if day not in record.complete_instances:
        return False
    record.complete_instances.discard(day)
    record.touch()
    return True


def _open_effective_dates(record: TaskRecord) -> list[date]:
    return [
        record.rescheduled_instances.get(d, d) for d in record.open_instances()
    ]


def is_active_today(record: TaskRecord, today: date) -> bool:
    """An open instance is displayed on today."""
    return today in _open_effective_dates(record)


def has_past_uncompleted(record: TaskRecord, today: date) -> bool:
    """
    An open instance is displayed before today. A series moved into the
    future with ``scheduled`` has no past instances.
    """
    if record.scheduled and record.scheduled > today:
        return False
    return any(d < today for d in _open_effective_dates(record))


class MidnightScheduler:
    """
    Run `materialize_today` at start and once per local-date rollover.

    There is no timer here: the caller polls `check`, e.g. once a
    minute, and the scheduler acts only when the date has changed.
    """

    def __init__(
        self,
        get_records: Callable[[], Mapping[str, TaskRecord]],
        on_update: Callable[[MaterializeResult], None] | None = None,
        strict: bool = False,
    ):
        self.get_records = get_records
        self.on_update = on_update
        self.strict = strict
        self.last_run_date: date | None = None

    def start(self, today: date | None = None) -> MaterializeResult:
        return self.run(today or date.today())

    def check(self, today: date | None = None) -> MaterializeResult | None:
        today = today or date.today()
        if today == self.last_run_date:
            return None
        return self.run(today)

    def run(self, today: date) -> MaterializeResult:
        self.last_run_date = today
        result = materialize_today(self.get_records(), today, strict=self.strict)
        if self.on_update and result.updated:
            self.on_update(result)
        return result
