"""
Attention classification.

Every displayed row, a plain task or one instance of a recurring task,
falls into one of four buckets. The first matching rule wins:

1. Wrapped:  the relevant date was completed, the task is done, or there
             is nothing dated left to act on.
2. Past:     the relevant date is before today and not completed.
3. Now:      the relevant date is today.
4. Upcoming: the relevant date is after today.
5. Wrapped otherwise.

For an instance, completion is looked up by its original date while the
comparison with today uses the date it is displayed on.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from enum import Enum

from .record import TaskRecord
from .reschedule import effective_date
from .shared import log_msg


class Attention(str, Enum):
    NOW = "Now"
    PAST = "Past"
    UPCOMING = "Upcoming"
    WRAPPED = "Wrapped"


GROUP_ORDER = (Attention.PAST, Attention.NOW, Attention.UPCOMING, Attention.WRAPPED)

PRIORITY_WEIGHTS = {"high": 3, "normal": 2, "low": 1, "none": 0}


def _by_date(shown: date, today: date) -> Attention:
    if shown < today:
        return Attention.PAST
    if shown == today:
        return Attention.NOW
    return Attention.UPCOMING


def _classify_instance(today: date, record: TaskRecord, instance_date: date) -> Attention:
    if instance_date in record.complete_instances:
        return Attention.WRAPPED
    if instance_date in record.skipped_instances:
        return Attention.WRAPPED
    return _by_date(effective_date(record, instance_date), today)


def _classify_series(today: date, record: TaskRecord) -> Attention:
    shown = [effective_date(record, d) for d in record.open_instances()]
    if record.scheduled and record.scheduled > today:
        # the series was moved forward; earlier instances no longer count
        shown = [d for d in shown if d >= today]
        if not shown:
            return Attention.UPCOMING
    if any(d < today for d in shown):
        return Attention.PAST
    if today in shown:
        return Attention.NOW
    if shown:
        return Attention.UPCOMING
    # no open instance: the task's own dates decide
    return _classify_plain(today, record)


def _classify_plain(today: date, record: TaskRecord) -> Attention:
    dates = [d for d in (record.scheduled, record.due) if d is not None]
    if not dates:
        return Attention.WRAPPED
    if any(d in record.complete_instances for d in dates):
        return Attention.WRAPPED
    if not record.is_recurring and record.scheduled is None and record.complete_instances:
        # completed plain task; a leftover due date is not outstanding
        return Attention.WRAPPED
    if any(d < today for d in dates):
        return Attention.PAST
    if today in dates:
        return Attention.NOW
    return Attention.UPCOMING


def classify(
    today: date, record: TaskRecord, instance_date: date | None = None
) -> Attention:
    """
    Bucket for one row. Pass instance_date for a row that stands for a
    single instance of a recurring task. Reads the record, never changes it.
    """
    if record.status == "done":
        return Attention.WRAPPED
    if instance_date is not None:
        return _classify_instance(today, record, instance_date)
    if record.is_recurring:
        return _classify_series(today, record)
    return _classify_plain(today, record)


def urgency_score(
    record: TaskRecord, today: date, shown: date | None = None
) -> int:
    """
    Higher is more urgent. Instance rows score 10 plus a point per day
    overdue; other rows score by how soon the next scheduled or due date
    comes. Priority adds its weight either way.
    """
    weight = PRIORITY_WEIGHTS.get(record.priority, 0)
    if shown is not None:
        return weight + 10 + max(0, (today - shown).days)

    upcoming = [d for d in (record.scheduled, record.due) if d and d >= today]
    if not upcoming:
        return weight
    return weight + max(0, 10 - (min(upcoming) - today).days)


@dataclass
class ViewRow:
    key: str
    record: TaskRecord
    attention: Attention
    urgency: int
    instance_date: date | None = None
    effective_date: date | None = None

    @property
    def title(self) -> str:
        return self.record.title or self.key


def _rows_for(key: str, record: TaskRecord, today: date) -> list[ViewRow]:
    if not record.is_recurring:
        return [
            ViewRow(
                key=key,
                record=record,
                attention=classify(today, record),
                urgency=urgency_score(record, today),
                effective_date=record.scheduled,
            )
        ]

    series_moved = bool(record.scheduled and record.scheduled > today)
    rows = []
    for instance_date in record.open_instances():
        shown = effective_date(record, instance_date)
        if shown > today:
            continue
        if series_moved and instance_date not in record.rescheduled_instances:
            continue
        rows.append(
            ViewRow(
                key=key,
                record=record,
                attention=classify(today, record, instance_date),
                urgency=urgency_score(record, today, shown),
                instance_date=instance_date,
                effective_date=shown,
            )
        )
    if rows:
        return rows
    return [
        ViewRow(
            key=key,
            record=record,
            attention=classify(today, record),
            urgency=urgency_score(record, today),
        )
    ]


def view_rows(
    records: Mapping[str, TaskRecord], today: date
) -> tuple[list[ViewRow], list[tuple[str, str]]]:
    """
    One row per open instance displayed on or before today for recurring
    tasks (only overridden instances when the series was moved forward),
    otherwise one row per task. A record that fails is reported in the
    error list and the rest are still classified.
    """
    rows: list[ViewRow] = []
    errors: list[tuple[str, str]] = []
    for key, record in records.items():
        try:
            rows.extend(_rows_for(key, record, today))
        except (TypeError, ValueError) as e:
            log_msg(f"cannot classify {key}: {e}")
            errors.append((key, str(e)))
    return rows, errors


def group_rows(rows: list[ViewRow]) -> dict[Attention, list[ViewRow]]:
    """Rows by bucket, in display order, most urgent first within each."""
    grouped: dict[Attention, list[ViewRow]] = {a: [] for a in GROUP_ORDER}
    for row in rows:
        grouped[row.attention].append(row)
    for bucket in grouped.values():
        bucket.sort(key=lambda r: r.urgency, reverse=True)
    return grouped
