"""
Moving tasks and single occurrences.

A whole task (or a whole series) moves by changing ``scheduled``. A
single occurrence of a recurring task moves by recording an override in
``rescheduled_instances``; the rule and ``active_instances`` stay as they
are, and completion keeps using the original occurrence date.
"""

from datetime import date

from .instances import complete_instance
from .record import TaskRecord
from .shared import DaylightError, log_msg


class NotAnOccurrence(DaylightError, ValueError):
    """The date being rescheduled is not one of the task's active instances."""


def effective_date(record: TaskRecord, instance_date: date) -> date:
    """The date an instance is shown on: its override if any, else itself."""
    return record.rescheduled_instances.get(instance_date, instance_date)


def reschedule_series(record: TaskRecord, new_date: date) -> None:
    record.scheduled = new_date
    record.touch()


def reschedule_instance(
    record: TaskRecord, original_date: date, new_date: date, strict: bool = False
) -> None:
    """
    Show the occurrence of `original_date` on `new_date` instead.

    A later call for the same original date replaces the earlier one.
    Non-recurring tasks have no occurrences and are moved as a whole.
    """
    if not record.is_recurring:
        reschedule_series(record, new_date)
        return
    if original_date not in record.active_instances:
        if strict:
            raise NotAnOccurrence(
                f"{original_date} is not an active instance of {record.title or 'task'}"
            )
        log_msg(
            f"{record.title or 'task'}: recording override for {original_date}, "
            "which is not an active instance"
        )
    record.rescheduled_instances[original_date] = new_date
    record.touch()


def complete_occurrence(record: TaskRecord, original_date: date) -> bool:
    """
    Mark a task done for `original_date`.

    Recurring tasks complete the instance keyed by its original date,
    never by the date it was moved to. A non-recurring task records the
    date in ``complete_instances`` and drops its ``scheduled`` date.
    Returns True when the record changed.
    """
    if record.is_recurring:
        return complete_instance(record, original_date)
    changed = (
        original_date not in record.complete_instances
        or record.scheduled is not None
    )
    record.complete_instances.add(original_date)
    record.scheduled = None
    if changed:
        record.touch()
    return changed


def remove_recurrence(record: TaskRecord, today: date) -> None:
    """
    Turn a recurring task back into a plain task scheduled today.

    Instances after today are dropped; there is no way back.
    """
    record.recurrence = None
    record.recurrence_anchor = "scheduled"
    record.is_series_template = False
    record.active_instances = {d for d in record.active_instances if d <= today}
    record.scheduled = today
    record.touch()
