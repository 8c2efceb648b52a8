"""
Expand a recurrence rule into the calendar dates on which it fires.

The walk always advances one calendar day at a time and asks
`is_occurrence` about each day, whatever the frequency; sparse rules
simply match fewer days. A hard ceiling on the number of steps keeps
every call bounded.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from .recurrence import Frequency, RecurrenceRule, WeekDay
from .shared import log_msg

MAX_ITERATIONS = 5000


@dataclass
class Expansion:
    dates: list[date] = field(default_factory=list)
    truncated: bool = False  # the step ceiling ended the walk early
    stopped_at: date | None = None  # first day not examined when truncated


def _months_between(start: date, day: date) -> int:
    return (day.year - start.year) * 12 + (day.month - start.month)


def _is_nth_weekday(day: date, nth: int, weekday: WeekDay) -> bool:
    if day.weekday() != weekday.python_weekday:
        return False
    if nth == -1:
        # last such weekday: one more week leaves the month
        return (day + timedelta(days=7)).month != day.month
    return (day.day + 6) // 7 == nth


def is_occurrence(rule: RecurrenceRule, day: date) -> bool:
    """True when `rule` fires on `day`."""
    if day < rule.start_date:
        return False
    if rule.end_date is not None and day > rule.end_date:
        return False

    start = rule.start_date
    interval = rule.interval

    if rule.frequency is Frequency.DAILY:
        return (day - start).days % interval == 0

    if rule.frequency is Frequency.WEEKLY:
        if WeekDay.from_date(day) not in (rule.week_days or ()):
            return False
        return ((day - start).days // 7) % interval == 0

    if rule.frequency is Frequency.MONTHLY:
        if _months_between(start, day) % interval != 0:
            return False
        if rule.uses_nth_weekday:
            return _is_nth_weekday(day, rule.nth_weekday, rule.weekday_for_nth)
        if rule.day_of_month is not None:
            return day.day == rule.day_of_month
        return False

    if rule.frequency is Frequency.YEARLY:
        if (day.year - start.year) % interval != 0:
            return False
        return (day.month, day.day) == (start.month, start.day)

    return False


def expand(
    rule: RecurrenceRule,
    window_start: date,
    window_end: date,
    max_iterations: int = MAX_ITERATIONS,
) -> Expansion:
    """
    Occurrences of `rule` in [window_start, window_end], ascending.

    The walk starts at max(rule.start_date, window_start), ends at
    min(window_end, rule.end_date) and takes at most max_iterations
    steps. When the ceiling is hit the dates found so far are returned
    with truncated=True.
    """
    result = Expansion()
    current = max(rule.start_date, window_start)
    last = window_end if rule.end_date is None else min(window_end, rule.end_date)

    steps = 0
    while current <= last and steps < max_iterations:
        steps += 1
        if is_occurrence(rule, current):
            result.dates.append(current)
        current += timedelta(days=1)

    if current <= last:
        result.truncated = True
        result.stopped_at = current
    return result


def generate(
    rule: RecurrenceRule,
    window_start: date,
    window_end: date,
    max_iterations: int = MAX_ITERATIONS,
) -> list[date]:
    """Sorted occurrence dates of `rule` between window_start and window_end."""
    result = expand(rule, window_start, window_end, max_iterations)
    if result.truncated:
        log_msg(
            f"occurrences of {rule.frequency.value} rule from {rule.start_date} "
            f"truncated at {result.stopped_at} after {max_iterations} steps; "
            f"requested window ends {window_end}"
        )
    return result.dates


def next_occurrence(
    rule: RecurrenceRule, after: date, max_iterations: int = MAX_ITERATIONS
) -> date | None:
    """
    First occurrence strictly after `after`, or None.

    Searches in yearly windows so that sparse rules (yearly, 5th weekday)
    are found without walking more days than needed.
    """
    window_start = max(after + timedelta(days=1), rule.start_date)
    budget = max_iterations
    while budget > 0:
        window_end = window_start + relativedelta(years=1)
        found = expand(rule, window_start, window_end, budget)
        if found.dates:
            return found.dates[0]
        if rule.end_date is not None and window_end >= rule.end_date:
            return None
        budget -= (window_end - window_start).days + 1
        window_start = window_end + timedelta(days=1)
    return None
