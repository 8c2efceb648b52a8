"""
Recurrence rules for repeating tasks.

Five pattern families are supported: every N days, weekly on a set of
weekdays every N weeks, monthly on a day of the month, monthly on the
nth (or last) weekday of the month, and yearly on the anniversary of
the start date. All dates are local calendar dates.

Occurrences are generated regardless of completion. Rescheduling a
single occurrence never changes the rule itself.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum

from dateutil.rrule import MO, TU, WE, TH, FR, SA, SU

from .shared import ordinal


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def token(self) -> str:
        return self.value.upper()


class WeekDay(str, Enum):
    SUN = "sun"
    MON = "mon"
    TUE = "tue"
    WED = "wed"
    THU = "thu"
    FRI = "fri"
    SAT = "sat"

    @property
    def token(self) -> str:
        """Two letter RRULE abbreviation, e.g. 'MO'."""
        return self.value[:2].upper()

    @property
    def rrule_weekday(self):
        """The matching dateutil weekday constant, e.g. FR for fri."""
        return _RRULE_WEEKDAYS[self]

    @property
    def python_weekday(self) -> int:
        """Monday == 0 ... Sunday == 6, as date.weekday() reports."""
        return self.rrule_weekday.weekday

    @property
    def short_name(self) -> str:
        return self.value[:2].capitalize()

    @property
    def full_name(self) -> str:
        return self.value.capitalize()

    @classmethod
    def from_token(cls, token: str) -> "WeekDay | None":
        return _BY_TOKEN.get((token or "").strip().upper())

    @classmethod
    def from_date(cls, d: date) -> "WeekDay":
        return _BY_PYTHON_WEEKDAY[d.weekday()]


_RRULE_WEEKDAYS = {
    WeekDay.SUN: SU,
    WeekDay.MON: MO,
    WeekDay.TUE: TU,
    WeekDay.WED: WE,
    WeekDay.THU: TH,
    WeekDay.FRI: FR,
    WeekDay.SAT: SA,
}
_BY_TOKEN = {wd.token: wd for wd in WeekDay}
_BY_PYTHON_WEEKDAY = {wd.python_weekday: wd for wd in WeekDay}

WORK_WEEK = frozenset(
    {WeekDay.MON, WeekDay.TUE, WeekDay.WED, WeekDay.THU, WeekDay.FRI}
)
NTH_VALUES = (-1, 1, 2, 3, 4, 5)


@dataclass(frozen=True)
class RecurrenceRule:
    frequency: Frequency
    start_date: date
    interval: int = 1
    week_days: tuple[WeekDay, ...] | None = None  # weekly only
    day_of_month: int | None = None  # monthly, 1..31
    nth_weekday: int | None = None  # monthly, -1 or 1..5
    weekday_for_nth: WeekDay | None = None  # monthly
    end_date: date | None = None  # inclusive

    @property
    def uses_nth_weekday(self) -> bool:
        return self.nth_weekday is not None and self.weekday_for_nth is not None


def _check_interval(interval: int) -> int:
    if not isinstance(interval, int) or interval < 1:
        raise ValueError(f"interval must be a positive integer, got {interval!r}")
    return interval


def _unique_days(week_days) -> tuple[WeekDay, ...]:
    seen: list[WeekDay] = []
    for wd in week_days or ():
        wd = WeekDay(wd)
        if wd not in seen:
            seen.append(wd)
    return tuple(seen)


def daily(
    start_date: date, interval: int = 1, end_date: date | None = None
) -> RecurrenceRule:
    """Every `interval` days from start_date."""
    return RecurrenceRule(
        frequency=Frequency.DAILY,
        start_date=start_date,
        interval=_check_interval(interval),
        end_date=end_date,
    )


def weekly(
    start_date: date,
    week_days=(),
    interval: int = 1,
    end_date: date | None = None,
) -> RecurrenceRule:
    """
    On each of week_days, every `interval` weeks counted from start_date.

    An empty week_days means the weekday of start_date, never "every day".
    """
    days = _unique_days(week_days) or (WeekDay.from_date(start_date),)
    return RecurrenceRule(
        frequency=Frequency.WEEKLY,
        start_date=start_date,
        interval=_check_interval(interval),
        week_days=days,
        end_date=end_date,
    )


def monthly_by_day(
    start_date: date,
    day_of_month: int | None = None,
    interval: int = 1,
    end_date: date | None = None,
) -> RecurrenceRule:
    """
    On day_of_month (default: the day of start_date) every `interval` months.

    Months without that day are skipped, not clamped.
    """
    dom = start_date.day if day_of_month is None else day_of_month
    if not 1 <= dom <= 31:
        raise ValueError(f"day_of_month must be in 1..31, got {dom!r}")
    return RecurrenceRule(
        frequency=Frequency.MONTHLY,
        start_date=start_date,
        interval=_check_interval(interval),
        day_of_month=dom,
        end_date=end_date,
    )


def monthly_nth_weekday(
    start_date: date,
    nth: int,
    weekday,
    interval: int = 1,
    end_date: date | None = None,
) -> RecurrenceRule:
    """On the nth weekday of the month, e.g. 2nd Tuesday; nth=-1 is the last."""
    if nth not in NTH_VALUES:
        raise ValueError(f"nth must be one of {NTH_VALUES}, got {nth!r}")
    return RecurrenceRule(
        frequency=Frequency.MONTHLY,
        start_date=start_date,
        interval=_check_interval(interval),
        nth_weekday=nth,
        weekday_for_nth=WeekDay(weekday),
        end_date=end_date,
    )


def yearly(
    start_date: date, interval: int = 1, end_date: date | None = None
) -> RecurrenceRule:
    """On the month and day of start_date every `interval` years."""
    return RecurrenceRule(
        frequency=Frequency.YEARLY,
        start_date=start_date,
        interval=_check_interval(interval),
        end_date=end_date,
    )


# ─── Descriptions ─────────────────────────────────────────


def _is_work_week(week_days) -> bool:
    return set(week_days or ()) == WORK_WEEK


def _nth_label(nth: int) -> str:
    return "last" if nth == -1 else ordinal(nth)


def describe_recurrence(rule: RecurrenceRule) -> str:
    """Human readable description, e.g. 'Monthly on last Fri'."""
    n = rule.interval
    if rule.frequency is Frequency.DAILY:
        return "Every day" if n == 1 else f"Every {n} days"

    if rule.frequency is Frequency.WEEKLY:
        days = rule.week_days or ()
        if n == 1 and len(days) == 1:
            return f"Weekly on {days[0].full_name}"
        if n == 1 and len(days) > 1:
            if _is_work_week(days):
                return "Mon-Fri"
            return ", ".join(wd.short_name for wd in days)
        return f"Every {n} weeks"

    if rule.frequency is Frequency.MONTHLY:
        if rule.uses_nth_weekday:
            text = f"Monthly on {_nth_label(rule.nth_weekday)} {rule.weekday_for_nth.full_name}"
        elif rule.day_of_month is not None:
            text = f"Monthly on {ordinal(rule.day_of_month)}"
        else:
            text = "Monthly"
        return text if n == 1 else f"{text}, every {n} months"

    return "Yearly" if n == 1 else f"Every {n} years"


def format_recurrence_short(rule: RecurrenceRule) -> str:
    """Compact form for task rows, e.g. 'last Fr' or 'We, Th, Fr'."""
    if rule.frequency is Frequency.WEEKLY and rule.week_days:
        if _is_work_week(rule.week_days):
            return "Mon-Fri"
        if len(rule.week_days) == 1:
            return f"Weekly on {rule.week_days[0].full_name}"
        return ", ".join(wd.short_name for wd in rule.week_days)
    if rule.frequency is Frequency.MONTHLY and rule.uses_nth_weekday:
        return f"{_nth_label(rule.nth_weekday)} {rule.weekday_for_nth.short_name}"
    if rule.frequency is Frequency.YEARLY:
        return "Yearly"
    return describe_recurrence(rule)
