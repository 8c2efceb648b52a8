"""
Compact textual encoding of recurrence rules.

    DTSTART:20260201;FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE,FR;UNTIL=20261231
    DTSTART:20260101;FREQ=MONTHLY;BYDAY=-1FR
    DTSTART:20260131;FREQ=MONTHLY;BYMONTHDAY=31

The format is loosely modelled on RFC 5545 but is not an RFC parser:
only the keys written by `encode` are understood.
"""

import re
from datetime import date

from .recurrence import Frequency, RecurrenceRule, WeekDay
from .shared import DaylightError, fmt_compact_date, log_msg, parse_compact_date

NTH_BYDAY = re.compile(r"^(-?\d+)([A-Z]{2})$")


class RRuleDecodeError(DaylightError, ValueError):
    """Raised by decode(strict=True) for a recurrence string it cannot trust."""


def encode(rule: RecurrenceRule) -> str:
    parts = [
        f"DTSTART:{fmt_compact_date(rule.start_date)}",
        f"FREQ={rule.frequency.token}",
    ]
    if rule.interval > 1:
        parts.append(f"INTERVAL={rule.interval}")

    if rule.frequency is Frequency.WEEKLY and rule.week_days:
        parts.append("BYDAY=" + ",".join(wd.token for wd in rule.week_days))

    if rule.frequency is Frequency.MONTHLY:
        if rule.day_of_month is not None:
            parts.append(f"BYMONTHDAY={rule.day_of_month}")
        if rule.uses_nth_weekday:
            parts.append(f"BYDAY={rule.nth_weekday}{rule.weekday_for_nth.token}")

    if rule.end_date:
        parts.append(f"UNTIL={fmt_compact_date(rule.end_date)}")

    return ";".join(parts)


def _split(text: str) -> dict[str, str]:
    props: dict[str, str] = {}
    for part in (text or "").split(";"):
        part = part.strip()
        if not part:
            continue
        sep = ":" if ":" in part else "="
        key, _, value = part.partition(sep)
        key, value = key.strip().upper(), value.strip()
        if key and value:
            props[key] = value
    return props


def _problem(msg: str, strict: bool) -> None:
    if strict:
        raise RRuleDecodeError(msg)
    log_msg(msg)


def decode(
    text: str, strict: bool = False, today: date | None = None
) -> RecurrenceRule:
    """
    Parse a recurrence string.

    By default decoding never raises: an unknown FREQ becomes daily, a
    missing or malformed DTSTART becomes today and a malformed INTERVAL
    becomes 1. Stored data written by older versions depends on this.
    With strict=True each of these conditions raises RRuleDecodeError.
    """
    props = _split(text)

    start = parse_compact_date(props.get("DTSTART", ""))
    if start is None:
        start = today or date.today()
        _problem(
            f"recurrence {text!r}: missing or invalid DTSTART, using {start}", strict
        )

    freq_token = props.get("FREQ", "").upper()
    try:
        frequency = Frequency(freq_token.lower())
    except ValueError:
        frequency = Frequency.DAILY
        _problem(f"recurrence {text!r}: unknown FREQ {freq_token!r}, using DAILY", strict)

    interval = 1
    if "INTERVAL" in props:
        try:
            interval = int(props["INTERVAL"])
        except ValueError:
            interval = 0
        if interval < 1:
            _problem(f"recurrence {text!r}: invalid INTERVAL, using 1", strict)
            interval = 1

    week_days = None
    day_of_month = None
    nth_weekday = None
    weekday_for_nth = None

    byday = props.get("BYDAY", "").upper()
    if byday:
        match = NTH_BYDAY.match(byday)
        if match:
            nth_weekday = int(match.group(1))
            weekday_for_nth = WeekDay.from_token(match.group(2))
            if weekday_for_nth is None:
                _problem(f"recurrence {text!r}: unknown weekday in BYDAY", strict)
        else:
            days = [WeekDay.from_token(tok) for tok in byday.split(",")]
            week_days = tuple(wd for wd in days if wd is not None)
            if not week_days:
                _problem(f"recurrence {text!r}: no known weekday in BYDAY", strict)

    if frequency is Frequency.WEEKLY and not week_days:
        week_days = (WeekDay.from_date(start),)

    if "BYMONTHDAY" in props:
        try:
            day_of_month = int(props["BYMONTHDAY"])
        except ValueError:
            _problem(f"recurrence {text!r}: invalid BYMONTHDAY", strict)

    end = None
    if "UNTIL" in props:
        end = parse_compact_date(props["UNTIL"])
        if end is None:
            _problem(f"recurrence {text!r}: invalid UNTIL ignored", strict)

    return RecurrenceRule(
        frequency=frequency,
        start_date=start,
        interval=interval,
        week_days=week_days,
        day_of_month=day_of_month,
        nth_weekday=nth_weekday,
        weekday_for_nth=weekday_for_nth,
        end_date=end,
    )
