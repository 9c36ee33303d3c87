"""When a packed reminder timer should next wake up and whether it is due."""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo

from botplugins.timer import Timer


def _weekday(moment: datetime) -> int:
    """Weekday counted from Sunday = 0."""
    return (moment.weekday() + 1) % 7


def _build(
    year: int,
    month: int,
    day: int,
    hour: int,
    minute: int,
    second: int,
    microsecond: int,
    tz: tzinfo | None,
) -> datetime:
    """Build a datetime, letting out-of-range months and days roll over."""
    carry, month_index = divmod(month - 1, 12)
    base = datetime(year + carry, month_index + 1, 1, tzinfo=tz)
    return base + timedelta(
        days=day - 1, hours=hour, minutes=minute, seconds=second, microseconds=microsecond
    )


def _add_date(moment: datetime, years: int, months: int, days: int) -> datetime:
    return _build(
        moment.year + years,
        moment.month + months,
        moment.day + days,
        moment.hour,
        moment.minute,
        moment.second,
        moment.microsecond,
        moment.tzinfo,
    )


def first_weekday_of_month(date: datetime, weekday: int) -> datetime:
    """First day in the month of ``date`` falling on ``weekday`` (Sunday = 0)."""
    if not 0 <= weekday <= 6:
        raise ValueError(f"invalid weekday {weekday}")
    day = _add_date(date, 0, 0, 1 - date.day)
    while _weekday(day) != weekday:
        day += timedelta(days=1)
    return day


def next_wake_time(timer: Timer, now: datetime) -> datetime:
    """The moment after ``now`` at which ``timer`` should next be checked."""
    month, day, hour, minute, week = (
        timer.month(),
        timer.day(),
        timer.hour(),
        timer.minute(),
        timer.week(),
    )

    unit = timedelta(0)
    if minute >= 0:
        if hour < 0:
            unit = timedelta(hours=1)
        elif day < 0 or week < 0:
            unit = timedelta(days=1)
        elif day == 0 and week >= 0:
            delta = timedelta(days=week - _weekday(now))
            if delta < timedelta(0):
                delta = timedelta(days=7)
            unit += delta
    else:
        unit = timedelta(minutes=1)

    stable = 0
    if minute < 0:
        minute = now.minute
    if hour < 0:
        hour = now.hour
    else:
        stable |= 0x8
    if day < 0:
        day = now.day
    elif day > 0:
        stable |= 0x4
    else:
        day = now.day
        if week >= 0:
            stable |= 0x2
    if month < 0:
        month = now.month
    else:
        stable |= 0x1

    if stable == 0b0101:
        if timer.day() != now.day or timer.month() != now.month:
            hour = 0
    elif stable == 0b1001:
        if timer.month() != now.month:
            day = 0
    elif stable == 0b0001:
        if timer.month() != now.month:
            day = 0
            hour = 0

    date = _build(now.year, month, day, hour, minute, now.second, now.microsecond, now.tzinfo)
    if unit > timedelta(0):
        date += unit

    if date <= now:
        if timer.month() < 0:
            if timer.day() > 0 or (timer.day() == 0 and timer.week() >= 0):
                date = _add_date(date, 0, 1, 0)
            elif timer.day() < 0 or timer.week() < 0:
                if timer.hour() > 0:
                    date = _add_date(date, 0, 0, 1)
                elif timer.minute() > 0:
                    date += timedelta(hours=1)
        else:
            date = _add_date(date, 1, 0, 0)

    if stable & 0x8 and date.hour != hour:
        if stable & 0x4 == 0:
            date = _add_date(date, 0, 0, 1) - timedelta(hours=1)
        elif stable & 0x2 == 0:
            date = _add_date(date, 0, 0, 7) - timedelta(hours=1)
        else:
            date = _add_date(date, 1, 0, 0) - timedelta(hours=1)

    if stable & 0x4 and date.day != day:
        date = _add_date(date, 1, 0, -1)

    if stable & 0x2 and _weekday(date) != week:
        date = first_weekday_of_month(_add_date(date, 1, 0, 0), week)

    if date <= now:
        date = now + timedelta(minutes=1)
    return date


def is_due(timer: Timer, now: datetime) -> bool:
    """Whether an enabled ``timer`` should fire at ``now``."""
    if not timer.enabled():
        return False
    month = timer.month()
    if month >= 0 and month != now.month:
        return False
    day = timer.day()
    if day == 0:
        week = timer.week()
        if week >= 0 and week != _weekday(now):
            return False
    elif day > 0 and day != now.day:
        return False
    hour = timer.hour()
    minute = timer.minute()
    return (hour < 0 or hour == now.hour) and (minute < 0 or minute == now.minute)