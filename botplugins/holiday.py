"""Holiday countdowns for the daily slacking-off reminder."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

HOLIDAY_NAMES = ("元旦", "春节", "清明节", "劳动节", "端午节", "中秋节", "国庆节")

GREETING = (
    "上午好，摸鱼人！\n工作再累，一定不要忘记摸鱼哦！有事没事起身去茶水间，去厕所，"
    "去廊道走走别老在工位上坐着，钱是老板的,但命是自己的。\n"
)
CLOSING = "上班是帮老板赚钱，摸鱼是赚老板的钱！最后，祝愿天下所有摸鱼人，都能愉快的渡过每一天…"

_VALUE = re.compile(r"\s*([+-]?\d+)_\s*([+-]?\d+)_\s*([+-]?\d+)_\s*([+-]?\d+)")


@dataclass(frozen=True)
class Holiday:
    """A holiday starting at ``date`` and lasting ``duration``."""

    name: str
    date: datetime
    duration: timedelta

    def describe(self, now: datetime) -> str:
        """Countdown, in-progress or passed message as seen at ``now``."""
        left = self.date - now
        if left >= timedelta(0):
            days = left / timedelta(days=1)
            return f"距离{self.name}还有: {days:.2f}天！"
        if left + self.duration >= timedelta(0):
            return f"好好享受 {self.name} 假期吧!"
        return f"今年 {self.name} 假期已过"


def parse_holiday(name: str, value: str) -> Holiday:
    """Read a holiday stored as "days_year_month_day"."""
    match = _VALUE.match(value)
    if match is None:
        raise ValueError(f"invalid holiday value: {value!r}")
    days, year, month, day = (int(part) for part in match.groups())
    return Holiday(name, datetime(year, month, day), timedelta(days=days))


def weekend_message(today: datetime) -> str:
    """How far the weekend is from ``today``."""
    weekday = (today.weekday() + 1) % 7
    if weekday in (0, 6):
        return "好好享受周末吧！"
    return f"距离周末还有:{5 - weekday}天！"


def daily_reminder(today: datetime, holidays: Iterable[Holiday]) -> str:
    """The full reminder text for ``today``."""
    countdowns = "\n".join(h.describe(today) for h in holidays)
    return (
        today.strftime("%Y-%m-%d")
        + GREETING
        + weekend_message(today)
        + "\n"
        + countdowns
        + "\n"
        + CLOSING
    )