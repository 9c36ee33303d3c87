"""Group reminder timers whose schedule is packed into one integer."""

from __future__ import annotations

import hashlib
import re
from collections.abc import Sequence
from dataclasses import dataclass

_ENABLED = 0x800000
_MONTH = (0x780000, 19, 0b1111)
_DAY = (0x07C000, 14, 0b11111)
_WEEK = (0x003800, 11, 0b111)
_HOUR = (0x0007C0, 6, 0b11111)
_MINUTE = (0x00003F, 0, 0b111111)
_ALL_BITS = 0xFFFFFF

_CHINESE_DIGITS = "零一二三四五六七八九十"
_ASCII_NUMBER = re.compile(r"[0-9]+")


@dataclass
class Timer:
    """A reminder for one group.

    ``packed`` holds, from high to low bits: enabled (1), month (4), day (5),
    weekday (3), hour (5) and minute (6).  A field whose bits are all set
    means "every".  Weekdays count from Sunday = 0.
    """

    id: int = 0
    packed: int = 0
    self_id: int = 0
    group_id: int = 0
    alert: str = ""
    cron: str = ""
    url: str = ""

    def _read(self, field: tuple[int, int, int]) -> int:
        mask, shift, every = field
        value = (self.packed & mask) >> shift
        return -1 if value == every else value

    def _write(self, field: tuple[int, int, int], value: int) -> None:
        mask, shift, _ = field
        self.packed = ((value << shift) & mask) | (self.packed & (_ALL_BITS ^ mask))

    def _set_enabled(self, enabled: bool) -> None:
        if enabled:
            self.packed |= _ENABLED
        else:
            self.packed &= _ALL_BITS ^ _ENABLED

    def _set_month(self, month: int) -> None:
        self._write(_MONTH, month)

    def _set_day(self, day: int) -> None:
        self._write(_DAY, day)

    def _set_week(self, week: int) -> None:
        self._write(_WEEK, week)

    def _set_hour(self, hour: int) -> None:
        self._write(_HOUR, hour)

    def _set_minute(self, minute: int) -> None:
        self._write(_MINUTE, minute)

    def enabled(self) -> bool:
        """Whether the timer is active."""
        return self.packed & _ENABLED != 0

    def month(self) -> int:
        """Month 1-12, or -1 for every month."""
        return self._read(_MONTH)

    def day(self) -> int:
        """Day of month, 0 when the weekday is used, -1 for every day."""
        return self._read(_DAY)

    def week(self) -> int:
        """Weekday with Sunday = 0, or -1 for every week."""
        return self._read(_WEEK)

    def hour(self) -> int:
        """Hour 0-23, or -1 for every hour."""
        return self._read(_HOUR)

    def minute(self) -> int:
        """Minute 0-59, or -1 for every minute."""
        return self._read(_MINUTE)

    def info(self) -> str:
        """Normalised description used to identify the timer."""
        if self.cron:
            return f"[{self.group_id}]{self.cron}"
        return (
            f"[{self.group_id}]{self.month()}月{self.day()}日{self.week()}周"
            f"{self.hour()}:{self.minute()}"
        )

    def timer_id(self) -> int:
        """Stable 32-bit id derived from :meth:`info`."""
        digest = hashlib.md5(self.info().encode("utf-8")).digest()
        return int.from_bytes(digest[:4], "little")

    def segments(self) -> list[dict]:
        """Message segments sent when the timer fires."""
        parts: list[dict] = [
            {"type": "at", "data": {"qq": "all"}},
            {"type": "text", "data": {"text": self.alert}},
        ]
        if self.url:
            parts.append({"type": "image", "data": {"file": self.url, "cache": "0"}})
        return parts


def filled_cron_timer(cron: str, alert: str, url: str, self_id: int, group_id: int) -> Timer:
    """Build a timer driven by a cron expression."""
    return Timer(self_id=self_id, group_id=group_id, alert=alert, cron=cron, url=url)


def filled_timer(
    date_strs: Sequence[str], self_id: int, group_id: int, match_date_only: bool
) -> Timer:
    """Build a timer from the matched groups of a reminder command.

    ``date_strs`` holds the whole match followed by month, day-or-week, hour,
    minute and, unless ``match_date_only``, the optional "用<url>" part and
    the alert text.  An invalid field leaves the timer disabled with the
    reason in ``alert``.
    """
    month_str, day_week, hour_str, minute_str = date_strs[1:5]
    timer = Timer()

    month = chinese_num_to_int(month_str)
    if (month != -1 and month <= 0) or month > 12:
        timer.alert = "月份非法！"
        return timer
    timer._set_month(month)

    if not day_week:
        raise ValueError("missing day or weekday")
    if len(day_week) == 4:
        day = chinese_num_to_int(day_week[0] + day_week[2])
        if (day != -1 and day <= 0) or day > 31:
            timer.alert = "日期非法1！"
            return timer
        timer._set_day(day)
    elif day_week[-1] == "日":
        day = chinese_num_to_int(day_week[:-1])
        if (day != -1 and day <= 0) or day > 31:
            timer.alert = "日期非法2！"
            return timer
        timer._set_day(day)
    elif day_week[0] == "每":
        timer._set_week(-1)
    else:
        week = chinese_num_to_int(day_week[1:])
        if week == 7:
            week = 0
        if week < 0 or week > 6:
            timer.alert = "星期非法！"
            return timer
        timer._set_week(week)

    if len(hour_str) == 3:
        hour_str = hour_str[0] + hour_str[2]
    hour = chinese_num_to_int(hour_str)
    if hour < -1 or hour > 23:
        timer.alert = "小时非法！"
        return timer
    timer._set_hour(hour)

    if len(minute_str) == 3:
        minute_str = minute_str[0] + minute_str[2]
    minute = chinese_num_to_int(minute_str)
    if minute < -1 or minute > 59:
        timer.alert = "分钟非法！"
        return timer
    timer._set_minute(minute)

    if not match_date_only:
        url_str = date_strs[5]
        if url_str:
            timer.url = url_str[1:]
            if not timer.url.startswith("http"):
                timer.url = "illegal"
                return timer
        timer.alert = date_strs[6]
        timer._set_enabled(True)
    timer.self_id = self_id
    timer.group_id = group_id
    return timer


def chinese_num_to_int(text: str) -> int:
    """Convert a one- or two-character Chinese or decimal number.

    "每" alone means -1 and "每X" means -X.  Decimal text that cannot be
    parsed gives 0.
    """
    if not text:
        raise ValueError("empty number")
    first = text[0]
    if first.isdecimal():
        return int(text) if _ASCII_NUMBER.fullmatch(text) else 0
    if first == "每":
        return -chinese_char_to_int(text[1]) if len(text) == 2 else -1
    if len(text) == 1:
        return chinese_char_to_int(first)
    tens = chinese_char_to_int(first)
    if tens != 10:
        tens *= 10
    units = chinese_char_to_int(text[1])
    if units == 10:
        units = 0
    return tens + units


def chinese_char_to_int(char: str) -> int:
    """Map one Chinese numeral to 0-10; "日" and "天" (Sunday) give 7."""
    if char in ("日", "天"):
        return 7
    index = _CHINESE_DIGITS.find(char) if len(char) == 1 else -1
    return index if index >= 0 else 0