"""Registry of group reminder timers backed by SQLite, with cron support."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from os import PathLike

from botplugins.schedule import is_due, next_wake_time
from botplugins.timer import Timer

log = logging.getLogger(__name__)

Sender = Callable[[int, list], None]

_DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}

_MONTH_NAMES = {
    name: number
    for number, name in enumerate(
        ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"],
        start=1,
    )
}
_DOW_NAMES = {
    name: number
    for number, name in enumerate(["sun", "mon", "tue", "wed", "thu", "fri", "sat"])
}

_SEARCH_YEARS = 5


def _weekday(moment: datetime) -> int:
    return (moment.weekday() + 1) % 7


def _field_value(text: str, names: dict[str, int]) -> int:
    lowered = text.lower()
    if lowered in names:
        return names[lowered]
    if text.isdigit():
        return int(text)
    raise ValueError(f"failed to parse value {text!r}")


def _parse_field(
    field: str, low: int, high: int, names: dict[str, int]
) -> tuple[frozenset[int], bool]:
    """Parse one cron field into its allowed values and whether it is a bare star."""
    values: set[int] = set()
    star = False
    for part in field.split(","):
        if not part:
            raise ValueError(f"empty entry in field {field!r}")
        range_text, has_step, step_text = part.partition("/")
        part_star = False
        if range_text in ("*", "?"):
            start, end = low, high
            part_star = True
        else:
            first, has_dash, last = range_text.partition("-")
            start = _field_value(first, names)
            if has_dash:
                end = _field_value(last, names)
            else:
                end = high if has_step else start
        step = 1
        if has_step:
            if not step_text.isdigit() or int(step_text) == 0:
                raise ValueError(f"invalid step in {part!r}")
            step = int(step_text)
            if step > 1:
                part_star = False
        if start < low or end > high or start > end:
            raise ValueError(f"value out of range in {part!r}: allowed {low}-{high}")
        values.update(range(start, end + 1, step))
        star = star or part_star
    return frozenset(values), star


class CronSchedule:
    """A standard five-field cron expression (minute hour day month weekday)."""

    def __init__(self, expr: str) -> None:
        text = expr.strip()
        if text.startswith("@"):
            try:
                text = _DESCRIPTORS[text.lower()]
            except KeyError:
                raise ValueError(f"unrecognised descriptor: {expr}") from None
        fields = text.split()
        if len(fields) != 5:
            raise ValueError(f"expected exactly 5 fields, found {len(fields)}: {expr}")
        self.expr = expr
        self.minutes, _ = _parse_field(fields[0], 0, 59, {})
        self.hours, _ = _parse_field(fields[1], 0, 23, {})
        self.days, self._day_star = _parse_field(fields[2], 1, 31, {})
        self.months, _ = _parse_field(fields[3], 1, 12, _MONTH_NAMES)
        weekdays, self._weekday_star = _parse_field(fields[4], 0, 7, _DOW_NAMES)
        if 7 in weekdays:
            weekdays = (weekdays - {7}) | {0}
        self.weekdays = frozenset(weekdays)

    def _day_matches(self, moment: datetime) -> bool:
        day_ok = moment.day in self.days
        weekday_ok = _weekday(moment) in self.weekdays
        if self._day_star or self._weekday_star:
            return day_ok and weekday_ok
        return day_ok or weekday_ok

    def matches(self, moment: datetime) -> bool:
        """Whether the minute containing ``moment`` is scheduled."""
        return (
            moment.minute in self.minutes
            and moment.hour in self.hours
            and moment.month in self.months
            and self._day_matches(moment)
        )

    def next_after(self, moment: datetime) -> datetime:
        """The first scheduled minute strictly after ``moment``."""
        current = moment.replace(second=0, microsecond=0) + timedelta(minutes=1)
        limit = moment.year + _SEARCH_YEARS
        while current.year <= limit:
            if current.month not in self.months:
                if current.month == 12:
                    current = current.replace(
                        year=current.year + 1, month=1, day=1, hour=0, minute=0
                    )
                else:
                    current = current.replace(month=current.month + 1, day=1, hour=0, minute=0)
                continue
            if not self._day_matches(current):
                current = (current + timedelta(days=1)).replace(hour=0, minute=0)
                continue
            if current.hour not in self.hours:
                current = current.replace(minute=0) + timedelta(hours=1)
                continue
            if current.minute not in self.minutes:
                current += timedelta(minutes=1)
                continue
            return current
        raise ValueError(f"cron expression {self.expr!r} never fires")


class Clock:
    """Keeps reminder timers in memory and in a SQLite table, firing them on time.

    ``sender`` is called with the group id and the message segments of a
    timer whenever it fires.
    """

    def __init__(self, db_path: str | PathLike[str], sender: Sender) -> None:
        self._sender = sender
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        self._db_lock = threading.Lock()
        self._lock = threading.RLock()
        self._timers: dict[int, Timer] = {}
        self._stops: dict[int, threading.Event] = {}
        with self._db_lock:
            self._db.execute(
                "CREATE TABLE IF NOT EXISTS timer ("
                "id INTEGER PRIMARY KEY, emdwhm INTEGER, sid INTEGER, gid INTEGER, "
                "alert TEXT, cron TEXT, url TEXT)"
            )
            self._db.commit()
            rows = self._db.execute(
                "SELECT id, emdwhm, sid, gid, alert, cron, url FROM timer"
            ).fetchall()
        for row in rows:
            self.register(Timer(*row), False, True)

    def __enter__(self) -> Clock:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def register(self, timer: Timer, save: bool, is_init: bool) -> bool:
        """Start ``timer``; with ``save`` its id is derived and it is stored.

        Returns True only when a cron timer has been scheduled and recorded.
        Dated timers run in the background and give False, as does a cron
        expression that cannot be parsed (its error is put in ``alert``).
        """
        if save:
            timer.id = timer.timer_id()
        key = timer.id
        with self._lock:
            old = self._timers.get(key)
            if old is not None and old is not timer:
                old._set_enabled(False)
            previous_stop = self._stops.pop(key, None)
        if previous_stop is not None:
            previous_stop.set()
        log.info("%s timer %08x", "restoring" if is_init else "registering", key)

        if timer.cron:
            try:
                schedule = CronSchedule(timer.cron)
            except ValueError as exc:
                timer.alert = str(exc)
                return False
            stop = self._start(key, self._run_cron, timer, schedule)
            try:
                if save:
                    self.add_to_db(timer)
                self.add_to_map(timer)
            except sqlite3.Error:
                log.exception("cannot record timer %08x", key)
                stop.set()
                return False
            return True

        if save:
            try:
                self.add_to_db(timer)
            except sqlite3.Error:
                log.exception("cannot store timer %08x", key)
        self.add_to_map(timer)
        self._start(key, self._run_dated, timer)
        return False

    def _start(self, key: int, target: Callable[..., None], *args: object) -> threading.Event:
        stop = threading.Event()
        with self._lock:
            self._stops[key] = stop
        thread = threading.Thread(target=target, args=(*args, stop), daemon=True)
        thread.start()
        return stop

    def _fire(self, timer: Timer) -> None:
        try:
            self._sender(timer.group_id, timer.segments())
        except Exception:
            log.exception("sending timer %08x failed", timer.id)

    def _run_cron(self, timer: Timer, schedule: CronSchedule, stop: threading.Event) -> None:
        while not stop.is_set():
            now = datetime.now()
            wake = schedule.next_after(now)
            if stop.wait(max((wake - now).total_seconds(), 0.0)):
                return
            self._fire(timer)

    def _run_dated(self, timer: Timer, stop: threading.Event) -> None:
        while timer.enabled() and not stop.is_set():
            now = datetime.now()
            wake = next_wake_time(timer, now)
            log.debug("timer %08x sleeps until %s", timer.id, wake)
            if stop.wait(max((wake - now).total_seconds(), 0.0)):
                return
            if is_due(timer, datetime.now()):
                self._fire(timer)

    def cancel(self, key: int) -> bool:
        """Stop and forget the timer with ``key``; False if there is none."""
        timer = self.get(key)
        if timer is None:
            return False
        if not timer.cron:
            timer._set_enabled(False)
        with self._lock:
            stop = self._stops.pop(key, None)
            self._timers.pop(key, None)
        if stop is not None:
            stop.set()
        try:
            with self._db_lock:
                self._db.execute("DELETE FROM timer WHERE id = ?", (key,))
                self._db.commit()
        except sqlite3.Error:
            log.exception("cannot delete timer %08x", key)
            return False
        return True

    def list_timers(self, group_id: int) -> list[str]:
        """Readable descriptions of every timer of ``group_id``."""
        with self._lock:
            timers = list(self._timers.values())
        result = []
        for timer in timers:
            if timer.group_id != group_id:
                continue
            info = timer.info()
            text = info[info.index("]") + 1 :] + "\n"
            text = text.replace("-1", "每")
            text = text.replace("月0日0周", "月周天")
            text = text.replace("月0日", "月")
            text = text.replace("日0周", "日")
            result.append(text)
        return result

    def get(self, key: int) -> Timer | None:
        """The timer registered under ``key``, if any."""
        with self._lock:
            return self._timers.get(key)

    def add_to_db(self, timer: Timer) -> None:
        """Store ``timer`` in the database, replacing a row with the same id."""
        with self._db_lock:
            self._db.execute(
                "INSERT OR REPLACE INTO timer (id, emdwhm, sid, gid, alert, cron, url) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    timer.id,
                    timer.packed,
                    timer.self_id,
                    timer.group_id,
                    timer.alert,
                    timer.cron,
                    timer.url,
                ),
            )
            self._db.commit()

    def add_to_map(self, timer: Timer) -> None:
        """Keep ``timer`` in memory under its id."""
        with self._lock:
            self._timers[timer.id] = timer

    def close(self) -> None:
        """Stop every running timer and close the database."""
        with self._lock:
            stops = list(self._stops.values())
            self._stops.clear()
        for stop in stops:
            stop.set()
        with self._db_lock:
            self._db.close()