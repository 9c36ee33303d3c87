from datetime import datetime, timedelta

import pytest

from botplugins.schedule import first_weekday_of_month, is_due, next_wake_time
from botplugins.timer import filled_timer


def _timer(month, day_week, hour, minute):
    return filled_timer(["", month, day_week, hour, minute, "", "alert"], 0, 0, False)


def test_next_wake_time_saturday_case():
    timer = _timer("每", "周六", "16", "30")
    now = datetime(2023, 1, 2, 10, 0, 0)
    wake = next_wake_time(timer, now)
    assert wake > now
    assert wake == datetime(2023, 1, 7, 16, 30, 0)
    assert is_due(timer, wake)


def test_next_wake_time_every_day():
    timer = _timer("每", "每日", "8", "0")
    now = datetime(2023, 1, 2, 10, 0, 0)
    assert next_wake_time(timer, now) == datetime(2023, 1, 3, 8, 0, 0)


@pytest.mark.parametrize(
    "fields",
    [
        ("每", "周六", "16", "30"),
        ("12", "-1", "12", "0"),
        ("3", "十五日", "9", "0"),
        ("每", "每日", "每", "5"),
        ("每", "每周", "8", "每"),
        ("2", "二十九日", "23", "59"),
    ],
)
def test_next_wake_time_is_in_future(fields):
    timer = _timer(*fields)
    for now in (datetime(2023, 1, 2, 10, 0), datetime(2024, 2, 29, 23, 59), datetime(2023, 12, 31, 0, 0)):
        assert next_wake_time(timer, now) > now


def test_first_weekday_of_month():
    date = datetime(2023, 1, 17, 9, 0)
    monday = first_weekday_of_month(date, 1)
    assert monday == datetime(2023, 1, 2, 9, 0)
    assert first_weekday_of_month(date, 0) == datetime(2023, 1, 1, 9, 0)


def test_first_weekday_invalid():
    with pytest.raises(ValueError):
        first_weekday_of_month(datetime(2023, 1, 1), 7)


def test_is_due_checks_fields():
    timer = _timer("1", "2日", "10", "30")
    assert is_due(timer, datetime(2023, 1, 2, 10, 30))
    assert not is_due(timer, datetime(2023, 1, 2, 10, 31))
    assert not is_due(timer, datetime(2023, 2, 2, 10, 30))
    assert not is_due(timer, datetime(2023, 1, 3, 10, 30))


def test_is_due_weekday_and_disabled():
    timer = _timer("每", "周一", "每", "每")
    assert is_due(timer, datetime(2023, 1, 2, 3, 4))
    assert not is_due(timer, datetime(2023, 1, 3, 3, 4))
    disabled = filled_timer(["", "每", "周一", "每", "每"], 0, 0, True)
    assert not is_due(disabled, datetime(2023, 1, 2, 3, 4))


def test_wake_minute_only_timer_moves_forward():
    timer = _timer("每", "每日", "每", "每")
    now = datetime(2023, 5, 5, 5, 5)
    assert next_wake_time(timer, now) == now + timedelta(minutes=1)