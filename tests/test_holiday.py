from datetime import datetime, timedelta

import pytest

from botplugins.holiday import (
    CLOSING,
    Holiday,
    daily_reminder,
    parse_holiday,
    weekend_message,
)

SOURCE_VALUES = [
    ("元旦", "1_2023_1_1", 1, datetime(2023, 1, 1)),
    ("春节", "7_2023_1_21", 7, datetime(2023, 1, 21)),
    ("清明节", "1_2023_4_5", 1, datetime(2023, 4, 5)),
    ("劳动节", "1_2023_5_1", 1, datetime(2023, 5, 1)),
    ("端午节", "1_2023_6_22", 1, datetime(2023, 6, 22)),
    ("中秋节", "1_2023_9_29", 1, datetime(2023, 9, 29)),
    ("国庆节", "7_2023_10_1", 7, datetime(2023, 10, 1)),
]


@pytest.mark.parametrize("name,value,days,date", SOURCE_VALUES)
def test_parse_source_values(name, value, days, date):
    holiday = parse_holiday(name, value)
    assert holiday.name == name
    assert holiday.date == date
    assert holiday.duration == timedelta(days=days)


def test_parse_invalid():
    with pytest.raises(ValueError):
        parse_holiday("元旦", "garbage")


@pytest.fixture
def spring():
    return parse_holiday("春节", "7_2023_1_21")


def test_countdown(spring):
    assert spring.describe(datetime(2023, 1, 11)) == "距离春节还有: 10.00天！"


def test_countdown_at_start(spring):
    assert spring.describe(datetime(2023, 1, 21)) == "距离春节还有: 0.00天！"


def test_during(spring):
    assert spring.describe(datetime(2023, 1, 23)) == "好好享受 春节 假期吧!"


def test_passed(spring):
    assert spring.describe(datetime(2023, 2, 1)) == "今年 春节 假期已过"


def test_weekend():
    assert weekend_message(datetime(2023, 1, 21)) == "好好享受周末吧！"
    assert weekend_message(datetime(2023, 1, 22)) == "好好享受周末吧！"
    assert weekend_message(datetime(2023, 1, 16)) == "距离周末还有:4天！"


def test_daily_reminder():
    today = datetime(2023, 1, 16)
    holidays = [parse_holiday(n, v) for n, v, _, _ in SOURCE_VALUES]
    text = daily_reminder(today, holidays)
    assert text.startswith("2023-01-16")
    assert text.endswith(CLOSING)
    for holiday in holidays:
        assert holiday.describe(today) in text
    assert weekend_message(today) in text


def test_holiday_direct():
    h = Holiday("x", datetime(2023, 1, 2), timedelta(days=1))
    assert h.describe(datetime(2023, 1, 2, 12)) == "好好享受 x 假期吧!"