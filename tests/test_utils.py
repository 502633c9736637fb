import re
from datetime import date, datetime, timedelta, timezone

import pytest

from viarapida.exceptions import InvalidPrice
from viarapida.utils.booking_code import generate_booking_code
from viarapida.utils.dates import day_bounds, ensure_utc, hours_between, to_millis, utc_now
from viarapida.utils.pricing import calculate_total_price

START = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "delta, hours",
    [
        (timedelta(hours=24), 24),
        (timedelta(hours=23, minutes=59), 23),
        (timedelta(minutes=59), 0),
        (timedelta(minutes=-30), 0),
        (timedelta(hours=-2, minutes=-10), -2),
    ],
)
def test_hours_between_truncates_toward_zero(delta, hours):
    assert hours_between(START, START + delta) == hours


def test_naive_datetimes_are_read_as_utc():
    assert ensure_utc(datetime(2025, 3, 10, 12, 0)) == START


def test_timestamps_keep_milliseconds_only():
    assert to_millis(START.replace(microsecond=987654)) == START.replace(microsecond=987000)
    assert utc_now().microsecond % 1000 == 0


def test_day_bounds_in_lima():
    start, end = day_bounds(date(2025, 3, 10), "America/Lima")

    assert start == datetime(2025, 3, 10, 5, 0, tzinfo=timezone.utc)
    assert end.date() == date(2025, 3, 11)
    assert end < datetime(2025, 3, 11, 5, 0, tzinfo=timezone.utc)


def test_total_price_is_rounded():
    assert calculate_total_price(45.5, 3) == 136.5
    assert calculate_total_price(33.333, 3) == 100.0


@pytest.mark.parametrize("price", [0, -10.0])
def test_total_price_must_be_positive(price):
    with pytest.raises(InvalidPrice):
        calculate_total_price(price, 2)


def test_booking_code_format():
    codes = {generate_booking_code() for _ in range(20)}

    for code in codes:
        assert re.fullmatch(r"VR\d{10}", code)
