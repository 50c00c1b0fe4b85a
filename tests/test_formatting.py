from datetime import datetime, timedelta, timezone

from blog.formatting import DateFormatter, get_formatter


def test_naive_timestamp_is_shifted_from_source_offset():
    formatter = DateFormatter(source_offset_hours=2, display_offset_hours=0)
    assert formatter.format(datetime(2020, 1, 1, 14, 30, 0)) == "Jan 01, 2020 at 12:30:00 PM"


def test_date_can_roll_back_a_day():
    formatter = DateFormatter(source_offset_hours=2, display_offset_hours=0)
    assert formatter.format(datetime(2021, 3, 1, 1, 0, 0)).startswith("Feb 28, 2021 at 11:00:00 PM")


def test_aware_timestamp_is_converted_directly():
    formatter = DateFormatter(display_offset_hours=1)
    value = datetime(2022, 7, 4, 8, 0, 0, tzinfo=timezone(timedelta(hours=0)))
    assert formatter.localize(value).hour == 9


def test_custom_formats_and_none():
    formatter = DateFormatter(
        source_offset_hours=0, date_format="%Y-%m-%d", time_format="%H:%M"
    )
    assert formatter.format(datetime(2023, 12, 31, 23, 59)) == "2023-12-31 at 23:59"
    assert formatter.format(None) is None


def test_formatter_from_settings():
    formatter = get_formatter()
    assert formatter.source_tz.utcoffset(None) == timedelta(hours=2)
    assert formatter.source_tz.tzname(None) == "CEST"
