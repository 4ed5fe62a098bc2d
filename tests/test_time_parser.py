import pytest

from attestboard.utils.time_parser import format_hours_minutes, format_seconds_to_time, parse_duration


class TestParseDuration:

    @pytest.mark.parametrize("value,expected", [
        ("00:25:00", 1500.0),
        ("1:23:45", 5025.0),
        ("28:30", 1710.0),
        ("28:30.5", 1710.5),
        (" 0:05:00 ", 300.0),
    ])
    def test_valid_formats(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", [
        "",
        "1500",
        "abc",
        "1:2:3:4",
        "-5:00",
        "10:75",
        "1:60:00",
        "aa:bb",
        None,
    ])
    def test_invalid_formats(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


class TestFormatting:

    def test_format_seconds_under_an_hour(self):
        assert format_seconds_to_time(1500) == "25:00"

    def test_format_seconds_over_an_hour(self):
        assert format_seconds_to_time(5025) == "1:23:45"

    def test_format_seconds_truncates_fraction(self):
        assert format_seconds_to_time(1710.9) == "28:30"

    def test_format_negative_rejected(self):
        with pytest.raises(ValueError):
            format_seconds_to_time(-1)

    def test_format_hours_minutes(self):
        assert format_hours_minutes(8100) == "2h 15m"
        assert format_hours_minutes(59) == "0h 0m"
