"""Tests for duration literal parsing."""

from datetime import timedelta

import pytest

from ec2tester.utils.duration import format_duration, parse_duration


@pytest.mark.parametrize(
    "text, expected",
    [
        ("90s", timedelta(seconds=90)),
        ("5m", timedelta(minutes=5)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("1.5h", timedelta(minutes=90)),
        ("300ms", timedelta(milliseconds=300)),
        ("-2m", timedelta(minutes=-2)),
        ("+1s", timedelta(seconds=1)),
        ("0", timedelta(0)),
    ],
)
def test_parse_duration(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize(
    "text",
    ["", "5", "5 m", "abc", "1x", "-", "1h-5m", " 90s", "90s\n", "\uff19\uff10s"],
)
def test_parse_duration_rejects(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_format_duration():
    assert format_duration(timedelta(seconds=90)) == "1m30s"
    assert format_duration(timedelta(hours=2)) == "2h"
    assert format_duration(timedelta(0)) == "0s"
    assert format_duration(timedelta(minutes=-1)) == "-1m"


def test_parse_duration_accepts_the_int64_nanosecond_range():
    assert parse_duration("2562047h") == timedelta(hours=2562047)


@pytest.mark.parametrize("text", ["2562048h", "99999999999999h", "-99999999999999h"])
def test_parse_duration_out_of_range_is_value_error(text):
    with pytest.raises(ValueError, match="out of range"):
        parse_duration(text)
