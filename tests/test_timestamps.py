"""Tests for the WebVTT timestamp codec."""

from __future__ import annotations

import pytest

from src.ingestion.exceptions import FormatError
from src.ingestion.timestamps import (
    TimestampRange,
    calculate_duration,
    is_valid_timestamp,
    parse_timestamp_line,
    seconds_to_timestamp,
    timestamp_to_seconds,
)


class TestTimestampToSeconds:
    def test_basic(self) -> None:
        assert timestamp_to_seconds("00:00:01.000") == 1.0

    def test_all_fields(self) -> None:
        assert timestamp_to_seconds("01:02:03.456") == 3723.456

    def test_long_hours(self) -> None:
        assert timestamp_to_seconds("100:00:00.000") == 360000.0

    @pytest.mark.parametrize(
        "bad",
        ["", "1:00:00.000", "00:00:01", "00:00:01,000", "00:00.000", "00:60:00.000", "ab:cd:ef.ghi"],
    )
    def test_malformed_raises(self, bad: str) -> None:
        with pytest.raises(FormatError):
            timestamp_to_seconds(bad)

    def test_format_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            timestamp_to_seconds("nope")


class TestSecondsToTimestamp:
    def test_zero(self) -> None:
        assert seconds_to_timestamp(0) == "00:00:00.000"

    def test_padding(self) -> None:
        assert seconds_to_timestamp(3723.456) == "01:02:03.456"

    def test_round_trip_is_millisecond_exact(self) -> None:
        for ts in ("00:00:00.001", "00:09:59.999", "02:30:15.250", "10:00:00.000"):
            assert seconds_to_timestamp(timestamp_to_seconds(ts)) == ts

    def test_rounds_to_nearest_millisecond(self) -> None:
        assert seconds_to_timestamp(1.0004) == "00:00:01.000"
        assert seconds_to_timestamp(1.0006) == "00:00:01.001"

    def test_negative_raises(self) -> None:
        with pytest.raises(FormatError):
            seconds_to_timestamp(-1)

    def test_largest_offset_is_still_valid(self) -> None:
        ts = seconds_to_timestamp(99 * 3600 + 59 * 60 + 59.999)
        assert ts == "99:59:59.999"
        assert is_valid_timestamp(ts)

    def test_three_digit_hours_raises(self) -> None:
        with pytest.raises(FormatError):
            seconds_to_timestamp(360000.5)


class TestDuration:
    def test_duration(self) -> None:
        assert calculate_duration("00:00:01.500", "00:00:04.000") == 2.5

    def test_negative_when_reversed(self) -> None:
        assert calculate_duration("00:00:04.000", "00:00:01.000") == -3.0


class TestIsValidTimestamp:
    def test_valid(self) -> None:
        assert is_valid_timestamp("00:10:00.000")

    def test_rejects_three_digit_hours(self) -> None:
        assert not is_valid_timestamp("100:00:00.000")

    def test_rejects_out_of_range_minutes(self) -> None:
        assert not is_valid_timestamp("00:61:00.000")

    def test_rejects_non_string(self) -> None:
        assert not is_valid_timestamp(None)  # type: ignore[arg-type]


class TestParseTimestampLine:
    def test_basic(self) -> None:
        assert parse_timestamp_line("00:00:10.000 --> 00:00:15.000") == TimestampRange(
            start_time="00:00:10.000", end_time="00:00:15.000"
        )

    def test_ignores_cue_settings(self) -> None:
        parsed = parse_timestamp_line("00:00:10.000 --> 00:00:15.000 align:start position:10%")
        assert parsed is not None
        assert parsed.end_time == "00:00:15.000"

    def test_tolerates_surrounding_whitespace(self) -> None:
        assert parse_timestamp_line("  00:00:10.000-->00:00:15.000  ") is not None

    def test_non_timing_line_returns_none(self) -> None:
        assert parse_timestamp_line("Hello everyone") is None
        assert parse_timestamp_line("") is None
