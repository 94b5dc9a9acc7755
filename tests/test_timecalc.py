"""Tests for wall-clock arithmetic and billable hours."""

from __future__ import annotations

from datetime import time

import pytest

from services.billing import compute_billable_hours
from services.errors import InvalidTimeFormat, ValidationError
from services.timecalc import (
    elapsed_minutes,
    format_clock,
    parse_clock,
    round_to_half_hour,
    to_time,
)


class TestParseClock:
    def test_hours_and_minutes(self):
        assert parse_clock("09:30") == 570
        assert parse_clock("00:00") == 0
        assert parse_clock("23:59") == 1439

    def test_seconds_are_tolerated(self):
        assert parse_clock("14:15:00") == 855

    def test_time_object(self):
        assert parse_clock(time(18, 45)) == 1125

    @pytest.mark.parametrize(
        "value", ["9", "25:00", "12:60", "ab:cd", "", "12-30", None, 930, "0²:00", "٠٩:٣٠", "09:00:⁵⁰"],
    )
    def test_malformed_input(self, value):
        with pytest.raises(InvalidTimeFormat):
            parse_clock(value)

    def test_invalid_time_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            parse_clock("7pm")

    def test_to_time_and_back(self):
        assert to_time("07:05") == time(7, 5)
        assert format_clock(time(7, 5)) == "07:05"
        assert format_clock(None) is None


class TestElapsedMinutes:
    def test_same_day(self):
        assert elapsed_minutes("09:00", "18:00") == 540

    def test_overnight_wraps_once(self):
        assert elapsed_minutes("22:00", "02:00") == 240

    def test_zero_length(self):
        assert elapsed_minutes("10:00", "10:00") == 0


class TestRoundToHalfHour:
    @pytest.mark.parametrize(
        "minutes, hours",
        [(0, 0.0), (14, 0.0), (15, 0.5), (44, 0.5), (45, 1.0), (75, 1.5), (480, 8.0)],
    )
    def test_nearest_half_hour(self, minutes, hours):
        assert round_to_half_hour(minutes) == hours

    def test_negative_floors_at_zero(self):
        assert round_to_half_hour(-120) == 0.0


class TestComputeBillableHours:
    def test_break_is_subtracted(self):
        assert compute_billable_hours("09:00", "18:00", None, None, 1) == 8.0

    def test_overnight_session(self):
        assert compute_billable_hours("22:00", "02:00", None, None, 0) == 4.0

    def test_actual_times_win(self):
        assert compute_billable_hours("09:00", "18:00", "10:00", "17:30", 0) == 7.5

    def test_actual_times_fall_back_independently(self):
        # corrected start only: bill to the scheduled end
        assert compute_billable_hours("09:00", "18:00", "11:00", None, 0) == 7.0
        # corrected end only: bill from the scheduled start
        assert compute_billable_hours("09:00", "18:00", None, "12:00", 0) == 3.0

    def test_break_longer_than_session_is_zero(self):
        assert compute_billable_hours("09:00", "10:00", None, None, 3) == 0.0

    def test_result_is_multiple_of_half_hour(self):
        for start, end, brk in [("09:10", "13:47", 0), ("08:05", "19:55", 1), ("23:20", "01:05", 0)]:
            hours = compute_billable_hours(start, end, None, None, brk)
            assert hours >= 0
            assert (hours * 2).is_integer()
