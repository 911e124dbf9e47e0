"""Tests for quarter-hour slot conversion and clamping."""

import pytest

from slots import (
    clamp_duration, format_time_12h, format_time_slot, resize_slots, slot_to_time, time_to_slot,
)


class TestSlotCodec:

    def test_round_trip_covers_the_whole_day(self):
        for slot in range(96):
            assert time_to_slot(*slot_to_time(slot)) == slot

    def test_slot_to_time(self):
        assert slot_to_time(0) == (0, 0)
        assert slot_to_time(37) == (9, 15)
        assert slot_to_time(95) == (23, 45)

    def test_time_to_slot_floors_partial_quarters(self):
        assert time_to_slot(9, 14) == 36
        assert time_to_slot(9, 59) == 39

    def test_format_time_slot(self):
        assert format_time_slot(0) == '00:00'
        assert format_time_slot(32) == '08:00'
        assert format_time_slot(95) == '23:45'

    def test_format_time_12h(self):
        assert format_time_12h(0) == '12:00 AM'
        assert format_time_12h(37) == '9:15 AM'
        assert format_time_12h(48) == '12:00 PM'
        assert format_time_12h(54) == '1:30 PM'


class TestClamping:

    def test_clamp_duration_limits(self):
        assert clamp_duration(10, 0) == 1
        assert clamp_duration(10, 60) == 48

    def test_clamp_duration_stops_at_midnight(self):
        assert clamp_duration(92, 8) == 4
        assert clamp_duration(95, 4) == 1

    def test_resize_bottom_changes_duration_only(self):
        assert resize_slots(40, 4, 'bottom', 3) == (40, 7)
        assert resize_slots(40, 4, 'bottom', -10) == (40, 1)
        assert resize_slots(90, 4, 'bottom', 10) == (90, 6)

    def test_resize_top_moves_start(self):
        assert resize_slots(40, 4, 'top', -2) == (38, 6)
        assert resize_slots(40, 4, 'top', 2) == (42, 2)
        assert resize_slots(2, 4, 'top', -5) == (0, 6)

    def test_resize_top_keeps_end_fixed_when_clamped(self):
        assert resize_slots(40, 4, 'top', 10) == (43, 1)
        assert resize_slots(60, 4, 'top', -50) == (16, 48)
        for delta in range(-60, 60):
            start, length = resize_slots(30, 6, 'top', delta)
            assert start + length == 36

    def test_unknown_edge(self):
        with pytest.raises(ValueError):
            resize_slots(40, 4, 'left', 1)
