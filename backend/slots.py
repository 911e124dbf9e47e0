"""
Quarter-hour slot helpers

A day is split into 96 slots of 15 minutes, slot 0 starting at midnight.
"""

from typing import Tuple

from models import (
    SLOTS_PER_DAY, MAX_TIME_SLOT, MIN_EVENT_DURATION, MAX_EVENT_DURATION,
)

SLOT_MINUTES = 15


def slot_to_time(slot: int) -> Tuple[int, int]:
    """Convert a slot index to (hour, minute)"""
    return slot // 4, (slot % 4) * SLOT_MINUTES


def time_to_slot(hour: int, minute: int) -> int:
    """Convert (hour, minute) to a slot index, flooring to the quarter-hour"""
    return hour * 4 + minute // SLOT_MINUTES


def format_time_slot(slot: int) -> str:
    """Format a slot as a zero-padded 24-hour ``HH:MM`` string"""
    hour, minute = slot_to_time(slot)
    return f"{hour:02d}:{minute:02d}"


def format_time_12h(slot: int) -> str:
    """Format a slot as ``9:15 AM`` style text"""
    hour, minute = slot_to_time(slot)
    suffix = 'PM' if hour >= 12 else 'AM'
    display_hour = 12 if hour == 0 else hour - 12 if hour > 12 else hour
    return f"{display_hour}:{minute:02d} {suffix}"


def clamp_duration(time_slot: int, duration: int) -> int:
    """
    Clamp a duration to 1-48 slots and to the end of the day

    An event starting at ``time_slot`` may never run past slot 95.
    """
    duration = max(MIN_EVENT_DURATION, min(MAX_EVENT_DURATION, duration))
    return min(duration, SLOTS_PER_DAY - time_slot)


def resize_slots(time_slot: int, duration: int, edge: str, delta_slots: int) -> Tuple[int, int]:
    """
    Apply a resize gesture to an event's slot range

    Args:
        time_slot: Current start slot
        duration: Current duration in slots
        edge: "bottom" to change the end, "top" to move the start
        delta_slots: Signed number of slots the edge moved

    Returns:
        (new_time_slot, new_duration), clamped to the day
    """
    if edge == 'bottom':
        return time_slot, clamp_duration(time_slot, duration + delta_slots)
    if edge == 'top':
        # the end stays put; the start is clamped so the duration stays valid
        end = time_slot + duration
        new_slot = max(0, end - MAX_EVENT_DURATION, min(end - 1, MAX_TIME_SLOT, time_slot + delta_slots))
        return new_slot, clamp_duration(new_slot, end - new_slot)
    raise ValueError(f"Unknown resize edge: {edge}")
