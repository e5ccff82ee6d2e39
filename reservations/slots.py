"""Fixed half-hour grid of a business day and booking occupancy per slot."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from common.schemas import BookingRead

from .query import booking_sort_key

DAY_START_HOUR = 8
DAY_END_HOUR = 22
SLOT_MINUTES = 30


@dataclass(frozen=True)
class TimeSlot:
    """Slot ``[start, end)`` expressed as minutes after midnight."""

    start_minute: int
    end_minute: int

    @property
    def start(self) -> dt.time:
        return dt.time(*divmod(self.start_minute, 60))

    @property
    def end(self) -> dt.time:
        return dt.time(*divmod(self.end_minute, 60))

    def bounds(self, day: dt.date, tz: dt.tzinfo = dt.timezone.utc) -> Tuple[dt.datetime, dt.datetime]:
        midnight = dt.datetime.combine(day, dt.time.min, tzinfo=tz)
        return (
            midnight + dt.timedelta(minutes=self.start_minute),
            midnight + dt.timedelta(minutes=self.end_minute),
        )


def generate_slots(
    start_hour: int = DAY_START_HOUR,
    end_hour: int = DAY_END_HOUR,
    slot_minutes: int = SLOT_MINUTES,
) -> List[TimeSlot]:
    """Slots from ``start_hour`` to ``end_hour``; 28 half-hour slots with the defaults."""
    if not 0 <= start_hour < end_hour <= 23 or slot_minutes <= 0:
        raise ValueError("Business day bounds must satisfy 0 <= start < end <= 23 and slot width > 0")
    slots = []
    for start in range(start_hour * 60, end_hour * 60, slot_minutes):
        slots.append(TimeSlot(start, min(start + slot_minutes, end_hour * 60)))
    return slots


def effective_interval(booking: BookingRead, tz: dt.tzinfo = dt.timezone.utc) -> Tuple[dt.datetime, dt.datetime]:
    start = dt.datetime.fromtimestamp(booking.date, tz) + dt.timedelta(seconds=booking.time)
    return start, start + dt.timedelta(minutes=max(booking.duration, 0))


def overlaps(start: dt.datetime, end: dt.datetime, other_start: dt.datetime, other_end: dt.datetime) -> bool:
    """Strict overlap; intervals that only touch do not overlap."""
    return start < other_end and end > other_start


def occupancy(
    room_id: int,
    day: dt.date,
    slots: Iterable[TimeSlot],
    bookings: Iterable[BookingRead],
    tz: dt.tzinfo = dt.timezone.utc,
    include_cancelled: bool = False,
) -> Dict[TimeSlot, Optional[BookingRead]]:
    """Map each slot of ``day`` to the earliest booking of ``room_id`` overlapping it.

    Only one booking is reported per slot even when several overlap it.
    Cancelled bookings are ignored unless ``include_cancelled`` is set.
    """
    candidates = [
        (effective_interval(booking, tz), booking)
        for booking in bookings
        if booking.room.id == room_id and (include_cancelled or not booking.cancelled)
    ]
    candidates.sort(key=lambda item: (item[0][0], booking_sort_key(item[1])))

    grid: Dict[TimeSlot, Optional[BookingRead]] = {}
    for slot in slots:
        slot_start, slot_end = slot.bounds(day, tz)
        grid[slot] = next(
            (booking for (start, end), booking in candidates if overlaps(start, end, slot_start, slot_end)),
            None,
        )
    return grid


def find_conflicts(
    start: dt.datetime,
    end: dt.datetime,
    bookings: Iterable[BookingRead],
    tz: dt.tzinfo = dt.timezone.utc,
    exclude_id: Optional[int] = None,
) -> List[BookingRead]:
    """Non-cancelled bookings overlapping ``[start, end)``, in booking order."""
    conflicts = []
    for booking in sorted(bookings, key=booking_sort_key):
        if booking.cancelled or booking.id == exclude_id:
            continue
        if overlaps(*effective_interval(booking, tz), start, end):
            conflicts.append(booking)
    return conflicts
