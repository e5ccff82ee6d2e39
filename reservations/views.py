"""Compose the scheduling pieces into the reservation screens' read-models."""
from __future__ import annotations

import datetime as dt
from typing import List, Optional, Sequence, Union

from common.schemas import (
    CalendarBooking,
    CalendarResult,
    OverviewResult,
    QuickBooking,
    RoomSlotsResult,
    RoomsOverviewResult,
    SlotOccupancyRead,
    TherapistsOverviewResult,
    TherapistWithWorkload,
)

from .date_range import ViewMode, resolve
from .grouping import group_by_room, group_by_therapist
from .query import BookingFilters, BookingQuery, BookingRepository, RoomDirectory, ServiceDirectory, TherapistDirectory
from .slots import TimeSlot, effective_interval, generate_slots, occupancy
from .workload import REFERENCE_DAY_MINUTES, workload

Reference = Union[dt.date, dt.datetime, None]
Mode = Union[ViewMode, str, None]


class ReservationViews:
    """Entry point of the scheduling core.

    Every call resolves its window, reads the store once and builds a fresh
    result; nothing is kept between calls.
    """

    def __init__(
        self,
        bookings: BookingRepository,
        rooms: RoomDirectory,
        therapists: TherapistDirectory,
        services: ServiceDirectory,
        *,
        tz: dt.tzinfo = dt.timezone.utc,
        slots: Optional[Sequence[TimeSlot]] = None,
        reference_minutes: int = REFERENCE_DAY_MINUTES,
        quick_booking_limit: int = 10,
    ) -> None:
        self._query = BookingQuery(bookings)
        self._rooms = rooms
        self._therapists = therapists
        self._services = services
        self._tz = tz
        self._slots = list(slots) if slots is not None else generate_slots()
        self._reference_minutes = reference_minutes
        self._quick_booking_limit = quick_booking_limit

    def overview(self, reference: Reference = None, view_mode: Mode = None,
                 filters: Optional[BookingFilters] = None) -> OverviewResult:
        date_range = resolve(reference, view_mode, self._tz)
        return OverviewResult(
            bookings=self._query.fetch(date_range, filters),
            rooms=self._rooms.list_active(),
            therapists=self._therapists.list_active(),
            services=self._services.list_active(),
            quick_bookings=self.quick_bookings(),
        )

    def quick_bookings(self) -> List[QuickBooking]:
        return self._services.list_quick_bookable(self._quick_booking_limit)

    def rooms(self, reference: Reference = None, view_mode: Mode = None,
              room_id: Optional[int] = None) -> RoomsOverviewResult:
        date_range = resolve(reference, view_mode, self._tz)
        bookings = self._query.fetch(date_range, BookingFilters(room_id=room_id))
        return RoomsOverviewResult(
            rooms=self._rooms.list_active(room_id),
            bookings=bookings,
            groups=group_by_room(bookings),
        )

    def therapists(self, reference: Reference = None, view_mode: Mode = None,
                   therapist_id: Optional[int] = None) -> TherapistsOverviewResult:
        date_range = resolve(reference, view_mode, self._tz)
        bookings = self._query.fetch(date_range, BookingFilters(therapist_id=therapist_id))

        therapists = []
        for therapist in self._therapists.list_active(therapist_id):
            own = [b for b in bookings if b.therapist is not None and b.therapist.id == therapist.id]
            therapists.append(
                TherapistWithWorkload(
                    **therapist.model_dump(), workload=workload(own, self._reference_minutes)
                )
            )

        groups = [
            group.model_copy(update={"workload": workload(group.bookings, self._reference_minutes)})
            for group in group_by_therapist(bookings)
        ]
        return TherapistsOverviewResult(therapists=therapists, bookings=bookings, groups=groups)

    def calendar(self, reference: Reference = None, view_mode: Mode = None,
                 filters: Optional[BookingFilters] = None) -> CalendarResult:
        date_range = resolve(reference, view_mode, self._tz)
        entries = []
        for booking in self._query.fetch(date_range, filters):
            start, end = effective_interval(booking, self._tz)
            entries.append(CalendarBooking(**booking.model_dump(), start=start, end=end))
        return CalendarResult(bookings=entries)

    def room_slots(self, room_id: int, reference: Reference = None,
                   include_cancelled: bool = False) -> Optional[RoomSlotsResult]:
        """Slot grid of one room's day, or ``None`` when the room is not active."""
        rooms = self._rooms.list_active(room_id)
        if not rooms:
            return None
        date_range = resolve(reference, ViewMode.DAY, self._tz)
        day = date_range.start.date()
        bookings = self._query.fetch(date_range, BookingFilters(room_id=room_id))
        grid = occupancy(room_id, day, self._slots, bookings, self._tz, include_cancelled)
        return RoomSlotsResult(
            room=rooms[0],
            day=day,
            slots=[
                SlotOccupancyRead(start=slot.start, end=slot.end, booking=booking)
                for slot, booking in grid.items()
            ],
        )
