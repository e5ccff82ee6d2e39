"""Group a booking list by room or by therapist."""
from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from common.schemas import BookingCounts, BookingRead, PersonSummary, RoomGroup, RoomSummary, TherapistGroup


def count_statuses(bookings: Iterable[BookingRead]) -> BookingCounts:
    """Confirmed, pending and cancelled counts; every booking lands in exactly one."""
    counts = BookingCounts()
    for booking in bookings:
        if booking.cancelled:
            counts.cancelled_count += 1
        elif booking.confirmed:
            counts.confirmed_count += 1
        else:
            counts.pending_count += 1
    return counts


def group_by_room(bookings: Iterable[BookingRead]) -> List[RoomGroup]:
    """One group per room, ordered by room name then id; bookings keep their input order."""
    buckets: Dict[int, Tuple[RoomSummary, List[BookingRead]]] = {}
    for booking in bookings:
        buckets.setdefault(booking.room.id, (booking.room, []))[1].append(booking)

    groups = [
        RoomGroup(room=room, bookings=items, **count_statuses(items).model_dump())
        for room, items in buckets.values()
    ]
    return sorted(groups, key=lambda group: (group.room.name, group.room.id))


def group_by_therapist(bookings: Iterable[BookingRead]) -> List[TherapistGroup]:
    """Like :func:`group_by_room`, keyed by therapist. Bookings without one are left out."""
    buckets: Dict[int, Tuple[PersonSummary, List[BookingRead]]] = {}
    for booking in bookings:
        if booking.therapist is None:
            continue
        buckets.setdefault(booking.therapist.id, (booking.therapist, []))[1].append(booking)

    groups = [
        TherapistGroup(therapist=therapist, bookings=items, **count_statuses(items).model_dump())
        for therapist, items in buckets.values()
    ]
    return sorted(groups, key=lambda group: (group.therapist.display_name, group.therapist.id))
