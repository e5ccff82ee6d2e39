"""Therapist utilisation against a reference working day."""
from typing import Iterable

from common.schemas import BookingRead

REFERENCE_DAY_MINUTES = 8 * 60


def booked_minutes(bookings: Iterable[BookingRead]) -> int:
    return sum(max(booking.duration, 0) for booking in bookings if not booking.cancelled)


def workload(bookings: Iterable[BookingRead], reference_minutes: int = REFERENCE_DAY_MINUTES) -> float:
    """Percentage of ``reference_minutes`` covered by non-cancelled bookings, capped at 100."""
    return min(100.0, booked_minutes(bookings) / reference_minutes * 100)
