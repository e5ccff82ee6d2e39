"""Read ports of the scheduling core and the booking query facade."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from common.schemas import BookingRead, QuickBooking, RoomRead, ServiceRead, TherapistRead

from .date_range import DateRange


@dataclass(frozen=True)
class BookingFilters:
    room_id: Optional[int] = None
    therapist_id: Optional[int] = None
    service_id: Optional[int] = None


class BookingRepository(ABC):
    @abstractmethod
    def find(
        self,
        date_from: int,
        date_to: int,
        room_id: Optional[int] = None,
        therapist_id: Optional[int] = None,
        service_id: Optional[int] = None,
    ) -> List[BookingRead]:
        """Bookings whose ``date`` lies in ``[date_from, date_to]`` (epoch seconds, inclusive).

        Raises:
            RepositoryUnavailable: the store could not be read.
        """
        raise NotImplementedError


class RoomDirectory(ABC):
    @abstractmethod
    def list_active(self, room_id: Optional[int] = None) -> List[RoomRead]:
        """Active, non-deleted rooms ordered by name."""
        raise NotImplementedError


class TherapistDirectory(ABC):
    @abstractmethod
    def list_active(self, therapist_id: Optional[int] = None) -> List[TherapistRead]:
        raise NotImplementedError


class ServiceDirectory(ABC):
    @abstractmethod
    def list_active(self) -> List[ServiceRead]:
        """Active, non-deleted services ordered by name."""
        raise NotImplementedError

    @abstractmethod
    def list_quick_bookable(self, limit: int) -> List[QuickBooking]:
        """Up to ``limit`` quick booking shortcuts ordered by service name."""
        raise NotImplementedError


def booking_sort_key(booking: BookingRead) -> Tuple[int, int, int]:
    return booking.date, booking.time, booking.id


def in_booking_order(bookings: Iterable[BookingRead]) -> List[BookingRead]:
    return sorted(bookings, key=booking_sort_key)


class BookingQuery:
    """Single read of the booking store for a resolved window.

    Errors from the repository propagate unchanged and are never retried.
    There is no deadline parameter: the read is one statement, and its time
    limit belongs to the database connection (for example a Postgres
    ``statement_timeout``), which surfaces as ``RepositoryUnavailable``.
    """

    def __init__(self, repository: BookingRepository) -> None:
        self._repository = repository

    def fetch(self, date_range: DateRange, filters: Optional[BookingFilters] = None) -> List[BookingRead]:
        filters = filters or BookingFilters()
        bookings = self._repository.find(
            date_range.start_ts,
            date_range.end_ts,
            room_id=filters.room_id,
            therapist_id=filters.therapist_id,
            service_id=filters.service_id,
        )
        # Grouping and slot matching rely on (date, time) order whatever the store returns.
        return in_booking_order(bookings)
