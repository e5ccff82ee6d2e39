"""Unit tests for schema validation and wire names."""
import datetime as dt

import pytest
from pydantic import ValidationError

from common.schemas import BookingCreate, CategoryCreate, PersonSummary, RoomCreate, ServiceCreate


class TestBookingSchemas:
    def test_accepts_camel_case_payload(self):
        booking = BookingCreate.model_validate(
            {"day": "2024-06-10", "time": 36000, "roomId": 1, "serviceId": 2, "guestId": 3, "therapistId": 4}
        )

        assert booking.day == dt.date(2024, 6, 10)
        assert booking.room_id == 1
        assert booking.therapist_id == 4
        assert booking.confirmed is False

    def test_time_must_fall_inside_the_day(self):
        with pytest.raises(ValidationError):
            BookingCreate(day=dt.date(2024, 6, 10), time=86400, room_id=1, service_id=1, guest_id=1)

    def test_duration_override_must_be_positive(self):
        with pytest.raises(ValidationError):
            BookingCreate(day=dt.date(2024, 6, 10), time=0, room_id=1, service_id=1, guest_id=1, duration=0)


class TestDirectorySchemas:
    def test_room_defaults(self):
        room = RoomCreate(name="Lotus")

        assert room.active is True
        assert room.priority == 0

    def test_service_dumps_camel_case(self):
        service = ServiceCreate(category_id=1, name="Hot Stone", duration=90, quick_booking=True)

        assert service.model_dump(by_alias=True)["quickBooking"] is True
        assert service.model_dump(by_alias=True)["categoryId"] == 1

    def test_category_colour_format(self):
        with pytest.raises(ValidationError):
            CategoryCreate(name="Massage", hexcode="blue")

    def test_display_name(self):
        assert PersonSummary(id=1, first_name="Anna", last_name="Berg").display_name == "Anna Berg"
        assert PersonSummary(id=2, first_name="Anna").display_name == "Anna"
