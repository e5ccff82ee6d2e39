"""Pydantic schemas shared across the services.

Wire names are camelCase (``firstName``, ``createdAt``); Python attribute
names stay snake_case and both are accepted on input.
"""
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import RoleEnum


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class TokenData(BaseModel):
    username: str
    role: RoleEnum


# Embedded projections


class CategoryColor(CamelModel):
    hexcode: str
    textcolor: str


class ServiceSummary(CamelModel):
    id: int
    name: str
    duration: int = 0
    price: float = 0
    category: CategoryColor


class RoomSummary(CamelModel):
    id: int
    name: str


class PersonSummary(CamelModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class ServiceRef(CamelModel):
    id: int
    name: str


# Directory entities


class CategoryCreate(CamelModel):
    name: str = Field(..., max_length=100)
    hexcode: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    textcolor: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")


class CategoryRead(CamelModel):
    id: int
    name: str
    hexcode: str
    textcolor: str


class RoomCreate(CamelModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = None
    priority: int = 0
    active: bool = True


class RoomUpdate(CamelModel):
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    priority: Optional[int] = None
    active: Optional[bool] = None


class RoomRead(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    priority: int
    active: bool
    created_at: dt.datetime
    updated_at: dt.datetime


class ServiceCreate(CamelModel):
    category_id: int
    name: str = Field(..., max_length=100)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    duration: Optional[int] = Field(None, gt=0)
    quick_booking: bool = False
    active: bool = True


class ServiceRead(CamelModel):
    id: int
    category: CategoryRead
    name: str
    description: Optional[str] = None
    price: Optional[float] = None
    duration: Optional[int] = None
    quick_booking: bool
    active: bool
    created_at: dt.datetime
    updated_at: dt.datetime


class TherapistCreate(CamelModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    priority: int = 0
    services: List[int] = Field(default_factory=list)


class TherapistRead(CamelModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    priority: int
    services: List[ServiceRef] = Field(default_factory=list)
    created_at: dt.datetime
    updated_at: dt.datetime


class TherapistWithWorkload(TherapistRead):
    workload: float = 0


class GuestCreate(CamelModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class GuestRead(CamelModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime


class QuickBookingService(CamelModel):
    id: int
    name: str
    duration: int
    price: float


class QuickBooking(CamelModel):
    id: int
    name: str
    service: QuickBookingService
    category: CategoryRead


# Bookings


class BookingCreate(CamelModel):
    day: dt.date
    time: int = Field(..., ge=0, lt=86400, description="Seconds from midnight")
    room_id: int
    service_id: int
    guest_id: int
    therapist_id: Optional[int] = None
    duration: Optional[int] = Field(None, gt=0)
    price: Optional[float] = Field(None, ge=0)
    confirmed: bool = False
    comment: Optional[str] = None


class BookingUpdate(CamelModel):
    day: Optional[dt.date] = None
    time: Optional[int] = Field(None, ge=0, lt=86400)
    room_id: Optional[int] = None
    service_id: Optional[int] = None
    guest_id: Optional[int] = None
    therapist_id: Optional[int] = None
    duration: Optional[int] = Field(None, gt=0)
    price: Optional[float] = Field(None, ge=0)
    comment: Optional[str] = None


class BookingRead(CamelModel):
    id: int
    date: int
    time: int
    duration: int
    price: float
    service: ServiceSummary
    room: RoomSummary
    guest: PersonSummary
    therapist: Optional[PersonSummary] = None
    confirmed: bool
    cancelled: bool
    comment: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime


class CalendarBooking(BookingRead):
    start: dt.datetime
    end: dt.datetime


class BookingPage(CamelModel):
    items: List[BookingRead]
    page: int
    limit: int
    total: int
    total_pages: int


class AvailabilityResult(CamelModel):
    available: bool
    conflicts: List[BookingRead] = Field(default_factory=list)


# Scheduling read-models


class SlotOccupancyRead(CamelModel):
    start: dt.time
    end: dt.time
    booking: Optional[BookingRead] = None


class BookingCounts(CamelModel):
    confirmed_count: int = 0
    pending_count: int = 0
    cancelled_count: int = 0


class RoomGroup(BookingCounts):
    room: RoomSummary
    bookings: List[BookingRead] = Field(default_factory=list)


class TherapistGroup(BookingCounts):
    therapist: PersonSummary
    bookings: List[BookingRead] = Field(default_factory=list)
    workload: float = 0


class OverviewResult(CamelModel):
    bookings: List[BookingRead]
    rooms: List[RoomRead]
    therapists: List[TherapistRead]
    services: List[ServiceRead]
    quick_bookings: List[QuickBooking]


class RoomsOverviewResult(CamelModel):
    rooms: List[RoomRead]
    bookings: List[BookingRead]
    groups: List[RoomGroup] = Field(default_factory=list)


class TherapistsOverviewResult(CamelModel):
    therapists: List[TherapistWithWorkload]
    bookings: List[BookingRead]
    groups: List[TherapistGroup] = Field(default_factory=list)


class CalendarResult(CamelModel):
    bookings: List[CalendarBooking]


class RoomSlotsResult(CamelModel):
    room: RoomRead
    day: dt.date
    slots: List[SlotOccupancyRead]
