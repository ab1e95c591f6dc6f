import datetime as dt
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from .models import BookingStatus, UserRole

# Bounds of the INTEGER and NUMERIC(10,2) columns
MAX_SEATS = 2**31 - 1
MAX_PRICE = 99_999_999.99


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Accounts

class RegisterRequest(CamelModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=6)
    role: UserRole = UserRole.USER


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class UserResponse(CamelModel):
    id: UUID
    name: str
    email: str
    role: UserRole


class AuthResponse(CamelModel):
    token: str
    user: UserResponse


class UserSummary(CamelModel):
    id: UUID
    name: str
    email: str


class OrganizerSummary(CamelModel):
    id: UUID
    name: str


class BookerSummary(CamelModel):
    name: str
    email: str


# Events

class EventCreateRequest(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    venue: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=100)
    date: dt.date
    time: str = Field(min_length=1, max_length=20)
    price: float = Field(default=0, ge=0, le=MAX_PRICE)
    # Older admin clients send capacity as seatsAvailable
    total_seats: int = Field(
        ge=0,
        le=MAX_SEATS,
        validation_alias=AliasChoices("totalSeats", "seatsAvailable", "total_seats"),
    )


class EventUpdateRequest(CamelModel):
    """Partial edit. seatsAvailable is not editable here; bookings own it."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, min_length=1)
    venue: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = Field(default=None, min_length=1, max_length=100)
    date: dt.date | None = None
    time: str | None = Field(default=None, min_length=1, max_length=20)
    price: float | None = Field(default=None, ge=0, le=MAX_PRICE)
    total_seats: int | None = Field(default=None, ge=0, le=MAX_SEATS)


class EventResponse(CamelModel):
    id: UUID
    title: str
    description: str
    venue: str
    category: str
    date: dt.date
    time: str
    price: float
    total_seats: int
    seats_available: int
    organizer: OrganizerSummary
    created_at: dt.datetime
    updated_at: dt.datetime


# Bookings

class BookEventRequest(CamelModel):
    event_id: UUID
    seats_booked: int = Field(default=1, gt=0, le=MAX_SEATS)


class BookingResponse(CamelModel):
    id: UUID
    user: UserSummary
    event: EventResponse
    seats_booked: int
    total_amount: float
    status: BookingStatus
    created_at: dt.datetime


class UserBookingResponse(CamelModel):
    id: UUID
    event: EventResponse
    seats_booked: int
    total_amount: float
    status: BookingStatus
    created_at: dt.datetime


class EventBookingResponse(CamelModel):
    id: UUID
    event_id: UUID
    user: BookerSummary
    seats_booked: int
    total_amount: float
    status: BookingStatus
    created_at: dt.datetime


class CancelBookingResponse(CamelModel):
    message: str
    booking_id: UUID
    status: BookingStatus


class MessageResponse(CamelModel):
    message: str
