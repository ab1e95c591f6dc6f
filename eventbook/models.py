import enum
import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import relationship

from .database import Base


def utcnow():
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class User(Base):
    __tablename__ = "users"
    id = sa.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    name = sa.Column(sa.String(120), nullable=False)
    email = sa.Column(sa.String(255), nullable=False, unique=True, index=True)
    password_hash = sa.Column(sa.String(255), nullable=False)
    role = sa.Column(sa.String(20), nullable=False, default=UserRole.USER.value)
    created_at = sa.Column(sa.DateTime(timezone=True), nullable=False, default=utcnow)


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        sa.CheckConstraint("seats_available >= 0", name="ck_events_seats_non_negative"),
        sa.CheckConstraint("seats_available <= total_seats", name="ck_events_seats_within_total"),
    )
    id = sa.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    title = sa.Column(sa.String(255), nullable=False, index=True)
    description = sa.Column(sa.Text, nullable=False)
    venue = sa.Column(sa.String(255), nullable=False)
    category = sa.Column(sa.String(100), nullable=False, index=True)
    date = sa.Column(sa.Date, nullable=False)
    time = sa.Column(sa.String(20), nullable=False)
    price = sa.Column(sa.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    total_seats = sa.Column(sa.Integer, nullable=False)
    seats_available = sa.Column(sa.Integer, nullable=False)
    organizer_id = sa.Column(sa.Uuid, sa.ForeignKey("users.id"), nullable=False)
    created_at = sa.Column(sa.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = sa.Column(sa.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    organizer = relationship("User")


class Booking(Base):
    __tablename__ = "bookings"
    id = sa.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    user_id = sa.Column(sa.Uuid, sa.ForeignKey("users.id"), nullable=False, index=True)
    event_id = sa.Column(sa.Uuid, sa.ForeignKey("events.id"), nullable=False, index=True)
    seats_booked = sa.Column(sa.Integer, nullable=False, default=1)
    total_amount = sa.Column(sa.Numeric(20, 2, asdecimal=False), nullable=False)
    status = sa.Column(sa.String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    created_at = sa.Column(sa.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = sa.Column(sa.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User")
    event = relationship("Event")
