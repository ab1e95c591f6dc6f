"""Persistence for users, events and bookings.

Stores wrap an AsyncSession and never commit; the caller owns the
transaction. The only writers of Event.seats_available are the conditional
statements in EventStore.reserve_seats and EventStore.release_seats.
"""

from uuid import UUID

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .errors import NotFoundError, ValidationError
from .models import Booking, BookingStatus, Event, User

REQUIRED_EVENT_FIELDS = ("title", "description", "venue", "category", "time")


class UserStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, name: str, email: str, password_hash: str, role: str) -> User:
        user = User(name=name, email=email.lower(), password_hash=password_hash, role=role)
        self._session.add(user)
        await self._session.flush()
        return user

    async def get(self, user_id: UUID) -> User | None:
        return await self._session.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email.lower())
        return (await self._session.execute(stmt)).scalar_one_or_none()


class EventStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _select(self):
        return select(Event).options(selectinload(Event.organizer)).execution_options(populate_existing=True)

    async def create(self, fields: dict, organizer_id: UUID) -> Event:
        _check_required(fields, REQUIRED_EVENT_FIELDS)
        total_seats = fields["total_seats"]
        if total_seats < 0:
            raise ValidationError("totalSeats cannot be negative")
        event = Event(
            **{k: v for k, v in fields.items() if k != "seats_available"},
            seats_available=total_seats,
            organizer_id=organizer_id,
        )
        self._session.add(event)
        await self._session.flush()
        return event

    async def get(self, event_id: UUID) -> Event | None:
        stmt = self._select().where(Event.id == event_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def exists(self, event_id: UUID) -> bool:
        stmt = select(Event.id).where(Event.id == event_id)
        return (await self._session.execute(stmt)).scalar() is not None

    async def find(self, category: str | None = None, search: str | None = None) -> list[Event]:
        stmt = self._select()
        if category:
            stmt = stmt.where(Event.category == category)
        if search:
            stmt = stmt.where(func.lower(Event.title).contains(search.lower(), autoescape=True))
        stmt = stmt.order_by(Event.date.asc(), Event.created_at.asc())
        return list((await self._session.execute(stmt)).scalars().all())

    async def update(self, event_id: UUID, fields: dict) -> Event:
        fields = {k: v for k, v in fields.items() if k != "seats_available"}
        _check_required(fields, [name for name in REQUIRED_EVENT_FIELDS if name in fields])
        values = dict(fields)
        new_total = fields.get("total_seats")
        if new_total is not None:
            if new_total < 0:
                raise ValidationError("totalSeats cannot be negative")
            # Shift availability by the change in capacity, clamped to [0, new_total]
            shifted = Event.seats_available + (new_total - Event.total_seats)
            values["seats_available"] = case(
                (shifted < 0, 0),
                (shifted > new_total, new_total),
                else_=shifted,
            )
        if values:
            stmt = (
                update(Event)
                .where(Event.id == event_id)
                .values(**values)
                .returning(Event.id)
                .execution_options(synchronize_session=False)
            )
            updated = (await self._session.execute(stmt)).scalar()
        else:
            updated = event_id if await self.exists(event_id) else None
        if updated is None:
            raise NotFoundError("Event not found")
        return await self.get(event_id)

    async def delete(self, event_id: UUID) -> None:
        stmt = delete(Event).where(Event.id == event_id).returning(Event.id)
        if (await self._session.execute(stmt)).scalar() is None:
            raise NotFoundError("Event not found")

    async def reserve_seats(self, event_id: UUID, seats: int):
        """Take `seats` from the pool in one conditional statement.

        Returns the (seats_available, price) row after the decrement, or None
        when the event is missing or has fewer than `seats` left.
        """
        stmt = (
            update(Event)
            .where(Event.id == event_id, Event.seats_available >= seats)
            .values(seats_available=Event.seats_available - seats)
            .returning(Event.seats_available, Event.price)
            .execution_options(synchronize_session=False)
        )
        return (await self._session.execute(stmt)).one_or_none()

    async def release_seats(self, event_id: UUID, seats: int) -> int | None:
        """Give `seats` back to the pool, never beyond total_seats."""
        restored = Event.seats_available + seats
        stmt = (
            update(Event)
            .where(Event.id == event_id)
            .values(
                seats_available=case(
                    (restored > Event.total_seats, Event.total_seats),
                    else_=restored,
                )
            )
            .returning(Event.seats_available)
            .execution_options(synchronize_session=False)
        )
        return (await self._session.execute(stmt)).scalar()


class BookingStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _select(self):
        return (
            select(Booking)
            .options(
                selectinload(Booking.user),
                selectinload(Booking.event).selectinload(Event.organizer),
            )
            .execution_options(populate_existing=True)
        )

    async def create(self, user_id: UUID, event_id: UUID, seats_booked: int, total_amount: float) -> Booking:
        if seats_booked <= 0:
            raise ValidationError("seatsBooked must be a positive integer")
        booking = Booking(
            user_id=user_id,
            event_id=event_id,
            seats_booked=seats_booked,
            total_amount=total_amount,
            status=BookingStatus.CONFIRMED.value,
        )
        self._session.add(booking)
        await self._session.flush()
        return booking

    async def get(self, booking_id: UUID) -> Booking | None:
        stmt = self._select().where(Booking.id == booking_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def find(self, user_id: UUID | None = None, event_id: UUID | None = None) -> list[Booking]:
        stmt = self._select()
        if user_id is not None:
            stmt = stmt.where(Booking.user_id == user_id)
        if event_id is not None:
            stmt = stmt.where(Booking.event_id == event_id)
        stmt = stmt.order_by(Booking.created_at.desc())
        return list((await self._session.execute(stmt)).scalars().all())

    async def delete(self, booking_id: UUID) -> None:
        stmt = delete(Booking).where(Booking.id == booking_id).returning(Booking.id)
        if (await self._session.execute(stmt)).scalar() is None:
            raise NotFoundError("Booking not found")

    async def delete_for_event(self, event_id: UUID) -> int:
        stmt = delete(Booking).where(Booking.event_id == event_id)
        return (await self._session.execute(stmt)).rowcount

    async def mark_cancelled(self, booking_id: UUID) -> bool:
        """Flip a confirmed booking to cancelled; False if it was not confirmed."""
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == BookingStatus.CONFIRMED.value)
            .values(status=BookingStatus.CANCELLED.value)
            .returning(Booking.id)
            .execution_options(synchronize_session=False)
        )
        return (await self._session.execute(stmt)).scalar() is not None

    async def count_confirmed(self, event_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(Booking)
            .where(Booking.event_id == event_id, Booking.status == BookingStatus.CONFIRMED.value)
        )
        return (await self._session.execute(stmt)).scalar()


def _check_required(fields: dict, names) -> None:
    missing = [name for name in names if not str(fields.get(name) or "").strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
