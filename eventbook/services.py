from typing import Awaitable, Callable, TypeVar
from uuid import UUID

from loguru import logger
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import CurrentUser, create_access_token, hash_password, verify_password
from .config import BOOKING_RETRY_LIMIT
from .errors import (
    AuthenticationError,
    ConflictError,
    CustomBaseError,
    ForbiddenError,
    InsufficientSeatsError,
    NotFoundError,
)
from .models import Booking, BookingStatus, Event, User, UserRole
from .stores import BookingStore, EventStore, UserStore

T = TypeVar("T")


async def run_in_transaction(
    session: AsyncSession,
    operation: Callable[[AsyncSession], Awaitable[T]],
    retries: int = BOOKING_RETRY_LIMIT,
) -> T:
    """
    Run `operation` and commit it as one transaction.
    Lock contention from the database is retried on a fresh transaction;
    domain errors roll back and propagate unchanged.
    """
    for attempt in range(1, retries + 1):
        try:
            result = await operation(session)
            await session.commit()
            return result
        except OperationalError as exc:
            await session.rollback()
            logger.warning(f"Transaction conflict (attempt {attempt}/{retries}): {exc.orig}")
        except CustomBaseError:
            await session.rollback()
            raise
    raise ConflictError("The event is busy, please retry the booking")


# Bookings

async def create_booking(session: AsyncSession, user: CurrentUser, event_id: UUID, seats_booked: int = 1) -> Booking:
    """
    Reserve seats and record the booking in one transaction.
    1. Decrement seats_available only if enough seats remain (single statement).
    2. Tell a missing event apart from a sold-out one.
    3. Persist the confirmed booking with the price snapshot; a caller whose
       account is gone gets 401 and the reservation is rolled back.
    """
    events = EventStore(session)
    bookings = BookingStore(session)

    async def _book(session: AsyncSession) -> UUID:
        reserved = await events.reserve_seats(event_id, seats_booked)
        if reserved is None:
            if not await events.exists(event_id):
                raise NotFoundError("Event not found")
            logger.info(f"Rejected booking of {seats_booked} seat(s) for event {event_id}: not enough seats")
            raise InsufficientSeatsError()

        try:
            booking = await bookings.create(
                user_id=user.user_id,
                event_id=event_id,
                seats_booked=seats_booked,
                total_amount=reserved.price * seats_booked,
            )
        except IntegrityError:
            # Rolling back returns the reserved seats
            raise AuthenticationError("User no longer exists")
        logger.info(
            f"Booking {booking.id}: {seats_booked} seat(s) for event {event_id}, "
            f"{reserved.seats_available} left"
        )
        return booking.id

    booking_id = await run_in_transaction(session, _book)
    return await bookings.get(booking_id)


async def cancel_booking(session: AsyncSession, user: CurrentUser, booking_id: UUID) -> dict:
    """
    Cancel a booking owned by the caller.
    The booking is kept with status 'cancelled' and its seats go back to the
    event, capped at total_seats. Only the first of several concurrent
    cancellations releases seats.
    """
    events = EventStore(session)
    bookings = BookingStore(session)

    async def _cancel(session: AsyncSession) -> None:
        booking = await bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        if booking.user_id != user.user_id:
            raise ForbiddenError("Not authorized")

        if not await bookings.mark_cancelled(booking_id):
            raise ConflictError("Booking is already cancelled")

        restored = await events.release_seats(booking.event_id, booking.seats_booked)
        if restored is None:
            logger.warning(f"Booking {booking_id} cancelled but event {booking.event_id} no longer exists")
        else:
            logger.info(f"Booking {booking_id} cancelled, event {booking.event_id} back to {restored} seat(s)")

    await run_in_transaction(session, _cancel)
    return {
        "message": "Booking cancelled",
        "booking_id": booking_id,
        "status": BookingStatus.CANCELLED,
    }


async def get_user_bookings(session: AsyncSession, user: CurrentUser) -> list[Booking]:
    """All bookings of the caller, newest first."""
    return await BookingStore(session).find(user_id=user.user_id)


async def get_event_bookings(session: AsyncSession, event_id: UUID) -> list[Booking]:
    if not await EventStore(session).exists(event_id):
        raise NotFoundError("Event not found")
    return await BookingStore(session).find(event_id=event_id)


# Events

async def list_events(session: AsyncSession, category: str | None = None, search: str | None = None) -> list[Event]:
    return await EventStore(session).find(category=category, search=search)


async def get_event(session: AsyncSession, event_id: UUID) -> Event:
    event = await EventStore(session).get(event_id)
    if event is None:
        raise NotFoundError("Event not found")
    return event


async def create_event(session: AsyncSession, user: CurrentUser, fields: dict) -> Event:
    events = EventStore(session)

    async def _create(session: AsyncSession) -> UUID:
        event = await events.create(fields, organizer_id=user.user_id)
        return event.id

    event_id = await run_in_transaction(session, _create)
    logger.info(f"Event {event_id} created by {user.user_id} with {fields['total_seats']} seat(s)")
    return await events.get(event_id)


async def _get_owned_event(events: EventStore, user: CurrentUser, event_id: UUID) -> Event:
    event = await events.get(event_id)
    if event is None:
        raise NotFoundError("Event not found")
    if event.organizer_id != user.user_id:
        raise ForbiddenError("Only the organizer can change this event")
    return event


async def update_event(session: AsyncSession, user: CurrentUser, event_id: UUID, fields: dict) -> Event:
    events = EventStore(session)

    async def _update(session: AsyncSession) -> Event:
        await _get_owned_event(events, user, event_id)
        return await events.update(event_id, fields)

    event = await run_in_transaction(session, _update)
    logger.info(f"Event {event_id} updated: {sorted(fields)}")
    return event


async def delete_event(session: AsyncSession, user: CurrentUser, event_id: UUID) -> dict:
    """
    Delete an event owned by the caller.
    Refused while confirmed bookings exist; cancelled bookings go with the event.
    """
    events = EventStore(session)
    bookings = BookingStore(session)

    async def _delete(session: AsyncSession) -> None:
        await _get_owned_event(events, user, event_id)
        confirmed = await bookings.count_confirmed(event_id)
        if confirmed:
            raise ConflictError(f"Event has {confirmed} confirmed booking(s); cancel them first")
        await bookings.delete_for_event(event_id)
        try:
            await events.delete(event_id)
        except IntegrityError:
            raise ConflictError("Event was booked while being deleted")

    await run_in_transaction(session, _delete)
    logger.info(f"Event {event_id} deleted by {user.user_id}")
    return {"message": "Event deleted"}


# Accounts

def _auth_payload(user: User) -> dict:
    return {"token": create_access_token(user.id, user.role), "user": user}


async def register_user(session: AsyncSession, name: str, email: str, password: str, role: UserRole = UserRole.USER) -> dict:
    users = UserStore(session)

    async def _register(session: AsyncSession) -> User:
        if await users.get_by_email(email):
            raise ConflictError("User already exists")
        try:
            return await users.create(
                name=name, email=email, password_hash=hash_password(password), role=UserRole(role).value
            )
        except IntegrityError:
            raise ConflictError("User already exists")

    user = await run_in_transaction(session, _register)
    logger.info(f"Registered {user.role} {user.id}")
    return _auth_payload(user)


async def authenticate_user(session: AsyncSession, email: str, password: str) -> dict:
    user = await UserStore(session).get_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    return _auth_payload(user)
