from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import CurrentUser, get_current_user, require_admin
from .database import get_session
from .schemas import (
    AuthResponse,
    BookEventRequest,
    BookingResponse,
    CancelBookingResponse,
    EventBookingResponse,
    EventCreateRequest,
    EventResponse,
    EventUpdateRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserBookingResponse,
)
from .services import (
    authenticate_user,
    cancel_booking,
    create_booking,
    create_event,
    delete_event,
    get_event,
    get_event_bookings,
    get_user_bookings,
    list_events,
    register_user,
    update_event,
)

auth_router = APIRouter(prefix="/auth", tags=["auth"])
events_router = APIRouter(prefix="/events", tags=["events"])
bookings_router = APIRouter(prefix="/bookings", tags=["bookings"])


@auth_router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(req: RegisterRequest, session: AsyncSession = Depends(get_session)):
    return await register_user(session, req.name, req.email, req.password, req.role)


@auth_router.post("/login", response_model=AuthResponse)
async def login(req: LoginRequest, session: AsyncSession = Depends(get_session)):
    return await authenticate_user(session, req.email, req.password)


@events_router.get("", response_model=List[EventResponse])
async def events_list(
    category: str | None = None,
    search: str | None = None,
    session: AsyncSession = Depends(get_session),
):
    """
    List events, optionally by exact category and by title substring (case-insensitive)
    """
    return await list_events(session, category=category, search=search)


@events_router.get("/{event_id}", response_model=EventResponse)
async def event_detail(event_id: UUID, session: AsyncSession = Depends(get_session)):
    return await get_event(session, event_id)


@events_router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def event_create(
    req: EventCreateRequest,
    user: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await create_event(session, user, req.model_dump())


@events_router.put("/{event_id}", response_model=EventResponse)
async def event_update(
    event_id: UUID,
    req: EventUpdateRequest,
    user: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await update_event(session, user, event_id, req.model_dump(exclude_unset=True, exclude_none=True))


@events_router.delete("/{event_id}", response_model=MessageResponse)
async def event_delete(
    event_id: UUID,
    user: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await delete_event(session, user, event_id)


@bookings_router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def book_event(
    req: BookEventRequest,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await create_booking(session, user, req.event_id, req.seats_booked)


@bookings_router.get("/user", response_model=List[UserBookingResponse])
async def user_bookings(
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """
    Get all bookings of the caller, newest first, confirmed and cancelled
    """
    return await get_user_bookings(session, user)


@bookings_router.get("/event/{event_id}", response_model=List[EventBookingResponse])
async def event_bookings(
    event_id: UUID,
    user: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await get_event_bookings(session, event_id)


@bookings_router.delete("/{booking_id}", response_model=CancelBookingResponse)
async def cancel_booking_route(
    booking_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await cancel_booking(session, user, booking_id)
