import datetime as dt
import os

# Settings are read at import time, so point them at the test setup first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./eventbook-test.db"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["BOOKING_RETRY_LIMIT"] = "10"

from httpx import ASGITransport, AsyncClient  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from eventbook import models  # noqa: E402, F401
from eventbook.auth import CurrentUser, create_access_token, hash_password  # noqa: E402
from eventbook.database import Base, enable_sqlite_foreign_keys, get_session  # noqa: E402
from eventbook.main import app  # noqa: E402
from eventbook.models import Event, User, UserRole  # noqa: E402
from eventbook.stores import EventStore, UserStore  # noqa: E402


@pytest.fixture
async def session_maker(tmp_path):
    """A fresh SQLite file database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'eventbook.db'}")
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker):
    async def override_get_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def create_user(session, name: str, email: str, role: UserRole = UserRole.USER) -> User:
    user = await UserStore(session).create(
        name=name, email=email, password_hash=hash_password("secret123"), role=role.value
    )
    await session.commit()
    return user


def as_current(user: User) -> CurrentUser:
    return CurrentUser(user_id=user.id, role=UserRole(user.role))


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
async def organizer(session) -> User:
    return await create_user(session, "Olivia Organizer", "olivia@example.com", UserRole.ADMIN)


@pytest.fixture
async def attendee(session) -> User:
    return await create_user(session, "Alex Attendee", "alex@example.com")


@pytest.fixture
async def other_attendee(session) -> User:
    return await create_user(session, "Sam Someone", "sam@example.com")


async def create_event(session, organizer: User, total_seats: int = 10, price: float = 20, **overrides) -> Event:
    fields = {
        "title": "Jazz Night",
        "description": "An evening of live jazz",
        "venue": "Blue Room",
        "category": "music",
        "date": dt.date(2026, 12, 5),
        "time": "19:30",
        "price": price,
        "total_seats": total_seats,
    }
    fields.update(overrides)
    event = await EventStore(session).create(fields, organizer_id=organizer.id)
    await session.commit()
    return event


@pytest.fixture
async def event(session, organizer) -> Event:
    return await create_event(session, organizer)


async def seats_available(session_maker, event_id) -> int:
    async with session_maker() as session:
        return (await EventStore(session).get(event_id)).seats_available
