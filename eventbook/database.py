from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import DATABASE_URL, SQL_ECHO


def enable_sqlite_foreign_keys(engine) -> None:
    """SQLite leaves FK enforcement off per connection unless asked."""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _set_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    DATABASE_URL,
    echo=SQL_ECHO,
    future=True,
)
enable_sqlite_foreign_keys(engine)

AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_session():
    async with AsyncSessionLocal() as session:
        yield session


async def init_models():
    """Create missing tables. Deployments with migrations can skip this."""
    from . import models  # noqa: F401  registers the tables on Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
