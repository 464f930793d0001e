from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from surveyco.core.config import settings

_is_sqlite = settings.database_url.startswith("sqlite")

engine_kwargs = {"echo": settings.db_echo}
if _is_sqlite:
    # aiosqlite connections are bound to the loop that opened them
    engine_kwargs["poolclass"] = NullPool

engine = create_async_engine(settings.database_url, **engine_kwargs)

if _is_sqlite:
    # ensure ON DELETE CASCADE is respected at DB level
    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)

class Base(DeclarativeBase):
    pass

async def get_db() -> AsyncIterator[AsyncSession]:
    async with SessionLocal() as session:
        yield session

@asynccontextmanager
async def serializable_transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run a unit of work in one transaction at the configured isolation level.

    Every read that feeds a renumbering plan and every write that applies it
    must happen inside the same block. Leaving the block with an exception
    rolls back all shifts performed so far; a serialization failure from the
    store is not retried.
    """
    async with session.begin():
        await session.connection(
            execution_options={"isolation_level": settings.db_isolation_level}
        )
        yield session

async def create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
