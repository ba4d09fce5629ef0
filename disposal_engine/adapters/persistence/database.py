"""Async engine, session factory and declarative base."""

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from disposal_engine.config import settings
from disposal_engine.domain.errors import EngineError

engine = create_async_engine(settings.database_url, echo=settings.debug, pool_pre_ping=True)

async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_session() -> AsyncIterator[AsyncSession]:
    """One session per request.

    Assignment closes a transaction per package through ``SqlUnitOfWork``;
    the closing commit here covers whatever the request wrote after that.
    Typed engine errors leave the session consistent (e.g. a recorded rule
    attempt before an invalid transition), so their writes are committed.
    """
    async with async_session_factory() as session:
        try:
            yield session
        except EngineError:
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise
        else:
            await session.commit()
