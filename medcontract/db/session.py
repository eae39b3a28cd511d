from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from medcontract.config import settings

engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)

async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables() -> None:
    from medcontract.db import models  # noqa: F401 - register mappers
    from medcontract.db.base import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
