"""Database handle

Owns the async engine and session factory. Constructed by the process entry
point (API lifespan or worker) and passed to whatever needs sessions.
"""

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
import src.domain  # noqa: F401  registers every table on the metadata


class Database:
    def __init__(self, db_uri: str, echo: bool = False):
        engine_kwargs = {"echo": echo, "future": True}
        if db_uri.startswith("sqlite") and ":memory:" in db_uri:
            # Every session must see the same in-memory database
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}

        self.engine = create_async_engine(db_uri, **engine_kwargs)
        self.session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def create_all(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def dispose(self):
        await self.engine.dispose()
