from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from ..settings import settings

Base = declarative_base()


def build_engine(url: str | None = None) -> AsyncEngine:
    url = url or settings.async_database_url
    options: dict[str, object] = {"future": True, "echo": False}
    if url.startswith("sqlite"):
        # aiosqlite connections are bound to the loop that opened them; tests and
        # sync callers drive the store from several short-lived loops.
        options["poolclass"] = NullPool
    else:
        options["pool_pre_ping"] = True
    return create_async_engine(url, **options)


engine = build_engine()

SessionLocal = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
)



async def init_db(bind: AsyncEngine | None = None) -> None:
    from . import models  # noqa: F401 - ensure models registered

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def reset_db(bind: AsyncEngine | None = None) -> None:
    from . import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
