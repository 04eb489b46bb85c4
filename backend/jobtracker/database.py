# File: backend/jobtracker/database.py
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

class Base(DeclarativeBase):
    pass

def _enable_sqlite_foreign_keys(dbapi_conn, _record):
    # SQLite ignorerar FK-constraints om man inte slår på dem per anslutning
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

def make_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Skapar databasmotorn. In-memory SQLite delar en enda anslutning."""
    kwargs = {"future": True, "echo": echo}
    if database_url.startswith("sqlite") and (":memory:" in database_url or database_url.endswith("://")):
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    engine = create_async_engine(database_url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine

def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def init_db(engine: AsyncEngine):
    # Skapa tabeller med AsyncEngine
    from . import models  # noqa: F401  (registrerar tabellerna på Base)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
