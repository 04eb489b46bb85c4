# backend/jobtracker/store.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from .database import Base, make_engine, make_sessionmaker, init_db
from .models import Employer, Job, Keyword, UserKeyword, Activity, Goal

log = logging.getLogger("jobtracker")

TABLES: Dict[str, type[Base]] = {
    "employers": Employer,
    "jobs": Job,
    "keywords": Keyword,
    "activities": Activity,
    "goals": Goal,
    "user_keywords": UserKeyword,
}

# Barn före föräldrar, så att inga FK:er pekar ut i tomma luften under rensningen
CLEAR_ORDER = ("activities", "keywords", "jobs", "employers", "goals", "user_keywords")

# Tabeller med naturlig nyckel: insert med samma nyckel återanvänder raden
NATURAL_KEYS: Dict[str, tuple[str, ...]] = {
    "keywords": ("job_id", "keyword"),
    "user_keywords": ("keyword",),
    "goals": ("type",),
}


def _model(table: str) -> type[Base]:
    try:
        return TABLES[table]
    except KeyError:
        raise KeyError(f"Unknown table: {table!r}") from None


async def find_by_natural_key(session: AsyncSession, table: str, values: Dict[str, Any]) -> Optional[Base]:
    model = _model(table)
    key = NATURAL_KEYS[table]
    return (
        await session.execute(
            select(model).where(*[getattr(model, col) == values[col] for col in key]).limit(1)
        )
    ).scalar_one_or_none()


class EntityStore:
    """
    Lagret för alla sex tabeller. Skapas en gång och skickas in till tjänster,
    export och import i stället för en global databas.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession], engine: AsyncEngine | None = None):
        self._sessionmaker = sessionmaker
        self.engine = engine
        # Importen håller låset under rensning + återinläsning
        self.lock = asyncio.Lock()

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "EntityStore":
        engine = make_engine(database_url, echo=echo)
        return cls(make_sessionmaker(engine), engine=engine)

    @classmethod
    def from_settings(cls, settings=None) -> "EntityStore":
        if settings is None:
            from .settings import settings
        return cls.from_url(settings.database_url, echo=settings.debug)

    async def create_all(self) -> None:
        if self.engine is None:
            raise RuntimeError("EntityStore has no engine to create tables on")
        await init_db(self.engine)

    async def dispose(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()

    def session(self) -> AsyncSession:
        return self._sessionmaker()

    # --- Skrivningar ------------------------------------------------------------

    async def insert(self, table: str, values: Dict[str, Any]) -> int:
        """
        Lägger in en rad med exakt de värden som skickas in (även tidsstämplar)
        och returnerar nya id:t. För tabeller i NATURAL_KEYS returneras id:t för
        en befintlig rad med samma nyckel i stället för att krocka.
        """
        model = _model(table)
        async with self.session() as session:
            async with session.begin():
                if table in NATURAL_KEYS:
                    existing = await find_by_natural_key(session, table, values)
                    if existing is not None:
                        return existing.id
                obj = model(**values)
                session.add(obj)
                await session.flush()
                new_id = obj.id
        return new_id

    async def clear(self, table: str) -> None:
        model = _model(table)
        async with self.session() as session:
            async with session.begin():
                await session.execute(delete(model))
        log.info(f"Cleared table {table}")

    async def clear_all(self) -> None:
        """Tömmer alla sex tabeller i en och samma transaktion."""
        async with self.session() as session:
            async with session.begin():
                for table in CLEAR_ORDER:
                    await session.execute(delete(TABLES[table]))
        log.info("Cleared all tables")

    # --- Läsningar --------------------------------------------------------------

    async def all(self, table: str) -> List[Any]:
        model = _model(table)
        async with self.session() as session:
            res = await session.execute(select(model).order_by(model.id))
            return list(res.scalars())

    async def get(self, table: str, row_id: int) -> Any | None:
        async with self.session() as session:
            return await session.get(_model(table), row_id)

    async def count(self, table: str) -> int:
        model = _model(table)
        async with self.session() as session:
            return (await session.execute(select(func.count()).select_from(model))).scalar_one()

    async def employers(self) -> Sequence[Employer]:
        return await self.all("employers")

    async def jobs(self) -> Sequence[Job]:
        return await self.all("jobs")

    async def keywords(self) -> Sequence[Keyword]:
        return await self.all("keywords")

    async def activities(self) -> Sequence[Activity]:
        return await self.all("activities")

    async def goals(self) -> Sequence[Goal]:
        return await self.all("goals")

    async def user_keywords(self) -> Sequence[UserKeyword]:
        return await self.all("user_keywords")
