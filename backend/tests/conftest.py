import pytest_asyncio

from jobtracker.store import EntityStore


@pytest_asyncio.fixture
async def store():
    store = EntityStore.from_url("sqlite+aiosqlite://")
    await store.create_all()
    yield store
    await store.dispose()


@pytest_asyncio.fixture
async def session(store):
    async with store.session() as session:
        yield session
