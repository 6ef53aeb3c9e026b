import pytest_asyncio
from tortoise import Tortoise

from services.report_cache import KeyedLocks


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory store per test."""
    await Tortoise.init(db_url="sqlite://:memory:", modules={"models": ["models"]})
    await Tortoise.generate_schemas()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def locks():
    return KeyedLocks()
