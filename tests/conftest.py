"""Shared fixtures for commitclock tests."""

import pytest_asyncio

from commitclock.storage import CommitStore, StoreConfig


@pytest_asyncio.fixture
async def store():
    """In-memory commit store with the schema applied."""
    commit_store = await CommitStore.open(StoreConfig(database_path=":memory:"))
    yield commit_store
    await commit_store.close()
