"""
Shared fixtures.

MongoDB is replaced by mongomock behind a small async facade that mirrors the
parts of pymongo's AsyncMongoClient the ORM uses.
"""
import mongomock
import pytest
import pytest_asyncio
from loguru import logger

from pagetree.core.config import ConfigManager
from pagetree.core.database.manager import DatabaseManager
from pagetree.core.locator import ServiceLocator
from pagetree.tree.service import PageTreeService


class AsyncCursor:
    def __init__(self, cursor):
        self._cursor = cursor

    def sort(self, *args, **kwargs):
        self._cursor = self._cursor.sort(*args, **kwargs)
        return self

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            return next(self._cursor)
        except StopIteration:
            raise StopAsyncIteration


class AsyncCollection:
    def __init__(self, collection):
        self.sync = collection

    def find(self, *args, **kwargs):
        return AsyncCursor(self.sync.find(*args, **kwargs))

    async def find_one(self, *args, **kwargs):
        return self.sync.find_one(*args, **kwargs)

    async def insert_one(self, *args, **kwargs):
        return self.sync.insert_one(*args, **kwargs)

    async def update_one(self, *args, **kwargs):
        return self.sync.update_one(*args, **kwargs)

    async def delete_one(self, *args, **kwargs):
        return self.sync.delete_one(*args, **kwargs)

    async def create_index(self, *args, **kwargs):
        return self.sync.create_index(*args, **kwargs)

    async def count_documents(self, *args, **kwargs):
        return self.sync.count_documents(*args, **kwargs)


class AsyncDatabase:
    def __init__(self, database):
        self.sync = database
        self.name = database.name
        self._collections = {}

    def __getitem__(self, name):
        if name not in self._collections:
            self._collections[name] = AsyncCollection(self.sync[name])
        return self._collections[name]


class AsyncAdmin:
    async def command(self, name, *args, **kwargs):
        return {"ok": 1.0}


class AsyncMongoMockClient:
    def __init__(self):
        self.sync = mongomock.MongoClient(tz_aware=True)
        self.admin = AsyncAdmin()
        self._databases = {}
        self.closed = False

    def __getitem__(self, name):
        if name not in self._databases:
            self._databases[name] = AsyncDatabase(self.sync[name])
        return self._databases[name]

    async def close(self):
        self.closed = True


@pytest.fixture
def config(tmp_path):
    return ConfigManager(str(tmp_path / "config.json"))


@pytest.fixture
def mongo_client():
    return AsyncMongoMockClient()


@pytest_asyncio.fixture
async def database(config, mongo_client):
    locator = ServiceLocator(config)
    manager = DatabaseManager(locator, config, client=mongo_client)
    await manager.initialize()
    yield manager
    await manager.shutdown()


@pytest_asyncio.fixture
async def tree_service(config, mongo_client):
    locator = ServiceLocator(config)
    locator.add_system(DatabaseManager(locator, config, client=mongo_client))
    service = locator.register_system(PageTreeService)
    await locator.start_all()
    yield service
    await locator.stop_all()


@pytest.fixture
def log_messages():
    """Collects loguru output as plain strings."""
    messages = []
    handler_id = logger.add(lambda msg: messages.append(str(msg)), format="{level} {message}")
    yield messages
    logger.remove(handler_id)
