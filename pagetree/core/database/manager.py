from typing import Optional

from pymongo import AsyncMongoClient
from loguru import logger

from ..base_system import BaseSystem
from . import orm


class DatabaseManager(BaseSystem):
    """
    Manages the MongoDB connection for the ORM.

    A client can be injected (tests pass an in-memory one); otherwise one is
    created from the `mongo` config section on initialize().
    """
    def __init__(self, locator, config, client: Optional[AsyncMongoClient] = None):
        super().__init__(locator, config)
        self.client = client
        self.db = None
        self._owns_client = client is None

    async def initialize(self):
        """Connect to database using config."""
        mongo_cfg = self.config.data.mongo
        conn_str = f"mongodb://{mongo_cfg.host}:{mongo_cfg.port}"
        try:
            if self.client is None:
                self.client = AsyncMongoClient(conn_str, tz_aware=True)
            self.db = self.client[mongo_cfg.database_name]

            # Verify connection
            await self.client.admin.command('ping')
            logger.info(f"Connected to MongoDB at {conn_str}, DB: {mongo_cfg.database_name}")
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

        orm.bind_database(self)
        await super().initialize()

    async def shutdown(self):
        """Close database connection."""
        orm.bind_database(None)
        if self.client is not None and self._owns_client:
            await self.client.close()
            logger.info("MongoDB connection closed.")
        self.db = None
        await super().shutdown()

    def get_collection(self, name: str):
        if self.db is None:
            raise RuntimeError("Database not connected. Call initialize() first.")
        return self.db[name]
