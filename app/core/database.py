"""
MongoDB database connection and utilities.
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Database:
    """
    MongoDB connection handle.

    Constructed once per process (API lifespan or worker task) and passed to
    whatever needs a collection. There is no module-level client.
    """

    def __init__(self, settings: Settings = None, client: AsyncIOMotorClient = None):
        self.settings = settings or get_settings()
        self.client: AsyncIOMotorClient = client
        self.db: AsyncIOMotorDatabase = None

    async def connect(self) -> "Database":
        """Connect to MongoDB and ensure indexes."""
        if self.client is None:
            self.client = AsyncIOMotorClient(self.settings.MONGO_URI)
        self.db = self.client[self.settings.MONGO_DB_NAME]

        await self._create_indexes()

        logger.info(f"Connected to MongoDB: {self.settings.MONGO_DB_NAME}")
        return self

    async def disconnect(self):
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self):
        """Create indexes used by the queue queries."""
        jobs = self.db.jobs
        await jobs.create_index("job_id", unique=True)
        # Claim query: oldest pending first
        await jobs.create_index([("status", ASCENDING), ("created_at", ASCENDING)])
        # Listing, retention cleanup, staleness scan
        await jobs.create_index([("created_at", DESCENDING)])
        await jobs.create_index("updated_at")

    @property
    def connected(self) -> bool:
        return self.db is not None

    def get_collection(self, name: str):
        """Get a collection by name."""
        return self.db[name]
