# async mongodb client for the discussion service
# uses motor for non-blocking operations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from commonground.config import settings

logger = logging.getLogger(__name__)


class Database:
    """async mongodb connection manager"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self):
        """establish connection to mongodb and make sure indexes exist"""
        if self.client is not None:
            return

        logger.info(f"Connecting to MongoDB database: {settings.MONGODB_DATABASE}")
        self.client = AsyncIOMotorClient(settings.MONGODB_URI)
        self.db = self.client[settings.MONGODB_DATABASE]

        # verify connection
        await self.client.admin.command("ping")
        await self.ensure_indexes()
        logger.info("MongoDB connection established")

    async def ensure_indexes(self):
        """create lookup indexes used by the routers (idempotent)"""
        await self.users.create_index("email", unique=True)
        await self.discussions.create_index("discussion_id", unique=True)
        await self.discussions.create_index([("status", 1), ("last_activity_at", -1)])
        await self.responses.create_index("response_id", unique=True)
        await self.responses.create_index([("discussion_id", 1), ("created_at", 1)])
        await self.responses.create_index("parent_id")
        await self.participant_activity.create_index(
            [("discussion_id", 1), ("user_id", 1)], unique=True
        )

    async def close(self):
        """close mongodb connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed")

    # collection accessors

    @property
    def users(self):
        return self.db["users"]

    @property
    def discussions(self):
        return self.db["discussions"]

    @property
    def responses(self):
        return self.db["responses"]

    @property
    def participant_activity(self):
        return self.db["participant_activity"]


# singleton instance
db = Database()


async def get_db() -> Database:
    """dependency injection for database access"""
    return db
