from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING

from filedrive.config import settings

client = AsyncIOMotorClient(settings.mongo_uri, tz_aware=True)
db = client[settings.db_name]

# Collection names
USERS = "users"
FOLDERS = "folders"
FILES = "files"


def get_database() -> AsyncIOMotorDatabase:
    """FastAPI dependency returning the application database."""
    return db


async def ensure_indexes(database: AsyncIOMotorDatabase) -> None:
    """
    Creates the indexes the application relies on.

    Folder names are unique per (owner, parent).
    """
    await database[USERS].create_index([("username", ASCENDING)], unique=True)
    await database[FOLDERS].create_index(
        [("owner_id", ASCENDING), ("parent_id", ASCENDING), ("name", ASCENDING)],
        unique=True,
    )
    await database[FOLDERS].create_index([("parent_id", ASCENDING)])
    await database[FILES].create_index([("owner_id", ASCENDING), ("folder_id", ASCENDING)])
