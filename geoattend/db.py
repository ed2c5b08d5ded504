"""MongoDB connection and Beanie document registration."""
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from geoattend.config import settings
from geoattend.models import (
    AttendanceCodeDocument,
    AttendanceRecordDocument,
    ClassEnrollment,
    SchoolClass,
)


DOCUMENT_MODELS = [
    AttendanceCodeDocument,
    AttendanceRecordDocument,
    SchoolClass,
    ClassEnrollment,
]

_client = None


async def db_startup():
    """Connect to MongoDB and initialize Beanie ODM (creates the unique and TTL indexes)."""
    global _client
    _client = AsyncIOMotorClient(settings.mongodb_url)
    await init_beanie(
        database=_client[settings.mongodb_db_name],
        document_models=DOCUMENT_MODELS,
    )


async def db_shutdown():
    """Close MongoDB connection."""
    global _client
    if _client:
        _client.close()
        _client = None


async def init_db():
    await db_startup()
