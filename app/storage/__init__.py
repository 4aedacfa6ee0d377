"""Storage backends and the provider that picks one."""

import logging

from app.core.config import settings
from app.storage.base import (
    PracticeBookingRecord,
    Storage,
    StorageProvider,
    UserBookingRecord,
)
from app.storage.database import DatabaseStorage, database_storage
from app.storage.memory import MemoryStorage

logger = logging.getLogger(__name__)


def create_storage_provider() -> StorageProvider:
    """Return the storage provider for the configured environment.

    A configured DATABASE_URL selects the database. Without one the
    process keeps everything in memory, which settings only allow
    outside production.
    """
    if settings.use_database:
        return database_storage

    logger.warning("DATABASE_URL not set, using in-memory storage")
    return MemoryStorage().scope


__all__ = [
    "Storage",
    "StorageProvider",
    "PracticeBookingRecord",
    "UserBookingRecord",
    "MemoryStorage",
    "DatabaseStorage",
    "database_storage",
    "create_storage_provider",
]
