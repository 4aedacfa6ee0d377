"""Database initialization utilities."""

import logging

from app import models  # noqa: F401  (registers tables on the metadata)
from app.db import session as db_session
from app.db.base import Base

logger = logging.getLogger(__name__)


async def create_tables() -> None:
    """Create all database tables."""
    async with db_session.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")

