# create_tables.py
import asyncio
import logging

from say2me.core.config import settings
from say2me.core.database import Database
from say2me.core.logging import setup_logging

logger = logging.getLogger(__name__)


async def init_db():
    database = Database.from_settings(settings)
    logger.info("Creating tables...")
    await database.wait_until_ready()
    await database.create_all()
    logger.info("Tables created successfully")
    await database.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_db())
