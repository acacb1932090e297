import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import create_engine, create_tables
from core.logging import setup_logging

logger = logging.getLogger(__name__)


async def init_database():
    """Create the checkpoint and run history tables"""
    logger.info("Connecting to database...")
    engine = create_engine(settings.DATABASE_URL)

    try:
        logger.info("Creating tables...")
        await create_tables(engine)
        logger.info("Tables created successfully.")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_database())
