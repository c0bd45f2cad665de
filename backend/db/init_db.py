"""
Create the migration tables
"""
import asyncio
from db.database import engine, Base
from core.logging_config import logger
import db.models  # noqa: F401  registers the tables on Base.metadata

async def init_database(bind=None):
    """Create all tables that don't exist yet"""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")

if __name__ == "__main__":
    asyncio.run(init_database())
