from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from core.config import settings
from core.logging_config import logger
import time
from contextlib import asynccontextmanager

# Configure database URL and engine options
database_url = settings.DATABASE_URL

Base = declarative_base()

is_postgresql = database_url.startswith("postgresql") or database_url.startswith("postgres")

logger.debug(f"Database configuration: postgresql={is_postgresql}")

engine_kwargs = {
    "echo": False,
    "pool_pre_ping": True if is_postgresql else False,
}

engine = create_async_engine(database_url, **engine_kwargs)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

@asynccontextmanager
async def get_db_context(session_factory=None):
    """Session scope that commits on success and rolls back on any error"""
    factory = session_factory or AsyncSessionLocal
    session = factory()
    start_time = time.time()

    try:
        yield session
        await session.commit()
        logger.debug(f"DB session committed in {(time.time() - start_time)*1000:.2f}ms")
    except Exception as e:
        await session.rollback()
        logger.error(f"DB session rolled back after {(time.time() - start_time)*1000:.2f}ms: {e}")
        raise
    finally:
        await session.close()
