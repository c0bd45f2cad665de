from pydantic_settings import BaseSettings
from typing import Optional
import os

# Get database URL from environment
postgres_url = os.environ.get("POSTGRES_URL")

# Convert postgresql:// to postgresql+asyncpg:// for async support
if postgres_url:
    if postgres_url.startswith("postgres://"):
        postgres_url = postgres_url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif postgres_url.startswith("postgresql://"):
        postgres_url = postgres_url.replace("postgresql://", "postgresql+asyncpg://", 1)

default_database_url = "sqlite+aiosqlite:///./migrate.db"

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = postgres_url or default_database_url

    # Legacy export read by the process:migrate command
    MIGRATE_DATA_PATH: str = "./data/data.json"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = True
    LOG_DIR: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
