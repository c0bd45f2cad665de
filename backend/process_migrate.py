#!/usr/bin/env python3
"""
process:migrate - load legacy user data from the JSON export and update the database
"""
import asyncio
import sys

from core.config import settings
from core.logging_config import logger
from db.init_db import init_database
from services.migrate_service import MigrateService

async def process_migrate() -> int:
    logger.info("🔄 Starting process:migrate...")
    await init_database()

    summary = await MigrateService().process_file(settings.MIGRATE_DATA_PATH)
    if not summary.ok:
        logger.error(f"❌ process:migrate stopped after {summary.processed} records")
        return 1

    logger.info(f"✅ process:migrate complete! {summary.processed} records processed")
    return 0

def main():
    sys.exit(asyncio.run(process_migrate()))

if __name__ == "__main__":
    main()
