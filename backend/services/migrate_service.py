"""
Migrate Service - Reconciles the legacy user export with the database

Records are handled one at a time, each in its own transaction. The first
error stops the batch; records committed before it stay committed.
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Union
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db_context
from db.models import User
from core.crypto import hash_identifier
from core.logging_config import logger, performance_logger
from services.identity_resolver import IdentityIndex
from services.legacy_records import LegacyRecord, load_legacy_export
from services.question_list_merger import star_merger, done_merger
from services.user_service import user_service
from services.user_settings import user_settings_service

PLACEHOLDER_PASSWORD = "empty"
DEFAULT_MAIN_SUBJECT = 1

def mask_id_number(id_number: str) -> str:
    if len(id_number) <= 4:
        return "*" * len(id_number)
    return "*" * (len(id_number) - 4) + id_number[-4:]

class MigrationSummary(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    processed: int = 0
    created: int = 0
    updated: int = 0
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

class MigrateService:
    """
    Runs the process:migrate batch.

    For every legacy record: resolve the user by decrypted id-number, sync or
    create the profile, merge the publicStat preference, then merge the
    starred and done question lists.
    """

    def __init__(
        self,
        session_factory=None,
        users=user_service,
        settings_service=user_settings_service,
        stars=star_merger,
        progress=done_merger,
    ):
        self.session_factory = session_factory
        self.users = users
        self.settings_service = settings_service
        self.stars = stars
        self.progress = progress

    async def process_file(self, path: Union[str, Path]) -> MigrationSummary:
        """Load the export at ``path`` and process it; never raises"""
        logger.info(f"Reading legacy export from {path}")
        try:
            records = load_legacy_export(path)
        except Exception as e:
            logger.error(f"Error while reading legacy export: {e}")
            return MigrationSummary(error=e)
        return await self.process_users(records)

    async def process_users(self, records: Dict[str, LegacyRecord]) -> MigrationSummary:
        summary = MigrationSummary()
        timer_id = performance_logger.start_timer("process_migrate")

        try:
            async with get_db_context(self.session_factory) as db:
                index = await IdentityIndex.build(db)

            for id_number, record in records.items():
                async with get_db_context(self.session_factory) as db:
                    created = await self.process_record(db, index, id_number, record)

                summary.processed += 1
                if created:
                    summary.created += 1
                else:
                    summary.updated += 1
                logger.info(f"User {record.userInfo.xm} ({mask_id_number(id_number)}) processed")
        except Exception as e:
            logger.error(f"Error while processing legacy export: {e}", exc_info=True)
            summary.error = e
        finally:
            performance_logger.end_timer(timer_id, f"({summary.processed}/{len(records)} records)")

        logger.info(
            f"Migration finished: {summary.processed} processed, {summary.created} created, "
            f"{summary.updated} updated{'' if summary.ok else ', aborted on error'}"
        )
        return summary

    async def process_record(
        self,
        db: AsyncSession,
        index: IdentityIndex,
        id_number: str,
        record: LegacyRecord,
    ) -> bool:
        """Apply one legacy record. Returns True when a new user was created."""
        masked = mask_id_number(id_number)
        user_uuid = index.resolve(id_number)

        if user_uuid:
            user = await db.get(User, user_uuid)
            if user is None:
                raise LookupError(f"User {user_uuid} disappeared during migration")
            logger.info(f"User {masked} already exists")
            await self.sync_profile(db, user, id_number, record.operateTime.time)
            created = False
        else:
            info = record.userInfo
            user = await self.users.create_user(
                db,
                id_number,
                info.xm,
                PLACEHOLDER_PASSWORD,
                info.xx,
                info.zy,
                DEFAULT_MAIN_SUBJECT,
            )
            index.add(id_number, user.uuid)
            logger.info(f"Created new user {info.xm} ({masked})")
            created = True

        if record.public_stat is not None:
            await self.settings_service.update_user_settings(db, user.uuid, record.public_stat)

        await self.stars.merge(db, user.uuid, record.starQuestions)
        await self.progress.merge(db, user.uuid, record.questionDone)
        return created

    async def sync_profile(self, db: AsyncSession, user: User, id_number: str, operate_time: float):
        if not user.identifier:
            user.identifier = hash_identifier(id_number)
            logger.info(f"Identifier set for user {mask_id_number(id_number)}")

        operate_date = datetime.fromtimestamp(operate_time, tz=timezone.utc)
        user.last_login = operate_date
        user.reg_date = operate_date
        await db.flush()
