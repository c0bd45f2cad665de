"""
User Settings Service - Merges legacy preferences into the settings map
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from db.models import UserSetting
from core.logging_config import logger

class SettingsMap(BaseModel):
    """Known settings keys; anything else in the stored map is carried along untouched"""
    model_config = ConfigDict(extra="allow")

    # Stored values are passed through as-is, whatever their type
    show_user_stat: Optional[Any] = None

    def to_map(self) -> Dict[str, Any]:
        data = dict(self.model_extra or {})
        if "show_user_stat" in self.model_fields_set or self.show_user_stat is not None:
            data["show_user_stat"] = self.show_user_stat
        return data

class UserSettingsService:

    async def get_settings(self, db: AsyncSession, user_uuid: str) -> Optional[UserSetting]:
        result = await db.execute(
            select(UserSetting).where(UserSetting.user == user_uuid)
        )
        return result.scalar_one_or_none()

    async def update_user_settings(
        self,
        db: AsyncSession,
        user_uuid: str,
        public_stat: bool,
    ) -> Optional[UserSetting]:
        """
        Apply the legacy ``publicStat`` flag.

        Only a false flag is written (``show_user_stat = False``); a true flag
        leaves the key absent. An existing row is updated in place, otherwise a
        row is inserted as long as there is something to store.
        """
        existing = await self.get_settings(db, user_uuid)
        settings_map = SettingsMap.model_validate((existing.setting or {}) if existing else {})

        if not public_stat:
            settings_map.show_user_stat = False

        now = datetime.now(timezone.utc)
        if existing:
            existing.setting = settings_map.to_map()
            existing.last_modified = now
            await db.flush()
            logger.debug(f"Updated settings for user {user_uuid}")
            return existing

        merged = settings_map.to_map()
        if not merged:
            return None

        user_setting = UserSetting(user=user_uuid, setting=merged, last_modified=now)
        db.add(user_setting)
        await db.flush()
        logger.debug(f"Created settings for user {user_uuid}")
        return user_setting

user_settings_service = UserSettingsService()
