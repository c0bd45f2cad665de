"""
User Service - Creates users for the legacy migration
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from passlib.context import CryptContext

from db.models import User
from core.crypto import encrypt_identifier, hash_identifier
from core.logging_config import logger

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def get_password_hash(password):
    return pwd_context.hash(password)

def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)

class UserService:
    """Creates user rows with an encrypted id-number and a hashed password"""

    async def create_user(
        self,
        db: AsyncSession,
        id_number: str,
        name: str,
        password: str,
        school: Optional[str],
        major: Optional[str],
        main_subject: int,
    ) -> User:
        now = datetime.now(timezone.utc)
        user = User(
            id_number=encrypt_identifier(id_number),
            identifier=hash_identifier(id_number),
            name=name,
            password=get_password_hash(password),
            school=school,
            major=major,
            main_subject=main_subject,
            last_login=now,
            reg_date=now,
        )

        db.add(user)
        await db.flush()
        logger.debug(f"Created user {user.uuid}")
        return user

user_service = UserService()
