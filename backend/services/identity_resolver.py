"""
Identity Resolver - Matches a plaintext id-number against encrypted user rows

There is no index over the encrypted column, so every stored id-number has to
be decrypted to compare it. ``IdentityIndex`` does that once per batch and
keeps user uuids, so each record can load its user in its own session.
"""
from typing import Dict, Iterable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from db.models import User
from core.crypto import decrypt_stored_identifier
from core.logging_config import logger

def resolve_identity(id_number: str, users: Iterable[User]) -> Optional[User]:
    """Return the first user whose decrypted id-number equals ``id_number``.

    Single-lookup form of the match, for callers that already hold the user
    rows. The migration batch uses ``IdentityIndex`` instead so each stored
    value is decrypted once. A malformed stored value raises
    IdentifierDecryptError.
    """
    for user in users:
        if decrypt_stored_identifier(user.id_number) == id_number:
            return user
    return None

class IdentityIndex:
    """Plaintext id-number -> user uuid, built by decrypting every user once"""

    def __init__(self):
        self._uuids: Dict[str, str] = {}

    @classmethod
    async def build(cls, db: AsyncSession) -> "IdentityIndex":
        result = await db.execute(select(User.uuid, User.id_number))
        index = cls()
        for user_uuid, stored in result.all():
            index.add(decrypt_stored_identifier(stored), user_uuid)
        logger.info(f"Identity index built over {len(index)} users")
        return index

    def add(self, id_number: str, user_uuid: str):
        # First match wins, same as a linear scan
        self._uuids.setdefault(id_number, user_uuid)

    def resolve(self, id_number: str) -> Optional[str]:
        return self._uuids.get(id_number)

    def __len__(self):
        return len(self._uuids)

    def __contains__(self, id_number):
        return id_number in self._uuids
