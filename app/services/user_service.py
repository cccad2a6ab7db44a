"""
app/services/user_service.py

Purpose: User data management

- Create user records on first contact
- Persist onboarding details, location and calculator inputs
- Always return fresh UserProfile objects (no caching across events)
"""

from typing import Any, Dict, Optional

from app.core.logging import get_logger, LogContext
from app.db.store import RecordStore
from app.models.user import UserProfile
from utils.time_utils import utcnow

logger = get_logger(__name__)

COLLECTION = "users"


class UserService:
    def __init__(self, store: RecordStore):
        self.store = store

    async def get(self, phone: str) -> Optional[UserProfile]:
        """
        Retrieves a user by channel identity.

        Returns:
            UserProfile or None if not found
        """
        record = await self.store.find_one(COLLECTION, {"phone": phone})
        return UserProfile(**record) if record else None

    async def get_or_create(self, phone: str) -> UserProfile:
        """
        Retrieves an existing user or creates a new one.

        The display name is left empty; onboarding asks for it.

        Args:
            phone: WhatsApp identity

        Returns:
            UserProfile
        """
        with LogContext(user_id=phone):
            profile = await self.get(phone)
            if profile is not None:
                return profile

            logger.info("👤 Creating new user")
            profile = UserProfile(phone=phone)
            await self.store.upsert(COLLECTION, {"phone": phone}, profile.to_record())
            return profile

    async def update(self, phone: str, fields: Dict[str, Any]) -> UserProfile:
        """
        Sets fields on the user and bumps last_interaction.

        Returns:
            The updated profile
        """
        updates = dict(fields)
        updates["last_interaction"] = utcnow()
        await self.store.upsert(COLLECTION, {"phone": phone}, updates)
        profile = await self.get(phone)
        return profile

    async def touch(self, phone: str):
        await self.store.upsert(COLLECTION, {"phone": phone}, {"last_interaction": utcnow()})
