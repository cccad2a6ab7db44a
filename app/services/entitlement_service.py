"""
app/services/entitlement_service.py

Purpose: Premium entitlement

- Active iff is_premium is set AND premium_expiry_date is strictly in the future
- Evaluated from a freshly loaded profile every time; never cached
- grant() always moves expiry to now + PREMIUM_DURATION_DAYS
"""

from datetime import datetime, timedelta
from typing import Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.models.user import UserProfile
from app.services.user_service import UserService
from utils.time_utils import ensure_aware, utcnow

logger = get_logger(__name__)


def is_active(profile: Optional[UserProfile], now: Optional[datetime] = None) -> bool:
    if profile is None or not profile.is_premium or profile.premium_expiry_date is None:
        return False
    now = now or utcnow()
    return ensure_aware(profile.premium_expiry_date) > now


class EntitlementManager:
    def __init__(self, users: UserService, duration_days: Optional[int] = None):
        self.users = users
        self.duration = timedelta(days=duration_days or settings.PREMIUM_DURATION_DAYS)

    async def is_active(self, identity: str, now: Optional[datetime] = None) -> bool:
        return is_active(await self.users.get(identity), now=now)

    async def grant(self, identity: str, now: Optional[datetime] = None, receipt_image_url: Optional[str] = None) -> datetime:
        """
        Grants (or renews) premium access.

        Returns:
            The new expiry timestamp
        """
        now = now or utcnow()
        expiry = now + self.duration

        fields = {"is_premium": True, "premium_expiry_date": expiry}
        if receipt_image_url:
            fields["receipt_image_url"] = receipt_image_url
        await self.users.update(identity, fields)

        logger.info(f"🌟 Premium granted to {identity} until {expiry.isoformat()}")
        return expiry
