from datetime import timedelta

from app.models.user import UserProfile
from app.services.entitlement_service import is_active
from helpers import NOW, USER


def test_is_active_requires_flag_and_future_expiry():
    assert is_active(UserProfile(phone=USER, is_premium=True, premium_expiry_date=NOW + timedelta(seconds=1)), now=NOW)
    assert not is_active(UserProfile(phone=USER, is_premium=True, premium_expiry_date=NOW), now=NOW)
    assert not is_active(UserProfile(phone=USER, is_premium=False, premium_expiry_date=NOW + timedelta(days=1)), now=NOW)
    assert not is_active(UserProfile(phone=USER, is_premium=True), now=NOW)
    assert not is_active(None, now=NOW)


def test_naive_expiry_is_treated_as_utc():
    expiry = (NOW + timedelta(hours=1)).replace(tzinfo=None)
    assert is_active(UserProfile(phone=USER, is_premium=True, premium_expiry_date=expiry), now=NOW)


async def test_grant_sets_expiry_and_receipt_url(entitlements, users):
    expiry = await entitlements.grant(USER, now=NOW, receipt_image_url="https://files.example.com/r.jpg")

    assert expiry == NOW + timedelta(days=30)
    profile = await users.get(USER)
    assert profile.is_premium
    assert profile.receipt_image_url == "https://files.example.com/r.jpg"
    assert await entitlements.is_active(USER, now=NOW)
    assert not await entitlements.is_active(USER, now=expiry)


async def test_grant_resets_rather_than_extends(entitlements):
    await entitlements.grant(USER, now=NOW)
    expiry = await entitlements.grant(USER, now=NOW + timedelta(days=3))
    assert expiry == NOW + timedelta(days=33)


async def test_unknown_user_is_not_active(entitlements):
    assert not await entitlements.is_active("whatsapp:+10000000000", now=NOW)
