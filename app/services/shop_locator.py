"""
app/services/shop_locator.py

Purpose: Nearest retailer lookup

- Great-circle (haversine) distance from the user to every shop in `shops`
- Returns the closest few, formatted for WhatsApp
"""

import math
from typing import Any, Dict, List

from app.core.config import settings
from app.core.logging import get_logger
from app.db.store import RecordStore

logger = get_logger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_text(km: float) -> str:
    if km < 1:
        return f"{km * 1000:.0f} meters"
    return f"{km:.1f} km"


def maps_link(latitude: float, longitude: float) -> str:
    return f"https://maps.google.com/?q={latitude},{longitude}"


def format_shops(shops: List[Dict[str, Any]]) -> str:
    if not shops:
        return "❌ No shops found nearby. Please try a different location."

    message = f"🏬 *Nearest {settings.BRAND_KEYWORD} Retailers:*\n\n"
    for index, shop in enumerate(shops, 1):
        message += f"*{index}. {shop.get('name')}*\n"
        message += f"📍 {shop.get('address', '')}\n"
        if shop.get("phone"):
            message += f"📞 {shop['phone']}\n"
        if shop.get("owner"):
            message += f"👤 {shop['owner']}\n"
        if shop.get("timing"):
            message += f"🕐 {shop['timing']}\n"
        if "distance_km" in shop:
            message += f"📏 {distance_text(shop['distance_km'])} away\n"
        message += f"🗺️ {maps_link(shop['latitude'], shop['longitude'])}\n\n"
    return message.strip()


class ShopLocator:
    def __init__(self, store: RecordStore):
        self.store = store

    async def nearest(self, latitude: float, longitude: float, limit: int = 3) -> List[Dict[str, Any]]:
        shops = []
        for shop in await self.store.load("shops"):
            try:
                shop_lat = float(shop["latitude"])
                shop_lon = float(shop["longitude"])
            except (KeyError, TypeError, ValueError):
                logger.warning(f"⚠️ Skipping shop without coordinates: {shop.get('name')}")
                continue
            shops.append(dict(shop, latitude=shop_lat, longitude=shop_lon,
                              distance_km=haversine_km(latitude, longitude, shop_lat, shop_lon)))

        shops.sort(key=lambda s: s["distance_km"])
        logger.info(f"📍 Found {min(limit, len(shops))} nearest shops")
        return shops[:limit]
