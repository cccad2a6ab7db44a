"""
app/services/catalog_service.py

Purpose: Read-only registries maintained by admins

- retailers: authorized retailer names (name, full_name)
- products: fertilizer catalog (search, detail and list formatting)
- pdfs: exclusive farming guides
- Registries are re-read on every call so admin edits apply immediately
"""

from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.db.store import RecordStore

logger = get_logger(__name__)

SEARCH_FIELDS = ("name", "description", "category", "usage", "application_timing", "soil_type")
SEARCH_LIST_FIELDS = ("crop_usage", "function", "benefits")


def product_npk(product: Dict[str, Any]) -> str:
    npk = product.get("npk")
    if npk and npk != "undefined":
        return str(npk)
    composition = product.get("composition") or {}
    if all(composition.get(k) is not None for k in ("N", "P", "K")):
        return f"{composition['N']}-{composition['P']}-{composition['K']}"
    return ""


def format_product(product: Dict[str, Any]) -> str:
    message = f"🌾 *{product.get('name') or 'Product'}*\n\n"
    npk = product_npk(product)
    if npk:
        message += f"📊 NPK: {npk}\n"
    message += f"📝 {product.get('description') or 'No description available'}\n\n"
    message += "💰 Call us for pricing\n"
    crops = product.get("crop_usage")
    if isinstance(crops, list) and crops:
        message += f"🌱 Crops: {', '.join(crops)}\n"
    elif product.get("usage"):
        message += f"📋 Usage: {product['usage']}\n"
    return message


def format_product_list(products: List[Dict[str, Any]]) -> str:
    if not products:
        return "❌ No products found."

    message = f"🌾 *{settings.BRAND_KEYWORD} Products:*\n\n"
    for index, product in enumerate(products, 1):
        npk = product_npk(product)
        npk_text = f" ({npk})" if npk else ""
        message += f"*{index}. {product.get('name') or 'Product'}*{npk_text}\n"
        message += f"{product.get('description') or 'No description available'}\n"
        message += "💰 Call us for pricing\n\n"
    return message.rstrip() + "\n"


def format_catalog_context(products: List[Dict[str, Any]]) -> str:
    """
    Product summary handed to the AI collaborators.
    """
    lines = []
    for product in products:
        line = f"- {product.get('name')}"
        npk = product_npk(product)
        if npk:
            line += f" ({npk})"
        crops = product.get("crop_usage")
        if isinstance(crops, list) and crops:
            line += f" | Crops: {', '.join(crops)}"
        if product.get("description"):
            line += f"\n  {product['description']}"
        lines.append(line)
    return "\n".join(lines)


def format_guide_list(guides: List[Dict[str, Any]]) -> str:
    return "\n\n".join(
        f"{index}️⃣ *{guide.get('title')}*\n"
        f"   📄 {guide.get('description', '')}\n"
        f"   📊 {guide.get('pages', '?')} pages • {guide.get('size', '')}\n"
        f"   🗂️ Category: {guide.get('category', '')}"
        for index, guide in enumerate(guides, 1)
    )


def names_match(candidate: str, registered: str) -> bool:
    """Case-insensitive substring match in either direction."""
    a = (candidate or "").strip().lower()
    b = (registered or "").strip().lower()
    if not a or not b:
        return False
    return a in b or b in a


class CatalogService:
    def __init__(self, store: RecordStore):
        self.store = store

    async def retailers(self) -> List[Dict[str, Any]]:
        return await self.store.load("retailers")

    async def products(self) -> List[Dict[str, Any]]:
        return await self.store.load("products")

    async def guides(self) -> List[Dict[str, Any]]:
        return await self.store.load("pdfs")

    async def find_authorized_retailer(self, *names: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Returns the first registry entry matching any of the given names.
        """
        candidates = [n for n in names if n and n.strip()]
        if not candidates:
            return None

        for retailer in await self.retailers():
            for candidate in candidates:
                if names_match(candidate, retailer.get("name", "")) or names_match(
                    candidate, retailer.get("full_name", "")
                ):
                    return retailer
        return None

    async def search_products(self, query: str) -> List[Dict[str, Any]]:
        needle = query.strip().lower()
        if not needle:
            return []

        results = []
        for product in await self.products():
            parts = [str(product.get(field) or "") for field in SEARCH_FIELDS]
            for field in SEARCH_LIST_FIELDS:
                value = product.get(field)
                if isinstance(value, list):
                    parts.append(" ".join(str(v) for v in value))
            parts.append(product_npk(product))
            if needle in " ".join(parts).lower():
                results.append(product)
        return results

    async def match_products(self, extracted: List[str]) -> List[str]:
        """
        Keeps the receipt line items that match a catalog product name.
        """
        names = [p.get("name", "") for p in await self.products()]
        return [item for item in extracted if any(names_match(item, name) for name in names)]
