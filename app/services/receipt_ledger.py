"""
app/services/receipt_ledger.py

Purpose: Anti-replay ledger for receipts

- fingerprint(): MD5 of normalized "retailer-date-total"
- attempt_fingerprint(): per-submission key for attempts refused before the receipt could be identified
- is_used(): any stored receipt (of any status) with that fingerprint
- claim(): process-wide lock; check-then-grant must run inside it
- record(): append one submission attempt to `receipts`
- discard(): undo a record whose follow-up step failed
"""

import asyncio
import hashlib
import re
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import AsyncIterator, Optional, Union

from app.core.logging import get_logger
from app.db.store import RecordStore
from app.models.receipt import ReceiptRecord, ReceiptStatus
from utils.time_utils import parse_invoice_date

logger = get_logger(__name__)

COLLECTION = "receipts"
_WHITESPACE = re.compile(r"\s+")
_AMOUNT = re.compile(r"-?\d[\d,]*(?:\.\d+)?")
CENTS = Decimal("0.01")


def _normalize(value: Optional[str]) -> str:
    text = _WHITESPACE.sub(" ", str(value or "").strip())
    return text or "unknown"


def _normalize_date(value: Union[str, datetime, None]) -> str:
    parsed = value if isinstance(value, datetime) else parse_invoice_date(value)
    if parsed is None:
        return _normalize(value)
    return parsed.date().isoformat()


def _normalize_total(value: Optional[str]) -> str:
    match = _AMOUNT.search(str(value or ""))
    if not match:
        return _normalize(value)
    try:
        return str(Decimal(match.group(0).replace(",", "")).quantize(CENTS))
    except InvalidOperation:
        return _normalize(value)


def fingerprint(retailer: Optional[str], date: Union[str, datetime, None], total: Optional[str]) -> str:
    """
    Deterministic dedup key for a receipt.

    The same purchase hashes the same whichever way it was read:
    retailer case-insensitive, date as a calendar day ("01/03/2025 10:15" and
    "2025-03-01" agree), total as an amount to the cent ("USD 45" and "45.00" agree).
    Unparseable dates and totals are compared as printed.
    """
    key = f"{_normalize(retailer).lower()}-{_normalize_date(date)}-{_normalize_total(total)}"
    return hashlib.md5(key.encode("utf-8")).hexdigest()


def attempt_fingerprint(retailer: Optional[str], submitted_at: datetime, total: Optional[str]) -> str:
    """
    Key for an attempt that must not block the receipt (keyed on the submission instant).
    """
    key = f"{_normalize(retailer).lower()}-{submitted_at.isoformat()}-{_normalize_total(total)}"
    return hashlib.md5(key.encode("utf-8")).hexdigest()


class ReceiptLedger:
    def __init__(self, store: RecordStore):
        self.store = store
        self._lock = asyncio.Lock()

    async def is_used(self, receipt_hash: str) -> bool:
        return await self.store.exists(COLLECTION, {"hash": receipt_hash})

    @asynccontextmanager
    async def claim(self) -> AsyncIterator[None]:
        """
        Serializes check-then-grant across all identities.
        """
        async with self._lock:
            yield

    async def record(self, receipt: ReceiptRecord):
        await self.store.insert(COLLECTION, receipt.to_record())
        logger.info(f"🧾 Receipt recorded: hash={receipt.hash[:8]} status={receipt.status}")

    async def discard(self, receipt_hash: str, status: ReceiptStatus):
        """
        Removes a record written under claim() when the step after it failed.
        """
        removed = await self.store.delete(COLLECTION, {"hash": receipt_hash, "status": status.value})
        logger.warning(f"↩️ Receipt record discarded: hash={receipt_hash[:8]} status={status.value} removed={removed}")
