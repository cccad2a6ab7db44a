"""
app/models/receipt.py

Purpose: Receipt document models

- InvoiceRecord: what the intake pipeline extracted from one image
- ReceiptRecord: one stored submission attempt (collection `receipts`)
- ReceiptStatus lifecycle: pending -> approved / rejected, or on_hold for review
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Literal

from pydantic import BaseModel, ConfigDict, Field

from utils.time_utils import utcnow


class ReceiptStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ON_HOLD = "on_hold"


class InvoiceRecord(BaseModel):
    """
    Fields extracted from a receipt image.

    `authority_valid` is None when the fiscal authority was never consulted.
    """
    source: Literal["code", "text-extraction"] = "text-extraction"
    invoice_number: Optional[str] = None
    retailer_name: Optional[str] = None
    taxpayer_name: Optional[str] = None
    trade_name: Optional[str] = None
    address: Optional[str] = None
    purchase_date: Optional[str] = None
    purchased_at: Optional[datetime] = None
    total_amount: Optional[str] = None
    currency: str = "USD"
    products: List[str] = Field(default_factory=list)
    code_url: Optional[str] = None
    authority_valid: Optional[bool] = None
    raw_text: str = ""
    notes: List[str] = Field(default_factory=list)
    is_valid: bool = False
    validation_errors: List[str] = Field(default_factory=list)


class ReceiptRecord(InvoiceRecord):
    model_config = ConfigDict(use_enum_values=True)

    phone: str
    hash: str
    status: ReceiptStatus = ReceiptStatus.PENDING
    rejection_reason: Optional[str] = None
    image_url: Optional[str] = None
    verified_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)

    def to_record(self) -> dict:
        return self.model_dump(mode="python")
