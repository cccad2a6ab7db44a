"""
app/services/document_pipeline.py

Purpose: Receipt image -> validated InvoiceRecord

Stages:
1. QR code extraction; only codes on the authority domain continue to stage 2
2. Authority lookup; a failed lookup is noted and the pipeline falls through
3. Text extraction (always); AI field analysis when stage 2 produced nothing
4. Validation against the business rules and the retailer registry
"""

import asyncio
import re
from datetime import datetime
from typing import List, Optional

from app.core.config import settings
from app.core.exceptions import CollaboratorError
from app.core.logging import get_logger
from app.models.receipt import InvoiceRecord
from app.services.ai_service import AIService
from app.services.authority_service import AuthorityClient
from app.services.catalog_service import CatalogService
from app.services.qr_service import QRCodeDecoder
from utils.time_utils import is_older_than_months, parse_invoice_date, utcnow

logger = get_logger(__name__)

PRODUCT_LINE = re.compile(r"^\s*(?:product|item)\s*[:\-]\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)

ERR_AUTHORITY_INVALID = "Invoice is not valid according to ZIMRA"
ERR_DATE_MISSING = "Invoice date not found"
ERR_DATE_UNREADABLE = "Invoice date could not be read"
ERR_TOO_OLD = "Invoice is older than {months} months"
ERR_NUMBER_MISSING = "Invoice number not found"
ERR_RETAILER_MISSING = "Retailer name not found"
ERR_RETAILER_UNKNOWN = "Retailer not in authorized list"


def extract_product_lines(raw_text: str) -> List[str]:
    return [m.group(1) for m in PRODUCT_LINE.finditer(raw_text or "")]


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in ("null", "none", "n/a"):
        return None
    return text


class DocumentIntakePipeline:
    def __init__(
        self,
        decoder: QRCodeDecoder,
        authority: AuthorityClient,
        ai: AIService,
        catalog: CatalogService,
    ):
        self.decoder = decoder
        self.authority = authority
        self.ai = ai
        self.catalog = catalog

    async def process(self, image_path: str, now: Optional[datetime] = None) -> InvoiceRecord:
        """
        Runs every stage on one receipt image.

        Args:
            image_path: Local receipt photo
            now: Reference time for the recency check

        Returns:
            InvoiceRecord with is_valid and validation_errors filled in

        Raises:
            CollaboratorError: text extraction failed (nothing else is fatal)
        """
        record = InvoiceRecord()

        # Stage 1: machine-readable code
        code = await asyncio.to_thread(self.decoder.decode, image_path)
        if code and self.authority.is_authority_url(code):
            record.code_url = code

            # Stage 2: authoritative lookup
            try:
                invoice = await self.authority.lookup(code)
                record.source = "code"
                record.authority_valid = invoice.is_valid
                record.taxpayer_name = invoice.taxpayer_name
                record.trade_name = invoice.trade_name
                record.address = invoice.address
                record.retailer_name = invoice.retailer_name
                record.invoice_number = invoice.invoice_number
                record.purchase_date = invoice.invoice_date
                record.total_amount = invoice.invoice_total
                record.currency = invoice.currency
            except CollaboratorError as e:
                logger.warning(f"⚠️ Authority lookup failed, falling back to text: {e.message}")
                record.notes.append(f"Authority lookup failed: {e.message}")
        elif code:
            record.notes.append("QR code does not point at the tax authority")

        # Stage 3: text extraction always runs
        record.raw_text = await self.ai.extract_text(image_path)
        record.products = await self.catalog.match_products(extract_product_lines(record.raw_text))

        if record.source != "code":
            await self._fill_from_text(record)

        record.purchased_at = parse_invoice_date(record.purchase_date)

        # Stage 4
        await self.validate_invoice(record, now=now)
        logger.info(
            f"🧾 Receipt processed: source={record.source}, valid={record.is_valid}, "
            f"errors={record.validation_errors}"
        )
        return record

    async def _fill_from_text(self, record: InvoiceRecord):
        try:
            fields = await self.ai.analyze_receipt_text(record.raw_text)
        except CollaboratorError as e:
            logger.warning(f"⚠️ Receipt text analysis failed: {e.message}")
            record.notes.append(f"Text analysis failed: {e.message}")
            return

        record.retailer_name = _clean(fields.get("retailer_name")) or record.retailer_name
        record.invoice_number = _clean(fields.get("invoice_number")) or record.invoice_number
        record.purchase_date = _clean(fields.get("purchase_date")) or record.purchase_date
        record.total_amount = _clean(fields.get("total_amount")) or record.total_amount
        record.currency = _clean(fields.get("currency")) or record.currency

        products = fields.get("products")
        if not isinstance(products, list):
            products = []
        analysed = [p.strip() for p in products if isinstance(p, str) and p.strip()]
        for product in analysed:
            if product not in record.products:
                record.products.append(product)

    async def validate_invoice(self, record: InvoiceRecord, now: Optional[datetime] = None) -> InvoiceRecord:
        """
        Applies every validation rule; each failure adds its own message.

        The authority indicator is only checked when the authority was consulted.
        """
        now = now or utcnow()
        errors = []

        if record.source == "code" and record.authority_valid is False:
            errors.append(ERR_AUTHORITY_INVALID)

        if not record.purchase_date:
            errors.append(ERR_DATE_MISSING)
        else:
            purchased_at = record.purchased_at or parse_invoice_date(record.purchase_date)
            if purchased_at is None:
                errors.append(ERR_DATE_UNREADABLE)
            elif is_older_than_months(purchased_at, settings.RECEIPT_MAX_AGE_MONTHS, now=now):
                errors.append(ERR_TOO_OLD.format(months=settings.RECEIPT_MAX_AGE_MONTHS))
            record.purchased_at = purchased_at

        if not record.invoice_number:
            errors.append(ERR_NUMBER_MISSING)

        if not (record.retailer_name or record.taxpayer_name or record.trade_name):
            errors.append(ERR_RETAILER_MISSING)
        else:
            retailer = await self.catalog.find_authorized_retailer(
                record.retailer_name, record.taxpayer_name, record.trade_name
            )
            if retailer is None:
                errors.append(ERR_RETAILER_UNKNOWN)

        record.validation_errors = errors
        record.is_valid = not errors
        return record
