"""
app/services/verification_service.py

Purpose: Receipt verification, from photo to premium access

Order of checks:
1. Forward a copy to the reviewer (never blocks verification)
2. Document pipeline (extraction + validation)
   Without authority data the policy decides: refuse (default), validate the text, or hold for review
3. Brand keyword gate
4. Under the ledger claim: replay check, approved record, entitlement grant

Every submission leaves exactly one ReceiptRecord, except collaborator
failures that happen before anything could be extracted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from app.core.config import settings
from app.core.exceptions import AgriBotError, CollaboratorError
from app.core.logging import get_logger, LogContext
from app.models.attachment import Attachment
from app.models.receipt import InvoiceRecord, ReceiptRecord, ReceiptStatus
from app.models.user import UserProfile
from app.services.channel_sender import ChannelSender
from app.services.document_pipeline import DocumentIntakePipeline
from app.services.entitlement_service import EntitlementManager
from app.services.receipt_ledger import ReceiptLedger, attempt_fingerprint, fingerprint
from utils.constants import RECEIPT_REVIEWER_CAPTION
from utils.time_utils import utcnow

logger = get_logger(__name__)

REASON_REPLAYED = "Receipt already used"
REASON_NO_BRAND = "No {brand} product found on receipt"
REASON_REVIEW = "Awaiting manual review (no authority data)"
REASON_CODE_REQUIRED = "QR code required"


class VerificationStatus(str, Enum):
    APPROVED = "approved"
    INVALID = "invalid"
    NO_BRAND = "no_brand"
    REPLAYED = "replayed"
    ON_HOLD = "on_hold"
    CODE_REQUIRED = "code_required"
    ERROR = "error"


@dataclass
class VerificationOutcome:
    status: VerificationStatus
    invoice: Optional[InvoiceRecord] = None
    receipt_hash: Optional[str] = None
    expiry: Optional[datetime] = None
    errors: List[str] = field(default_factory=list)


class ReceiptVerifier:
    def __init__(
        self,
        pipeline: DocumentIntakePipeline,
        ledger: ReceiptLedger,
        entitlements: EntitlementManager,
        sender: ChannelSender,
    ):
        self.pipeline = pipeline
        self.ledger = ledger
        self.entitlements = entitlements
        self.sender = sender

    async def verify(
        self,
        profile: UserProfile,
        attachment: Attachment,
        now: Optional[datetime] = None,
    ) -> VerificationOutcome:
        """
        Verifies one receipt photo for one user.

        Args:
            profile: Submitting user
            attachment: Downloaded receipt image (valid for this call only)
            now: Reference time

        Returns:
            VerificationOutcome; validation failures and replays are outcomes, not errors
        """
        now = now or utcnow()

        with LogContext(user_id=profile.phone, state="awaiting-receipt"):
            await self._forward_to_reviewer(profile, attachment)

            try:
                invoice = await self.pipeline.process(attachment.path, now=now)
            except CollaboratorError as e:
                logger.error(f"❌ Receipt processing failed: {e.message}")
                return VerificationOutcome(status=VerificationStatus.ERROR, errors=[e.message])

            receipt_hash = fingerprint(
                invoice.retailer_name, invoice.purchased_at or invoice.purchase_date, invoice.total_amount
            )
            has_brand = settings.BRAND_KEYWORD.lower() in invoice.raw_text.lower()

            with LogContext(user_id=profile.phone, receipt_hash=receipt_hash[:8]):
                policy = settings.RECEIPT_TEXT_FALLBACK_POLICY
                if invoice.source != "code" and policy == "require_code":
                    # A clearer photo of the same receipt must still be accepted
                    attempt_hash = attempt_fingerprint(invoice.retailer_name, now, invoice.total_amount)
                    await self._save(
                        profile, attachment, invoice, attempt_hash, ReceiptStatus.PENDING, REASON_CODE_REQUIRED
                    )
                    logger.info("🚫 Receipt has no usable authority QR code")
                    return VerificationOutcome(
                        status=VerificationStatus.CODE_REQUIRED,
                        invoice=invoice,
                        receipt_hash=attempt_hash,
                        errors=[REASON_CODE_REQUIRED],
                    )
                if invoice.source != "code" and policy == "review":
                    return await self._hold_for_review(profile, attachment, invoice, receipt_hash, has_brand)

                if not invoice.is_valid:
                    reason = "; ".join(invoice.validation_errors)
                    await self._save(profile, attachment, invoice, receipt_hash, ReceiptStatus.PENDING, reason)
                    logger.info(f"🚫 Receipt invalid: {reason}")
                    return VerificationOutcome(
                        status=VerificationStatus.INVALID,
                        invoice=invoice,
                        receipt_hash=receipt_hash,
                        errors=list(invoice.validation_errors),
                    )

                if not has_brand:
                    reason = REASON_NO_BRAND.format(brand=settings.BRAND_KEYWORD)
                    await self._save(profile, attachment, invoice, receipt_hash, ReceiptStatus.PENDING, reason)
                    logger.info("🚫 Receipt has no brand keyword")
                    return VerificationOutcome(
                        status=VerificationStatus.NO_BRAND,
                        invoice=invoice,
                        receipt_hash=receipt_hash,
                        errors=[reason],
                    )

                async with self.ledger.claim():
                    if await self.ledger.is_used(receipt_hash):
                        await self._save(
                            profile, attachment, invoice, receipt_hash, ReceiptStatus.PENDING, REASON_REPLAYED
                        )
                        logger.warning("🔁 Receipt replay detected")
                        return VerificationOutcome(
                            status=VerificationStatus.REPLAYED,
                            invoice=invoice,
                            receipt_hash=receipt_hash,
                            errors=[REASON_REPLAYED],
                        )

                    # Record before grant; a failed grant discards the record
                    await self._save(
                        profile, attachment, invoice, receipt_hash, ReceiptStatus.APPROVED, verified_at=now
                    )
                    try:
                        expiry = await self.entitlements.grant(
                            profile.phone, now=now, receipt_image_url=attachment.durable_url
                        )
                    except Exception:
                        await self.ledger.discard(receipt_hash, ReceiptStatus.APPROVED)
                        raise

                logger.info("✅ Receipt approved")
                return VerificationOutcome(
                    status=VerificationStatus.APPROVED,
                    invoice=invoice,
                    receipt_hash=receipt_hash,
                    expiry=expiry,
                )

    async def _hold_for_review(
        self,
        profile: UserProfile,
        attachment: Attachment,
        invoice: InvoiceRecord,
        receipt_hash: str,
        has_brand: bool,
    ) -> VerificationOutcome:
        if not has_brand:
            reason = REASON_NO_BRAND.format(brand=settings.BRAND_KEYWORD)
            await self._save(profile, attachment, invoice, receipt_hash, ReceiptStatus.PENDING, reason)
            return VerificationOutcome(
                status=VerificationStatus.NO_BRAND, invoice=invoice, receipt_hash=receipt_hash, errors=[reason]
            )

        await self._save(profile, attachment, invoice, receipt_hash, ReceiptStatus.ON_HOLD, REASON_REVIEW)
        logger.info("⏸️ Text-only receipt held for review")
        return VerificationOutcome(
            status=VerificationStatus.ON_HOLD,
            invoice=invoice,
            receipt_hash=receipt_hash,
            errors=list(invoice.validation_errors),
        )

    async def _save(
        self,
        profile: UserProfile,
        attachment: Attachment,
        invoice: InvoiceRecord,
        receipt_hash: str,
        status: ReceiptStatus,
        reason: Optional[str] = None,
        verified_at: Optional[datetime] = None,
    ):
        receipt = ReceiptRecord(
            **invoice.model_dump(),
            phone=profile.phone,
            hash=receipt_hash,
            status=status,
            rejection_reason=reason,
            image_url=attachment.durable_url,
            verified_at=verified_at,
        )
        await self.ledger.record(receipt)

    async def _forward_to_reviewer(self, profile: UserProfile, attachment: Attachment):
        reviewer = settings.REVIEWER_IDENTITY
        if not reviewer:
            return
        if not attachment.durable_url:
            logger.info("ℹ️ No durable receipt URL, reviewer copy skipped")
            return

        caption = RECEIPT_REVIEWER_CAPTION.format(
            name=profile.name or "N/A",
            phone=profile.phone_numeric or "N/A",
            identity=profile.phone,
        )
        try:
            await self.sender.send_text(reviewer, caption, media_url=attachment.durable_url)
        except AgriBotError as e:
            logger.warning(f"⚠️ Could not forward receipt to reviewer: {e.message}")
