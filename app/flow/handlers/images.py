"""
app/flow/handlers/images.py

Handles: IMAGES (receipts, crop diagnosis, soil analysis)

- Routes an inbound image by state and entitlement
- Unsolicited images from premium users wait for a purpose choice
- Attachments are downloaded per use and never outlive the handler
"""

from datetime import timedelta

from app.core.config import settings
from app.core.exceptions import CollaboratorError
from app.core.logging import get_logger, LogContext
from app.flow.context import FlowContext
from app.flow.handlers.menu import premium_prompt, premium_status
from app.flow.states import ConversationState
from app.flow.types import HandlerResult, PendingImageFlow, reply
from app.services.catalog_service import format_catalog_context
from app.services.verification_service import VerificationOutcome, VerificationStatus
from utils.constants import (
    DIAGNOSIS_FAILED_MESSAGE,
    DIAGNOSIS_WORKING_MESSAGE,
    IMAGE_DOWNLOAD_FAILED,
    IMAGE_EXPIRED_MESSAGE,
    IMAGE_PURPOSE_INVALID,
    IMAGE_PURPOSE_MESSAGE,
    NOT_AN_IMAGE_MESSAGE,
    RECEIPT_APPROVED_MESSAGE,
    RECEIPT_ERROR_MESSAGE,
    RECEIPT_INVALID_MESSAGE,
    RECEIPT_NO_BRAND_MESSAGE,
    RECEIPT_ON_HOLD_MESSAGE,
    RECEIPT_QR_REQUIRED_MESSAGE,
    RECEIPT_REPLAYED_MESSAGE,
    RECEIPT_WORKING_MESSAGE,
    SOIL_FAILED_MESSAGE,
    SOIL_WORKING_MESSAGE,
)
from utils.time_utils import format_date
from utils.validation_utils import normalize_text
from utils.whatsapp_utils import bullet_list

logger = get_logger(__name__)

ANALYSIS_TARGETS = {
    # context: (working message, failure message, record collection, upload folder)
    "crop": (DIAGNOSIS_WORKING_MESSAGE, DIAGNOSIS_FAILED_MESSAGE, "crop_diagnosis", "crop-diagnosis"),
    "soil": (SOIL_WORKING_MESSAGE, SOIL_FAILED_MESSAGE, "soil_analysis", "soil-analysis"),
}


async def handle_media(ctx: FlowContext) -> HandlerResult:
    """
    Routes an inbound image.

    - awaiting-receipt, or any non-premium user: receipt verification
    - awaiting-diagnosis-image: crop diagnosis
    - otherwise: ask what the image is for
    """
    event = ctx.event
    state = ctx.session.state

    if not (event.media_type or "").startswith("image/"):
        return reply(state, NOT_AN_IMAGE_MESSAGE, flow=ctx.session.flow)

    if state == ConversationState.AWAITING_RECEIPT or not ctx.is_premium:
        return await verify_receipt(ctx, event.media_url, event.media_type)

    if state == ConversationState.AWAITING_DIAGNOSIS_IMAGE:
        return await analyze_image(ctx, event.media_url, event.media_type, "crop")

    flow = PendingImageFlow(media_url=event.media_url, media_type=event.media_type, received_at=ctx.now)
    return reply(ConversationState.AWAITING_IMAGE_PURPOSE, IMAGE_PURPOSE_MESSAGE, flow=flow)


def _pending_image(ctx: FlowContext):
    """
    Returns the pending image, or None once the retention window has passed.
    """
    flow = ctx.session.flow
    if not isinstance(flow, PendingImageFlow):
        return None
    if ctx.now - flow.received_at > timedelta(seconds=settings.MEDIA_RETENTION_SECONDS):
        logger.info("⌛ Pending image expired")
        return None
    return flow


async def handle_image_purpose(ctx: FlowContext) -> HandlerResult:
    choice = normalize_text(ctx.text)
    if choice not in ("1", "2", "3"):
        return reply(ConversationState.AWAITING_IMAGE_PURPOSE, IMAGE_PURPOSE_INVALID, flow=ctx.session.flow)

    if choice == "2" and ctx.is_premium:
        return premium_status(ctx)
    if choice in ("1", "3") and not ctx.is_premium:
        return premium_prompt()

    pending = _pending_image(ctx)
    if pending is None:
        return reply(ConversationState.MAIN_MENU, IMAGE_EXPIRED_MESSAGE)

    if choice == "2":
        return await verify_receipt(ctx, pending.media_url, pending.media_type)
    return await analyze_image(ctx, pending.media_url, pending.media_type, "crop" if choice == "1" else "soil")


async def verify_receipt(ctx: FlowContext, media_url: str, media_type: str) -> HandlerResult:
    """
    Downloads the receipt, verifies it and renders the outcome.
    """
    await ctx.notify(RECEIPT_WORKING_MESSAGE)
    services = ctx.services

    try:
        async with services.media.acquire(media_url, media_type, folder="receipts") as attachment:
            outcome = await services.verifier.verify(ctx.profile, attachment, now=ctx.now)
    except CollaboratorError as e:
        logger.error(f"❌ Receipt image unavailable: {e.message}")
        return reply(ConversationState.MAIN_MENU, IMAGE_DOWNLOAD_FAILED)

    if outcome.status == VerificationStatus.APPROVED:
        await ctx.refresh_profile()
    return render_outcome(outcome)


def render_outcome(outcome: VerificationOutcome) -> HandlerResult:
    status = outcome.status

    if status == VerificationStatus.APPROVED:
        invoice = outcome.invoice
        products = bullet_list(invoice.products) if invoice.products else "• UCF products detected"
        text = RECEIPT_APPROVED_MESSAGE.format(
            invoice_number=invoice.invoice_number or "N/A",
            retailer=invoice.retailer_name or "N/A",
            date=invoice.purchase_date or "N/A",
            currency=invoice.currency,
            amount=invoice.total_amount or "N/A",
            products=products,
            expiry=format_date(outcome.expiry),
        )
        return reply(ConversationState.MAIN_MENU, text)

    if status == VerificationStatus.INVALID:
        errors = bullet_list(outcome.errors)
        return reply(ConversationState.AWAITING_RECEIPT, RECEIPT_INVALID_MESSAGE.format(errors=errors))
    if status == VerificationStatus.NO_BRAND:
        return reply(ConversationState.AWAITING_RECEIPT, RECEIPT_NO_BRAND_MESSAGE)
    if status == VerificationStatus.REPLAYED:
        return reply(ConversationState.AWAITING_RECEIPT, RECEIPT_REPLAYED_MESSAGE)
    if status == VerificationStatus.CODE_REQUIRED:
        return reply(ConversationState.AWAITING_RECEIPT, RECEIPT_QR_REQUIRED_MESSAGE)
    if status == VerificationStatus.ON_HOLD:
        return reply(ConversationState.MAIN_MENU, RECEIPT_ON_HOLD_MESSAGE)
    return reply(ConversationState.MAIN_MENU, RECEIPT_ERROR_MESSAGE)


async def analyze_image(ctx: FlowContext, media_url: str, media_type: str, context: str) -> HandlerResult:
    """
    Crop diagnosis or soil analysis through the classification collaborator.

    Args:
        ctx: Flow context
        media_url: Inbound media URL (downloaded again here)
        media_type: MIME type
        context: "crop" or "soil"

    Returns:
        HandlerResult back to the main menu
    """
    working, failed, collection, folder = ANALYSIS_TARGETS[context]
    services = ctx.services
    await ctx.notify(working)

    with LogContext(user_id=ctx.identity, state=ctx.session.state.value):
        try:
            catalog = format_catalog_context(await services.catalog.products())
            async with services.media.acquire(media_url, media_type, folder=folder) as attachment:
                result = await services.ai.classify(attachment.path, context=context, catalog=catalog)
                durable_url = attachment.durable_url
        except CollaboratorError as e:
            logger.error(f"❌ {context} analysis failed: {e.message}")
            return reply(ConversationState.MAIN_MENU, failed)

        if durable_url:
            await services.store.insert(collection, {
                "phone": ctx.identity,
                "created_at": ctx.now,
                "image": durable_url,
                "label": result.label,
                "confidence": result.confidence,
            })

        logger.info(f"🌿 {context} analysis sent: {result.label}")

    return reply(ConversationState.MAIN_MENU, result.narrative)
