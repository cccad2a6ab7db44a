"""
app/api/webhook.py

Purpose: Twilio WhatsApp webhook endpoint

- Receives incoming messages (text, media, location) as Twilio form data
- Normalizes them into InboundEvent
- Passes control to the flow dispatcher
- Always answers Twilio with empty TwiML; replies go out through the REST API
"""

from typing import Optional

from fastapi import APIRouter, Form
from fastapi.responses import Response

from app.core.logging import get_logger
from app.flow.dispatcher import dispatch_message
from app.schemas.webhook import parse_twilio_message

logger = get_logger(__name__)
router = APIRouter()

EMPTY_TWIML = '<?xml version="1.0" encoding="UTF-8"?><Response></Response>'


def twiml_response() -> Response:
    return Response(content=EMPTY_TWIML, media_type="application/xml")


@router.post("/webhook")
async def webhook_handler(
    From: str = Form(...),
    Body: Optional[str] = Form(None),
    ProfileName: Optional[str] = Form(None),
    MessageSid: Optional[str] = Form(None),
    NumMedia: Optional[str] = Form(None),
    MediaUrl0: Optional[str] = Form(None),
    MediaContentType0: Optional[str] = Form(None),
    Latitude: Optional[str] = Form(None),
    Longitude: Optional[str] = Form(None),
):
    """
    Twilio WhatsApp webhook.

    Processing errors are logged and never surface to Twilio, so it does not
    retry a message the dispatcher already handled.
    """
    event = parse_twilio_message(
        from_number=From,
        body=Body,
        profile_name=ProfileName,
        message_sid=MessageSid,
        num_media=NumMedia,
        media_url=MediaUrl0,
        media_type=MediaContentType0,
        latitude=Latitude,
        longitude=Longitude,
    )
    logger.info(
        f"📱 Twilio webhook from {event.identity}: "
        f"text={event.text[:50]!r} media={event.has_media} location={event.location is not None}"
    )

    try:
        outcome = await dispatch_message(event)
        if not outcome.ok:
            logger.warning(f"⚠️ Event from {event.identity} ended with error: {outcome.error}")
    except Exception as e:
        logger.error(f"Webhook error: {e}", exc_info=True)

    return twiml_response()


@router.get("/webhook")
async def webhook_verification():
    """
    Webhook verification endpoint (for platforms that require GET verification)
    """
    return {"status": "ok", "message": "Webhook endpoint is active"}
