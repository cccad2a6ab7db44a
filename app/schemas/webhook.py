"""
app/schemas/webhook.py

Purpose: WhatsApp webhook payload schemas and parsers

- Validates incoming Twilio form payloads
- Normalizes text, media and location messages into InboundEvent
- Ensures predictable request handling
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from app.models.user import GeoPoint
from utils.time_utils import utcnow
from utils.whatsapp_utils import ensure_whatsapp_prefix


class InboundEvent(BaseModel):
    """
    Normalized inbound message for internal processing.
    """
    identity: str = Field(..., description="Channel address, e.g. whatsapp:+263771234567")
    text: str = Field(default="", description="Message text content, trimmed")
    profile_name: Optional[str] = Field(default=None, description="WhatsApp display name")
    message_id: Optional[str] = None
    has_media: bool = False
    media_url: Optional[str] = None
    media_type: Optional[str] = None
    location: Optional[GeoPoint] = None
    received_at: datetime = Field(default_factory=utcnow)

    class Config:
        json_schema_extra = {
            "example": {
                "identity": "whatsapp:+263771234567",
                "text": "menu",
                "profile_name": "Tendai",
                "message_id": "SM123",
            }
        }


def parse_twilio_message(
    from_number: str,
    body: Optional[str] = None,
    profile_name: Optional[str] = None,
    message_sid: Optional[str] = None,
    num_media: Optional[str] = None,
    media_url: Optional[str] = None,
    media_type: Optional[str] = None,
    latitude: Optional[str] = None,
    longitude: Optional[str] = None,
) -> InboundEvent:
    """
    Parses Twilio WhatsApp webhook payload

    Twilio format (form data):
    - From: whatsapp:+263771234567
    - Body: message text
    - ProfileName: User's name
    - MessageSid: SMxxx
    - NumMedia / MediaUrl0 / MediaContentType0: first attachment
    - Latitude / Longitude: shared location
    """
    identity = ensure_whatsapp_prefix(from_number)

    try:
        media_count = int(num_media or 0)
    except ValueError:
        media_count = 0

    location = None
    if latitude and longitude:
        try:
            location = GeoPoint(latitude=float(latitude), longitude=float(longitude))
        except ValueError:
            location = None

    has_media = media_count > 0 and bool(media_url)

    return InboundEvent(
        identity=identity,
        text=(body or "").strip(),
        profile_name=profile_name,
        message_id=message_sid,
        has_media=has_media,
        media_url=media_url if has_media else None,
        media_type=(media_type or "application/octet-stream") if has_media else None,
        location=location,
    )
