"""
app/schemas/message.py

Purpose: Outbound message and delivery result shapes
"""

from pydantic import BaseModel
from typing import Optional


class OutboundMessage(BaseModel):
    """
    A single reply. When media_url is set, text is sent as its caption.
    """
    text: str
    media_url: Optional[str] = None


class DeliveryResult(BaseModel):
    message_sid: Optional[str] = None
    status: Optional[str] = None
    attempts: int = 1
