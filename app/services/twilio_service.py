"""
app/services/twilio_service.py

Purpose: Twilio WhatsApp transport

- Sends WhatsApp messages (text, or media with caption) via the Twilio REST API
- Downloads inbound media (Twilio media URLs need basic auth)
- Maps failures to typed errors: transient ones are retried by ChannelSender
"""

import httpx
from typing import Optional
from app.core.config import settings
from app.core.exceptions import DeliveryError, TransientDeliveryError, CollaboratorError, CollaboratorTimeout
from app.schemas.message import DeliveryResult
from app.core.logging import get_logger
from utils.whatsapp_utils import ensure_whatsapp_prefix

logger = get_logger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class TwilioService:
    """Service for sending WhatsApp messages via Twilio"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.account_sid = settings.TWILIO_ACCOUNT_SID
        self.auth_token = settings.TWILIO_AUTH_TOKEN
        self.whatsapp_number = settings.TWILIO_WHATSAPP_NUMBER  # whatsapp:+14155238886
        self.base_url = f"https://api.twilio.com/2010-04-01/Accounts/{self.account_sid}"
        self.timeout = settings.TWILIO_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=timeout, follow_redirects=True)

    async def send_message(
        self,
        to: str,
        body: str,
        media_url: Optional[str] = None
    ) -> DeliveryResult:
        """
        Sends a single WhatsApp message via Twilio

        Args:
            to: Recipient channel address (whatsapp:+263...)
            body: Message text, used as caption when media_url is set
            media_url: Optional public media URL

        Returns:
            DeliveryResult with the Twilio message SID

        Raises:
            TransientDeliveryError: timeout, transport error, 429 or 5xx
            DeliveryError: any other rejection
        """
        to = ensure_whatsapp_prefix(to)

        data = {
            "From": self.whatsapp_number,
            "To": to,
            "Body": body
        }
        if media_url:
            data["MediaUrl"] = media_url

        try:
            async with self._client(self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/Messages.json",
                    data=data,
                    auth=(self.account_sid or "", self.auth_token or ""),
                )
        except httpx.TimeoutException as e:
            logger.warning(f"⏱️ Twilio API timeout sending to {to}")
            raise TransientDeliveryError("Twilio API timeout") from e
        except httpx.RequestError as e:
            logger.warning(f"⚠️ Twilio transport error: {e}")
            raise TransientDeliveryError(f"Twilio transport error: {e}") from e

        if response.status_code in (200, 201):
            result = response.json()
            logger.info(f"✅ Message sent: SID={result.get('sid')}")
            return DeliveryResult(message_sid=result.get("sid"), status=result.get("status"))

        details = {"status_code": response.status_code, "body": response.text[:500]}
        if response.status_code in RETRYABLE_STATUS:
            logger.warning(f"⚠️ Twilio API returned {response.status_code}, will retry")
            raise TransientDeliveryError(f"Twilio API error: {response.status_code}", details=details)

        logger.error(f"❌ Twilio API error: {response.status_code} - {response.text[:200]}")
        raise DeliveryError(f"Twilio API error: {response.status_code}", details=details)

    async def download_media(self, media_url: str) -> bytes:
        """
        Fetches an inbound attachment.

        Raises:
            CollaboratorTimeout / CollaboratorError on failure
        """
        try:
            async with self._client(self.timeout * 3) as client:
                response = await client.get(
                    media_url,
                    auth=(self.account_sid or "", self.auth_token or ""),
                )
                response.raise_for_status()
                return response.content
        except httpx.TimeoutException as e:
            raise CollaboratorTimeout("Media download timed out") from e
        except httpx.HTTPError as e:
            raise CollaboratorError(f"Media download failed: {e}") from e

    def is_configured(self) -> bool:
        """Check if Twilio is properly configured"""
        return bool(self.account_sid and self.auth_token and self.whatsapp_number)


_twilio_service: Optional[TwilioService] = None


def get_twilio_service() -> TwilioService:
    global _twilio_service
    if _twilio_service is None:
        _twilio_service = TwilioService()
    return _twilio_service
