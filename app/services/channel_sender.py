"""
app/services/channel_sender.py

Purpose: Retry-wrapped outbound messaging

- Every outbound WhatsApp message goes through ChannelSender.send()
- Retries only TransientDeliveryError, with exponential backoff (1s, 2s, 4s... capped)
- DeliveryError and anything else propagate on the first failure
"""

import logging
from typing import Optional, Protocol

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings
from app.core.exceptions import TransientDeliveryError
from app.core.logging import get_logger
from app.schemas.message import DeliveryResult, OutboundMessage

logger = get_logger(__name__)


class MessageTransport(Protocol):
    async def send_message(self, to: str, body: str, media_url: Optional[str] = None) -> DeliveryResult:
        ...


class ChannelSender:
    """
    Sends messages through a transport with bounded retries.
    """

    def __init__(
        self,
        transport: MessageTransport,
        max_attempts: Optional[int] = None,
        backoff_max: Optional[float] = None,
        wait=None,
    ):
        self.transport = transport
        self.max_attempts = max_attempts or settings.SEND_MAX_ATTEMPTS
        self.wait = wait or wait_exponential(
            multiplier=1,
            min=1,
            max=backoff_max or settings.SEND_BACKOFF_MAX_SECONDS,
        )

    async def send(self, target: str, message: OutboundMessage) -> DeliveryResult:
        """
        Delivers one message.

        Args:
            target: Channel address of the recipient
            message: Text, or media URL with text as caption

        Returns:
            DeliveryResult with the number of attempts used

        Raises:
            TransientDeliveryError: when every attempt failed transiently
            DeliveryError: when the channel rejected the message
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TransientDeliveryError),
            stop=stop_after_attempt(self.max_attempts),
            wait=self.wait,
            before_sleep=before_sleep_log(logger, logging.INFO),
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                result = await self.transport.send_message(target, message.text, message.media_url)

        result.attempts = attempt.retry_state.attempt_number
        if result.attempts > 1:
            logger.info(f"📤 Delivered to {target} after {result.attempts} attempts")
        return result

    async def send_text(self, target: str, text: str, media_url: Optional[str] = None) -> DeliveryResult:
        return await self.send(target, OutboundMessage(text=text, media_url=media_url))
