"""
app/flow/context.py

Purpose: Everything a handler needs for one inbound event

- Services: the collaborators, built once per process (tests build their own)
- FlowContext: event + session + freshly loaded profile + services
- notify(): interim messages sent before the handler finishes
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.core.exceptions import AgriBotError
from app.core.logging import get_logger
from app.db.store import RecordStore, get_record_store
from app.models.user import UserProfile
from app.schemas.webhook import InboundEvent
from app.services.ai_service import AIService, get_ai_service
from app.services.authority_service import AuthorityClient
from app.services.catalog_service import CatalogService
from app.services.channel_sender import ChannelSender
from app.services.document_pipeline import DocumentIntakePipeline
from app.services.entitlement_service import EntitlementManager, is_active
from app.services.media_service import TransientMediaStore
from app.services.qr_service import QRCodeDecoder
from app.services.receipt_ledger import ReceiptLedger
from app.services.session_service import Session, SessionStore
from app.services.shop_locator import ShopLocator
from app.services.twilio_service import get_twilio_service
from app.services.upload_service import UploadService
from app.services.user_service import UserService
from app.services.verification_service import ReceiptVerifier

logger = get_logger(__name__)


@dataclass
class Services:
    store: RecordStore
    sessions: SessionStore
    users: UserService
    entitlements: EntitlementManager
    catalog: CatalogService
    shops: ShopLocator
    ai: AIService
    media: TransientMediaStore
    verifier: ReceiptVerifier
    sender: ChannelSender


def build_services(
    store: Optional[RecordStore] = None,
    sender: Optional[ChannelSender] = None,
    ai: Optional[AIService] = None,
    media: Optional[TransientMediaStore] = None,
    pipeline: Optional[DocumentIntakePipeline] = None,
    sessions: Optional[SessionStore] = None,
) -> Services:
    """
    Wires the collaborators together.

    Anything not passed in is built from settings (Twilio, OpenAI, OpenCV,
    the configured record store).
    """
    store = store or get_record_store()
    twilio = get_twilio_service()
    sender = sender or ChannelSender(twilio)
    ai = ai or get_ai_service()
    media = media or TransientMediaStore(twilio, UploadService())

    users = UserService(store)
    entitlements = EntitlementManager(users)
    catalog = CatalogService(store)
    pipeline = pipeline or DocumentIntakePipeline(QRCodeDecoder(), AuthorityClient(), ai, catalog)
    verifier = ReceiptVerifier(pipeline, ReceiptLedger(store), entitlements, sender)

    return Services(
        store=store,
        sessions=sessions or SessionStore(),
        users=users,
        entitlements=entitlements,
        catalog=catalog,
        shops=ShopLocator(store),
        ai=ai,
        media=media,
        verifier=verifier,
        sender=sender,
    )


@dataclass
class FlowContext:
    event: InboundEvent
    session: Session
    profile: UserProfile
    services: Services
    now: datetime

    @property
    def identity(self) -> str:
        return self.event.identity

    @property
    def text(self) -> str:
        return self.event.text

    @property
    def is_premium(self) -> bool:
        return is_active(self.profile, now=self.now)

    async def refresh_profile(self) -> UserProfile:
        """Reloads the profile after a write (e.g. a premium grant)."""
        profile = await self.services.users.get(self.identity)
        if profile is not None:
            self.profile = profile
        return self.profile

    async def update_profile(self, **fields) -> UserProfile:
        self.profile = await self.services.users.update(self.identity, fields)
        return self.profile

    async def notify(self, text: str):
        """
        Sends a progress message right away; delivery failure is only logged.
        """
        try:
            await self.services.sender.send_text(self.identity, text)
        except AgriBotError as e:
            logger.warning(f"⚠️ Interim message not delivered: {e.message}")
