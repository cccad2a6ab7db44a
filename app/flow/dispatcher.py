"""
app/flow/dispatcher.py

Purpose: Central message dispatcher

- Receives normalized events from the webhook
- Serializes events per identity (one lock per user)
- Applies global rules, then routes to the handler for the session state
- Applies premium gating before and after the handler
- Commits the next state and sends replies through the retrying sender
"""

from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from app.core.exceptions import AgriBotError, CollaboratorError
from app.core.logging import get_logger, LogContext
from app.flow.context import FlowContext, Services, build_services
from app.flow.handlers.calculator import (
    handle_calculator_plant,
    handle_calculator_soil_check,
    handle_calculator_yield,
)
from app.flow.handlers.expert import handle_expert_email, handle_expert_issue, handle_expert_name
from app.flow.handlers.general import handle_general_query
from app.flow.handlers.guides import handle_pdf_selection
from app.flow.handlers.images import handle_image_purpose, handle_media
from app.flow.handlers.location import handle_awaiting_location, handle_location
from app.flow.handlers.menu import (
    handle_main_menu,
    handle_premium_access_info,
    handle_premium_menu,
    premium_prompt,
    show_main_menu,
)
from app.flow.handlers.onboarding import handle_greeting, handle_name, handle_new_contact, handle_phone
from app.flow.handlers.product_qa import handle_product_question, show_products
from app.flow.states import ConversationState, requires_premium
from app.flow.types import DispatchOutcome, HandlerResult
from app.schemas.message import OutboundMessage
from app.schemas.webhook import InboundEvent
from utils.constants import COLLABORATOR_APOLOGY_MESSAGE, GENERIC_ERROR_MESSAGE
from utils.time_utils import utcnow
from utils.validation_utils import is_greeting, is_menu_command, is_show_products_request
from utils.whatsapp_utils import split_message

logger = get_logger(__name__)

Handler = Callable[[FlowContext], Awaitable[HandlerResult]]

STATE_HANDLERS: Dict[ConversationState, Handler] = {
    ConversationState.NEW_CONTACT: handle_new_contact,
    ConversationState.AWAITING_NAME: handle_name,
    ConversationState.AWAITING_PHONE: handle_phone,
    ConversationState.MAIN_MENU: handle_main_menu,
    ConversationState.PREMIUM_MENU: handle_premium_menu,
    ConversationState.PREMIUM_ACCESS_INFO: handle_premium_access_info,
    ConversationState.AWAITING_IMAGE_PURPOSE: handle_image_purpose,
    ConversationState.AWAITING_LOCATION: handle_awaiting_location,
    ConversationState.PRODUCT_QA: handle_product_question,
    ConversationState.AWAITING_PDF_SELECTION: handle_pdf_selection,
    ConversationState.AWAITING_EXPERT_NAME: handle_expert_name,
    ConversationState.AWAITING_EXPERT_EMAIL: handle_expert_email,
    ConversationState.AWAITING_EXPERT_ISSUE: handle_expert_issue,
    ConversationState.CALCULATOR_PLANT: handle_calculator_plant,
    ConversationState.CALCULATOR_YIELD: handle_calculator_yield,
    ConversationState.CALCULATOR_SOIL_CHECK: handle_calculator_soil_check,
}


class Dispatcher:
    def __init__(self, services: Services):
        self.services = services

    async def dispatch_event(self, event: InboundEvent, now: Optional[datetime] = None) -> DispatchOutcome:
        """
        Processes one inbound event end to end.

        Events from the same identity run strictly one after another;
        different identities run concurrently.

        Args:
            event: Normalized inbound message
            now: Reference time (defaults to the current UTC time)

        Returns:
            DispatchOutcome with the replies and delivery counts
        """
        async with self.services.sessions.lock(event.identity):
            return await self._dispatch_locked(event, now or utcnow())

    async def _dispatch_locked(self, event: InboundEvent, now: datetime) -> DispatchOutcome:
        services = self.services
        identity = event.identity
        session = services.sessions.get(identity)

        with LogContext(user_id=identity, state=session.state.value if session else "unknown"):
            try:
                if session is None:
                    existing = await services.users.get(identity)
                    default_state = ConversationState.NEW_CONTACT if existing is None else ConversationState.MAIN_MENU
                    session = services.sessions.get_or_create(identity, default_state)
                profile = await services.users.get_or_create(identity)
                ctx = FlowContext(event=event, session=session, profile=profile, services=services, now=now)

                logger.info(f"📨 Event in state {session.state.value}: {event.text[:50]!r}")
                result = await self._route(ctx)
                result = self._gate(ctx, result)
            except CollaboratorError as e:
                logger.error(f"❌ Collaborator failure: {e.message}")
                result = HandlerResult(
                    next_state=ConversationState.MAIN_MENU,
                    messages=[OutboundMessage(text=COLLABORATOR_APOLOGY_MESSAGE)],
                )
            except Exception as e:
                logger.error(f"❌ Dispatcher error: {e}", exc_info=True)
                messages = [OutboundMessage(text=GENERIC_ERROR_MESSAGE)]
                delivered, failed = await self._deliver(identity, messages)
                return DispatchOutcome(
                    identity=identity,
                    state=session.state if session else ConversationState.NEW_CONTACT,
                    replies=messages,
                    delivered=delivered,
                    failed=failed,
                    error=str(e),
                )

            if session is None:
                # profile lookup failed before a session existed
                session = services.sessions.get_or_create(identity, ConversationState.MAIN_MENU)
            if result.next_state != session.state:
                logger.info(f"🔄 {session.state.value} → {result.next_state.value}")
            session.state = result.next_state
            session.flow = result.flow
            services.sessions.save(session, now)

            try:
                await services.users.touch(identity)
            except Exception as e:
                # replies for a completed turn still go out
                logger.error(f"❌ Could not record last interaction: {e}", exc_info=True)

        delivered, failed = await self._deliver(identity, result.messages)
        return DispatchOutcome(
            identity=identity,
            state=session.state,
            replies=result.messages,
            delivered=delivered,
            failed=failed,
        )

    async def _route(self, ctx: FlowContext) -> HandlerResult:
        """
        Global rules in order, then the state handler.
        """
        event = ctx.event
        state = ctx.session.state

        if is_menu_command(event.text):
            return show_main_menu(ctx)
        if state == ConversationState.NEW_CONTACT:
            return await handle_new_contact(ctx)
        if state == ConversationState.MAIN_MENU and is_greeting(event.text):
            return await handle_greeting(ctx)
        if event.has_media:
            return await handle_media(ctx)
        if event.location is not None:
            return await handle_location(ctx)
        if is_show_products_request(event.text):
            return await show_products(ctx)

        if requires_premium(state) and not ctx.is_premium:
            logger.info(f"🔒 Premium expired while in {state.value}")
            return premium_prompt()

        handler = STATE_HANDLERS.get(state, handle_general_query)
        return await handler(ctx)

    @staticmethod
    def _gate(ctx: FlowContext, result: HandlerResult) -> HandlerResult:
        if requires_premium(result.next_state) and not ctx.is_premium:
            logger.info(f"🔒 {result.next_state.value} needs premium, sending upsell")
            return premium_prompt()
        return result

    async def _deliver(self, identity: str, messages: List[OutboundMessage]) -> Tuple[int, int]:
        """
        Sends replies in order. A failed message is logged and skipped.

        Returns:
            (delivered, failed) counts
        """
        delivered = failed = 0
        for message in messages:
            chunks = split_message(message.text)
            for index, chunk in enumerate(chunks):
                media_url = message.media_url if index == 0 else None
                try:
                    await self.services.sender.send(identity, OutboundMessage(text=chunk, media_url=media_url))
                    delivered += 1
                except AgriBotError as e:
                    failed += 1
                    logger.error(f"❌ Failed to deliver reply: {e.message}")
        return delivered, failed


_dispatcher: Optional[Dispatcher] = None


def get_dispatcher() -> Dispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = Dispatcher(build_services())
    return _dispatcher


async def dispatch_message(event: InboundEvent) -> DispatchOutcome:
    """
    Entry point used by the webhook.
    """
    return await get_dispatcher().dispatch_event(event)
