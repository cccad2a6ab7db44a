"""
app/flow/handlers/onboarding.py

Handles: STEP 0 - First contact, name and phone number

- Welcomes unseen identities and asks for a name
- Stores the typed phone number (the channel identity stays the key)
- Greetings in the main menu resend the right menu
"""

from app.core.config import settings
from app.core.logging import get_logger, LogContext
from app.flow.context import FlowContext
from app.flow.handlers.menu import show_home
from app.flow.states import ConversationState
from app.flow.types import HandlerResult, reply
from utils.constants import (
    ASK_NAME_AGAIN_MESSAGE,
    ASK_PHONE_MESSAGE,
    GREETING_ASK_NAME_MESSAGE,
    INVALID_PHONE_MESSAGE,
    ONBOARDING_DONE_PREFIX,
    WELCOME_MESSAGE,
)
from utils.validation_utils import sanitize_input, sanitize_phone

logger = get_logger(__name__)


async def handle_new_contact(ctx: FlowContext) -> HandlerResult:
    """
    First message from an unseen identity: whatever it says, we welcome.
    """
    with LogContext(user_id=ctx.identity, state=ConversationState.NEW_CONTACT.value):
        logger.info("👋 New contact")
    return reply(ConversationState.AWAITING_NAME, WELCOME_MESSAGE.format(bot_name=settings.BOT_NAME))


async def handle_greeting(ctx: FlowContext) -> HandlerResult:
    if not ctx.profile.name:
        return reply(ConversationState.AWAITING_NAME, GREETING_ASK_NAME_MESSAGE.format(bot_name=settings.BOT_NAME))
    return show_home(ctx)


async def handle_name(ctx: FlowContext) -> HandlerResult:
    name = sanitize_input(ctx.text, max_length=100)
    if not name:
        return reply(ConversationState.AWAITING_NAME, ASK_NAME_AGAIN_MESSAGE)

    await ctx.update_profile(name=name)
    logger.info(f"✅ Name saved for {ctx.identity}")
    return reply(ConversationState.AWAITING_PHONE, ASK_PHONE_MESSAGE.format(name=name))


async def handle_phone(ctx: FlowContext) -> HandlerResult:
    """
    Saves the typed phone number, then shows the menu.

    Returns:
        Premium menu for entitled users, main menu otherwise
    """
    phone = sanitize_phone(ctx.text)
    if phone is None:
        return reply(ConversationState.AWAITING_PHONE, INVALID_PHONE_MESSAGE)

    await ctx.update_profile(phone_numeric=phone)
    return show_home(ctx, prefix=ONBOARDING_DONE_PREFIX)
