"""
app/flow/handlers/menu.py

Handles: MAIN MENU, PREMIUM MENU and PREMIUM ACCESS INFO

- Renders the menus
- Maps numbered / keyword replies to feature entry points
- Premium-only entries return their premium state; the dispatcher swaps in
  the upsell prompt when the user is not entitled
"""

from app.core.config import settings
from app.flow.context import FlowContext
from app.flow.handlers.expert import start_expert
from app.flow.handlers.general import handle_general_query
from app.flow.handlers.guides import start_guides
from app.flow.handlers.product_qa import start_product_qa
from app.flow.states import ConversationState
from app.flow.types import HandlerResult, reply
from utils.constants import (
    ALREADY_PREMIUM_MESSAGE,
    CALCULATOR_PROMPT_MESSAGE,
    DIAGNOSIS_PROMPT_MESSAGE,
    LOCATION_PROMPT_MESSAGE,
    MAIN_MENU_MESSAGE,
    PREMIUM_ACCESS_HELP_MESSAGE,
    PREMIUM_MENU_MESSAGE,
    PREMIUM_PROMPT_MESSAGE,
)
from utils.time_utils import format_date
from utils.validation_utils import matches_option
from utils.whatsapp_utils import greeting_line


def main_menu_text(name) -> str:
    return MAIN_MENU_MESSAGE.format(greeting=greeting_line(name), bot_name=settings.BOT_NAME)


def premium_menu_text(name) -> str:
    return PREMIUM_MENU_MESSAGE.format(greeting=greeting_line(name))


def premium_prompt_text() -> str:
    return PREMIUM_PROMPT_MESSAGE.format(days=settings.PREMIUM_DURATION_DAYS)


def show_main_menu(ctx: FlowContext) -> HandlerResult:
    return reply(ConversationState.MAIN_MENU, main_menu_text(ctx.profile.name))


def show_home(ctx: FlowContext, prefix: str = "") -> HandlerResult:
    """
    Premium users land on the premium menu, everyone else on the main menu.
    """
    if ctx.is_premium:
        return reply(ConversationState.PREMIUM_MENU, prefix + premium_menu_text(ctx.profile.name))
    return reply(ConversationState.MAIN_MENU, prefix + main_menu_text(ctx.profile.name))


def premium_prompt() -> HandlerResult:
    return reply(ConversationState.AWAITING_RECEIPT, premium_prompt_text())


def start_diagnosis(ctx: FlowContext) -> HandlerResult:
    return reply(ConversationState.AWAITING_DIAGNOSIS_IMAGE, DIAGNOSIS_PROMPT_MESSAGE)


def start_calculator(ctx: FlowContext) -> HandlerResult:
    return reply(ConversationState.CALCULATOR_PLANT, CALCULATOR_PROMPT_MESSAGE)


def start_location(ctx: FlowContext) -> HandlerResult:
    return reply(ConversationState.AWAITING_LOCATION, LOCATION_PROMPT_MESSAGE)


def premium_status(ctx: FlowContext) -> HandlerResult:
    """
    Option 7: status for entitled users, upsell for everyone else.
    """
    if ctx.is_premium:
        text = ALREADY_PREMIUM_MESSAGE.format(expiry=format_date(ctx.profile.premium_expiry_date))
        return reply(ConversationState.PREMIUM_ACCESS_INFO, text)
    return premium_prompt()


async def handle_main_menu(ctx: FlowContext) -> HandlerResult:
    """
    Handles a reply to the main menu.

    Args:
        ctx: Flow context for this event

    Returns:
        HandlerResult for the selected feature, or the free-text answer
    """
    text = ctx.text

    if matches_option(text, "1", ("diagnosis", "crop")):
        return start_diagnosis(ctx)
    if matches_option(text, "2", ("fertilizer", "calculator", "quantity")):
        return start_calculator(ctx)
    if matches_option(text, "3", ("shop", "dealer", "location")):
        return start_location(ctx)
    if matches_option(text, "4", ("expert", "agronomist")):
        return start_expert(ctx)
    if matches_option(text, "5", ("guide", "pdf")):
        return await start_guides(ctx)
    if matches_option(text, "6", ("product",)):
        return await start_product_qa(ctx, with_samples=True)
    if matches_option(text, "7", ("premium", "verify", "receipt")):
        return premium_status(ctx)

    return await handle_general_query(ctx)


async def handle_premium_menu(ctx: FlowContext) -> HandlerResult:
    text = ctx.text

    if matches_option(text, "1", ("diagnosis", "crop")):
        return start_diagnosis(ctx)
    if matches_option(text, "2", ("expert", "agronomist")):
        return start_expert(ctx)
    if matches_option(text, "3", ("pdf", "guide")):
        return await start_guides(ctx)
    if matches_option(text, "4", ("fertilizer", "calculator", "quantity")):
        return start_calculator(ctx)
    if matches_option(text, "5", ("shop", "dealer", "location")):
        return start_location(ctx)
    if matches_option(text, "6", ("product",)):
        return await start_product_qa(ctx)
    if matches_option(text, "7", ("main",)):
        return show_main_menu(ctx)

    return await handle_general_query(ctx)


async def handle_premium_access_info(ctx: FlowContext) -> HandlerResult:
    """
    Handles 1-4 after "You already have premium access!".
    """
    text = ctx.text

    if matches_option(text, "1", ("diagnosis", "crop", "soil")):
        return start_diagnosis(ctx)
    if matches_option(text, "2", ("calculator", "fertilizer")):
        return start_calculator(ctx)
    if matches_option(text, "3", ("pdf", "guide")):
        return await start_guides(ctx)
    if matches_option(text, "4", ("support", "expert")):
        return start_expert(ctx)

    return reply(ConversationState.PREMIUM_ACCESS_INFO, PREMIUM_ACCESS_HELP_MESSAGE)
