"""
app/flow/handlers/location.py

Handles: FIND SHOP

- A shared location in any state lists the three nearest retailers
- Text while waiting for a location repeats the instructions
"""

from app.core.logging import get_logger, LogContext
from app.flow.context import FlowContext
from app.flow.states import ConversationState
from app.flow.types import HandlerResult, reply
from app.services.shop_locator import format_shops
from utils.constants import LOCATION_FOLLOWUP_MESSAGE, LOCATION_PROMPT_MESSAGE, LOCATION_SEARCHING_MESSAGE

logger = get_logger(__name__)

NEAREST_SHOP_COUNT = 3


async def handle_location(ctx: FlowContext) -> HandlerResult:
    location = ctx.event.location
    with LogContext(user_id=ctx.identity):
        logger.info(f"📍 Location received: {location.latitude}, {location.longitude}")
        await ctx.notify(LOCATION_SEARCHING_MESSAGE)

        shops = await ctx.services.shops.nearest(location.latitude, location.longitude, limit=NEAREST_SHOP_COUNT)
        await ctx.update_profile(location=location.model_dump())

    return reply(ConversationState.MAIN_MENU, format_shops(shops), LOCATION_FOLLOWUP_MESSAGE)


async def handle_awaiting_location(ctx: FlowContext) -> HandlerResult:
    return reply(ConversationState.AWAITING_LOCATION, LOCATION_PROMPT_MESSAGE)
