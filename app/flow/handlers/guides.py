"""
app/flow/handlers/guides.py

Handles: EXCLUSIVE FARMING GUIDES (premium)

- Lists the `pdfs` registry
- Sends the selected guide's details with the document attached
"""

from app.core.logging import get_logger
from app.flow.context import FlowContext
from app.flow.states import ConversationState
from app.flow.types import HandlerResult, reply
from app.services.catalog_service import format_guide_list
from utils.constants import GUIDE_DETAIL_MESSAGE, GUIDES_MESSAGE, INVALID_GUIDE_MESSAGE, NO_GUIDES_MESSAGE
from utils.validation_utils import parse_selection

logger = get_logger(__name__)


async def start_guides(ctx: FlowContext) -> HandlerResult:
    guides = await ctx.services.catalog.guides()
    if not guides:
        return reply(ConversationState.PREMIUM_MENU, NO_GUIDES_MESSAGE)

    text = GUIDES_MESSAGE.format(guides=format_guide_list(guides), count=len(guides))
    return reply(ConversationState.AWAITING_PDF_SELECTION, text)


async def handle_pdf_selection(ctx: FlowContext) -> HandlerResult:
    guides = await ctx.services.catalog.guides()
    index = parse_selection(ctx.text, len(guides))
    if index is None:
        return reply(ConversationState.AWAITING_PDF_SELECTION, INVALID_GUIDE_MESSAGE.format(count=len(guides)))

    guide = guides[index]
    logger.info(f"📚 Sending guide: {guide.get('title')}")
    text = GUIDE_DETAIL_MESSAGE.format(
        title=guide.get("title", "Guide"),
        description=guide.get("description", ""),
        pages=guide.get("pages", "?"),
        size=guide.get("size", ""),
        category=guide.get("category", ""),
        url=guide.get("url", ""),
    )
    return reply(ConversationState.PREMIUM_MENU, text, media_url=guide.get("url"))
