"""
app/flow/handlers/product_qa.py

Handles: PRODUCT Q&A

- Catalog search first: one hit shows the product, several show a list
- No hit: the answer collaborator, grounded on the catalog
- Collaborator down: the whole catalog list
"""

from app.core.exceptions import CollaboratorError
from app.core.logging import get_logger
from app.flow.context import FlowContext
from app.flow.states import ConversationState
from app.flow.types import HandlerResult, reply
from app.services.catalog_service import format_catalog_context, format_product, format_product_list
from utils.constants import ASK_ANOTHER, PRODUCT_QA_PROMPT_MESSAGE, PRODUCT_QUESTION_HINT

logger = get_logger(__name__)


async def start_product_qa(ctx: FlowContext, with_samples: bool = False) -> HandlerResult:
    text = PRODUCT_QA_PROMPT_MESSAGE
    if with_samples:
        products = await ctx.services.catalog.products()
        if products:
            text += "\n" + format_product_list(products[:3])
    return reply(ConversationState.PRODUCT_QA, f"{text}\n{PRODUCT_QUESTION_HINT}")


async def show_products(ctx: FlowContext) -> HandlerResult:
    """Global "show products" intent."""
    products = await ctx.services.catalog.products()
    return reply(ConversationState.PRODUCT_QA, f"{format_product_list(products)}\n{PRODUCT_QUESTION_HINT}")


async def handle_product_question(ctx: FlowContext) -> HandlerResult:
    question = ctx.text
    catalog = ctx.services.catalog

    matches = await catalog.search_products(question)
    if len(matches) == 1:
        return reply(ConversationState.PRODUCT_QA, format_product(matches[0]), ASK_ANOTHER)
    if matches:
        return reply(ConversationState.PRODUCT_QA, format_product_list(matches), ASK_ANOTHER)

    products = await catalog.products()
    try:
        answer = await ctx.services.ai.answer(
            question,
            context=f"Available products:\n{format_catalog_context(products)}",
        )
    except CollaboratorError as e:
        logger.warning(f"⚠️ Product answer unavailable, sending catalog: {e.message}")
        return reply(ConversationState.PRODUCT_QA, f"{format_product_list(products)}\n{ASK_ANOTHER}")

    return reply(ConversationState.PRODUCT_QA, answer, ASK_ANOTHER)
