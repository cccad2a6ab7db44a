"""
app/flow/handlers/general.py

Handles: free text that no menu or state understood

- Asks the answer collaborator with the user's name and premium status
- Falls back to a static hint when the collaborator is unavailable
"""

from app.core.exceptions import CollaboratorError
from app.core.logging import get_logger
from app.flow.context import FlowContext
from app.flow.states import ConversationState
from app.flow.types import HandlerResult, reply
from utils.constants import ANYTHING_ELSE, FALLBACK_MESSAGE

logger = get_logger(__name__)


async def handle_general_query(ctx: FlowContext) -> HandlerResult:
    state = ctx.session.state
    if not ctx.text:
        return reply(state, FALLBACK_MESSAGE)

    context = (
        f"User is {ctx.profile.name or 'a farmer'}. "
        f"Premium status: {'Active' if ctx.is_premium else 'Inactive'}"
    )
    try:
        answer = await ctx.services.ai.answer(ctx.text, context=context)
    except CollaboratorError as e:
        logger.warning(f"⚠️ General query fell back: {e.message}")
        return reply(state, FALLBACK_MESSAGE)

    return reply(state, f"{answer}\n\n{ANYTHING_ELSE}")
