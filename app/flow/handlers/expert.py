"""
app/flow/handlers/expert.py

Handles: EXPERT HELP (premium)

- Collects name and email when the profile lacks them
- Records the question in `agronomist_requests`
- Forwards it to the agronomist through the retrying sender
"""

import uuid

from app.core.config import settings
from app.core.exceptions import AgriBotError
from app.core.logging import get_logger, LogContext
from app.flow.context import FlowContext
from app.flow.states import ConversationState
from app.flow.types import HandlerResult, reply
from utils.constants import (
    EXPERT_AFTER_EMAIL_MESSAGE,
    EXPERT_ASK_EMAIL_MESSAGE,
    EXPERT_ASK_ISSUE_MESSAGE,
    EXPERT_ASK_NAME_MESSAGE,
    EXPERT_FORWARD_MESSAGE,
    EXPERT_RECORDED_MESSAGE,
    EXPERT_SENT_MESSAGE,
    INVALID_EMAIL_MESSAGE,
)
from utils.validation_utils import is_valid_email, sanitize_input

logger = get_logger(__name__)

COLLECTION = "agronomist_requests"


def start_expert(ctx: FlowContext) -> HandlerResult:
    """
    Asks for whatever is missing before the issue itself.
    """
    if not ctx.profile.name:
        return reply(ConversationState.AWAITING_EXPERT_NAME, EXPERT_ASK_NAME_MESSAGE)
    if not ctx.profile.email:
        return reply(ConversationState.AWAITING_EXPERT_EMAIL, EXPERT_ASK_EMAIL_MESSAGE)
    return reply(ConversationState.AWAITING_EXPERT_ISSUE, EXPERT_ASK_ISSUE_MESSAGE)


async def handle_expert_name(ctx: FlowContext) -> HandlerResult:
    name = sanitize_input(ctx.text, max_length=100)
    if not name:
        return reply(ConversationState.AWAITING_EXPERT_NAME, EXPERT_ASK_NAME_MESSAGE)

    await ctx.update_profile(name=name)
    return start_expert(ctx)


async def handle_expert_email(ctx: FlowContext) -> HandlerResult:
    email = ctx.text.strip()
    if not is_valid_email(email):
        return reply(ConversationState.AWAITING_EXPERT_EMAIL, INVALID_EMAIL_MESSAGE)

    await ctx.update_profile(email=email)
    return reply(ConversationState.AWAITING_EXPERT_ISSUE, EXPERT_AFTER_EMAIL_MESSAGE)


async def handle_expert_issue(ctx: FlowContext) -> HandlerResult:
    """
    Records and forwards the farmer's question.

    A failed forward still confirms the request as recorded.
    """
    issue = sanitize_input(ctx.text, max_length=1500)
    if not issue:
        return reply(ConversationState.AWAITING_EXPERT_ISSUE, EXPERT_ASK_ISSUE_MESSAGE)

    profile = ctx.profile
    with LogContext(user_id=ctx.identity, state=ConversationState.AWAITING_EXPERT_ISSUE.value):
        await ctx.services.store.insert(COLLECTION, {
            "id": uuid.uuid4().hex,
            "phone": ctx.identity,
            "name": profile.name or "Unknown",
            "email": profile.email,
            "question": issue,
            "created_at": ctx.now,
            "status": "pending",
        })
        logger.info("👨‍🌾 Expert request recorded")

        forwarded = False
        agronomist = settings.AGRONOMIST_IDENTITY
        if agronomist:
            message = EXPERT_FORWARD_MESSAGE.format(
                name=profile.name or "Not provided",
                phone=profile.phone_numeric or ctx.identity,
                email=profile.email or "Not provided",
                issue=issue,
            )
            try:
                await ctx.services.sender.send_text(agronomist, message)
                forwarded = True
                logger.info("✅ Expert request forwarded")
            except AgriBotError as e:
                logger.warning(f"⚠️ Expert request not forwarded: {e.message}")
        else:
            logger.warning("⚠️ AGRONOMIST_IDENTITY not set, request only recorded")

    if forwarded:
        return reply(ConversationState.MAIN_MENU, EXPERT_SENT_MESSAGE.format(issue=issue))
    return reply(
        ConversationState.MAIN_MENU,
        EXPERT_RECORDED_MESSAGE.format(
            phone=profile.phone_numeric or ctx.identity,
            email=profile.email or "Not provided",
        ),
    )
