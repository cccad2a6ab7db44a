"""
app/flow/states.py

Purpose: Defines all conversation states

- Enum for each step in the conversation
- Single source of truth for which states are premium-only
- Metadata for each state (display name, premium gate)
"""

from enum import Enum
from typing import Dict
from dataclasses import dataclass


class ConversationState(str, Enum):
    """
    Every state a user conversation can be in.
    """

    # Onboarding
    NEW_CONTACT = "new-contact"
    AWAITING_NAME = "awaiting-name"
    AWAITING_PHONE = "awaiting-phone"

    # Menus
    MAIN_MENU = "main-menu"
    PREMIUM_MENU = "premium-menu"
    PREMIUM_ACCESS_INFO = "premium-access-info"

    # Images
    AWAITING_RECEIPT = "awaiting-receipt"
    AWAITING_DIAGNOSIS_IMAGE = "awaiting-diagnosis-image"
    AWAITING_IMAGE_PURPOSE = "awaiting-image-purpose"

    # Free features
    AWAITING_LOCATION = "awaiting-location"
    PRODUCT_QA = "product-qa"

    # Premium features
    AWAITING_PDF_SELECTION = "awaiting-pdf-selection"
    AWAITING_EXPERT_NAME = "awaiting-expert-name"
    AWAITING_EXPERT_EMAIL = "awaiting-expert-email"
    AWAITING_EXPERT_ISSUE = "awaiting-expert-issue"
    CALCULATOR_PLANT = "calculator-plant"
    CALCULATOR_YIELD = "calculator-yield"
    CALCULATOR_SOIL_CHECK = "calculator-soil-check"


@dataclass
class StateMetadata:
    """
    Metadata associated with each conversation state.
    """
    name: ConversationState
    display_name: str
    requires_premium: bool = False
    description: str = ""


def _meta(state: ConversationState, display_name: str, premium: bool = False, description: str = "") -> StateMetadata:
    return StateMetadata(name=state, display_name=display_name, requires_premium=premium, description=description)


STATE_METADATA: Dict[ConversationState, StateMetadata] = {
    meta.name: meta
    for meta in (
        _meta(ConversationState.NEW_CONTACT, "New contact", description="First message from an unseen identity"),
        _meta(ConversationState.AWAITING_NAME, "Enter name"),
        _meta(ConversationState.AWAITING_PHONE, "Enter phone number"),
        _meta(ConversationState.MAIN_MENU, "Main menu"),
        _meta(ConversationState.PREMIUM_MENU, "Premium menu", premium=True),
        _meta(ConversationState.PREMIUM_ACCESS_INFO, "Premium access", premium=True,
              description="Shown to users who already have premium"),
        _meta(ConversationState.AWAITING_RECEIPT, "Upload receipt"),
        _meta(ConversationState.AWAITING_DIAGNOSIS_IMAGE, "Crop diagnosis", premium=True),
        _meta(ConversationState.AWAITING_IMAGE_PURPOSE, "Choose image purpose",
              description="Premium user sent an image without context"),
        _meta(ConversationState.AWAITING_LOCATION, "Find shop"),
        _meta(ConversationState.PRODUCT_QA, "Product Q&A"),
        _meta(ConversationState.AWAITING_PDF_SELECTION, "Farming guides", premium=True),
        _meta(ConversationState.AWAITING_EXPERT_NAME, "Expert help: name", premium=True),
        _meta(ConversationState.AWAITING_EXPERT_EMAIL, "Expert help: email", premium=True),
        _meta(ConversationState.AWAITING_EXPERT_ISSUE, "Expert help: issue", premium=True),
        _meta(ConversationState.CALCULATOR_PLANT, "Calculator: crop", premium=True),
        _meta(ConversationState.CALCULATOR_YIELD, "Calculator: yield", premium=True),
        _meta(ConversationState.CALCULATOR_SOIL_CHECK, "Calculator: soil test", premium=True),
    )
}

PREMIUM_STATES = frozenset(state for state, meta in STATE_METADATA.items() if meta.requires_premium)


def requires_premium(state: ConversationState) -> bool:
    return state in PREMIUM_STATES


def get_state_metadata(state: ConversationState) -> StateMetadata:
    """
    Retrieves metadata for a given state.

    Args:
        state: Conversation state

    Returns:
        StateMetadata object
    """
    return STATE_METADATA[state]
