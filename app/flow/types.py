"""
app/flow/types.py

Purpose: Values passed between the dispatcher and handlers

- Flow: data carried across steps of a multi-step flow (one kind at a time)
- HandlerResult: next state + replies + flow returned by every handler
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union

from app.flow.states import ConversationState
from app.schemas.message import OutboundMessage


@dataclass
class CalculatorFlow:
    plant_type: str
    target_yield: Optional[float] = None


@dataclass
class PendingImageFlow:
    media_url: str
    media_type: str
    received_at: datetime
    durable_url: Optional[str] = None


Flow = Union[CalculatorFlow, PendingImageFlow, None]


@dataclass
class HandlerResult:
    next_state: ConversationState
    messages: List[OutboundMessage] = field(default_factory=list)
    flow: Flow = None


def reply(next_state: ConversationState, *texts: str, flow: Flow = None, media_url: Optional[str] = None) -> HandlerResult:
    """
    Builds a HandlerResult from plain texts; media_url attaches to the last one.
    """
    messages = [OutboundMessage(text=text) for text in texts if text]
    if media_url and messages:
        messages[-1].media_url = media_url
    return HandlerResult(next_state=next_state, messages=messages, flow=flow)


@dataclass
class DispatchOutcome:
    """
    What happened to one inbound event.
    """
    identity: str
    state: ConversationState
    replies: List[OutboundMessage] = field(default_factory=list)
    delivered: int = 0
    failed: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
