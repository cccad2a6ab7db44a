"""
app/flow/handlers/calculator.py

Handles: FERTILIZER CALCULATOR (premium)

Steps:
1. Plant type
2. Target yield (tonnes) -> recommendation tier
3. Soil analysis check, only for yields above HIGH_YIELD_TONNES

Inputs are kept on the session flow and persisted to calculator_data.
"""

from typing import Optional

from app.core.logging import get_logger
from app.flow.context import FlowContext
from app.flow.states import ConversationState
from app.flow.types import CalculatorFlow, HandlerResult, reply
from app.models.user import CalculatorRecord
from utils.constants import (
    CALCULATOR_ASK_YIELD_MESSAGE,
    CALCULATOR_INVALID_PLANT_MESSAGE,
    CALCULATOR_INVALID_YIELD_MESSAGE,
    CALCULATOR_LOW_RESULT,
    CALCULATOR_MEDIUM_RESULT,
    CALCULATOR_PROMPT_MESSAGE,
    CALCULATOR_SOIL_INVALID,
    CALCULATOR_SOIL_NO,
    CALCULATOR_SOIL_QUESTION,
    CALCULATOR_SOIL_YES,
)
from utils.validation_utils import normalize_text, parse_positive_number, sanitize_input

logger = get_logger(__name__)

LOW_YIELD_TONNES = 2
HIGH_YIELD_TONNES = 5


def format_tonnes(value: float) -> str:
    return f"{value:g}"


def _current_flow(ctx: FlowContext) -> Optional[CalculatorFlow]:
    """
    The session flow, or the last persisted inputs if the session was evicted.
    """
    flow = ctx.session.flow
    if isinstance(flow, CalculatorFlow):
        return flow
    saved = ctx.profile.calculator_data
    if saved and saved.plant_type:
        return CalculatorFlow(plant_type=saved.plant_type, target_yield=saved.target_yield)
    return None


async def _persist(ctx: FlowContext, flow: CalculatorFlow, soil_analysis_status: Optional[str] = None):
    record = CalculatorRecord(
        plant_type=flow.plant_type,
        target_yield=flow.target_yield,
        soil_analysis_status=soil_analysis_status,
        last_calculation=ctx.now,
    )
    await ctx.update_profile(calculator_data=record.model_dump())


async def handle_calculator_plant(ctx: FlowContext) -> HandlerResult:
    plant = sanitize_input(ctx.text, max_length=60)
    if not plant:
        return reply(ConversationState.CALCULATOR_PLANT, CALCULATOR_INVALID_PLANT_MESSAGE)

    flow = CalculatorFlow(plant_type=plant)
    await _persist(ctx, flow)
    logger.info(f"🧮 Calculator plant: {plant}")
    return reply(ConversationState.CALCULATOR_YIELD, CALCULATOR_ASK_YIELD_MESSAGE.format(plant=plant), flow=flow)


async def handle_calculator_yield(ctx: FlowContext) -> HandlerResult:
    """
    Categorizes the target yield.

    - <= 2 t: 150kg/ha
    - > 2 t and <= 5 t: 300kg/ha plus a soil analysis tip
    - > 5 t: asks whether a soil analysis was done
    """
    flow = _current_flow(ctx)
    if flow is None:
        return reply(ConversationState.CALCULATOR_PLANT, CALCULATOR_PROMPT_MESSAGE)

    target = parse_positive_number(ctx.text)
    if target is None:
        return reply(ConversationState.CALCULATOR_YIELD, CALCULATOR_INVALID_YIELD_MESSAGE, flow=flow)

    flow = CalculatorFlow(plant_type=flow.plant_type, target_yield=target)
    await _persist(ctx, flow)

    values = {"plant": flow.plant_type, "target": format_tonnes(target)}
    if target <= LOW_YIELD_TONNES:
        return reply(ConversationState.MAIN_MENU, CALCULATOR_LOW_RESULT.format(**values))
    if target <= HIGH_YIELD_TONNES:
        return reply(ConversationState.MAIN_MENU, CALCULATOR_MEDIUM_RESULT.format(**values))
    return reply(ConversationState.CALCULATOR_SOIL_CHECK, CALCULATOR_SOIL_QUESTION.format(**values), flow=flow)


async def handle_calculator_soil_check(ctx: FlowContext) -> HandlerResult:
    flow = _current_flow(ctx)
    if flow is None or flow.target_yield is None:
        return reply(ConversationState.CALCULATOR_PLANT, CALCULATOR_PROMPT_MESSAGE)

    answer = normalize_text(ctx.text)
    if answer in ("1", "yes"):
        await _persist(ctx, flow, soil_analysis_status="yes")
        return reply(ConversationState.MAIN_MENU, CALCULATOR_SOIL_YES)
    if answer in ("2", "no"):
        await _persist(ctx, flow, soil_analysis_status="no")
        return reply(ConversationState.MAIN_MENU, CALCULATOR_SOIL_NO.format(target=format_tonnes(flow.target_yield)))

    return reply(ConversationState.CALCULATOR_SOIL_CHECK, CALCULATOR_SOIL_INVALID, flow=flow)
