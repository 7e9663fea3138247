"""
AI offer strategy: scenario generation and what-if analysis.

Both are batch calls with no user watching a stream, so they go through the
shared 429 retry. Output is agent-only; nothing here reaches a buyer.
"""

import json
import re
from typing import Optional

from pydantic import ValidationError

from src.models.buyer import Buyer
from src.models.offer_strategy import (
    OfferScenario,
    ScenarioStatus,
    WhatIfAnalysis,
)
from src.models.property import Property
from src.models.session import SessionContext
from src.services.buyers import get_buyer
from src.services.llm import build_messages, complete, get_llm_model
from src.services.properties import get_priced_property
from src.utils.errors import DraftingError
from src.utils.logging import get_structured_logger, log_timing
from src.utils.retry import with_rate_limit_retry

logger = get_structured_logger(__name__)

SYSTEM_PROMPT = "You are an offer strategist for licensed real estate agents. Respond with JSON only."

SCENARIO_PROMPT = """Generate 3 offer scenarios for this property purchase.

{property_block}

{buyer_block}

Create 3 scenarios: Conservative, Competitive, and Aggressive.

For each scenario provide:
- name: "Conservative", "Competitive", or "Aggressive"
- offer_amount: Offer price in dollars (number only)
- earnest_money: Earnest deposit, typically 1-3% of offer (number only)
- contingencies: Array of which to include from ["financing", "inspection", "appraisal"]
- rationale: 2-3 sentences explaining this strategy and when it's appropriate
- competitiveness: "conservative", "competitive", or "aggressive"

Important:
- Conservative: 2-5% below asking, all contingencies, lowest risk
- Competitive: At or near asking, keep financing/inspection, waive appraisal
- Aggressive: 2-5% above asking, minimal contingencies, highest risk but strongest offer

Return ONLY a valid JSON array with these 3 scenario objects. No additional text, no markdown, just the JSON array."""

WHAT_IF_PROMPT = """Analyze this real estate offer strategy and provide guidance.

{property_block}

Proposed Offer:
- Offer Amount: {offer}
- Difference vs Asking: {difference}

{buyer_block}

Provide a comprehensive analysis with:

1. strategy_assessment: 2-3 sentences assessing whether this offer is conservative, competitive, or aggressive given the market context and property details.
2. likelihood: "High", "Medium", or "Low", the likelihood this offer will be accepted.
3. recommended_contingencies: Array of contingencies appropriate for this price point. Choose from: "financing", "inspection", "appraisal", "sale of current home".
4. risks: Array of 2-3 key risks or considerations with this offer strategy.
5. negotiation_tips: Array of 2-3 actionable negotiation tips for this specific scenario.
6. competitiveness: "conservative", "competitive", or "aggressive" based on the offer amount vs asking.

Return ONLY a valid JSON object with these exact fields. No additional text or markdown."""

JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def _money(value: Optional[float]) -> str:
    return f"${value:,.0f}" if value else "Not specified"


def _count(value: Optional[float]) -> str:
    return f"{value:,g}" if value is not None else "N/A"


def _property_block(prop: Property) -> str:
    return "\n".join([
        "Property Details:",
        f"- Address: {prop.location}",
        f"- Listed Price: {_money(prop.price)}",
        f"- Beds: {_count(prop.bedrooms)}, Baths: {_count(prop.bathrooms)}, Sqft: {_count(prop.sqft)}",
        f"- Days on Market: {prop.days_on_market if prop.days_on_market is not None else 'Unknown'}",
        f"- Property Type: {prop.property_type or 'Residential'}",
    ])


def _buyer_block(buyer: Buyer) -> str:
    return "\n".join([
        "Buyer Information:",
        f"- Name: {buyer.name}",
        f"- Pre-Approval Amount: {_money(buyer.pre_approval_amount)}",
        f"- Maximum Budget: {_money(buyer.budget_max)}",
    ])


def affordability_limit(buyer: Buyer) -> Optional[float]:
    """Highest offer the buyer is known to be able to fund."""
    return buyer.pre_approval_amount or buyer.budget_max


def price_difference(asking: float, offer: float) -> tuple[float, float]:
    """Dollar and percent difference of an offer against asking."""
    diff = offer - asking
    return diff, round(diff / asking * 100, 1)


def parse_scenarios(content: str, buyer: Buyer) -> list[OfferScenario]:
    """
    Parse the model's scenario array.

    Scenario status is derived from the buyer's pre-approval (or budget)
    rather than taken from the model.
    """
    match = JSON_ARRAY.search(content or "")
    if not match:
        raise DraftingError("No JSON array found in scenario response")
    try:
        raw = json.loads(match.group(0))
        scenarios = [OfferScenario.model_validate({k: v for k, v in s.items() if k != "id"}) for s in raw]
    except (json.JSONDecodeError, ValidationError, TypeError, AttributeError) as e:
        raise DraftingError(f"Failed to parse scenario response: {e}") from e

    limit = affordability_limit(buyer)
    for scenario in scenarios:
        affordable = limit is None or scenario.offer_amount <= limit
        scenario.status = (ScenarioStatus.READY if affordable else ScenarioStatus.PENDING).value
    return scenarios


def parse_what_if(content: str) -> WhatIfAnalysis:
    match = JSON_OBJECT.search(content or "")
    if not match:
        raise DraftingError("No JSON object found in what-if response")
    try:
        return WhatIfAnalysis.model_validate(json.loads(match.group(0)))
    except (json.JSONDecodeError, ValidationError) as e:
        raise DraftingError(f"Failed to parse what-if response: {e}") from e


@with_rate_limit_retry(max_attempts=3, initial_delay=2.0)
async def request_scenarios(prop: Property, buyer: Buyer, model=None) -> list[OfferScenario]:
    prompt = SCENARIO_PROMPT.format(property_block=_property_block(prop), buyer_block=_buyer_block(buyer))
    model = model or get_llm_model(max_tokens=2048)
    response = await complete(build_messages(SYSTEM_PROMPT, prompt), model=model)
    return parse_scenarios(response, buyer)


@with_rate_limit_retry(max_attempts=3, initial_delay=2.0)
async def request_what_if(prop: Property, buyer: Buyer, offer_amount: float, model=None) -> WhatIfAnalysis:
    diff, percent = price_difference(prop.price, offer_amount)
    sign = "+" if diff >= 0 else "-"
    prompt = WHAT_IF_PROMPT.format(
        property_block=_property_block(prop),
        buyer_block=_buyer_block(buyer),
        offer=_money(offer_amount),
        difference=f"{sign}${abs(diff):,.0f} ({sign}{abs(percent)}%)",
    )
    model = model or get_llm_model(max_tokens=1024)
    response = await complete(build_messages(SYSTEM_PROMPT, prompt), model=model)
    return parse_what_if(response)


async def generate_offer_scenarios(
    property_id: str,
    buyer_id: str,
    session: SessionContext,
    model=None,
) -> tuple[Property, list[OfferScenario]]:
    """Conservative, competitive and aggressive offers for one property."""
    session.require_agent("generate offer scenarios")
    buyer = await get_buyer(buyer_id, session)
    prop = await get_priced_property(property_id)
    with log_timing("generate_offer_scenarios", logger=logger, property_id=property_id):
        scenarios = await request_scenarios(prop, buyer, model=model)
    logger.info("Offer scenarios generated", property_id=property_id, buyer_id=buyer_id, count=len(scenarios))
    return prop, scenarios


async def analyze_what_if(
    property_id: str,
    buyer_id: str,
    offer_amount: float,
    session: SessionContext,
    model=None,
) -> tuple[Property, WhatIfAnalysis]:
    session.require_agent("analyze offers")
    buyer = await get_buyer(buyer_id, session)
    prop = await get_priced_property(property_id)
    with log_timing("analyze_what_if", logger=logger, property_id=property_id):
        analysis = await request_what_if(prop, buyer, offer_amount, model=model)
    logger.info("What-if analysis complete", property_id=property_id, competitiveness=analysis.competitiveness)
    return prop, analysis
