"""Buyer-specific property analysis with recently sold comparables."""

import os
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import httpx

from src.models.buyer import Buyer
from src.models.property import BuyerProperty, Comparable, Property
from src.models.session import SessionContext
from src.services.buyers import get_buyer
from src.services.llm import build_messages, complete, get_llm_model, stream_completion
from src.services.properties import get_buyer_property, get_property
from src.services.supabase_client import update_by_id
from src.utils.errors import DraftingError
from src.utils.logging import get_structured_logger, log_timing
from src.utils.retry import with_rate_limit_retry

logger = get_structured_logger(__name__)

COMPARABLES_URL = "https://zillow-com1.p.rapidapi.com/similarSales"
COMPARABLES_HOST = "zillow-com1.p.rapidapi.com"
MAX_COMPARABLES = 5

SYSTEM_PROMPT = """You are an expert real estate market analyst providing comprehensive property analysis for real estate agents and their clients. Your analysis should be:
- Data-driven and factual
- Tailored to the specific buyer profile type
- Professional but accessible
- Actionable with clear recommendations

Format your response with clear sections using markdown headers (##). Use bullet points for key insights. Include specific numbers and percentages when relevant."""

INVESTOR_SECTIONS = """Please provide a comprehensive **INVESTMENT ANALYSIS** including:

## Value Assessment
- Is this property fairly priced compared to market?
- Price per sqft analysis vs area median

## Investment Metrics
- ARV (After Repair Value) estimate
- Estimated repair/update costs
- Cash flow projection (rental income vs expenses)
- Cap rate and cash-on-cash return estimates

## Risk Assessment
- Potential red flags
- Market conditions

## Recommendation
- Is this a BUY, HOLD, or PASS?
- Best strategy (flip vs hold)
- Suggested offer range"""

FIRST_TIME_SECTIONS = """Please provide a comprehensive **FIRST-TIME BUYER ANALYSIS** including:

## Value Assessment
- Is this fairly priced for a first home?

## Affordability Analysis
- Monthly payment estimates at different down payments
- Compare to buyer's pre-approval

## First Home Suitability
- Move-in readiness
- Room for growth

## Neighborhood Analysis
- Schools, safety, amenities

## Recommendation
- Should they schedule a showing?
- Suggested offer strategy"""

DOWNSIZING_SECTIONS = """Please provide a comprehensive **DOWNSIZING ANALYSIS** including:

## Value Assessment
- Is this property fairly priced?

## Right-Sizing
- Single-level living, maintenance load, storage

## Cost of Ownership
- Taxes, HOA and upkeep compared to a larger home

## Recommendation
- Should they schedule a showing?
- Suggested offer strategy"""

DEFAULT_SECTIONS = """Please provide a comprehensive analysis including:

## Value Assessment
- Is this property fairly priced?
- Price per sqft vs area median

## Market Position
- Comparison to similar homes
- Days on market analysis

## Buyer Fit Analysis
- **Strengths:** List ways this matches buyer needs
- **Considerations:** List potential concerns

## Recommendation
- Should buyer view this property?
- Suggested offer range and strategy"""

SECTIONS_BY_TYPE = {
    "investor": INVESTOR_SECTIONS,
    "first-time": FIRST_TIME_SECTIONS,
    "downsizing": DOWNSIZING_SECTIONS,
}


def _money(value: Optional[float]) -> str:
    return f"${value:,.0f}" if value else "N/A"


def _count(value: Optional[float]) -> str:
    return f"{value:,g}" if value is not None else "N/A"


def analysis_sections(buyer_type: Optional[str]) -> str:
    return SECTIONS_BY_TYPE.get(buyer_type or "", DEFAULT_SECTIONS)


def parse_comparables(payload: dict) -> list[Comparable]:
    """Map the similar-sales response onto Comparable, keeping the first few."""
    results = payload.get("props") or payload.get("results") or []
    comparables = []
    for comp in results[:MAX_COMPARABLES]:
        price = comp.get("price") or comp.get("soldPrice")
        sqft = comp.get("livingArea") or comp.get("sqft")
        comparables.append(Comparable(
            address=comp.get("address") or comp.get("streetAddress"),
            city=comp.get("city"),
            state=comp.get("state"),
            price=price,
            bedrooms=comp.get("bedrooms") or comp.get("beds"),
            bathrooms=comp.get("bathrooms") or comp.get("baths"),
            sqft=sqft,
            price_per_sqft=round(price / sqft) if price and sqft else None,
            date_sold=comp.get("dateSold") or comp.get("soldDate"),
        ))
    return comparables


async def fetch_comparables(
    prop: Property,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[Comparable]:
    """
    Recently sold homes similar to prop.

    Comparables enrich the analysis but are not required: a missing key or
    any provider failure yields an empty list.
    """
    api_key = os.environ.get("RAPIDAPI_KEY")
    if not api_key:
        logger.warning("RAPIDAPI_KEY not configured, skipping comparables")
        return []

    beds = int(prop.bedrooms or 1)
    baths = int(prop.bathrooms or 1)
    params = {
        "location": prop.location,
        "beds_min": max(1, beds - 1),
        "beds_max": beds + 1,
        "baths_min": max(1, baths - 1),
        "baths_max": baths + 1,
        "status_type": "RecentlySold",
        "sold_in_last": 6,
    }
    if prop.sqft:
        params["sqft_min"] = round(prop.sqft * 0.8)
        params["sqft_max"] = round(prop.sqft * 1.2)

    timeout = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "60"))
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(
                COMPARABLES_URL,
                params=params,
                headers={"X-RapidAPI-Key": api_key, "X-RapidAPI-Host": COMPARABLES_HOST},
            )
        response.raise_for_status()
        payload = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Comparables lookup failed", property_id=prop.id, error=str(e))
        return []
    if not isinstance(payload, dict):
        return []
    return parse_comparables(payload)


def build_analysis_prompt(prop: Property, buyer: Buyer, comparables: list[Comparable]) -> str:
    buyer_type = buyer.buyer_type or "general"
    lines = [
        f"Analyze this property for {buyer.name}, a **{buyer_type}** buyer.",
        "",
        "## Property Details",
        f"- **Address:** {prop.location}",
        f"- **Price:** {_money(prop.price)}",
        f"- **Size:** {_count(prop.bedrooms)} beds, {_count(prop.bathrooms)} baths, {_count(prop.sqft)} sqft",
        f"- **Price/sqft:** {_money(prop.dollars_per_sqft)}",
        f"- **Days on Market:** {prop.days_on_market if prop.days_on_market is not None else 'N/A'}",
        f"- **Year Built:** {prop.year_built or 'N/A'}",
        f"- **Property Type:** {prop.property_type or 'Single Family'}",
        f"- **Status:** {prop.status or 'Active'}",
    ]
    if prop.lot_size:
        lines.append(f"- **Lot Size:** {prop.lot_size}")
    if prop.description:
        lines.append(f"- **Description:** {prop.description}")

    lines += ["", "## Buyer Profile", f"- **Name:** {buyer.name}", f"- **Buyer Type:** {buyer_type}"]
    if buyer.budget_min and buyer.budget_max:
        lines.append(f"- **Budget:** {_money(buyer.budget_min)} - {_money(buyer.budget_max)}")
    if buyer.pre_approval_amount:
        lines.append(f"- **Pre-Approval:** {_money(buyer.pre_approval_amount)}")
    if buyer.preferred_cities:
        lines.append(f"- **Preferred Areas:** {', '.join(buyer.preferred_cities)}")
    if buyer.must_haves:
        lines.append(f"- **Must-Haves:** {buyer.must_haves}")
    if buyer.nice_to_haves:
        lines.append(f"- **Nice-to-Haves:** {buyer.nice_to_haves}")
    if buyer.agent_notes:
        lines.append(f"- **Agent Notes:** {buyer.agent_notes}")

    if comparables:
        lines += ["", "## Comparable Properties (Recently Sold)"]
        for i, comp in enumerate(comparables, 1):
            line = (
                f"{i}. {comp.address}, {comp.city}, {comp.state}: {_money(comp.price)}, "
                f"{_count(comp.bedrooms)}bd/{_count(comp.bathrooms)}ba, {_count(comp.sqft)}sqft"
            )
            if comp.price_per_sqft:
                line += f", ${comp.price_per_sqft}/sqft"
            if comp.date_sold:
                line += f", Sold: {comp.date_sold}"
            lines.append(line)

    lines += ["", analysis_sections(buyer.buyer_type)]
    return "\n".join(lines)


@with_rate_limit_retry(max_attempts=3, initial_delay=2.0)
async def request_analysis(prompt: str, model=None) -> str:
    model = model or get_llm_model(max_tokens=2048)
    text = await complete(build_messages(SYSTEM_PROMPT, prompt), model=model)
    if not text.strip():
        raise DraftingError("Empty analysis response")
    return text


async def _analysis_prompt(
    property_id: str,
    buyer_id: str,
    session: SessionContext,
    transport: Optional[httpx.AsyncBaseTransport],
) -> str:
    buyer = await get_buyer(buyer_id, session)
    prop = await get_property(property_id)
    comparables = await fetch_comparables(prop, transport=transport)
    logger.info("Building property analysis", property_id=property_id, comparables=len(comparables))
    return build_analysis_prompt(prop, buyer, comparables)


async def generate_property_analysis(
    property_id: str,
    buyer_id: str,
    session: SessionContext,
    model=None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BuyerProperty:
    """
    Generate and store the analysis on the buyer's property link.

    The text is agent-only. Sharing it with the buyer goes through a draft
    and the approval gate like any other AI content.
    """
    session.require_agent("analyze properties")
    link = await get_buyer_property(buyer_id, property_id)
    prompt = await _analysis_prompt(property_id, buyer_id, session, transport)
    with log_timing("generate_property_analysis", logger=logger, property_id=property_id):
        analysis = await request_analysis(prompt, model=model)
    row = await update_by_id("buyer_properties", link.id, {
        "ai_analysis": analysis,
        "ai_analysis_generated_at": datetime.now(timezone.utc).isoformat(),
    })
    logger.info("Property analysis saved", property_id=property_id, buyer_id=buyer_id, length=len(analysis))
    return BuyerProperty.model_validate(row)


async def stream_property_analysis(
    property_id: str,
    buyer_id: str,
    session: SessionContext,
    model=None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[str]:
    """Interactive variant: deltas in arrival order, nothing stored, no retry."""
    session.require_agent("analyze properties")
    prompt = await _analysis_prompt(property_id, buyer_id, session, transport)
    async for text in stream_completion(build_messages(SYSTEM_PROMPT, prompt), model=model):
        yield text
