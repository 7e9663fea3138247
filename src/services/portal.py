"""Buyer portal reads and self-service."""

from src.models.property import BuyerProperty, PortalPropertyFlags
from src.models.session import SessionContext
from src.services import approval_gate
from src.services.artifacts import list_shared_artifacts
from src.services.buyers import get_buyer
from src.services.offers import list_offers
from src.services.supabase_client import fetch_by_id, fetch_where, update_by_id
from src.utils.errors import InputValidationError, NotFoundError, PermissionDeniedError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

# Item fields that stay in the agent workspace
AGENT_ONLY_FIELDS = {"context", "approved_by", "rejection_reason", "error_kind"}
AGENT_ONLY_PROPERTY_FIELDS = {"ai_analysis", "ai_analysis_generated_at"}


async def list_buyer_properties(buyer_id: str, session: SessionContext) -> list[BuyerProperty]:
    session.require_buyer_access(buyer_id)
    rows = await fetch_where("buyer_properties", {"buyer_id": buyer_id, "archived": False}, order_by="created_at")
    return [BuyerProperty.model_validate(row) for row in rows]


async def set_property_flags(buyer_property_id: str, flags: PortalPropertyFlags, session: SessionContext) -> BuyerProperty:
    """Viewed/favorited toggles. The only buyer-writable data."""
    if session.is_read_only:
        raise PermissionDeniedError("broker cannot update properties")
    changes = flags.model_dump(exclude_none=True)
    if not changes:
        raise InputValidationError("No flags to update")
    row = await fetch_by_id("buyer_properties", buyer_property_id)
    if row is None:
        raise NotFoundError(f"Buyer property {buyer_property_id} not found")
    session.require_buyer_access(row["buyer_id"])
    updated = await update_by_id("buyer_properties", buyer_property_id, changes)
    return BuyerProperty.model_validate(updated)


async def archive_buyer_property(buyer_property_id: str, session: SessionContext) -> BuyerProperty:
    session.require_agent("archive properties")
    row = await update_by_id("buyer_properties", buyer_property_id, {"archived": True})
    return BuyerProperty.model_validate(row)


async def get_portal_feed(buyer_id: str, session: SessionContext) -> dict:
    """Everything the buyer portal renders, filtered for buyer visibility."""
    session.require_buyer_access(buyer_id)
    buyer = await get_buyer(buyer_id, session)
    items = await approval_gate.fetch_buyer_visible_items(buyer_id)
    artifacts = await list_shared_artifacts(buyer_id)
    offers = await list_offers(buyer_id, session)
    properties = await list_buyer_properties(buyer_id, session)
    logger.info("Portal feed built", buyer_id=buyer_id, items=len(items), artifacts=len(artifacts))
    return {
        "buyer": buyer.portal_view(),
        "items": [item.model_dump(mode="json", exclude=AGENT_ONLY_FIELDS) for item in items],
        "artifacts": [a.model_dump(mode="json") for a in artifacts],
        "offers": [o.model_dump(mode="json") for o in offers],
        "properties": [p.model_dump(mode="json", exclude=AGENT_ONLY_PROPERTY_FIELDS) for p in properties],
    }
