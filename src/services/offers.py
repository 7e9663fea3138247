"""Offer tracking. All status changes are explicit agent commands."""

from datetime import datetime, timezone
from typing import Optional

from src.models.conversation import SystemEvent, SystemEventType, WorkspaceConversation
from src.models.offer import Offer, OfferCreate, OfferStatus
from src.models.session import SessionContext
from src.services import conversation_store
from src.services.supabase_client import fetch_by_id, fetch_where, insert_row, update_by_id
from src.utils.errors import NotFoundError, SupabaseError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

STATUS_EVENTS = {
    OfferStatus.SUBMITTED.value: SystemEventType.OFFER_SUBMITTED,
    OfferStatus.ACCEPTED.value: SystemEventType.OFFER_ACCEPTED,
    OfferStatus.REJECTED.value: SystemEventType.OFFER_REJECTED,
}


async def create_offer(buyer_id: str, data: OfferCreate, session: SessionContext) -> Offer:
    """New offers always start as Draft."""
    session.require_agent("create offers")
    row = {
        "buyer_id": buyer_id,
        "property_id": data.property_id,
        "template_id": data.template_id,
        "agent_id": session.user_id,
        "offer_amount": data.offer_amount,
        "status": OfferStatus.DRAFT.value,
        "field_values": data.field_values().model_dump(mode="json", by_alias=True),
    }
    created = await insert_row("offers", row)
    logger.info("Offer created", offer_id=created.get("id"), buyer_id=buyer_id)
    return Offer.model_validate(created)


async def get_offer(offer_id: str) -> Offer:
    row = await fetch_by_id("offers", offer_id)
    if row is None:
        raise NotFoundError(f"Offer {offer_id} not found")
    return Offer.model_validate(row)


async def list_offers(buyer_id: str, session: SessionContext) -> list[Offer]:
    session.require_buyer_access(buyer_id)
    rows = await fetch_where("offers", {"buyer_id": buyer_id}, order_by="created_at", descending=True)
    return [Offer.model_validate(row) for row in rows]


async def update_offer_status(
    offer_id: str,
    status: OfferStatus,
    session: SessionContext,
    conversation: Optional[WorkspaceConversation] = None,
) -> Offer:
    """Record a status change. Submission stamps submitted_at."""
    session.require_agent("update offers")
    status = OfferStatus(status).value
    changes = {"status": status, "updated_at": datetime.now(timezone.utc).isoformat()}
    if status == OfferStatus.SUBMITTED.value:
        changes["submitted_at"] = changes["updated_at"]
    offer = Offer.model_validate(await update_by_id("offers", offer_id, changes))
    logger.info("Offer status updated", offer_id=offer_id, status=status)

    event_type = STATUS_EVENTS.get(status)
    if event_type is not None and conversation is not None:
        event = SystemEvent(
            buyer_id=offer.buyer_id,
            stage_id=conversation.current_stage_id,
            event_type=event_type,
            title=f"Offer {status.lower()}",
            description=f"${offer.offer_amount:,.0f}",
            metadata={"offer_id": offer.id, "property_id": offer.property_id},
        )
        conversation.append(event)
        try:
            await conversation_store.save_item(event)
        except SupabaseError as e:
            logger.warning("Failed to persist offer event", offer_id=offer_id, error=str(e))
    return offer
