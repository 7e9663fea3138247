"""Persistence for workspace conversation items."""

from typing import Optional

from src.models.buyer import Buyer
from src.models.conversation import (
    AIExplanation,
    WorkspaceConversation,
    parse_conversation_item,
)
from src.services.supabase_client import (
    fetch_by_id,
    get_conversation_rows,
    insert_conversation_row,
    update_conversation_row,
)
from src.utils.errors import SupabaseError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

TABLE = "conversation_items"


def item_to_row(item) -> dict:
    """Row shape: indexed columns plus the full item as jsonb payload."""
    is_ai = isinstance(item, AIExplanation)
    return {
        "id": item.id,
        "buyer_id": item.buyer_id,
        "stage_id": item.stage_id,
        "item_type": item.type,
        "approval_status": item.approval_status if is_ai else None,
        "is_visible_to_buyer": item.is_visible_to_buyer if is_ai else None,
        "payload": item.model_dump(mode="json"),
        "created_at": item.timestamp.isoformat(),
    }


def row_to_item(row: dict):
    payload = dict(row.get("payload") or {})
    payload.setdefault("id", row.get("id"))
    payload.setdefault("buyer_id", row.get("buyer_id"))
    payload.setdefault("stage_id", row.get("stage_id"))
    payload.setdefault("type", row.get("item_type"))
    return parse_conversation_item(payload)


async def save_item(item) -> None:
    """Insert a new item."""
    if not item.buyer_id:
        raise SupabaseError("Conversation item has no buyer_id")
    await insert_conversation_row(item_to_row(item))
    logger.debug("Conversation item saved", item_id=item.id, item_type=item.type, stage_id=item.stage_id)


async def update_item(item) -> None:
    """Persist the current state of an existing item."""
    row = item_to_row(item)
    row.pop("id")
    row.pop("created_at")
    await update_conversation_row(item.id, row)


async def load_item(item_id: str):
    row = await fetch_by_id(TABLE, item_id)
    return row_to_item(row) if row else None


async def load_items(buyer_id: str) -> list:
    rows = await get_conversation_rows(buyer_id)
    return [row_to_item(row) for row in rows]


async def load_conversation(buyer: Buyer, items: Optional[list] = None) -> WorkspaceConversation:
    """Build the stage-grouped conversation for a buyer."""
    if items is None:
        items = await load_items(buyer.id)
    return WorkspaceConversation.build(buyer.id, buyer.current_stage, items)
