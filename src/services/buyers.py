"""Buyer record operations."""

from datetime import datetime, timezone
from typing import Optional

from src.models.buyer import Buyer, BuyerCreate, BuyerProfileUpdate
from src.models.session import SessionContext
from src.models.task import TaskStatus
from src.models.offer import OfferStatus
from src.services.supabase_client import (
    count_rows,
    fetch_where,
    get_buyer_row,
    insert_row,
    update_buyer_row,
)
from src.utils.errors import NotFoundError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


async def create_buyer(data: BuyerCreate, session: SessionContext) -> Buyer:
    """New buyers always start at stage 0 and belong to the creating agent."""
    session.require_agent("create buyers")
    now = datetime.now(timezone.utc).isoformat()
    row = data.model_dump(mode="json", exclude_none=True)
    row.update({
        "agent_id": session.user_id,
        "current_stage": 0,
        "created_at": now,
        "last_activity_at": now,
    })
    created = await insert_row("buyers", row)
    logger.info("Buyer created", buyer_id=created.get("id"))
    return Buyer.model_validate(created)


async def get_buyer(buyer_id: str, session: Optional[SessionContext] = None) -> Buyer:
    if session is not None:
        session.require_buyer_access(buyer_id)
    row = await get_buyer_row(buyer_id)
    if row is None:
        raise NotFoundError(f"Buyer {buyer_id} not found")
    return Buyer.model_validate(row)


async def list_buyers(session: SessionContext) -> list[Buyer]:
    """Agents see their own buyers, brokers see all, buyers see themselves."""
    if not session.is_agent and not session.is_read_only:
        return [await get_buyer(session.buyer_id, session)]
    filters = {"agent_id": session.user_id} if session.is_agent else None
    rows = await fetch_where("buyers", filters, order_by="last_activity_at", descending=True)
    return [Buyer.model_validate(row) for row in rows]


async def update_buyer_profile(buyer_id: str, updates: BuyerProfileUpdate, session: SessionContext) -> Buyer:
    """Profile fields are agent-writable only."""
    session.require_agent("edit buyer profiles")
    changes = updates.model_dump(mode="json", exclude_unset=True)
    changes["updated_at"] = datetime.now(timezone.utc).isoformat()
    row = await update_buyer_row(buyer_id, changes)
    return Buyer.model_validate(row)


async def get_workspace_summary(buyer_id: str, session: SessionContext) -> dict:
    """Counts shown in the workspace header."""
    session.require_buyer_access(buyer_id)
    open_tasks = await count_rows("tasks", {"buyer_id": buyer_id}, exclude={"status": TaskStatus.COMPLETE.value})
    properties = await count_rows("buyer_properties", {"buyer_id": buyer_id, "archived": False})
    active_offers = await count_rows("offers", {"buyer_id": buyer_id}, exclude={"status": OfferStatus.WITHDRAWN.value})
    return {
        "buyer_id": buyer_id,
        "open_tasks": open_tasks,
        "properties": properties,
        "active_offers": active_offers,
    }
