"""
Approval gate for AI-drafted content and the buyer visibility boundary.

Every buyer-facing read goes through filter_buyer_visible. An AIExplanation
reaches a buyer only after an agent approves it; rejected items never do.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from src.models.conversation import (
    AIExplanation,
    ApprovalStatus,
    ComponentBlock,
    HumanMessage,
    SenderRole,
    SystemEvent,
)
from src.models.session import SessionContext
from src.services import conversation_store
from src.utils.errors import ImmutableItemError, InvalidTransition, NotFoundError
from src.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)


def _require_pending(item: AIExplanation, action: str) -> None:
    if not isinstance(item, AIExplanation):
        raise InvalidTransition(f"Only AI explanations can be {action}d", target=action)
    if item.approval_status != ApprovalStatus.PENDING.value:
        raise InvalidTransition(
            f"Cannot {action} item in state {item.approval_status}",
            current=item.approval_status,
            target=action,
        )


def approve(item: AIExplanation, approved_by: Optional[str] = None) -> AIExplanation:
    """pending -> approved. Marks the item visible and stamps approved_at."""
    _require_pending(item, "approve")
    if item.error_kind:
        # Content is the fallback notice, not a draft; it can only be rejected
        raise InvalidTransition(
            f"Cannot approve a failed draft ({item.error_kind})",
            current=item.approval_status,
            target="approve",
        )
    item.approval_status = ApprovalStatus.APPROVED
    item.approved_by = approved_by
    item.approved_at = datetime.now(timezone.utc)
    item.is_visible_to_buyer = True
    logger.info("AI content approved", item_id=item.id, stage_id=item.stage_id)
    return item


def reject(item: AIExplanation, reason: str) -> AIExplanation:
    """pending -> rejected. The item stays for audit and is never shown to the buyer."""
    _require_pending(item, "reject")
    item.approval_status = ApprovalStatus.REJECTED
    item.rejection_reason = reason
    item.is_visible_to_buyer = False
    logger.info("AI content rejected", item_id=item.id, stage_id=item.stage_id)
    return item


def is_visible_to_buyer(item) -> bool:
    """Single rule deciding whether a conversation item may reach the buyer."""
    if isinstance(item, AIExplanation):
        return (
            item.approval_status == ApprovalStatus.APPROVED.value
            and item.is_visible_to_buyer
        )
    if isinstance(item, HumanMessage):
        return True
    if isinstance(item, SystemEvent):
        return True
    if isinstance(item, ComponentBlock):
        return True
    raise TypeError(f"Unknown conversation item kind: {type(item).__name__}")


def filter_buyer_visible(items: Iterable) -> list:
    return [item for item in items if is_visible_to_buyer(item)]


def pending_items(items: Iterable) -> list[AIExplanation]:
    """Approval queue, oldest first."""
    queue = [
        item for item in items
        if isinstance(item, AIExplanation) and item.approval_status == ApprovalStatus.PENDING.value
    ]
    return sorted(queue, key=lambda i: i.timestamp)


def edit_message(item, content: str, editor: str) -> HumanMessage:
    """Edit an agent message that has not been locked."""
    if not isinstance(item, HumanMessage):
        raise ImmutableItemError(f"{item.type} items cannot be edited")
    if item.sender == SenderRole.BUYER.value or item.is_immutable:
        raise ImmutableItemError("Message is immutable")
    item.content = content
    item.is_edited = True
    item.edited_at = datetime.now(timezone.utc)
    item.edited_by = editor
    return item


def lock_message(item: HumanMessage) -> HumanMessage:
    item.is_immutable = True
    return item


async def _load_ai_item(item_id: str) -> AIExplanation:
    item = await conversation_store.load_item(item_id)
    if item is None:
        raise NotFoundError(f"Conversation item {item_id} not found")
    return item


async def approve_item(item_id: str, session: SessionContext) -> AIExplanation:
    """Load, approve and persist."""
    session.require_agent("approve content")
    item = await _load_ai_item(item_id)
    approve(item, approved_by=session.user_id)
    await conversation_store.update_item(item)
    logger.info("Approval persisted", item_id=item_id, user_id=mask_user_id(session.user_id))
    return item


async def reject_item(item_id: str, reason: str, session: SessionContext) -> AIExplanation:
    """Load, reject and persist."""
    session.require_agent("reject content")
    item = await _load_ai_item(item_id)
    reject(item, reason)
    await conversation_store.update_item(item)
    logger.info("Rejection persisted", item_id=item_id, user_id=mask_user_id(session.user_id))
    return item


async def fetch_buyer_visible_items(buyer_id: str) -> list:
    """Buyer-facing conversation read."""
    items = await conversation_store.load_items(buyer_id)
    return filter_buyer_visible(items)
