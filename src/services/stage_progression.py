"""Buyer stage progression."""

from datetime import datetime, timezone
from typing import Optional

from src.models.buyer import Buyer
from src.models.conversation import SystemEvent, SystemEventType, WorkspaceConversation
from src.models.session import SessionContext
from src.models.stage import is_valid_stage, stage_at, stage_count
from src.services import conversation_store
from src.services.supabase_client import update_buyer_row
from src.utils.errors import InvalidTransition, StageOutOfRangeError, SupabaseError
from src.utils.logging import get_structured_logger, log_timing

logger = get_structured_logger(__name__)


def current_stage(buyer: Buyer) -> int:
    return buyer.current_stage


def check_transition(current: int, target: int) -> None:
    """Allow any forward move, or a single step back."""
    if not is_valid_stage(target):
        raise StageOutOfRangeError(f"Stage {target} is outside 0..{stage_count() - 1}")
    if target == current:
        raise InvalidTransition(f"Buyer is already in stage {current}", current=str(current), target=str(target))
    if target < current - 1:
        raise InvalidTransition(
            f"Cannot move back from stage {current} to {target}",
            current=str(current),
            target=str(target),
        )


async def advance_stage(
    buyer: Buyer,
    target_index: int,
    session: SessionContext,
    conversation: Optional[WorkspaceConversation] = None,
) -> SystemEvent:
    """
    Move a buyer to target_index.

    The new stage is persisted first; the in-memory buyer and conversation
    only change after the write succeeds. A stage-advanced event is then
    threaded under the target stage and stored.

    Raises:
        PermissionDeniedError: session is not an agent
        StageOutOfRangeError: target is not in the catalog
        InvalidTransition: same stage, or more than one step back
        SupabaseError: the buyer update failed (buyer left unchanged)
    """
    session.require_agent("advance stages")
    previous = buyer.current_stage
    check_transition(previous, target_index)

    now = datetime.now(timezone.utc).isoformat()
    with log_timing("advance_stage", logger=logger, buyer_id=buyer.id, target_stage=target_index):
        await update_buyer_row(buyer.id, {
            "current_stage": target_index,
            "updated_at": now,
            "last_activity_at": now,
        })

    buyer.current_stage = target_index
    buyer.updated_at = now
    buyer.last_activity_at = now

    target = stage_at(target_index)
    event = SystemEvent(
        buyer_id=buyer.id,
        stage_id=target_index,
        event_type=SystemEventType.STAGE_ADVANCED,
        title=f"Advanced to {target.title}",
        description=f"Moved from stage {previous} to stage {target_index}",
        metadata={"from_stage": previous, "to_stage": target_index, "by": session.user_id},
    )
    if conversation is not None:
        conversation.set_current_stage(target_index)
        conversation.append(event)

    try:
        await conversation_store.save_item(event)
    except SupabaseError as e:
        # Stage change is already durable; the timeline entry is best-effort
        logger.warning("Failed to persist stage-advanced event", buyer_id=buyer.id, error=str(e))

    logger.info("Buyer stage advanced", buyer_id=buyer.id, from_stage=previous, to_stage=target_index)
    return event
