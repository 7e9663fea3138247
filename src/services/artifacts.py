"""Artifact storage and sharing."""

from datetime import datetime, timezone
from typing import Optional

from src.models.artifact import Artifact, ArtifactVisibility
from src.models.conversation import AIExplanation, ApprovalStatus
from src.models.session import SessionContext
from src.services.supabase_client import fetch_where, insert_row, update_by_id
from src.utils.errors import InvalidTransition
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


async def create_artifact(artifact: Artifact, session: SessionContext) -> Artifact:
    session.require_agent("save artifacts")
    row = artifact.model_dump(mode="json", exclude={"id", "created_at", "shared_at"}, exclude_none=True)
    row["created_by"] = session.user_id
    if artifact.visibility == ArtifactVisibility.SHARED.value:
        row["shared_at"] = datetime.now(timezone.utc).isoformat()
    created = await insert_row("artifacts", row)
    logger.info(
        "Artifact saved",
        artifact_id=created.get("id"),
        buyer_id=artifact.buyer_id,
        visibility=artifact.visibility,
    )
    return Artifact.model_validate(created)


async def share_artifact(artifact_id: str, session: SessionContext) -> Artifact:
    session.require_agent("share artifacts")
    row = await update_by_id("artifacts", artifact_id, {
        "visibility": ArtifactVisibility.SHARED.value,
        "shared_at": datetime.now(timezone.utc).isoformat(),
    })
    logger.info("Artifact shared", artifact_id=artifact_id)
    return Artifact.model_validate(row)


async def list_artifacts(buyer_id: str, session: SessionContext) -> list[Artifact]:
    """Agent view: everything. Buyer view: shared only."""
    session.require_buyer_access(buyer_id)
    if not session.is_agent and not session.is_read_only:
        return await list_shared_artifacts(buyer_id)
    rows = await fetch_where("artifacts", {"buyer_id": buyer_id}, order_by="created_at", descending=True)
    return [Artifact.model_validate(row) for row in rows]


async def list_shared_artifacts(buyer_id: str) -> list[Artifact]:
    rows = await fetch_where(
        "artifacts",
        {"buyer_id": buyer_id, "visibility": ArtifactVisibility.SHARED.value},
        order_by="shared_at",
        descending=True,
    )
    return [Artifact.model_validate(row) for row in rows]


async def publish_approved_draft(
    item: AIExplanation,
    title: str,
    session: SessionContext,
    artifact_type: str = "update",
) -> Artifact:
    """Save an approved draft as a shared artifact."""
    if not isinstance(item, AIExplanation) or item.approval_status != ApprovalStatus.APPROVED.value:
        raise InvalidTransition("Only approved AI content can be shared", target="share")
    artifact = Artifact(
        buyer_id=item.buyer_id,
        stage_id=item.stage_id,
        artifact_type=artifact_type,
        title=title,
        content=item.content,
        visibility=ArtifactVisibility.SHARED,
        source_item_id=item.id,
    )
    return await create_artifact(artifact, session)
