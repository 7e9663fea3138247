"""Artifact models."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ArtifactVisibility(str, Enum):
    INTERNAL = "internal"
    SHARED = "shared"


class Artifact(BaseModel):
    """Saved agent or AI content. Only shared artifacts reach the portal."""
    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None
    buyer_id: str
    stage_id: Optional[int] = None
    artifact_type: str = Field(default="update", description="update, market-analysis, brief, ...")
    title: str = Field(..., min_length=1)
    content: str
    visibility: ArtifactVisibility = ArtifactVisibility.INTERNAL
    source_item_id: Optional[str] = Field(None, description="Approved conversation item this was published from")
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    shared_at: Optional[str] = None
