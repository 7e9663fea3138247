"""Conversation item models - the per-stage workspace thread."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationInfo,
    field_validator,
    model_validator,
)

from src.models.stage import STAGES, is_valid_stage
from src.utils.ids import new_id


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ApprovalStatus(str, Enum):
    """Review state of AI-drafted, buyer-facing content."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SenderRole(str, Enum):
    AGENT = "agent"
    BUYER = "buyer"


class SystemEventType(str, Enum):
    STAGE_ADVANCED = "stage-advanced"
    OFFER_SUBMITTED = "offer-submitted"
    OFFER_ACCEPTED = "offer-accepted"
    OFFER_REJECTED = "offer-rejected"
    DOCUMENT_UPLOADED = "document-uploaded"
    PROPERTY_ADDED = "property-added"
    TASK_COMPLETED = "task-completed"
    VIEWING_SCHEDULED = "viewing-scheduled"
    CONTRACT_SIGNED = "contract-signed"
    CLOSING_COMPLETE = "closing-complete"


class ComponentBlockType(str, Enum):
    PROPERTY_CARD = "property-card"
    COMP_TABLE = "comp-table"
    OFFER_SUMMARY = "offer-summary"
    TASK_CHECKLIST = "task-checklist"
    DOCUMENT_PREVIEW = "document-preview"
    VIEWING_SCHEDULE = "viewing-schedule"
    COST_BREAKDOWN = "cost-breakdown"


class StageStatus(str, Enum):
    LOCKED = "locked"
    CURRENT = "current"
    COMPLETED = "completed"


class ConversationItemBase(BaseModel):
    """Fields shared by every item kind."""
    model_config = ConfigDict(validate_assignment=True, use_enum_values=True)

    id: str = Field(default_factory=new_id)
    buyer_id: Optional[str] = None
    stage_id: int = Field(..., description="Stage the item is threaded under")
    timestamp: datetime = Field(default_factory=utc_now)
    is_edited: bool = False
    edited_at: Optional[datetime] = None
    edited_by: Optional[str] = None

    @field_validator("stage_id")
    @classmethod
    def _stage_in_catalog(cls, value: int) -> int:
        if not is_valid_stage(value):
            raise ValueError(f"stage_id {value} is not in the stage catalog")
        return value


class HumanMessage(ConversationItemBase):
    """Message typed by the agent or the buyer."""
    type: Literal["human-message"] = "human-message"
    sender: SenderRole
    sender_id: Optional[str] = None
    sender_name: str
    content: str = Field(..., min_length=1)
    is_immutable: bool = Field(False, validate_default=True)

    @field_validator("is_immutable")
    @classmethod
    def _buyer_messages_locked(cls, value: bool, info: ValidationInfo) -> bool:
        # Buyer messages can never be unlocked
        if info.data.get("sender") == SenderRole.BUYER.value:
            return True
        return value


class AIExplanation(ConversationItemBase):
    """AI-drafted content. Buyer-facing drafts wait in the approval gate."""
    type: Literal["ai-explanation"] = "ai-explanation"
    content: str = ""
    context: Optional[str] = Field(None, description="Command or prompt that produced the draft")
    requires_approval: bool = True
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    is_visible_to_buyer: bool = False
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    error_kind: Optional[str] = Field(None, description="Set when drafting failed: rate_limited or failed")

    @model_validator(mode="after")
    def _visible_only_when_approved(self) -> "AIExplanation":
        if self.is_visible_to_buyer and self.approval_status != ApprovalStatus.APPROVED.value:
            raise ValueError("AI content can only be visible to the buyer once approved")
        return self


class SystemEvent(ConversationItemBase):
    """System-generated timeline entry. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    type: Literal["system-event"] = "system-event"
    event_type: SystemEventType
    title: str
    description: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ComponentBlock(ConversationItemBase):
    """Structured data block (property card, comp table, ...)."""
    type: Literal["component-block"] = "component-block"
    block_type: ComponentBlockType
    title: str
    data: dict[str, Any] = Field(default_factory=dict)
    linked_entity_id: Optional[str] = None
    is_expanded: bool = False


ConversationItem = Annotated[
    Union[HumanMessage, AIExplanation, SystemEvent, ComponentBlock],
    Field(discriminator="type"),
]

conversation_item_adapter: TypeAdapter = TypeAdapter(ConversationItem)


def parse_conversation_item(data: dict) -> Union[HumanMessage, AIExplanation, SystemEvent, ComponentBlock]:
    """Decode a stored payload into its item kind."""
    return conversation_item_adapter.validate_python(data)


class StageGroup(BaseModel):
    """Items threaded under one stage."""
    stage_id: int
    title: str
    icon: str
    status: StageStatus
    items: list[ConversationItem] = Field(default_factory=list)


def stage_status_for(stage_id: int, current_stage: int) -> StageStatus:
    if stage_id < current_stage:
        return StageStatus.COMPLETED
    if stage_id == current_stage:
        return StageStatus.CURRENT
    return StageStatus.LOCKED


class WorkspaceConversation(BaseModel):
    """One buyer's conversation, grouped by stage."""
    buyer_id: Optional[str] = None
    current_stage_id: int = 0
    stages: list[StageGroup] = Field(default_factory=list)

    @classmethod
    def build(cls, buyer_id: Optional[str], current_stage: int, items: Optional[list] = None) -> "WorkspaceConversation":
        conversation = cls(
            buyer_id=buyer_id,
            current_stage_id=current_stage,
            stages=[
                StageGroup(
                    stage_id=stage.index,
                    title=stage.title,
                    icon=stage.icon,
                    status=stage_status_for(stage.index, current_stage),
                )
                for stage in STAGES
            ],
        )
        for item in sorted(items or [], key=lambda i: i.timestamp):
            conversation.append(item)
        return conversation

    def group(self, stage_id: int) -> StageGroup:
        if not is_valid_stage(stage_id):
            raise ValueError(f"stage_id {stage_id} is not in the stage catalog")
        return self.stages[stage_id]

    def append(self, item) -> None:
        self.group(item.stage_id).items.append(item)

    def items_in_stage(self, stage_id: int) -> list:
        return list(self.group(stage_id).items)

    def all_items(self) -> list:
        return [item for group in self.stages for item in group.items]

    def find(self, item_id: str):
        for item in self.all_items():
            if item.id == item_id:
                return item
        return None

    def set_current_stage(self, stage_id: int) -> None:
        self.current_stage_id = stage_id
        for group in self.stages:
            group.status = stage_status_for(group.stage_id, stage_id)
