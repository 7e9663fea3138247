"""AI drafting request and response models."""

from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.buyer import BuyerContext


class DraftIntent(str, Enum):
    ARTIFACT = "artifact"
    THINKING = "thinking"
    ACTIONS = "actions"


class DraftVisibility(str, Enum):
    INTERNAL = "internal"
    BUYER_APPROVAL_REQUIRED = "buyer_approval_required"


class DraftRequest(BaseModel):
    """Body of the drafting endpoints. Accepts `command` or `message`."""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    command: Optional[str] = None
    message: Optional[str] = None
    buyer_context: BuyerContext = Field(..., alias="buyerContext")
    intent: DraftIntent = DraftIntent.ARTIFACT
    visibility: Optional[DraftVisibility] = None

    @model_validator(mode="after")
    def _has_text(self) -> "DraftRequest":
        if self.intent != DraftIntent.ACTIONS.value and not (self.command or self.message or "").strip():
            raise ValueError("command or message is required")
        return self

    @property
    def text(self) -> str:
        return (self.command or self.message or "").strip()

    @property
    def effective_visibility(self) -> str:
        """Thinking is always internal; artifacts always need approval."""
        if self.intent == DraftIntent.THINKING.value:
            return DraftVisibility.INTERNAL.value
        return DraftVisibility.BUYER_APPROVAL_REQUIRED.value


class AgentAction(BaseModel):
    """Suggested next action for the agent."""
    id: str
    label: str
    command: str
    type: Literal["artifact", "thinking"] = "artifact"


FALLBACK_ACTIONS: tuple[AgentAction, ...] = (
    AgentAction(id="1", label="Draft client update", command="Draft update for buyer", type="artifact"),
    AgentAction(id="2", label="Generate market analysis", command="Generate market analysis", type="artifact"),
    AgentAction(id="3", label="Review transaction status", command="What should I prioritize next?", type="thinking"),
)


class ThinkingResponse(BaseModel):
    """Agent-only analysis. Never gated and never shown to the buyer."""
    command: str
    content: str = ""
    error_kind: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error_kind is not None
