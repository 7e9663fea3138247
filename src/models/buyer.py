"""Buyer models."""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.stage import is_valid_stage, stage_count


class PreApprovalStatus(str, Enum):
    """Mortgage pre-approval progress."""
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    PRE_APPROVED = "Pre-Approved"


class BuyerType(str, Enum):
    FIRST_TIME = "first-time"
    MOVE_UP = "move-up"
    INVESTOR = "investor"
    DOWNSIZING = "downsizing"


class PropertyType(str, Enum):
    SINGLE_FAMILY = "single-family"
    CONDO = "condo"
    TOWNHOUSE = "townhouse"
    MULTI_FAMILY = "multi-family"
    LAND = "land"


class Buyer(BaseModel):
    """Buyer record. Row shape of the buyers table."""
    model_config = ConfigDict(validate_assignment=True, use_enum_values=True)

    id: Optional[str] = None
    agent_id: Optional[str] = Field(None, description="Owning agent user id")
    name: str = Field(..., min_length=1, description="Buyer display name")
    email: Optional[str] = None
    phone: Optional[str] = None
    buyer_type: Optional[BuyerType] = None
    budget_min: Optional[float] = Field(None, ge=0)
    budget_max: Optional[float] = Field(None, ge=0)
    pre_approval_status: Optional[PreApprovalStatus] = PreApprovalStatus.NOT_STARTED
    pre_approval_amount: Optional[float] = Field(None, ge=0)
    preferred_cities: list[str] = Field(default_factory=list)
    property_types: list[PropertyType] = Field(default_factory=list)
    min_beds: Optional[float] = Field(None, ge=0)
    min_baths: Optional[float] = Field(None, ge=0)
    must_haves: Optional[str] = None
    nice_to_haves: Optional[str] = None
    current_stage: int = Field(default=0, description="Index into the stage catalog")
    agent_notes: Optional[str] = Field(None, description="Agent-only notes, never sent to the portal")
    financing_confirmed: bool = False
    market_context: Optional[str] = None
    portal_link: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_activity_at: Optional[str] = None

    @field_validator("current_stage")
    @classmethod
    def _stage_in_catalog(cls, value: int) -> int:
        if not is_valid_stage(value):
            raise ValueError(f"current_stage must be between 0 and {stage_count() - 1}")
        return value

    @field_validator("preferred_cities", "property_types", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    def portal_view(self) -> dict:
        """Buyer fields safe to send to the buyer portal."""
        return self.model_dump(exclude={"agent_notes", "agent_id"})


class BuyerCreate(BaseModel):
    """Agent-submitted fields for a new buyer."""
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    buyer_type: Optional[BuyerType] = None
    budget_min: Optional[float] = Field(None, ge=0)
    budget_max: Optional[float] = Field(None, ge=0)
    market_context: Optional[str] = None
    agent_notes: Optional[str] = None


class BuyerProfileUpdate(BaseModel):
    """Agent-writable profile fields. Stage is changed only through stage progression."""
    model_config = ConfigDict(use_enum_values=True)

    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    buyer_type: Optional[BuyerType] = None
    budget_min: Optional[float] = Field(None, ge=0)
    budget_max: Optional[float] = Field(None, ge=0)
    pre_approval_status: Optional[PreApprovalStatus] = None
    pre_approval_amount: Optional[float] = Field(None, ge=0)
    preferred_cities: Optional[list[str]] = None
    property_types: Optional[list[PropertyType]] = None
    min_beds: Optional[float] = Field(None, ge=0)
    min_baths: Optional[float] = Field(None, ge=0)
    must_haves: Optional[str] = None
    nice_to_haves: Optional[str] = None
    agent_notes: Optional[str] = None
    financing_confirmed: Optional[bool] = None
    market_context: Optional[str] = None


class BuyerContext(BaseModel):
    """Profile snapshot sent to the drafting endpoint as `buyerContext`."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: Optional[str] = None
    current_stage: int = Field(0, alias="currentStage")
    financing_confirmed: bool = Field(False, alias="financingConfirmed")
    buyer_type: Optional[str] = Field(None, alias="buyerType")
    market_context: Optional[str] = Field(None, alias="marketContext")
    recent_activity: list[str] = Field(default_factory=list, alias="recentActivity")
    buyer_id: Optional[str] = Field(None, alias="buyerId")
    pre_approval_status: Optional[str] = Field(None, alias="preApprovalStatus")
    pre_approval_amount: Optional[float] = Field(None, alias="preApprovalAmount")
    budget_min: Optional[float] = Field(None, alias="budgetMin")
    budget_max: Optional[float] = Field(None, alias="budgetMax")
    preferred_cities: Optional[list[str]] = Field(None, alias="preferredCities")
    property_types: Optional[list[str]] = Field(None, alias="propertyTypes")
    min_beds: Optional[float] = Field(None, alias="minBeds")
    min_baths: Optional[float] = Field(None, alias="minBaths")
    must_haves: Optional[str] = Field(None, alias="mustHaves")
    nice_to_haves: Optional[str] = Field(None, alias="niceToHaves")
    agent_notes: Optional[str] = Field(None, alias="agentNotes")

    @classmethod
    def from_buyer(cls, buyer: Buyer, recent_activity: Optional[list[str]] = None) -> "BuyerContext":
        """Build the context. The pre-approval amount only counts once status is Pre-Approved."""
        pre_approved = buyer.pre_approval_status == PreApprovalStatus.PRE_APPROVED.value
        return cls(
            name=buyer.name,
            email=buyer.email,
            current_stage=buyer.current_stage,
            financing_confirmed=buyer.financing_confirmed,
            buyer_type=buyer.buyer_type,
            market_context=buyer.market_context,
            recent_activity=recent_activity or [],
            buyer_id=buyer.id,
            pre_approval_status=buyer.pre_approval_status,
            pre_approval_amount=buyer.pre_approval_amount if pre_approved else None,
            budget_min=buyer.budget_min,
            budget_max=buyer.budget_max,
            preferred_cities=buyer.preferred_cities or None,
            property_types=buyer.property_types or None,
            min_beds=buyer.min_beds,
            min_baths=buyer.min_baths,
            must_haves=buyer.must_haves,
            nice_to_haves=buyer.nice_to_haves,
            agent_notes=buyer.agent_notes,
        )

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
