"""Offer models."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class OfferStatus(str, Enum):
    """Offer lifecycle. Countered, Accepted and Rejected record seller-side events."""
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    COUNTERED = "Countered"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    WITHDRAWN = "Withdrawn"


class OfferFieldValues(BaseModel):
    """Structured offer terms, stored as field_values jsonb."""
    model_config = ConfigDict(populate_by_name=True)

    earnest_money: Optional[float] = Field(None, alias="earnestMoney", ge=0)
    closing_date: Optional[str] = Field(None, alias="closingDate")
    contingencies: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    closing_cost_credit: float = Field(0, alias="closingCostCredit", ge=0)


class Offer(BaseModel):
    """Offer row."""
    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None
    buyer_id: str
    property_id: Optional[str] = None
    template_id: Optional[str] = None
    agent_id: Optional[str] = None
    offer_amount: float = Field(..., gt=0)
    status: OfferStatus = OfferStatus.DRAFT
    field_values: OfferFieldValues = Field(default_factory=OfferFieldValues)
    submitted_at: Optional[str] = None
    generated_document_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class OfferCreate(BaseModel):
    """Agent input for a new offer. Always starts as Draft."""
    property_id: Optional[str] = None
    template_id: Optional[str] = None
    offer_amount: float = Field(..., gt=0)
    earnest_money: Optional[float] = Field(None, ge=0)
    closing_date: Optional[str] = None
    contingencies: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    closing_cost_credit: Optional[float] = Field(None, ge=0)

    def field_values(self) -> OfferFieldValues:
        return OfferFieldValues(
            earnest_money=self.earnest_money,
            closing_date=self.closing_date,
            contingencies=self.contingencies,
            notes=self.notes,
            closing_cost_credit=self.closing_cost_credit or 0,
        )
