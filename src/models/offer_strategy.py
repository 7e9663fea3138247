"""Offer strategy models: AI offer scenarios and what-if analysis."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from src.utils.ids import new_id


class Competitiveness(str, Enum):
    CONSERVATIVE = "conservative"
    COMPETITIVE = "competitive"
    AGGRESSIVE = "aggressive"


class ScenarioStatus(str, Enum):
    READY = "ready"
    PENDING = "pending"


class Likelihood(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class OfferScenario(BaseModel):
    """One suggested offer. Agent-only until turned into an Offer."""
    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=new_id)
    name: str
    offer_amount: float = Field(..., gt=0)
    earnest_money: float = Field(0, ge=0)
    contingencies: list[str] = Field(default_factory=list)
    rationale: str = ""
    competitiveness: Competitiveness
    status: ScenarioStatus = ScenarioStatus.READY


class WhatIfAnalysis(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    strategy_assessment: str
    likelihood: Likelihood
    recommended_contingencies: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    negotiation_tips: list[str] = Field(default_factory=list)
    competitiveness: Competitiveness


class OfferScenarioRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    property_id: str = Field(..., min_length=1, alias="propertyId")
    buyer_id: str = Field(..., min_length=1, alias="buyerId")


class WhatIfRequest(OfferScenarioRequest):
    offer_amount: float = Field(..., gt=0, alias="offerAmount")


class PropertyAnalysisRequest(OfferScenarioRequest):
    stream: bool = False
