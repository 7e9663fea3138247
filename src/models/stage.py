"""Stage catalog - the fixed, ordered home-buying journey."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class Stage(BaseModel):
    """One step of the buyer journey. Reference data, never mutated."""
    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0, description="Position in the catalog")
    title: str
    icon: str
    description: str
    agent_tasks: tuple[str, ...] = ()
    buyer_tasks: tuple[str, ...] = ()


STAGES: tuple[Stage, ...] = (
    Stage(
        index=0,
        title="Readiness & Expectations",
        icon="🎯",
        description="Establish authority and trust through a structured consultation",
        agent_tasks=("Schedule consultation", "Create buyer strategy brief"),
        buyer_tasks=("Complete consultation", "Acknowledge expectations"),
    ),
    Stage(
        index=1,
        title="Financing & Capability",
        icon="💰",
        description="Confirm buying power and make buyer credible in market",
        agent_tasks=("Initiate pre-approval", "Define budget bands"),
        buyer_tasks=("Submit pre-approval docs", "Confirm budget"),
    ),
    Stage(
        index=2,
        title="Market Intelligence & Search Setup",
        icon="🏘️",
        description="Educate buyer quickly, build a smart pipeline",
        agent_tasks=("Generate neighborhood brief", "Set up search strategy"),
        buyer_tasks=("Review market intelligence", "Confirm touring cadence"),
    ),
    Stage(
        index=3,
        title="Touring, Filtering & Convergence",
        icon="🏠",
        description="Maximize in-person evaluations and build shortlist",
        agent_tasks=("Schedule showings", "Update property rankings"),
        buyer_tasks=("Tour properties", "Provide feedback"),
    ),
    Stage(
        index=4,
        title="Offer Strategy & Submission",
        icon="📋",
        description="Craft competitive offers with strategic terms",
        agent_tasks=("Analyze comps", "Draft offer strategy"),
        buyer_tasks=("Review offer terms", "Approve submission"),
    ),
    Stage(
        index=5,
        title="Negotiation & Contract",
        icon="🤝",
        description="Navigate counter-offers and secure favorable terms",
        agent_tasks=("Analyze counter-offers", "Prepare negotiation strategy"),
        buyer_tasks=("Review contract terms", "Sign agreement"),
    ),
    Stage(
        index=6,
        title="Due Diligence & Inspections",
        icon="🔍",
        description="Coordinate inspections and review disclosures",
        agent_tasks=("Schedule inspections", "Draft repair requests"),
        buyer_tasks=("Review inspection reports", "Approve repair negotiations"),
    ),
    Stage(
        index=7,
        title="Appraisal & Lending",
        icon="🏦",
        description="Ensure property appraises at value and finalize loan",
        agent_tasks=("Prepare appraisal brief", "Track loan conditions"),
        buyer_tasks=("Submit loan documents", "Review appraisal results"),
    ),
    Stage(
        index=8,
        title="Final Walkthrough & Preparation",
        icon="👁️",
        description="Verify property condition and prepare for closing",
        agent_tasks=("Schedule walkthrough", "Create utility transfer checklist"),
        buyer_tasks=("Complete walkthrough", "Arrange utilities"),
    ),
    Stage(
        index=9,
        title="Closing & Post-Close",
        icon="🎉",
        description="Complete transaction and transition to ownership",
        agent_tasks=("Review closing docs", "Generate post-close guidance"),
        buyer_tasks=("Sign documents", "Receive keys"),
    ),
)


def stage_count() -> int:
    return len(STAGES)


def is_valid_stage(index: object) -> bool:
    """True for an int (not bool) inside the catalog range."""
    return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < len(STAGES)


def stage_at(index: int) -> Optional[Stage]:
    """
    Look up a stage by index.

    Returns None for anything outside the catalog; callers treat that as a
    locked or unknown stage.
    """
    if not is_valid_stage(index):
        return None
    return STAGES[index]


def stage_title(index: int) -> str:
    stage = stage_at(index)
    return stage.title if stage else "Unknown"
