"""AgentGPT drafting: prompt construction and completion calls."""

import json
import re
from typing import AsyncIterator

from pydantic import ValidationError

from src.models.buyer import BuyerContext
from src.models.drafting import FALLBACK_ACTIONS, AgentAction, DraftIntent, DraftRequest
from src.models.stage import STAGES, stage_title
from src.services.llm import build_messages, complete, stream_completion
from src.utils.logging import get_structured_logger, log_timing, sanitize_message_text

logger = get_structured_logger(__name__)

JOURNEY = " -> ".join(stage.title for stage in STAGES)

SYSTEM_PROMPT = f"""You are AgentGPT, a decision engine for licensed real estate agents, not a chatbot. Your job is to proactively answer: 'What should the agent do next?' Always propose clear next actions first. Be stage-aware ({JOURNEY}). Block premature actions if prereqs missing (e.g., no offers without signed buyer representation agreement per CA law). Tone: calm, confident, concise, professional. Never speak directly to buyers. Defer legal decisions to the agent. Use ONLY provided context.

CRITICAL RULES:
- Never use emojis
- Never use hedging words like "maybe", "perhaps", "you could", "consider"
- Always be decisive and direct
- Keep responses concise and action-oriented
- When generating client-facing content, use professional but warm language
- For internal explanations, be analytical and risk-focused
- Format your response with markdown: use **bold** for emphasis, bullet points, and clear headers"""

ARTIFACT_INSTRUCTIONS = """AGENT COMMAND: {command}

Generate a client-facing artifact based on this command. This will be shown to the buyer after agent approval.

Rules:
- Write directly to the buyer using their first name
- Professional but warm tone
- Clear structure with headers (use ## for headers)
- Actionable information with bullet points
- No legal advice
- No commitments the agent hasn't approved
- Keep it concise (under 250 words)"""

THINKING_INSTRUCTIONS = """AGENT QUESTION: {command}

Provide internal analysis for the agent only. This will NOT be shared with the buyer.

Include:
- Direct answer to the question
- Risk assessment if applicable
- Strategic considerations
- Regulatory or compliance notes if relevant
- Recommended approach

Use **bold** for key points and bullet lists for clarity. Be analytical, direct, and thorough. This is agent-to-agent communication."""

ACTIONS_INSTRUCTIONS = """Based on this buyer's current stage and context, generate exactly 3 recommended next actions for the agent.

Respond ONLY with a JSON array in this exact format:
[
  {"id": "1", "label": "Short action label (max 6 words)", "command": "Full command to execute", "type": "artifact"},
  {"id": "2", "label": "Short action label", "command": "Full command", "type": "artifact"},
  {"id": "3", "label": "Short action label", "command": "Full command", "type": "thinking"}
]

Rules:
- Labels must be outcome-focused and concise
- At least 2 should be "artifact" type (client-facing content)
- One can be "thinking" type (internal analysis)
- Actions must be stage-appropriate
- Block any actions that require missing prerequisites"""

JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def _money(value) -> str:
    return f"${value:,.0f}"


def build_context_block(ctx: BuyerContext) -> str:
    """Render the buyer context the model is allowed to use."""
    stage = STAGES[ctx.current_stage] if 0 <= ctx.current_stage < len(STAGES) else None
    lines = [
        "BUYER CONTEXT:",
        f"- Name: {ctx.name}",
        f"- Current Stage: Stage {ctx.current_stage} - {stage_title(ctx.current_stage)}",
        f"- Financing: {'Confirmed' if ctx.financing_confirmed else 'Not Confirmed'}",
        f"- Buyer Type: {ctx.buyer_type or 'Not specified'}",
        f"- Market Context: {ctx.market_context or 'General market'}",
    ]
    if ctx.pre_approval_status:
        lines.append(f"- Pre-Approval: {ctx.pre_approval_status}")
    if ctx.pre_approval_amount:
        lines.append(f"- Pre-Approved Amount: {_money(ctx.pre_approval_amount)}")
    if ctx.budget_min or ctx.budget_max:
        low = _money(ctx.budget_min) if ctx.budget_min else "open"
        high = _money(ctx.budget_max) if ctx.budget_max else "open"
        lines.append(f"- Budget: {low} to {high}")
    if ctx.preferred_cities:
        lines.append(f"- Preferred Cities: {', '.join(ctx.preferred_cities)}")
    if ctx.property_types:
        lines.append(f"- Property Types: {', '.join(ctx.property_types)}")
    if ctx.min_beds or ctx.min_baths:
        lines.append(f"- Minimum: {ctx.min_beds or 0:g} beds / {ctx.min_baths or 0:g} baths")
    if ctx.must_haves:
        lines.append(f"- Must-Haves: {ctx.must_haves}")
    if ctx.nice_to_haves:
        lines.append(f"- Nice-to-Haves: {ctx.nice_to_haves}")
    if ctx.agent_notes:
        lines.append(f"- Agent Notes (internal): {ctx.agent_notes}")
    if stage is not None:
        lines.append(f"- Stage Agent Tasks: {', '.join(stage.agent_tasks)}")
        lines.append(f"- Stage Buyer Tasks: {', '.join(stage.buyer_tasks)}")
    if ctx.recent_activity:
        lines.append(f"- Recent Activity: {', '.join(ctx.recent_activity)}")
    return "\n".join(lines)


def build_user_prompt(intent: str, command: str, ctx: BuyerContext) -> str:
    context = build_context_block(ctx)
    if intent == DraftIntent.ARTIFACT.value:
        instructions = ARTIFACT_INSTRUCTIONS.format(command=command)
    elif intent == DraftIntent.THINKING.value:
        instructions = THINKING_INSTRUCTIONS.format(command=command)
    elif intent == DraftIntent.ACTIONS.value:
        instructions = ACTIONS_INSTRUCTIONS
    else:
        raise ValueError(f"Unknown drafting intent: {intent}")
    return f"{context}\n\n{instructions}"


def build_draft_messages(request: DraftRequest) -> list:
    return build_messages(SYSTEM_PROMPT, build_user_prompt(request.intent, request.text, request.buyer_context))


async def stream_draft(request: DraftRequest, model=None) -> AsyncIterator[str]:
    """Stream an artifact or thinking response as text deltas."""
    logger.info(
        "Streaming draft",
        intent=request.intent,
        stage=request.buyer_context.current_stage,
        command=sanitize_message_text(request.text, max_length=200),
    )
    async for text in stream_completion(build_draft_messages(request), model=model):
        yield text


async def draft_text(request: DraftRequest, model=None) -> str:
    """Non-streaming artifact or thinking response."""
    with log_timing("draft_text", logger=logger, intent=request.intent):
        return await complete(build_draft_messages(request), model=model)


def parse_actions(content: str) -> list[AgentAction]:
    """Parse the model's JSON array; fall back to the fixed action list."""
    match = JSON_ARRAY.search(content or "")
    if match:
        try:
            raw = json.loads(match.group(0))
            actions = [AgentAction.model_validate(a) for a in raw]
            if actions:
                return actions
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning("Failed to parse actions", error=str(e))
    else:
        logger.warning("No JSON array in actions response")
    return [a.model_copy() for a in FALLBACK_ACTIONS]


async def generate_actions(ctx: BuyerContext, model=None) -> list[AgentAction]:
    messages = build_messages(SYSTEM_PROMPT, build_user_prompt(DraftIntent.ACTIONS.value, "", ctx))
    with log_timing("generate_actions", logger=logger, stage=ctx.current_stage):
        content = await complete(messages, model=model)
    return parse_actions(content)
