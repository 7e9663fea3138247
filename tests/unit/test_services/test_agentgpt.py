"""Tests for AgentGPT prompt building and action parsing."""

import json
import pytest
from langchain_core.messages import AIMessage, AIMessageChunk
from src.models.buyer import BuyerContext
from src.models.drafting import DraftRequest
from src.services.agentgpt import (
    SYSTEM_PROMPT,
    build_context_block,
    build_draft_messages,
    build_user_prompt,
    draft_text,
    generate_actions,
    parse_actions,
    stream_draft,
)


class FakeChatModel:

    def __init__(self, chunks=None, content=""):
        self.chunks = chunks or []
        self.content = content
        self.messages = None

    async def astream(self, messages):
        self.messages = messages
        for chunk in self.chunks:
            yield AIMessageChunk(content=chunk)

    async def ainvoke(self, messages):
        self.messages = messages
        return AIMessage(content=self.content)


@pytest.fixture
def context(sample_buyer):
    return BuyerContext.from_buyer(sample_buyer, ["Toured 12 Oak St"])


@pytest.mark.unit
def test_system_prompt_lists_catalog_journey():
    assert "Readiness & Expectations -> Financing & Capability" in SYSTEM_PROMPT
    assert "Closing & Post-Close" in SYSTEM_PROMPT


@pytest.mark.unit
def test_context_block_contents(context):
    block = build_context_block(context)

    assert "- Name: Jordan Rivera" in block
    assert "Stage 2 - Market Intelligence & Search Setup" in block
    assert "- Financing: Confirmed" in block
    assert "- Pre-Approved Amount: $720,000" in block
    assert "- Budget: $500,000 to $750,000" in block
    assert "- Preferred Cities: Austin, Round Rock" in block
    assert "Generate neighborhood brief" in block
    assert "- Recent Activity: Toured 12 Oak St" in block


@pytest.mark.unit
def test_context_block_minimal():
    block = build_context_block(BuyerContext(name="Sam"))
    assert "- Buyer Type: Not specified" in block
    assert "- Market Context: General market" in block
    assert "Budget" not in block


@pytest.mark.unit
def test_user_prompt_per_intent(context):
    assert "AGENT COMMAND: Draft update" in build_user_prompt("artifact", "Draft update", context)
    assert "will NOT be shared" in build_user_prompt("thinking", "Risks?", context)
    assert "exactly 3 recommended next actions" in build_user_prompt("actions", "", context)
    with pytest.raises(ValueError):
        build_user_prompt("chat", "hi", context)


@pytest.mark.unit
def test_parse_actions_extracts_json_array():
    content = 'Here you go:\n[{"id": "1", "label": "Send brief", "command": "Draft brief", "type": "artifact"}]'
    actions = parse_actions(content)
    assert len(actions) == 1
    assert actions[0].label == "Send brief"


@pytest.mark.unit
@pytest.mark.parametrize("content", ["no json here", "[not valid json]", "[]", '[{"id": "1"}]', None])
def test_parse_actions_fallback(content):
    actions = parse_actions(content)
    assert [a.id for a in actions] == ["1", "2", "3"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stream_draft_yields_deltas(context):
    request = DraftRequest(command="Draft update", buyer_context=context)
    model = FakeChatModel(chunks=["Hi", " Jordan"])

    texts = [t async for t in stream_draft(request, model=model)]

    assert texts == ["Hi", " Jordan"]
    assert "AGENT COMMAND: Draft update" in model.messages[1].content


@pytest.mark.unit
@pytest.mark.asyncio
async def test_draft_text(context):
    request = DraftRequest(command="Risks?", intent="thinking", buyer_context=context)
    model = FakeChatModel(content="Low risk.")
    assert await draft_text(request, model=model) == "Low risk."


@pytest.mark.unit
@pytest.mark.asyncio
async def test_generate_actions(context):
    raw = [
        {"id": "1", "label": "A", "command": "a", "type": "artifact"},
        {"id": "2", "label": "B", "command": "b", "type": "artifact"},
        {"id": "3", "label": "C", "command": "c", "type": "thinking"},
    ]
    model = FakeChatModel(content=json.dumps(raw))
    actions = await generate_actions(context, model=model)
    assert [a.label for a in actions] == ["A", "B", "C"]


@pytest.mark.unit
def test_build_draft_messages_uses_request_text(context):
    request = DraftRequest(message="  Welcome note  ", buyer_context=context)
    messages = build_draft_messages(request)
    assert messages[0].content == SYSTEM_PROMPT
    assert "AGENT COMMAND: Welcome note" in messages[1].content
