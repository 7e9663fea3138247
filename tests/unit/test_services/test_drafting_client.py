"""Tests for the AgentGPT drafting client."""

import json
import httpx
import pytest
from unittest.mock import AsyncMock, patch
from src.models.conversation import WorkspaceConversation
from src.services import drafting_client
from src.services.drafting_client import FAILURE_MESSAGE, RATE_LIMITED_MESSAGE, AgentGPTClient
from src.services.sse import DONE_FRAME, encode_delta, encode_error


def sse_response(*frames: str, status: int = 200) -> httpx.Response:
    return httpx.Response(status, text="".join(frames), headers={"Content-Type": "text/event-stream"})


def make_client(handler) -> AgentGPTClient:
    return AgentGPTClient(base_url="http://agentgpt.test", transport=httpx.MockTransport(handler))


@pytest.fixture
def conversation(sample_buyer):
    return WorkspaceConversation.build(sample_buyer.id, sample_buyer.current_stage)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stream_artifact_success(sample_buyer, conversation):
    seen_requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_requests.append(request)
        return sse_response(encode_delta("Hi Jordan,"), encode_delta(" great news."), DONE_FRAME)

    deltas = []
    item = await make_client(handler).stream_artifact(
        "Draft financing update", sample_buyer, conversation, on_delta=deltas.append
    )

    assert item.content == "Hi Jordan, great news."
    assert deltas == ["Hi Jordan,", " great news."]
    assert item.approval_status == "pending"
    assert item.is_visible_to_buyer is False
    assert item.error_kind is None
    assert item.stage_id == 2
    assert conversation.items_in_stage(2) == [item]

    body = json.loads(seen_requests[0].content)
    assert seen_requests[0].url.path == "/api/agentgpt/stream"
    assert body["intent"] == "artifact"
    assert body["visibility"] == "buyer_approval_required"
    assert body["buyerContext"]["currentStage"] == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stream_artifact_rate_limited(sample_buyer, conversation):
    def handler(request):
        return httpx.Response(429, json={"error": "Rate limit exceeded"})

    item = await make_client(handler).stream_artifact("Draft update", sample_buyer, conversation)

    assert item.content == RATE_LIMITED_MESSAGE
    assert item.error_kind == "rate_limited"
    assert item.approval_status == "pending"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stream_artifact_server_error(sample_buyer, conversation):
    def handler(request):
        return httpx.Response(500, json={"error": "AI service temporarily unavailable"})

    item = await make_client(handler).stream_artifact("Draft update", sample_buyer, conversation)

    assert item.content == FAILURE_MESSAGE
    assert item.error_kind == "failed"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stream_without_done_is_failure(sample_buyer, conversation):
    """A truncated stream never leaves partial content behind."""
    def handler(request):
        return sse_response(encode_delta("Half a sent"))

    item = await make_client(handler).stream_artifact("Draft update", sample_buyer, conversation)

    assert item.content == FAILURE_MESSAGE
    assert item.error_kind == "failed"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stream_error_frame_is_failure(sample_buyer, conversation):
    def handler(request):
        return sse_response(encode_delta("Partial"), encode_error("boom"))

    item = await make_client(handler).stream_artifact("Draft update", sample_buyer, conversation)

    assert item.error_kind == "failed"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stream_artifact_persists_when_asked(sample_buyer, conversation):
    def handler(request):
        return sse_response(encode_delta("Saved"), DONE_FRAME)

    with patch.object(drafting_client.conversation_store, 'save_item', AsyncMock()) as mock_save:
        item = await make_client(handler).stream_artifact(
            "Draft update", sample_buyer, conversation, persist=True
        )

    mock_save.assert_awaited_once_with(item)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stream_thinking_is_internal(sample_buyer):
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return sse_response(encode_delta("Risk is low."), DONE_FRAME)

    response = await make_client(handler).stream_thinking("What are the risks?", sample_buyer)

    assert response.content == "Risk is low."
    assert response.failed is False
    assert bodies[0]["visibility"] == "internal"
    assert bodies[0]["intent"] == "thinking"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_request_actions(sample_buyer):
    actions = [
        {"id": "1", "label": "Send market brief", "command": "Draft market brief", "type": "artifact"},
        {"id": "2", "label": "Assess risks", "command": "Assess risks", "type": "thinking"},
    ]

    def handler(request):
        assert request.url.path == "/api/agentgpt/chat"
        return httpx.Response(200, json={"actions": actions})

    result = await make_client(handler).request_actions(sample_buyer)

    assert [a.label for a in result] == ["Send market brief", "Assess risks"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_request_actions_falls_back(sample_buyer):
    def handler(request):
        return httpx.Response(500, json={"error": "nope"})

    result = await make_client(handler).request_actions(sample_buyer)

    assert [a.id for a in result] == ["1", "2", "3"]


@pytest.mark.unit
def test_api_key_sent_as_bearer():
    client = AgentGPTClient(base_url="http://agentgpt.test/", api_key="secret")
    http_client = client._client()
    assert http_client.headers["Authorization"] == "Bearer secret"
    assert client.base_url == "http://agentgpt.test"


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("body", ['"overloaded"', '["busy"]', '{"error": ["nested"]}'])
async def test_non_object_error_body_is_failure(sample_buyer, conversation, body):
    def handler(request):
        return httpx.Response(503, content=body.encode(), headers={"Content-Type": "application/json"})

    item = await make_client(handler).stream_artifact("Draft update", sample_buyer, conversation)

    assert item.content == FAILURE_MESSAGE
    assert item.error_kind == "failed"
