"""Tests for artifact storage and sharing."""

import pytest
from unittest.mock import AsyncMock, patch
from src.models.artifact import Artifact
from src.models.conversation import AIExplanation
from src.services import approval_gate, artifacts
from src.utils.errors import InvalidTransition
from tests.utils.factories import create_artifact_data


def echo_row(table, row):
    return {"id": "artifact-1", **row}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_internal_artifact_not_shared(agent_session):
    artifact = Artifact(buyer_id="buyer-1", title="Strategy brief", content="...")
    with patch.object(artifacts, 'insert_row', AsyncMock(side_effect=echo_row)) as mock_insert:
        saved = await artifacts.create_artifact(artifact, agent_session)

    row = mock_insert.await_args[0][1]
    assert "shared_at" not in row
    assert row["created_by"] == "agent-1"
    assert saved.visibility == "internal"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_shared_artifact_stamps_shared_at(agent_session):
    artifact = Artifact(buyer_id="buyer-1", title="Update", content="...", visibility="shared")
    with patch.object(artifacts, 'insert_row', AsyncMock(side_effect=echo_row)):
        saved = await artifacts.create_artifact(artifact, agent_session)
    assert saved.shared_at is not None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_buyer_sees_shared_only(buyer_session):
    shared = [create_artifact_data(buyer_id="buyer-1", visibility="shared")]
    with patch.object(artifacts, 'fetch_where', AsyncMock(return_value=shared)) as mock_fetch:
        result = await artifacts.list_artifacts("buyer-1", buyer_session)

    assert mock_fetch.await_args[0][1] == {"buyer_id": "buyer-1", "visibility": "shared"}
    assert [a.visibility for a in result] == ["shared"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_agent_sees_everything(agent_session):
    rows = [create_artifact_data(buyer_id="buyer-1"), create_artifact_data(buyer_id="buyer-1", visibility="shared")]
    with patch.object(artifacts, 'fetch_where', AsyncMock(return_value=rows)) as mock_fetch:
        result = await artifacts.list_artifacts("buyer-1", agent_session)

    assert mock_fetch.await_args[0][1] == {"buyer_id": "buyer-1"}
    assert len(result) == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_publish_requires_approval(agent_session):
    item = AIExplanation(buyer_id="buyer-1", stage_id=2, content="Draft")
    with pytest.raises(InvalidTransition):
        await artifacts.publish_approved_draft(item, "Market update", agent_session)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_publish_approved_draft(agent_session):
    item = approval_gate.approve(AIExplanation(buyer_id="buyer-1", stage_id=2, content="Approved text"))
    with patch.object(artifacts, 'insert_row', AsyncMock(side_effect=echo_row)):
        saved = await artifacts.publish_approved_draft(item, "Market update", agent_session)

    assert saved.visibility == "shared"
    assert saved.source_item_id == item.id
    assert saved.content == "Approved text"
    assert saved.stage_id == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_share_artifact_sets_visibility(agent_session):
    row = create_artifact_data(buyer_id="buyer-1", visibility="shared")
    with patch.object(artifacts, 'update_by_id', AsyncMock(return_value=row)) as mock_update:
        shared = await artifacts.share_artifact(row["id"], agent_session)

    changes = mock_update.await_args[0][2]
    assert changes["visibility"] == "shared"
    assert "shared_at" in changes
    assert shared.visibility == "shared"
