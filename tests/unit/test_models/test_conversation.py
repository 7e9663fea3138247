"""Tests for conversation item models."""

import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError
from src.models.conversation import (
    AIExplanation,
    ComponentBlock,
    HumanMessage,
    SystemEvent,
    WorkspaceConversation,
    parse_conversation_item,
)


@pytest.mark.unit
def test_ai_explanation_defaults_to_pending_hidden():
    item = AIExplanation(stage_id=1, content="Draft")

    assert item.approval_status == "pending"
    assert item.is_visible_to_buyer is False
    assert item.requires_approval is True
    assert item.id


@pytest.mark.unit
def test_ai_explanation_cannot_be_visible_while_pending():
    with pytest.raises(ValidationError):
        AIExplanation(stage_id=1, content="Draft", is_visible_to_buyer=True)


@pytest.mark.unit
def test_ai_explanation_visibility_assignment_checked():
    item = AIExplanation(stage_id=1, content="Draft")
    with pytest.raises(ValidationError):
        item.is_visible_to_buyer = True


@pytest.mark.unit
def test_item_stage_must_be_in_catalog():
    with pytest.raises(ValidationError):
        AIExplanation(stage_id=12, content="Draft")


@pytest.mark.unit
def test_buyer_messages_always_immutable():
    message = HumanMessage(stage_id=0, sender="buyer", sender_name="Jordan", content="Hi")
    assert message.is_immutable is True


@pytest.mark.unit
def test_agent_messages_editable_by_default():
    message = HumanMessage(stage_id=0, sender="agent", sender_name="Alex", content="Hi")
    assert message.is_immutable is False


@pytest.mark.unit
def test_human_message_requires_content():
    with pytest.raises(ValidationError):
        HumanMessage(stage_id=0, sender="agent", sender_name="Alex", content="")


@pytest.mark.unit
def test_system_event_is_frozen():
    event = SystemEvent(stage_id=3, event_type="stage-advanced", title="Advanced")
    with pytest.raises(ValidationError):
        event.title = "Changed"


@pytest.mark.unit
def test_parse_conversation_item_dispatches_on_type():
    item = parse_conversation_item({
        "type": "component-block",
        "stage_id": 3,
        "block_type": "property-card",
        "title": "12 Oak St",
        "data": {"price": 615000},
    })
    assert isinstance(item, ComponentBlock)
    assert item.data["price"] == 615000


@pytest.mark.unit
def test_parse_conversation_item_unknown_type():
    with pytest.raises(ValidationError):
        parse_conversation_item({"type": "voice-note", "stage_id": 0})


@pytest.mark.unit
def test_build_groups_items_by_stage_in_time_order():
    now = datetime(2024, 12, 9, 12, 0, tzinfo=timezone.utc)
    later = AIExplanation(stage_id=1, content="second", timestamp=now + timedelta(minutes=5))
    earlier = AIExplanation(stage_id=1, content="first", timestamp=now)
    other = HumanMessage(stage_id=0, sender="agent", sender_name="Alex", content="hello", timestamp=now)

    conversation = WorkspaceConversation.build("buyer-1", 1, [later, other, earlier])

    assert len(conversation.stages) == 10
    assert [i.content for i in conversation.items_in_stage(1)] == ["first", "second"]
    assert conversation.items_in_stage(0)[0].id == other.id
    assert conversation.find(earlier.id) is earlier


@pytest.mark.unit
def test_stage_statuses_follow_current_stage():
    conversation = WorkspaceConversation.build("buyer-1", 2)
    statuses = [g.status for g in conversation.stages]

    assert statuses[:2] == ["completed", "completed"]
    assert statuses[2] == "current"
    assert all(s == "locked" for s in statuses[3:])

    conversation.set_current_stage(4)
    assert conversation.group(4).status == "current"
    assert conversation.group(3).status == "completed"


@pytest.mark.unit
def test_group_rejects_unknown_stage():
    conversation = WorkspaceConversation.build("buyer-1", 0)
    with pytest.raises(ValueError):
        conversation.group(10)
