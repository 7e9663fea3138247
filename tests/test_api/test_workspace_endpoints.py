"""Tests for workspace, portal, template and scrape endpoints."""

import pytest
from unittest.mock import AsyncMock, patch
from api.offer_templates.analyze import handler as analyze_handler
from api.portal.feed import handler as feed_handler
from api.properties.scrape import handler as scrape_handler
from api.workspace.approvals import handler as approvals_handler
from api.workspace.stage import handler as stage_handler
from src.models.buyer import Buyer
from src.models.conversation import AIExplanation, SystemEvent
from src.models.offer_template import DetectedField, OfferTemplate
from src.utils.errors import (
    InvalidTransition,
    NotFoundError,
    ScrapeError,
    ScrapeNotConfiguredError,
    SupabaseError,
    TemplateAnalysisError,
)
from tests.utils.helpers import AGENT_HEADERS, BUYER_HEADERS, create_handler, response_json, response_status


@pytest.mark.unit
def test_approve_endpoint():
    item = AIExplanation(buyer_id="buyer-1", stage_id=1, content="Draft")
    h = create_handler(approvals_handler, body={"item_id": item.id, "action": "approve"}, headers=AGENT_HEADERS)
    with patch('api.workspace.approvals.approve_item', AsyncMock(return_value=item)) as mock_approve:
        h.do_POST()

    assert response_status(h) == 200
    assert response_json(h)["item"]["id"] == item.id
    session = mock_approve.await_args[0][1]
    assert session.user_id == "agent-1"


@pytest.mark.unit
def test_second_approval_conflicts():
    h = create_handler(approvals_handler, body={"item_id": "i1", "action": "approve"}, headers=AGENT_HEADERS)
    with patch('api.workspace.approvals.approve_item', AsyncMock(side_effect=InvalidTransition("already approved"))):
        h.do_POST()
    assert response_status(h) == 409


@pytest.mark.unit
def test_reject_needs_reason():
    h = create_handler(approvals_handler, body={"item_id": "i1", "action": "reject"}, headers=AGENT_HEADERS)
    with patch('api.workspace.approvals.reject_item', AsyncMock()) as mock_reject:
        h.do_POST()
    assert response_status(h) == 400
    mock_reject.assert_not_awaited()


@pytest.mark.unit
def test_buyer_cannot_approve():
    h = create_handler(approvals_handler, body={"item_id": "i1", "action": "approve"}, headers=BUYER_HEADERS)
    with patch('src.services.approval_gate.conversation_store.load_item', AsyncMock()):
        h.do_POST()
    assert response_status(h) == 403


@pytest.mark.unit
def test_stage_endpoint():
    buyer = Buyer(id="buyer-1", name="Jordan", current_stage=0)
    event = SystemEvent(buyer_id="buyer-1", stage_id=1, event_type="stage-advanced", title="Advanced")

    async def advance(b, target, session):
        b.current_stage = target
        return event

    h = create_handler(stage_handler, body={"buyer_id": "buyer-1", "target_stage": 1}, headers=AGENT_HEADERS)
    with patch('api.workspace.stage.get_buyer', AsyncMock(return_value=buyer)), \
         patch('api.workspace.stage.advance_stage', side_effect=advance):
        h.do_POST()

    body = response_json(h)
    assert response_status(h) == 200
    assert body["buyer"]["current_stage"] == 1
    assert body["event"]["event_type"] == "stage-advanced"


@pytest.mark.unit
@pytest.mark.parametrize("target", ["2", True, None])
def test_stage_endpoint_needs_integer(target):
    h = create_handler(stage_handler, body={"buyer_id": "buyer-1", "target_stage": target}, headers=AGENT_HEADERS)
    h.do_POST()
    assert response_status(h) == 400


@pytest.mark.unit
def test_portal_feed_defaults_to_session_buyer():
    h = create_handler(feed_handler, method="GET", path="/api/portal/feed", headers=BUYER_HEADERS)
    with patch('api.portal.feed.get_portal_feed', AsyncMock(return_value={"items": []})) as mock_feed:
        h.do_GET()

    assert response_status(h) == 200
    assert mock_feed.await_args[0][0] == "buyer-1"


@pytest.mark.unit
def test_portal_feed_query_param():
    h = create_handler(feed_handler, method="GET", path="/api/portal/feed?buyer_id=buyer-7", headers=AGENT_HEADERS)
    with patch('api.portal.feed.get_portal_feed', AsyncMock(return_value={"items": []})) as mock_feed:
        h.do_GET()
    assert mock_feed.await_args[0][0] == "buyer-7"


ANALYZE_BODY = {"template_id": "tpl-1", "file_url": "https://files.test/offer.pdf", "file_type": "pdf"}
TEMPLATE = OfferTemplate(id="tpl-1", file_url=ANALYZE_BODY["file_url"], file_type="pdf")


@pytest.mark.unit
def test_analyze_sync_returns_fields():
    fields = [DetectedField(field_name="purchase_price", field_type="number")]
    h = create_handler(analyze_handler, body=ANALYZE_BODY, headers=AGENT_HEADERS)
    with patch('api.offer_templates.analyze.analyze_offer_template', AsyncMock(return_value=fields)):
        h.do_POST()

    body = response_json(h)
    assert response_status(h) == 200
    assert body["success"] is True
    assert body["fields_count"] == 1


@pytest.mark.unit
def test_analyze_async_accepts_and_swallows_failure():
    h = create_handler(analyze_handler, body={**ANALYZE_BODY, "async": True}, headers=AGENT_HEADERS)
    with patch('api.offer_templates.analyze.get_template', AsyncMock(return_value=TEMPLATE)), \
         patch('api.offer_templates.analyze.analyze_offer_template',
               AsyncMock(side_effect=TemplateAnalysisError("bad pdf"))) as mock_analyze:
        h.do_POST()

    assert response_status(h) == 202
    assert response_json(h) == {"template_id": "tpl-1", "analysis_status": "analyzing"}
    mock_analyze.assert_awaited_once()


@pytest.mark.unit
def test_analyze_async_store_failure_after_ack_sends_one_response():
    h = create_handler(analyze_handler, body={**ANALYZE_BODY, "async": True}, headers=AGENT_HEADERS)
    with patch('api.offer_templates.analyze.get_template', AsyncMock(return_value=TEMPLATE)), \
         patch('api.offer_templates.analyze.analyze_offer_template',
               AsyncMock(side_effect=SupabaseError("db down"))):
        h.do_POST()

    assert [c.args[0] for c in h.send_response.call_args_list] == [202]
    assert response_json(h) == {"template_id": "tpl-1", "analysis_status": "analyzing"}


@pytest.mark.unit
@pytest.mark.parametrize("async_mode", [True, False])
def test_analyze_unknown_template_is_404(async_mode):
    h = create_handler(analyze_handler, body={**ANALYZE_BODY, "async": async_mode}, headers=AGENT_HEADERS)
    missing = NotFoundError("Offer template tpl-1 not found")
    with patch('api.offer_templates.analyze.get_template', AsyncMock(side_effect=missing)), \
         patch('api.offer_templates.analyze.analyze_offer_template', AsyncMock(side_effect=missing)):
        h.do_POST()

    assert [c.args[0] for c in h.send_response.call_args_list] == [404]


@pytest.mark.unit
def test_analyze_sync_failure_is_500():
    h = create_handler(analyze_handler, body=ANALYZE_BODY, headers=AGENT_HEADERS)
    with patch('api.offer_templates.analyze.analyze_offer_template',
               AsyncMock(side_effect=TemplateAnalysisError("bad pdf"))):
        h.do_POST()
    assert response_status(h) == 500


@pytest.mark.unit
def test_scrape_success():
    result = {"data": {"address": "123 Main St"}, "source": "zillow"}
    h = create_handler(scrape_handler, body={"url": "https://www.zillow.com/x"})
    with patch('api.properties.scrape.scrape_property_link', AsyncMock(return_value=result)):
        h.do_POST()

    assert response_status(h) == 200
    assert response_json(h) == {"success": True, **result}


@pytest.mark.unit
def test_scrape_missing_url():
    h = create_handler(scrape_handler, body={})
    h.do_POST()
    assert response_status(h) == 400
    assert response_json(h)["success"] is False


@pytest.mark.unit
@pytest.mark.parametrize("error,status", [
    (ScrapeError("Scraping failed with status 402"), 400),
    (ScrapeNotConfiguredError("FIRECRAWL_API_KEY not configured"), 500),
    (ScrapeError("Provider says: service not configured for this domain"), 400),
])
def test_scrape_failures(error, status):
    h = create_handler(scrape_handler, body={"url": "https://www.zillow.com/x"})
    with patch('api.properties.scrape.scrape_property_link', AsyncMock(side_effect=error)):
        h.do_POST()
    assert response_status(h) == status
    assert response_json(h) == {"success": False, "error": str(error)}
