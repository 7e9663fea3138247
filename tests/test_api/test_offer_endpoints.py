"""Tests for offer strategy and property analysis endpoints."""

import json
import pytest
from unittest.mock import AsyncMock, patch
from api.offers.scenarios import handler as scenarios_handler
from api.offers.what_if import handler as what_if_handler
from api.properties.analysis import handler as analysis_handler
from src.models.offer_strategy import OfferScenario, WhatIfAnalysis
from src.models.property import BuyerProperty, Property
from src.utils.errors import DraftingError, InputValidationError, PermissionDeniedError, RateLimitedError
from tests.utils.helpers import (
    AGENT_HEADERS,
    BUYER_HEADERS,
    create_handler,
    response_headers,
    response_json,
    response_status,
    response_text,
)

BODY = {"propertyId": "prop-1", "buyerId": "buyer-1"}
PROPERTY = Property(id="prop-1", address="12 Oak St", city="Austin", state="TX", price=700000)
SCENARIO = OfferScenario(name="Competitive", offer_amount=700000, competitiveness="competitive")
WHAT_IF = WhatIfAnalysis(strategy_assessment="Fair.", likelihood="High", competitiveness="competitive")


def fake_stream(*chunks, error=None):
    async def stream(property_id, buyer_id, session):
        for chunk in chunks:
            yield chunk
        if error is not None:
            raise error
    return stream


@pytest.mark.unit
def test_scenarios_endpoint():
    h = create_handler(scenarios_handler, body=BODY, headers=AGENT_HEADERS)
    with patch('api.offers.scenarios.generate_offer_scenarios',
               AsyncMock(return_value=(PROPERTY, [SCENARIO]))) as mock_generate:
        h.do_POST()

    assert response_status(h) == 200
    body = response_json(h)
    assert body["success"] is True
    assert body["scenarios"][0]["competitiveness"] == "competitive"
    assert body["property"] == {"id": "prop-1", "address": "12 Oak St", "price": 700000}
    assert mock_generate.await_args.args[:2] == ("prop-1", "buyer-1")


@pytest.mark.unit
def test_scenarios_requires_ids():
    h = create_handler(scenarios_handler, body={"propertyId": "prop-1"}, headers=AGENT_HEADERS)
    h.do_POST()
    assert response_status(h) == 400


@pytest.mark.unit
@pytest.mark.parametrize("error,status", [
    (PermissionDeniedError("buyer cannot generate offer scenarios"), 403),
    (InputValidationError("Property prop-1 has no listed price"), 400),
    (RateLimitedError("429"), 429),
    (DraftingError("Failed to parse scenario response"), 500),
])
def test_scenarios_error_statuses(error, status):
    h = create_handler(scenarios_handler, body=BODY, headers=AGENT_HEADERS)
    with patch('api.offers.scenarios.generate_offer_scenarios', AsyncMock(side_effect=error)):
        h.do_POST()

    assert [c.args[0] for c in h.send_response.call_args_list] == [status]
    if status == 500:
        assert response_json(h) == {"error": "AI service temporarily unavailable"}


@pytest.mark.unit
def test_what_if_endpoint_context():
    h = create_handler(what_if_handler, body={**BODY, "offerAmount": 672000}, headers=AGENT_HEADERS)
    with patch('api.offers.what_if.analyze_what_if', AsyncMock(return_value=(PROPERTY, WHAT_IF))):
        h.do_POST()

    body = response_json(h)
    assert body["analysis"]["likelihood"] == "High"
    assert body["context"] == {
        "property_id": "prop-1",
        "property_address": "12 Oak St",
        "asking_price": 700000,
        "offer_amount": 672000,
        "diff_percent": -4.0,
    }


@pytest.mark.unit
def test_what_if_rejects_non_positive_offer():
    h = create_handler(what_if_handler, body={**BODY, "offerAmount": 0}, headers=AGENT_HEADERS)
    with patch('api.offers.what_if.analyze_what_if', AsyncMock()) as mock_analyze:
        h.do_POST()

    assert response_status(h) == 400
    mock_analyze.assert_not_awaited()


@pytest.mark.unit
def test_what_if_needs_session():
    h = create_handler(what_if_handler, body={**BODY, "offerAmount": 672000})
    h.do_POST()
    assert response_status(h) == 403


@pytest.mark.unit
def test_property_analysis_json():
    link = BuyerProperty(id="bp-1", buyer_id="buyer-1", property_id="prop-1",
                         ai_analysis="## Value Assessment", ai_analysis_generated_at="2024-12-09T12:00:00+00:00")
    h = create_handler(analysis_handler, body=BODY, headers=AGENT_HEADERS)
    with patch('api.properties.analysis.generate_property_analysis', AsyncMock(return_value=link)):
        h.do_POST()

    assert response_status(h) == 200
    assert response_json(h) == {
        "success": True,
        "analysis": "## Value Assessment",
        "generated_at": "2024-12-09T12:00:00+00:00",
    }


@pytest.mark.unit
def test_property_analysis_stream():
    h = create_handler(analysis_handler, body={**BODY, "stream": True}, headers=AGENT_HEADERS)
    with patch('api.properties.analysis.stream_property_analysis', fake_stream("## Value", " Assessment")), \
         patch('api.properties.analysis.generate_property_analysis', AsyncMock()) as mock_generate:
        h.do_POST()

    assert response_status(h) == 200
    assert response_headers(h)["Content-Type"] == "text/event-stream"
    sent = [f for f in response_text(h).split("\n\n") if f]
    assert json.loads(sent[0][len("data: "):])["delta"]["text"] == "## Value"
    assert sent[-1] == "data: [DONE]"
    mock_generate.assert_not_awaited()


@pytest.mark.unit
def test_property_analysis_stream_denied_before_headers():
    h = create_handler(analysis_handler, body={**BODY, "stream": True}, headers=BUYER_HEADERS)
    with patch('api.properties.analysis.stream_property_analysis',
               fake_stream(error=PermissionDeniedError("buyer cannot analyze properties"))):
        h.do_POST()

    assert [c.args[0] for c in h.send_response.call_args_list] == [403]
