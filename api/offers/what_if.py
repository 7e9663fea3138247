"""What-if offer analysis endpoint."""

from api._http import JSONHandler
from src.models.offer_strategy import WhatIfRequest
from src.services.offer_strategy import analyze_what_if, price_difference


class handler(JSONHandler):
    """POST {propertyId, buyerId, offerAmount} -> {success, analysis, context}."""

    async def _analyze(self) -> None:
        session = self._session()
        request = WhatIfRequest.model_validate(self._read_json())
        prop, analysis = await analyze_what_if(
            request.property_id, request.buyer_id, request.offer_amount, session
        )
        _, percent = price_difference(prop.price, request.offer_amount)
        self._send_json(200, {
            "success": True,
            "analysis": analysis.model_dump(mode="json"),
            "context": {
                "property_id": prop.id,
                "property_address": prop.address,
                "asking_price": prop.price,
                "offer_amount": request.offer_amount,
                "diff_percent": percent,
            },
        })

    def do_POST(self):
        self._dispatch(self._analyze)
