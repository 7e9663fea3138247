"""AI offer scenario endpoint."""

from api._http import JSONHandler
from src.models.offer_strategy import OfferScenarioRequest
from src.services.offer_strategy import generate_offer_scenarios


class handler(JSONHandler):
    """POST {propertyId, buyerId} -> {success, scenarios, property}."""

    async def _generate(self) -> None:
        session = self._session()
        request = OfferScenarioRequest.model_validate(self._read_json())
        prop, scenarios = await generate_offer_scenarios(request.property_id, request.buyer_id, session)
        self._send_json(200, {
            "success": True,
            "scenarios": [s.model_dump(mode="json") for s in scenarios],
            "property": {"id": prop.id, "address": prop.address, "price": prop.price},
        })

    def do_POST(self):
        self._dispatch(self._generate)
