"""Stage progression endpoint."""

from api._http import JSONHandler
from src.services.buyers import get_buyer
from src.services.stage_progression import advance_stage
from src.utils.errors import InputValidationError


class handler(JSONHandler):
    """POST {buyer_id, target_stage} -> {buyer, event}."""

    async def _advance(self) -> None:
        session = self._session()
        body = self._read_json()
        buyer_id = body.get("buyer_id")
        target = body.get("target_stage")
        if not buyer_id:
            raise InputValidationError("buyer_id is required")
        if not isinstance(target, int) or isinstance(target, bool):
            raise InputValidationError("target_stage must be an integer")

        buyer = await get_buyer(buyer_id, session)
        event = await advance_stage(buyer, target, session)
        self._send_json(200, {
            "buyer": buyer.model_dump(mode="json"),
            "event": event.model_dump(mode="json"),
        })

    def do_POST(self):
        self._dispatch(self._advance)
