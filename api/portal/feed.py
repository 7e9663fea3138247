"""Buyer portal feed."""

from api._http import JSONHandler
from src.services.portal import get_portal_feed
from src.utils.errors import InputValidationError


class handler(JSONHandler):

    async def _feed(self) -> None:
        session = self._session()
        buyer_id = self._query().get("buyer_id") or session.buyer_id
        if not buyer_id:
            raise InputValidationError("buyer_id is required")
        self._send_json(200, await get_portal_feed(buyer_id, session))

    def do_GET(self):
        self._dispatch(self._feed)
