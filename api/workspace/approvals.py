"""Agent approval queue actions."""

from api._http import JSONHandler
from src.services.approval_gate import approve_item, reject_item
from src.utils.errors import InputValidationError


class handler(JSONHandler):
    """POST {item_id, action: approve|reject, reason?}."""

    async def _decide(self) -> None:
        session = self._session()
        body = self._read_json()
        item_id = body.get("item_id")
        action = body.get("action")
        if not item_id:
            raise InputValidationError("item_id is required")

        if action == "approve":
            item = await approve_item(item_id, session)
        elif action == "reject":
            reason = (body.get("reason") or "").strip()
            if not reason:
                raise InputValidationError("reason is required when rejecting")
            item = await reject_item(item_id, reason, session)
        else:
            raise InputValidationError("action must be 'approve' or 'reject'")

        self._send_json(200, {"item": item.model_dump(mode="json")})

    def do_POST(self):
        self._dispatch(self._decide)
