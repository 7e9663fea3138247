"""Non-streaming AgentGPT endpoint: suggested actions or a full draft."""

from api._http import JSONHandler
from src.models.drafting import DraftIntent, DraftRequest
from src.services.agentgpt import draft_text, generate_actions


class handler(JSONHandler):
    """POST {intent, buyerContext, command?} -> {actions} or {content}."""

    async def _chat(self) -> None:
        request = DraftRequest.model_validate(self._read_json())
        if request.intent == DraftIntent.ACTIONS.value:
            actions = await generate_actions(request.buyer_context)
            self._send_json(200, {"actions": [a.model_dump() for a in actions]})
            return
        content = await draft_text(request)
        self._send_json(200, {
            "content": content,
            "visibility": request.effective_visibility,
        })

    def do_POST(self):
        self._dispatch(self._chat)
