"""Streaming AgentGPT drafts as server-sent events."""

from api._http import JSONHandler
from src.models.drafting import DraftIntent, DraftRequest
from src.services.agentgpt import stream_draft
from src.utils.errors import InputValidationError


class handler(JSONHandler):
    """POST {command, intent, buyerContext} -> text/event-stream."""

    async def _stream(self) -> None:
        request = DraftRequest.model_validate(self._read_json())
        if request.intent == DraftIntent.ACTIONS.value:
            raise InputValidationError("actions intent is not streamed; use /api/agentgpt/chat")
        await self._send_event_stream(stream_draft(request))

    def do_POST(self):
        self._dispatch(self._stream)
