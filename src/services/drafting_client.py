"""Client for the AgentGPT drafting endpoints."""

import os
from typing import Callable, Optional

import httpx

from src.models.buyer import Buyer, BuyerContext
from src.models.conversation import AIExplanation, WorkspaceConversation
from src.models.drafting import FALLBACK_ACTIONS, AgentAction, DraftIntent, DraftVisibility, ThinkingResponse
from src.services import conversation_store
from src.services.sse import SSEDecoder
from src.utils.errors import DraftingError, RateLimitedError
from src.utils.logging import get_structured_logger, sanitize_message_text

logger = get_structured_logger(__name__)

RATE_LIMITED_MESSAGE = "AgentGPT is receiving a lot of requests right now. Please try again shortly."
FAILURE_MESSAGE = "Sorry, I couldn't generate a response. Please try again."

DeltaCallback = Callable[[str], None]


class AgentGPTClient:
    """
    Streams drafts from the AgentGPT endpoints into conversation items.

    Interactive calls are never retried automatically; a rate-limited or
    failed draft is reported through error_kind and a fallback message.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or os.environ.get("AGENTGPT_BASE_URL", "http://localhost:3000")).rstrip("/")
        self.api_key = api_key or os.environ.get("AGENTGPT_API_KEY")
        self.timeout = timeout or float(os.environ.get("HTTP_TIMEOUT_SECONDS", "60"))
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    @staticmethod
    def _payload(command: str, intent: DraftIntent, buyer: Buyer, visibility: DraftVisibility) -> dict:
        return {
            "command": command,
            "intent": intent.value,
            "visibility": visibility.value,
            "buyerContext": BuyerContext.from_buyer(buyer).to_payload(),
        }

    @staticmethod
    async def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        await response.aread()
        try:
            body = response.json()
        except ValueError:
            body = None
        message = body.get("error") if isinstance(body, dict) else None
        if not isinstance(message, str):
            message = None
        if response.status_code == 429:
            raise RateLimitedError(message or "Rate limit exceeded")
        raise DraftingError(message or f"Drafting failed with status {response.status_code}")

    async def _stream(self, payload: dict, on_text: DeltaCallback) -> None:
        """POST and feed each decoded delta to on_text in arrival order."""
        decoder = SSEDecoder()
        try:
            async with self._client() as client:
                async with client.stream("POST", "/api/agentgpt/stream", json=payload) as response:
                    await self._raise_for_status(response)
                    async for chunk in response.aiter_text():
                        for text in decoder.feed(chunk):
                            on_text(text)
                        if decoder.finished:
                            break
            for text in decoder.finish():
                on_text(text)
        except httpx.HTTPError as e:
            raise DraftingError(f"Stream failed: {e}") from e
        if decoder.error is not None:
            raise DraftingError(f"Stream failed: {decoder.error}")
        if not decoder.done:
            raise DraftingError("Stream ended before completion")

    async def stream_artifact(
        self,
        command: str,
        buyer: Buyer,
        conversation: WorkspaceConversation,
        on_delta: Optional[DeltaCallback] = None,
        persist: bool = False,
    ) -> AIExplanation:
        """
        Draft buyer-facing content into a new pending item in the buyer's
        current stage. The item is appended before streaming starts so
        partial output can be rendered.
        """
        item = AIExplanation(
            buyer_id=buyer.id,
            stage_id=buyer.current_stage,
            content="",
            context=command,
        )
        conversation.append(item)

        def append(text: str) -> None:
            item.content += text
            if on_delta:
                on_delta(text)

        logger.info(
            "Streaming artifact",
            buyer_id=buyer.id,
            item_id=item.id,
            command=sanitize_message_text(command, max_length=200),
        )
        payload = self._payload(command, DraftIntent.ARTIFACT, buyer, DraftVisibility.BUYER_APPROVAL_REQUIRED)
        try:
            await self._stream(payload, append)
        except RateLimitedError as e:
            logger.warning("Artifact draft rate limited", item_id=item.id, error=str(e))
            item.content = RATE_LIMITED_MESSAGE
            item.error_kind = "rate_limited"
        except DraftingError as e:
            logger.error("Artifact draft failed", item_id=item.id, error=str(e))
            item.content = FAILURE_MESSAGE
            item.error_kind = "failed"

        if persist:
            await conversation_store.save_item(item)
        return item

    async def stream_thinking(
        self,
        command: str,
        buyer: Buyer,
        on_delta: Optional[DeltaCallback] = None,
    ) -> ThinkingResponse:
        """Agent-only analysis. Never enters the conversation or the approval gate."""
        response = ThinkingResponse(command=command)

        def append(text: str) -> None:
            response.content += text
            if on_delta:
                on_delta(text)

        payload = self._payload(command, DraftIntent.THINKING, buyer, DraftVisibility.INTERNAL)
        try:
            await self._stream(payload, append)
        except RateLimitedError:
            response.content = RATE_LIMITED_MESSAGE
            response.error_kind = "rate_limited"
        except DraftingError as e:
            logger.error("Thinking request failed", buyer_id=buyer.id, error=str(e))
            response.content = FAILURE_MESSAGE
            response.error_kind = "failed"
        return response

    async def request_actions(self, buyer: Buyer) -> list[AgentAction]:
        """Suggested next actions; the fixed fallback list when the call fails."""
        payload = {
            "intent": DraftIntent.ACTIONS.value,
            "buyerContext": BuyerContext.from_buyer(buyer).to_payload(),
        }
        try:
            async with self._client() as client:
                response = await client.post("/api/agentgpt/chat", json=payload)
                await self._raise_for_status(response)
                data = response.json()
            return [AgentAction.model_validate(a) for a in data.get("actions", [])]
        except (httpx.HTTPError, DraftingError, ValueError) as e:
            logger.warning("Falling back to default actions", buyer_id=buyer.id, error=str(e))
            return [a.model_copy() for a in FALLBACK_ACTIONS]
