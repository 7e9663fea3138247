"""Shared request plumbing for the serverless handlers."""

from http.server import BaseHTTPRequestHandler
import asyncio
import json
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

from pydantic import ValidationError

from src.models.session import SessionContext
from src.services.sse import DONE_FRAME, encode_delta, encode_error
from src.utils.errors import (
    BuyerDeskError,
    DraftingError,
    ImmutableItemError,
    InputValidationError,
    InvalidTransition,
    NotFoundError,
    PermissionDeniedError,
    RateLimitedError,
    StageOutOfRangeError,
)
from src.utils.logging import correlation_context, get_structured_logger
from src.utils.logging_config import LoggingConfig

LoggingConfig.ensure_configured()
logger = get_structured_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, content-type, x-correlation-id, x-user-id, x-user-role, x-buyer-id",
}

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

ERROR_STATUS = (
    (InputValidationError, 400),
    (StageOutOfRangeError, 400),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (InvalidTransition, 409),
    (ImmutableItemError, 409),
    (RateLimitedError, 429),
)


def status_for(error: Exception) -> int:
    if isinstance(error, ValidationError):
        return 400
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


def public_message(error: Exception, status: int) -> str:
    """Client-facing error text. 500s never leak internals."""
    if status == 429:
        return "Rate limit exceeded. Please try again in a moment."
    if isinstance(error, DraftingError):
        return "AI service temporarily unavailable"
    if status == 500:
        return "Internal server error"
    if isinstance(error, ValidationError):
        return "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in error.errors()
        )
    return str(error)


class JSONHandler(BaseHTTPRequestHandler):
    """Base for JSON endpoints: body parsing, session headers, error mapping."""

    def log_message(self, format, *args):
        logger.debug("HTTP request", request_line=self.requestline)

    def _read_json(self) -> dict:
        content_length = int(self.headers.get('Content-Length', 0) or 0)
        raw_body = self.rfile.read(content_length).decode('utf-8') if content_length > 0 else ""
        if not raw_body:
            return {}
        try:
            body = json.loads(raw_body)
        except json.JSONDecodeError:
            raise InputValidationError("Request body must be valid JSON")
        if not isinstance(body, dict):
            raise InputValidationError("Request body must be a JSON object")
        return body

    def _send_headers(self, status: int, content_type: str, extra: Optional[dict] = None) -> None:
        self.send_response(status)
        self.send_header('Content-Type', content_type)
        for name, value in CORS_HEADERS.items():
            self.send_header(name, value)
        for name, value in (extra or {}).items():
            self.send_header(name, value)
        self.end_headers()

    def _send_json(self, status: int, body: Any) -> None:
        self._send_headers(status, 'application/json')
        self.wfile.write(json.dumps(body, default=str).encode('utf-8'))

    def _write_frame(self, frame: str) -> None:
        self.wfile.write(frame.encode('utf-8'))
        self.wfile.flush()

    async def _send_event_stream(self, deltas) -> None:
        """Relay text deltas as server-sent events."""
        # First chunk is awaited before headers so upstream errors keep their status code
        try:
            first = await deltas.__anext__()
        except StopAsyncIteration:
            first = None

        self._send_headers(200, 'text/event-stream', STREAM_HEADERS)
        if first:
            self._write_frame(encode_delta(first))
        try:
            async for text in deltas:
                self._write_frame(encode_delta(text))
        except DraftingError as e:
            logger.error("Stream interrupted", path=self.path, error=str(e))
            self._write_frame(encode_error("AI service temporarily unavailable"))
            return
        self._write_frame(DONE_FRAME)

    def _send_error(self, error: Exception) -> None:
        status = status_for(error)
        if status >= 500:
            logger.error("Request failed", path=self.path, error=str(error), error_type=type(error).__name__)
        else:
            logger.warning("Request rejected", path=self.path, status=status, error=str(error))
        self._send_json(status, {"error": public_message(error, status)})

    def _session(self) -> SessionContext:
        """Identity asserted by the upstream gateway."""
        user_id = self.headers.get('X-User-Id')
        role = self.headers.get('X-User-Role')
        if not user_id or not role:
            raise PermissionDeniedError("Missing session headers")
        try:
            return SessionContext(user_id=user_id, role=role, buyer_id=self.headers.get('X-Buyer-Id'))
        except ValidationError as e:
            raise PermissionDeniedError(f"Invalid session: {e.errors()[0]['msg']}")

    def _query(self) -> dict:
        return {k: v[0] for k, v in parse_qs(urlparse(self.path).query).items()}

    def _dispatch(self, method) -> None:
        """Run a handler coroutine inside a correlation context, mapping errors to responses."""
        with correlation_context(self.headers.get(LoggingConfig.LOG_CORRELATION_ID_HEADER)):
            try:
                asyncio.run(method())
            except (BuyerDeskError, ValidationError) as e:
                self._send_error(e)
            except Exception as e:
                logger.exception("Unhandled error", path=self.path, error=str(e))
                self._send_error(e)

    def do_OPTIONS(self):
        self._send_headers(204, 'text/plain')
