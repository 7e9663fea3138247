"""Server-sent event framing for streamed drafts."""

import json
from typing import Any, Optional

DONE = "[DONE]"
DONE_FRAME = f"data: {DONE}\n\n"


def _frame(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def encode_delta(text: str) -> str:
    """One content_block_delta frame."""
    return _frame({"type": "content_block_delta", "delta": {"text": text}})


def encode_error(message: str) -> str:
    """Terminal error frame; a failed stream never sends [DONE]."""
    return _frame({"type": "error", "error": {"message": message}})


def parse_data_line(line: str) -> Optional[Any]:
    """
    Decode one line of an event stream.

    Returns DONE for the sentinel, the parsed JSON for a data line, and
    None for anything else (comments, blank lines, malformed JSON).
    """
    line = line.rstrip("\r")
    if not line.startswith("data:"):
        return None
    data = line[5:].strip()
    if not data:
        return None
    if data == DONE:
        return DONE
    try:
        return json.loads(data)
    except json.JSONDecodeError:
        return None


def delta_text(event: Any) -> Optional[str]:
    """Text of a delta event; frames without a type are treated as deltas."""
    if not isinstance(event, dict):
        return None
    if event.get("type") not in (None, "content_block_delta"):
        return None
    delta = event.get("delta")
    if isinstance(delta, dict) and isinstance(delta.get("text"), str) and delta["text"]:
        return delta["text"]
    return None


class SSEDecoder:
    """Incremental decoder; network chunks may split lines anywhere."""

    def __init__(self):
        self._buffer = ""
        self.done = False
        self.error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.done or self.error is not None

    def feed(self, chunk: str) -> list[str]:
        if self.finished:
            return []
        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return self._consume(lines)

    def finish(self) -> list[str]:
        """Flush a trailing line that arrived without a newline."""
        remainder, self._buffer = self._buffer, ""
        if self.finished or not remainder:
            return []
        return self._consume([remainder])

    def _consume(self, lines: list[str]) -> list[str]:
        texts = []
        for line in lines:
            event = parse_data_line(line)
            if event == DONE:
                self.done = True
                break
            if isinstance(event, dict) and event.get("type") == "error":
                error = event.get("error")
                self.error = error.get("message") if isinstance(error, dict) else str(error)
                break
            text = delta_text(event)
            if text is not None:
                texts.append(text)
        return texts
