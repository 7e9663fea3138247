"""Test helper functions."""

import json
from email.message import Message
from io import BytesIO
from typing import Any, Dict, Optional
from unittest.mock import Mock


AGENT_HEADERS = {"X-User-Id": "agent-1", "X-User-Role": "agent"}
BUYER_HEADERS = {"X-User-Id": "buyer-user-1", "X-User-Role": "buyer", "X-Buyer-Id": "buyer-1"}


def create_handler(
    handler_cls,
    method: str = "POST",
    path: str = "/",
    body: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
    raw_body: Optional[bytes] = None,
):
    """
    Build a handler instance without running a request through it.

    Response writers are mocked the same way for every endpoint test;
    the body lands in `wfile`.
    """
    h = handler_cls.__new__(handler_cls)
    if raw_body is None:
        raw_body = json.dumps(body).encode('utf-8') if body is not None else b""

    message = Message()
    message['Content-Length'] = str(len(raw_body))
    for name, value in (headers or {}).items():
        message[name] = value

    h.rfile = BytesIO(raw_body)
    h.wfile = BytesIO()
    h.headers = message
    h.path = path
    h.command = method
    h.request_version = "HTTP/1.1"
    h.requestline = f"{method} {path} HTTP/1.1"
    h.send_response = Mock()
    h.send_header = Mock()
    h.end_headers = Mock()
    return h


def response_status(h) -> int:
    return h.send_response.call_args[0][0]


def response_headers(h) -> Dict[str, str]:
    return {c[0][0]: c[0][1] for c in h.send_header.call_args_list}


def response_json(h) -> Any:
    return json.loads(h.wfile.getvalue().decode('utf-8'))


def response_text(h) -> str:
    return h.wfile.getvalue().decode('utf-8')
