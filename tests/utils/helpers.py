"""Test helper functions."""

import json
from http.client import HTTPMessage
from io import BytesIO
from typing import Any, Optional
from unittest.mock import Mock


def build_handler(
    handler_cls,
    method: str = "GET",
    path: str = "/",
    body: Any = None,
    headers: Optional[dict[str, str]] = None
):
    """Create a request handler without a socket, ready for a direct do_* call."""
    h = handler_cls.__new__(handler_cls)

    if body is None:
        raw = b""
    elif isinstance(body, (bytes, str)):
        raw = body.encode('utf-8') if isinstance(body, str) else body
    else:
        raw = json.dumps(body).encode('utf-8')

    message = HTTPMessage()
    for key, value in (headers or {}).items():
        message[key] = value
    if raw:
        message["Content-Length"] = str(len(raw))

    h.headers = message
    h.command = method
    h.path = path
    h.rfile = BytesIO(raw)
    h.wfile = BytesIO()
    h.send_response = Mock()
    h.send_header = Mock()
    h.end_headers = Mock()
    return h


def response_status(h) -> int:
    return h.send_response.call_args[0][0]


def response_json(h) -> Any:
    return json.loads(h.wfile.getvalue().decode('utf-8'))


def sent_headers(h) -> dict[str, str]:
    return {call.args[0]: call.args[1] for call in h.send_header.call_args_list}


def bearer(token: str = "owner-token") -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
