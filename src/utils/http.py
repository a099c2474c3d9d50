"""Helpers shared by the serverless HTTP handlers."""

import asyncio
import base64
import binascii
import json
from http.cookies import CookieError, SimpleCookie
from http.server import BaseHTTPRequestHandler
from typing import Any, Awaitable, Optional, TypeVar
from urllib.parse import parse_qs, urlparse

from src.models.form import ImageFile
from src.models.submission import ErrorCategory, SubmissionResult
from src.utils.errors import BadRequestError, ListingValidationError
from src.utils.logging import correlation_context
from src.utils.logging_config import LoggingConfig

T = TypeVar("T")

STATUS_BY_CATEGORY = {
    ErrorCategory.AUTHORIZATION: 403,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.ADDRESS_RESOLUTION: 422,
    ErrorCategory.UPLOAD: 502,
    ErrorCategory.PERSISTENCE: 502,
}


def send_json(
    handler: BaseHTTPRequestHandler,
    status: int,
    payload: Any,
    headers: Optional[dict[str, str]] = None
) -> None:
    handler.send_response(status)
    handler.send_header('Content-Type', 'application/json')
    for key, value in (headers or {}).items():
        handler.send_header(key, value)
    handler.end_headers()
    handler.wfile.write(json.dumps(payload, default=str).encode('utf-8'))


def send_redirect(
    handler: BaseHTTPRequestHandler,
    location: str,
    headers: Optional[dict[str, str]] = None
) -> None:
    handler.send_response(302)
    handler.send_header('Location', location)
    for key, value in (headers or {}).items():
        handler.send_header(key, value)
    handler.end_headers()


def build_cookie(name: str, value: str, path: str = "/", max_age: Optional[int] = None) -> str:
    """Set-Cookie value for a secure, script-inaccessible cookie."""
    cookie = SimpleCookie()
    cookie[name] = value
    morsel = cookie[name]
    morsel["path"] = path
    morsel["httponly"] = True
    morsel["secure"] = True
    morsel["samesite"] = "Lax"
    if max_age is not None:
        morsel["max-age"] = max_age
    return morsel.OutputString()


def read_cookie(handler: BaseHTTPRequestHandler, name: str) -> Optional[str]:
    raw = handler.headers.get("Cookie")
    if not raw:
        return None
    cookie = SimpleCookie()
    try:
        cookie.load(raw)
    except CookieError:
        return None
    morsel = cookie.get(name)
    return morsel.value if morsel is not None and morsel.value else None


def send_result(handler: BaseHTTPRequestHandler, result: SubmissionResult, extra: Optional[dict] = None) -> None:
    """Write a workflow result with the status code of its error category."""
    status = 200 if result.ok else STATUS_BY_CATEGORY.get(result.error_category, 500)
    payload = result.model_dump(mode="json")
    if extra:
        payload.update(extra)
    send_json(handler, status, payload)


def read_json_body(handler: BaseHTTPRequestHandler) -> dict:
    """Parse the request body; raises BadRequestError when malformed."""
    content_length = int(handler.headers.get('Content-Length', 0) or 0)
    raw_body = handler.rfile.read(content_length).decode('utf-8') if content_length > 0 else ""
    if not raw_body:
        return {}
    try:
        body = json.loads(raw_body)
    except json.JSONDecodeError as e:
        raise BadRequestError("Request body is not valid JSON") from e
    if not isinstance(body, dict):
        raise BadRequestError("Request body must be a JSON object")
    return body


def query_params(handler: BaseHTTPRequestHandler) -> dict[str, str]:
    """First value of each query parameter."""
    parsed = parse_qs(urlparse(handler.path).query)
    return {key: values[0] for key, values in parsed.items() if values}


def bearer_token(handler: BaseHTTPRequestHandler) -> Optional[str]:
    header = handler.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def decode_images(items: Optional[list]) -> list[ImageFile]:
    """Decode base64 image uploads from a JSON body."""
    images = []
    for item in items or []:
        if not isinstance(item, dict):
            raise ListingValidationError("Each image must be an object")
        try:
            content = base64.b64decode(item.get("data") or "", validate=True)
        except (binascii.Error, ValueError) as e:
            raise ListingValidationError(f"Image {item.get('name')!r} is not valid base64") from e
        images.append(ImageFile(
            name=item.get("name") or "image",
            content=content,
            content_type=item.get("content_type") or "image/jpeg",
        ))
    return images


def run_async(handler: BaseHTTPRequestHandler, coro: Awaitable[T]) -> T:
    """Run a coroutine to completion under the request's correlation ID."""
    correlation_id = handler.headers.get(LoggingConfig.LOG_CORRELATION_ID_HEADER)
    with correlation_context(correlation_id):
        return asyncio.run(coro)
