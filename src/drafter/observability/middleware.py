"""Per-request log correlation for the webhook service.

Every response carries an ``X-Request-ID`` header and every log event
emitted while handling the request carries the same ``request_id`` and the
request path, so one Missive delivery can be followed from receipt to draft.
"""

from __future__ import annotations

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

SERVICE_NAME = "reply-drafter"
REQUEST_ID_HEADER = "X-Request-ID"

# Caller-supplied ids longer than this are replaced with a fresh one
MAX_REQUEST_ID_LENGTH = 128


def resolve_request_id(header_value: str | None) -> str:
    """Reuse the caller's request id when it is usable, else mint a UUID4."""
    if header_value:
        candidate = header_value.strip()
        if candidate and len(candidate) <= MAX_REQUEST_ID_LENGTH:
            return candidate
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind ``request_id``, ``path`` and ``service`` into structlog contextvars."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            service=SERVICE_NAME,
        )
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
