"""FastAPI webhook endpoint receiving Missive conversation events.

Missive calls ``POST /webhooks/missive`` with a JSON payload carrying
``conversation.id``; the full drafting pipeline then runs inline and the
response reports the outcome.  ``GET`` on the same path is a plain-text
liveness ping.

The pipeline callable is registered at application startup via
``set_draft_processor`` -- this keeps the webhook layer free of service
wiring and lets tests register a mock.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from drafter.domain.errors import DrafterError, GenerationError, PublishError, ThreadFetchError
from drafter.observability.metrics import PIPELINE_FAILURES

logger = structlog.get_logger()

router = APIRouter()

# Module-level pipeline callback. Set via set_draft_processor().
_draft_processor: Callable[[str], Awaitable[Any]] | None = None


def set_draft_processor(processor: Callable[[str], Awaitable[Any]] | None) -> None:
    """Register the coroutine function invoked with each conversation id.

    Args:
        processor: An async callable accepting a Missive conversation id
            and returning a ``DraftResult`` (or ``None`` to unregister).
    """
    global _draft_processor
    _draft_processor = processor


def failure_stage(exc: DrafterError) -> str:
    """Name the pipeline stage that raised *exc*, for logs and metrics."""
    if isinstance(exc, ThreadFetchError):
        return "fetch"
    if isinstance(exc, GenerationError):
        return "generate"
    if isinstance(exc, PublishError):
        return "publish"
    return "unknown"


def extract_conversation_id(payload: Any) -> str | None:
    """Read ``conversation.id`` from a Missive webhook payload."""
    if not isinstance(payload, dict):
        return None
    conversation = payload.get("conversation")
    if isinstance(conversation, dict) and conversation.get("id"):
        return str(conversation["id"])
    return None


@router.get("/webhooks/missive", response_class=PlainTextResponse)
async def missive_webhook_ping() -> str:
    """Liveness ping for the webhook URL."""
    return "ok"


@router.post("/webhooks/missive")
async def missive_webhook(request: Request) -> JSONResponse:
    """Receive a Missive event and create a reply draft for its conversation.

    Args:
        request: The incoming FastAPI request.

    Returns:
        200 with the draft outcome; 400 if the payload has no conversation
        id; 500 with ``{"error": message}`` if any pipeline stage fails.
    """
    raw_body = await request.body()
    try:
        payload = json.loads(raw_body) if raw_body else {}
    except ValueError:
        logger.warning("Webhook body is not valid JSON")
        return JSONResponse({"error": "Request body must be JSON"}, status_code=400)

    conversation_id = extract_conversation_id(payload)
    if not conversation_id:
        logger.warning("Webhook payload missing conversation.id")
        return JSONResponse(
            {"error": "Missing conversation.id in Missive payload"}, status_code=400
        )

    structlog.contextvars.bind_contextvars(conversation_id=conversation_id)

    if _draft_processor is None:
        logger.error("No draft processor registered", conversation_id=conversation_id)
        return JSONResponse({"error": "Draft pipeline not configured"}, status_code=500)

    logger.info("Processing Missive webhook", conversation_id=conversation_id)
    try:
        result = await _draft_processor(conversation_id)
    except DrafterError as exc:
        stage = failure_stage(exc)
        PIPELINE_FAILURES.labels(stage=stage).inc()
        logger.exception("Reply drafting failed", conversation_id=conversation_id, stage=stage)
        return JSONResponse({"error": str(exc)}, status_code=500)
    except Exception as exc:
        PIPELINE_FAILURES.labels(stage="unknown").inc()
        logger.exception(
            "Reply drafting failed unexpectedly", conversation_id=conversation_id, stage="unknown"
        )
        return JSONResponse({"error": str(exc)}, status_code=500)

    content: dict[str, Any] = {"ok": True}
    if result is not None:
        content["draft_id"] = result.draft_id
        content["cta_path"] = result.cta_path
    return JSONResponse(content)
