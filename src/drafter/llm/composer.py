"""Reply drafting with the Anthropic API, grounded on knowledge documents.

Builds one request from the subject, the CTA routing hint, and the
flattened thread, with knowledge documents attached as citable ``document``
blocks.  Two generation modes are supported:

- ``messages``: a single blocking Messages API call, no client-side retry
- ``batch``: a one-request Message Batch whose status is polled a fixed
  number of times at a fixed interval; anything short of ``ended`` with a
  ``succeeded`` result fails the invocation
"""

from __future__ import annotations

from typing import Any

import anthropic
import structlog
from anthropic import Anthropic
from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from drafter.domain.errors import GenerationError
from drafter.llm.client import (
    BATCH_POLL_ATTEMPTS,
    BATCH_POLL_INTERVAL_SECONDS,
    COMPOSE_MODEL,
    FILES_API_BETA,
    GENERATION_MODES,
)
from drafter.llm.knowledge_base import KnowledgeSource
from drafter.llm.models import GeneratedDraft
from drafter.llm.prompts import (
    CLASSIFICATION_LABELS,
    DRAFTING_SYSTEM_PROMPT,
    DRAFTING_USER_PROMPT,
    FALLBACK_REPLY_HTML,
)
from drafter.routing.models import RoutingDecision
from drafter.text import strip_tags

logger = structlog.get_logger()

BATCH_CUSTOM_ID = "reply-draft"
CTA_LABEL = "Apply now"


def build_request(
    *,
    thread_text: str,
    subject: str,
    routing: RoutingDecision,
    knowledge: KnowledgeSource,
    instructions: str | None = None,
    model: str = COMPOSE_MODEL,
    max_tokens: int = 2048,
) -> dict[str, Any]:
    """Build the Messages API parameters for one drafting request.

    Args:
        thread_text: The flattened thread, oldest to newest.
        subject: The conversation subject.
        routing: The CTA decision offered to the model as a hint.
        knowledge: Grounding documents to attach.
        instructions: Replacement system prompt; defaults to
            ``DRAFTING_SYSTEM_PROMPT``.
        model: Model ID to use.
        max_tokens: Output token ceiling.

    Returns:
        Keyword arguments for ``messages.create`` (or a batch request's
        ``params``).
    """
    user_text = DRAFTING_USER_PROMPT.format(
        subject=subject or "(no subject)",
        category=routing.category.value,
        cta_url=routing.url,
        cta_label=CTA_LABEL,
        thread_text=thread_text,
    )
    content: list[dict[str, Any]] = [
        *knowledge.content_blocks(),
        {"type": "text", "text": user_text},
    ]
    return {
        "model": model,
        "max_tokens": max_tokens,
        "system": [
            {
                "type": "text",
                "text": instructions or DRAFTING_SYSTEM_PROMPT,
                "cache_control": {"type": "ephemeral"},
            }
        ],
        "messages": [{"role": "user", "content": content}],
    }


def compose_reply(
    client: Anthropic,
    *,
    thread_text: str,
    subject: str,
    routing: RoutingDecision,
    knowledge: KnowledgeSource,
    instructions: str | None = None,
    model: str = COMPOSE_MODEL,
    mode: str = "messages",
    poll_attempts: int = BATCH_POLL_ATTEMPTS,
    poll_interval: float = BATCH_POLL_INTERVAL_SECONDS,
) -> GeneratedDraft:
    """Generate a reply draft for a thread.

    Args:
        client: Configured Anthropic client instance.
        thread_text: The flattened thread, oldest to newest.
        subject: The conversation subject.
        routing: The CTA decision for the thread.
        knowledge: Grounding documents to attach.
        instructions: Optional system prompt override.
        model: Model ID to use.  Defaults to COMPOSE_MODEL.
        mode: ``"messages"`` or ``"batch"``.
        poll_attempts: Status checks allowed in batch mode.
        poll_interval: Seconds between status checks in batch mode.

    Returns:
        GeneratedDraft with the reply text, grounding flag, and token counts.

    Raises:
        ValueError: If *mode* is unknown.
        GenerationError: If the API call fails or the batch does not finish.
    """
    if mode not in GENERATION_MODES:
        raise ValueError(f"Unknown generation mode: {mode!r}")

    params = build_request(
        thread_text=thread_text,
        subject=subject,
        routing=routing,
        knowledge=knowledge,
        instructions=instructions,
        model=model,
    )
    messages_api: Any = client.beta.messages if knowledge.uses_files_api else client.messages
    extra: dict[str, Any] = {"betas": [FILES_API_BETA]} if knowledge.uses_files_api else {}

    try:
        if mode == "batch":
            response = _run_batch(messages_api, params, extra, poll_attempts, poll_interval)
        else:
            response = messages_api.create(**params, **extra)
    except anthropic.APIError as exc:
        raise GenerationError(f"Anthropic request failed: {exc}") from exc

    text_blocks = [block for block in response.content if block.type == "text"]
    content = "".join(block.text for block in text_blocks).strip()
    grounding_used = any(getattr(block, "citations", None) for block in text_blocks)

    logger.info(
        "Reply generated",
        model=model,
        mode=mode,
        grounding_used=grounding_used,
        empty=not content,
    )

    return GeneratedDraft(
        content=content or FALLBACK_REPLY_HTML,
        grounding_used=grounding_used,
        model_used=model,
        input_tokens=response.usage.input_tokens,
        output_tokens=response.usage.output_tokens,
    )


def _log_poll(retry_state: RetryCallState) -> None:
    batch = retry_state.outcome.result() if retry_state.outcome else None
    logger.debug(
        "Batch still processing",
        attempt=retry_state.attempt_number,
        status=getattr(batch, "processing_status", None),
    )


def _run_batch(
    messages_api: Any,
    params: dict[str, Any],
    extra: dict[str, Any],
    poll_attempts: int,
    poll_interval: float,
) -> Any:
    batch = messages_api.batches.create(
        requests=[{"custom_id": BATCH_CUSTOM_ID, "params": params}],
        **extra,
    )
    batch_id = batch.id
    logger.info("Batch submitted", batch_id=batch_id)

    poller = Retrying(
        stop=stop_after_attempt(poll_attempts),
        wait=wait_fixed(poll_interval),
        retry=retry_if_result(lambda b: b.processing_status != "ended"),
        before_sleep=_log_poll,
        # Hand back the last status instead of raising RetryError
        retry_error_callback=lambda state: state.outcome.result() if state.outcome else None,
    )
    batch = poller(messages_api.batches.retrieve, batch_id, **extra)
    status = getattr(batch, "processing_status", None)
    if status != "ended":
        raise GenerationError(f"Batch did not complete (status: {status})")

    for entry in messages_api.batches.results(batch_id, **extra):
        if entry.custom_id != BATCH_CUSTOM_ID:
            continue
        if entry.result.type != "succeeded":
            raise GenerationError(f"Batch request {entry.result.type}")
        return entry.result.message

    raise GenerationError("Batch finished without a result")


def is_classification_label(text: str) -> bool:
    """Whether *text* is one of the bare labels the model may answer with."""
    stripped = strip_tags(text).strip().rstrip(".").strip()
    return stripped.lower() in {label.lower() for label in CLASSIFICATION_LABELS}
