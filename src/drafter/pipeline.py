"""End-to-end reply drafting for one Missive conversation.

Flow: conversation metadata + full thread -> transcript -> CTA route ->
generated reply -> HTML post-processing -> draft.  The draft is created as
the very last step, so a failure anywhere earlier leaves nothing behind in
Missive.  Each stage raises its own ``DrafterError`` subclass; the stage
name is attached to the log event and failure metric by the webhook.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from anthropic import Anthropic
from pydantic import BaseModel, ConfigDict, Field

from drafter.config import GenerationMode, Settings
from drafter.llm.client import COMPOSE_MODEL
from drafter.llm.composer import compose_reply, is_classification_label
from drafter.llm.knowledge_base import (
    DEFAULT_KB_DIR,
    KnowledgeSource,
    load_knowledge_documents,
    parse_file_ids,
)
from drafter.missive.client import MissiveClient
from drafter.missive.models import Contact, DraftEmail, Message
from drafter.missive.threading import (
    MAX_PAGES,
    PAGE_DELAY_SECONDS,
    PAGE_SIZE,
    THREAD_CHAR_LIMIT,
    build_reply_subject,
    fetch_thread,
    render_thread_text,
    select_reply_target,
)
from drafter.observability.metrics import DRAFTS_CREATED
from drafter.reply.normalizer import ReplyPolicy, ensure_html, first_name, normalize_reply
from drafter.routing.models import CtaCategory, RoutingPolicy
from drafter.routing.router import DEFAULT_POLICY, load_routing_policy, route

logger = structlog.get_logger()


class PipelineConfig(BaseModel):
    """Everything that varies between deployments of the drafting pipeline."""

    model_config = ConfigDict(frozen=True)

    sender: Contact
    internal_domains: list[str] = Field(default_factory=list)
    routing: RoutingPolicy = DEFAULT_POLICY
    reply: ReplyPolicy = Field(default_factory=ReplyPolicy)
    knowledge: KnowledgeSource = Field(default_factory=KnowledgeSource)
    # Any object with classify(text) -> CtaCategory; None uses the keyword table
    classifier: Any = None
    model: str = COMPOSE_MODEL
    generation_mode: GenerationMode = "messages"
    instructions: str | None = None
    page_size: int = PAGE_SIZE
    max_pages: int = MAX_PAGES
    page_delay: float = PAGE_DELAY_SECONDS
    thread_char_limit: int = THREAD_CHAR_LIMIT


class DraftResult(BaseModel):
    """Outcome of one successful invocation."""

    conversation_id: str
    draft_id: str | None = None
    category: CtaCategory
    cta_path: str
    grounding_used: bool = False
    message_count: int = 0


def build_pipeline_config(settings: Settings) -> PipelineConfig:
    """Derive the pipeline configuration from application settings.

    Args:
        settings: The loaded application settings.

    Returns:
        The ``PipelineConfig``; the routing table comes from
        ``CTA_ROUTES_PATH`` when set, else the built-in table.
    """
    if settings.cta_routes_path is not None:
        base_routing = load_routing_policy(settings.cta_routes_path)
    else:
        base_routing = DEFAULT_POLICY
    routing = base_routing.model_copy(
        update={"website_base": settings.website_base, "utm_params": settings.utm_params}
    )

    kb_dir = settings.knowledge_base_dir or DEFAULT_KB_DIR
    knowledge = KnowledgeSource(
        file_ids=parse_file_ids(settings.knowledge_file_ids),
        documents=load_knowledge_documents(kb_dir),
    )

    return PipelineConfig(
        sender=Contact(name=settings.sender_name, address=settings.sender_address),
        internal_domains=[d.strip() for d in settings.internal_domains.split(",") if d.strip()],
        routing=routing,
        reply=ReplyPolicy(
            organization_domain=settings.organization_domain,
            operator_name=settings.operator_name,
            support_label=settings.support_label,
            enforce_structure=settings.enforce_structure,
        ),
        knowledge=knowledge,
        model=settings.anthropic_model,
        generation_mode=settings.generation_mode,
        instructions=settings.system_hint or None,
        page_size=settings.thread_page_size,
        max_pages=settings.thread_max_pages,
        page_delay=settings.thread_page_delay,
        thread_char_limit=settings.thread_char_limit,
    )


def build_draft(
    conversation_id: str,
    subject: str,
    body: str,
    target: Message | None,
    sender: Contact,
) -> DraftEmail:
    """Address a finished body as a reply draft.

    The sender identity is always the configured one; the recipient is the
    reply target's sender, if any.
    """
    to_fields = [target.sender] if target is not None else []
    return DraftEmail(
        conversation_id=conversation_id,
        subject=build_reply_subject(subject),
        body=body,
        from_field=sender,
        to_fields=to_fields,
        quote_previous_message=False,
        send=False,
    )


async def publish_draft(missive: MissiveClient, draft: DraftEmail) -> str | None:
    """Create *draft* in Missive and return the new draft id, if reported.

    Raises:
        PublishError: If Missive rejects the draft.
    """
    response = await missive.create_draft(draft)
    created: Any = response.get("drafts")
    if isinstance(created, list):
        created = created[0] if created else None
    if isinstance(created, dict) and created.get("id"):
        return str(created["id"])
    return None


async def draft_reply(
    conversation_id: str,
    *,
    missive: MissiveClient,
    anthropic_client: Anthropic,
    config: PipelineConfig,
) -> DraftResult:
    """Draft a reply for one conversation and store it as an unsent draft.

    Args:
        conversation_id: The Missive conversation from the webhook.
        missive: Missive API client.
        anthropic_client: Anthropic client used for generation.
        config: Deployment configuration.

    Returns:
        A ``DraftResult`` describing the created draft.

    Raises:
        ThreadFetchError: If the conversation or any message cannot be fetched.
        GenerationError: If the reply cannot be generated.
        PublishError: If the draft is rejected.
    """
    log = logger.bind(conversation_id=conversation_id)

    metadata = await missive.get_conversation(conversation_id)
    messages = await fetch_thread(
        missive,
        conversation_id,
        page_size=config.page_size,
        max_pages=config.max_pages,
        page_delay=config.page_delay,
    )
    conversation = metadata.model_copy(update={"messages": messages})
    subject = conversation.subject
    log.info("Thread fetched", message_count=len(conversation.messages))

    thread_text = render_thread_text(conversation.messages, config.thread_char_limit)
    decision = route(thread_text, subject, config.routing, config.classifier)

    generated = await asyncio.to_thread(
        compose_reply,
        anthropic_client,
        thread_text=thread_text,
        subject=subject,
        routing=decision,
        knowledge=config.knowledge,
        instructions=config.instructions,
        model=config.model,
        mode=config.generation_mode,
    )

    target = select_reply_target(conversation.messages, config.internal_domains)
    if is_classification_label(generated.content):
        log.info("Model returned a classification label", label=generated.content)
        body = ensure_html(generated.content)
    else:
        body = normalize_reply(
            generated.content,
            cta_url=decision.url,
            recipient_name=first_name(target.sender) if target else None,
            policy=config.reply,
        )

    draft = build_draft(conversation_id, subject, body, target, config.sender)
    draft_id = await publish_draft(missive, draft)
    DRAFTS_CREATED.labels(category=decision.category.value).inc()
    log.info(
        "Reply draft created",
        draft_id=draft_id,
        category=decision.category.value,
        grounding_used=generated.grounding_used,
        reply_to=target.sender.address if target else None,
    )

    return DraftResult(
        conversation_id=conversation_id,
        draft_id=draft_id,
        category=decision.category,
        cta_path=decision.path,
        grounding_used=generated.grounding_used,
        message_count=len(conversation.messages),
    )
