"""Conversation thread reconstruction and reply addressing.

Provides helpers for:
- Paginating a conversation's messages and hydrating each one in full
- Flattening the thread into a plain-text transcript for the model
- Picking the external sender to reply to
- Building an idempotent ``Re:`` subject line
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Any, Protocol

import structlog

from drafter.missive.models import Contact, Message
from drafter.text import clamp

logger = structlog.get_logger()

PAGE_SIZE = 10
MAX_PAGES = 6
PAGE_DELAY_SECONDS = 0.25
THREAD_CHAR_LIMIT = 32000
MESSAGE_SEPARATOR = "\n\n------------------------\n\n"


class MessageSource(Protocol):
    """The listing and hydration calls ``fetch_thread`` depends on."""

    async def list_messages(
        self, conversation_id: str, limit: int = ..., until: int | None = ...
    ) -> list[dict[str, Any]]: ...

    async def get_message(self, message_id: str) -> Message: ...


async def fetch_thread(
    client: MessageSource,
    conversation_id: str,
    *,
    page_size: int = PAGE_SIZE,
    max_pages: int = MAX_PAGES,
    page_delay: float = PAGE_DELAY_SECONDS,
) -> list[Message]:
    """Fetch every message of a conversation, oldest first.

    The listing endpoint pages newest to oldest and only returns summaries,
    so each page is hydrated with one ``get_message`` call per id (run
    concurrently, joined before the next page).  The next page is requested
    with ``until`` set to the oldest ``delivered_at`` seen so far.

    Pagination stops when a page is shorter than *page_size*, when the
    cursor cannot move further back (missing or unchanged delivery time),
    or after *max_pages* pages.

    Args:
        client: A ``MissiveClient`` (or compatible object).
        conversation_id: The conversation to fetch.
        page_size: Messages requested per page.
        max_pages: Hard ceiling on pages consumed.
        page_delay: Seconds to sleep between page requests.

    Returns:
        The hydrated messages, unique by id, sorted ascending by creation time.

    Raises:
        ValueError: If *conversation_id* is empty.
        ThreadFetchError: If any listing or hydration call fails.  Nothing
            fetched before the failure is returned.
    """
    if not conversation_id:
        raise ValueError("conversation_id must be non-empty")

    by_id: dict[str, Message] = {}
    cursor: int | None = None

    for page_number in range(1, max_pages + 1):
        summaries = await client.list_messages(conversation_id, limit=page_size, until=cursor)
        hydrated = await asyncio.gather(*(client.get_message(str(s["id"])) for s in summaries))
        for message in hydrated:
            by_id.setdefault(message.id, message)

        logger.debug(
            "Fetched thread page",
            conversation_id=conversation_id,
            page=page_number,
            listed=len(summaries),
        )

        if len(summaries) < page_size:
            break

        next_cursor = _oldest_delivery(hydrated)
        if next_cursor is None or (cursor is not None and next_cursor >= cursor):
            logger.warning(
                "Thread cursor did not advance, stopping pagination",
                conversation_id=conversation_id,
                page=page_number,
                cursor=cursor,
            )
            break
        cursor = next_cursor

        if page_number < max_pages:
            await asyncio.sleep(page_delay)
    else:
        logger.info(
            "Thread page ceiling reached",
            conversation_id=conversation_id,
            max_pages=max_pages,
        )

    return sorted(by_id.values(), key=lambda m: m.sort_key)


def _oldest_delivery(messages: Iterable[Message]) -> int | None:
    times = [m.delivered_at for m in messages if m.delivered_at is not None]
    return min(times) if times else None


def render_thread_text(messages: Sequence[Message], max_chars: int = THREAD_CHAR_LIMIT) -> str:
    """Flatten *messages* into a ``From/Date/---/body`` transcript.

    Args:
        messages: Messages in chronological order.
        max_chars: Character budget for the whole transcript.

    Returns:
        The transcript, clamped to *max_chars*.
    """
    blocks = []
    for message in messages:
        who = message.sender.address or message.sender.name or "unknown"
        when = _format_time(message.created_at)
        blocks.append(f"From: {who}\nDate: {when}\n---\n{message.plain_text}")
    return clamp(MESSAGE_SEPARATOR.join(blocks), max_chars)


def _format_time(timestamp: int | None) -> str:
    if timestamp is None:
        return ""
    return datetime.fromtimestamp(timestamp, tz=UTC).isoformat()


def is_internal(contact: Contact, internal_domains: Iterable[str]) -> bool:
    """Whether *contact*'s address belongs to one of *internal_domains*.

    A domain also covers its subdomains (``mail.example.com`` is internal
    when ``example.com`` is listed).
    """
    domain = contact.domain
    if not domain:
        return False
    for internal in internal_domains:
        internal = internal.strip().lower().lstrip("@")
        if internal and (domain == internal or domain.endswith("." + internal)):
            return True
    return False


def select_reply_target(
    messages: Sequence[Message],
    internal_domains: Iterable[str],
) -> Message | None:
    """Return the newest message sent by someone outside *internal_domains*.

    Messages without a sender address are skipped.  ``None`` means the
    thread has no external sender (e.g. an internal-only discussion).
    """
    domains = list(internal_domains)
    for message in sorted(messages, key=lambda m: m.sort_key, reverse=True):
        if message.sender.address and not is_internal(message.sender, domains):
            return message
    return None


def build_reply_subject(subject: str) -> str:
    """Prefix *subject* with ``Re: `` unless it already has one (case-insensitive)."""
    subject = subject.strip()
    if not subject:
        return "Re:"
    if subject.lower().startswith("re:"):
        return subject
    return f"Re: {subject}"
