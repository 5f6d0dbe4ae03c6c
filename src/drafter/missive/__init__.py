"""Missive domain: API client, thread reconstruction, and models."""

from drafter.missive.client import MissiveClient
from drafter.missive.models import Contact, Conversation, DraftEmail, Message
from drafter.missive.threading import (
    build_reply_subject,
    fetch_thread,
    render_thread_text,
    select_reply_target,
)

__all__ = [
    "Contact",
    "Conversation",
    "DraftEmail",
    "Message",
    "MissiveClient",
    "build_reply_subject",
    "fetch_thread",
    "render_thread_text",
    "select_reply_target",
]
