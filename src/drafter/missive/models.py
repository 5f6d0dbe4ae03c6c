"""Pydantic v2 models for the Missive conversation domain.

Messages and conversations are read-only snapshots of platform data held for
the duration of one webhook invocation.  ``DraftEmail`` is the single write
model, serialized into the ``POST /drafts`` request body.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from drafter.text import strip_tags


class Contact(BaseModel):
    """A display name / email address pair."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    address: str = ""

    @property
    def domain(self) -> str:
        """Lower-cased domain part of the address, or ``""``."""
        _, _, domain = self.address.rpartition("@")
        return domain.lower() if "@" in self.address else ""

    @classmethod
    def from_api(cls, payload: dict[str, Any] | None) -> Contact:
        """Build a contact from a Missive ``from_field``/``to_fields`` entry."""
        if not payload:
            return cls()
        return cls(
            name=str(payload.get("name") or ""),
            address=str(payload.get("address") or payload.get("email") or ""),
        )


class Message(BaseModel):
    """A single message of a Missive conversation.

    ``created_at`` and ``delivered_at`` are Unix timestamps in seconds as
    returned by the API.  ``body`` is the HTML body; ``text`` is the plain
    text body when the platform provides one.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    sender: Contact = Field(default_factory=Contact)
    recipients: list[Contact] = Field(default_factory=list)
    created_at: int | None = None
    delivered_at: int | None = None
    text: str = ""
    body: str = ""
    conversation_id: str | None = None

    @property
    def plain_text(self) -> str:
        """The message text, falling back to the HTML body with tags stripped."""
        if self.text:
            return self.text
        return strip_tags(self.body).strip()

    @property
    def sort_key(self) -> int:
        """Creation time used for chronological ordering."""
        if self.created_at is not None:
            return self.created_at
        return self.delivered_at or 0

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Message:
        """Build a message from a Missive message object.

        The sender is read from ``from_field``; messages created inside
        Missive (comments, internal posts) may only carry ``creator``.

        Args:
            payload: A message dict from ``/messages/{id}`` or a listing page.

        Returns:
            The parsed ``Message``.
        """
        sender_raw = payload.get("from_field") or payload.get("creator")
        conversation = payload.get("conversation")
        conversation_id = conversation.get("id") if isinstance(conversation, dict) else None
        return cls(
            id=str(payload["id"]),
            sender=Contact.from_api(sender_raw),
            recipients=[Contact.from_api(c) for c in payload.get("to_fields") or []],
            created_at=_as_timestamp(payload.get("created_at")),
            delivered_at=_as_timestamp(payload.get("delivered_at")),
            text=str(payload.get("text") or ""),
            body=str(payload.get("body") or ""),
            conversation_id=conversation_id,
        )


class Conversation(BaseModel):
    """A Missive conversation: its subject and, once fetched, its thread.

    ``messages`` are unique by id and ascending by creation time.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    subject: str = ""
    messages: list[Message] = Field(default_factory=list)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Conversation:
        """Build from a Missive conversation object.

        Falls back to ``latest_message_subject`` when the conversation has
        no subject of its own.
        """
        subject = payload.get("subject") or payload.get("latest_message_subject") or ""
        return cls(id=str(payload.get("id") or ""), subject=str(subject).strip())


class DraftEmail(BaseModel):
    """A reply to be created as an unsent draft inside a conversation."""

    model_config = ConfigDict(frozen=True)

    conversation_id: str
    subject: str
    body: str
    from_field: Contact
    to_fields: list[Contact] = Field(default_factory=list)
    quote_previous_message: bool = False
    send: bool = False

    def to_payload(self) -> dict[str, Any]:
        """Serialize into the ``POST /drafts`` request body."""
        draft: dict[str, Any] = {
            "conversation": self.conversation_id,
            "subject": self.subject,
            "body": self.body,
            "from_field": {"address": self.from_field.address, "name": self.from_field.name},
            "quote_previous_message": self.quote_previous_message,
            "send": self.send,
        }
        if self.to_fields:
            draft["to_fields"] = [
                {"address": c.address, "name": c.name} if c.name else {"address": c.address}
                for c in self.to_fields
            ]
        return {"drafts": draft}


def _as_timestamp(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
