"""Shared pytest fixtures for the reply drafter test suite."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from drafter.missive.models import Contact, Message


def _build_message(
    index: int,
    *,
    address: str = "guest@example.com",
    name: str = "",
    text: str | None = None,
    created_at: int | None = None,
) -> Message:
    timestamp = created_at if created_at is not None else 1_700_000_000 + index * 60
    return Message(
        id=f"msg-{index}",
        sender=Contact(name=name, address=address),
        created_at=timestamp,
        delivered_at=timestamp,
        text=text if text is not None else f"Message number {index}",
    )


@pytest.fixture
def make_message() -> Callable[..., Message]:
    """Factory for messages whose timestamps increase with their index."""
    return _build_message


@pytest.fixture
def external_contact() -> Contact:
    """A representative customer contact."""
    return Contact(name="Maria Gomez", address="maria.gomez@hotel-sol.es")


@pytest.fixture
def sender_contact() -> Contact:
    """The configured identity drafts are created from."""
    return Contact(name="Tab Support", address="support@tab.travel")


@pytest.fixture
def anyio_backend() -> str:
    """Run anyio-marked tests on asyncio only; the code under test uses asyncio directly."""
    return "asyncio"
