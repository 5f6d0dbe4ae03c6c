"""Tests for end-to-end reply drafting with mocked Missive and Anthropic clients."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest
from prometheus_client import REGISTRY
from pydantic import ValidationError

from drafter.config import Settings
from drafter.domain.errors import GenerationError, PublishError, ThreadFetchError
from drafter.missive.models import Contact, Conversation, DraftEmail, Message
from drafter.pipeline import (
    DraftResult,
    PipelineConfig,
    build_draft,
    build_pipeline_config,
    draft_reply,
    publish_draft,
)
from drafter.routing.models import CtaCategory

CUSTOMER = Contact(name="Maria Gomez", address="maria.gomez@hotel-sol.es")
AGENT = Contact(name="Alex", address="alex@tab.travel")
SENDER = Contact(name="Tab Support", address="support@tab.travel")


def _thread() -> list[Message]:
    return [
        Message(
            id="m1",
            sender=CUSTOMER,
            created_at=1700000000,
            delivered_at=1700000000,
            body="<p>Hola! Do you sell card readers for our front desk?</p>",
        ),
        Message(
            id="m2",
            sender=AGENT,
            created_at=1700000600,
            delivered_at=1700000600,
            text="Let me check with the team.",
        ),
    ]


def _make_missive(messages: list[Message], subject: str = "Card readers") -> MagicMock:
    by_id = {m.id: m for m in messages}
    missive = MagicMock()
    missive.get_conversation = AsyncMock(return_value=Conversation(id="conv-1", subject=subject))
    missive.list_messages = AsyncMock(return_value=[{"id": m.id} for m in reversed(messages)])
    missive.get_message = AsyncMock(side_effect=lambda message_id: by_id[message_id])
    missive.create_draft = AsyncMock(return_value={"drafts": {"id": "draft-1"}})
    return missive


def _make_anthropic(text: str) -> MagicMock:
    block = MagicMock()
    block.type = "text"
    block.text = text
    block.citations = None
    response = MagicMock()
    response.content = [block]
    response.usage.input_tokens = 10
    response.usage.output_tokens = 5
    client = MagicMock()
    client.messages.create.return_value = response
    return client


def _config(**overrides: Any) -> PipelineConfig:
    values: dict[str, Any] = {
        "sender": SENDER,
        "internal_domains": ["tab.travel"],
        "page_delay": 0,
    }
    values.update(overrides)
    return PipelineConfig(**values)


def _published(missive: MagicMock) -> DraftEmail:
    return missive.create_draft.await_args.args[0]


class TestDraftReply:
    """Tests for the full drafting flow."""

    @pytest.mark.anyio()
    async def test_creates_addressed_draft(self) -> None:
        missive = _make_missive(_thread())
        client = _make_anthropic("<p>Yes, we offer card readers.</p>")

        result = await draft_reply(
            "conv-1", missive=missive, anthropic_client=client, config=_config()
        )

        assert isinstance(result, DraftResult)
        assert result.draft_id == "draft-1"
        assert result.category == CtaCategory.IN_PERSON
        assert result.cta_path == "/in-person-payments"
        assert result.message_count == 2

        draft = _published(missive)
        assert draft.conversation_id == "conv-1"
        assert draft.subject == "Re: Card readers"
        assert draft.from_field == SENDER
        assert draft.to_fields == [CUSTOMER]
        assert draft.send is False
        assert draft.quote_previous_message is False
        assert draft.body.startswith("<p>Hi Maria,</p>")
        assert "https://business.tab.travel/in-person-payments?utm_source=missive" in draft.body
        assert "Tab Support" in draft.body

    @pytest.mark.anyio()
    async def test_prompt_contains_flattened_thread(self) -> None:
        missive = _make_missive(_thread())
        client = _make_anthropic("<p>Sure.</p>")

        await draft_reply("conv-1", missive=missive, anthropic_client=client, config=_config())

        params = client.messages.create.call_args.kwargs
        prompt = params["messages"][0]["content"][-1]["text"]
        assert "From: maria.gomez@hotel-sol.es" in prompt
        assert prompt.index("card readers") < prompt.index("Let me check")

    @pytest.mark.anyio()
    async def test_plain_text_output_gets_greeting_cta_and_signature(self) -> None:
        missive = _make_missive(_thread(), subject="Re: Question")
        client = _make_anthropic("Thanks!")

        await draft_reply("conv-1", missive=missive, anthropic_client=client, config=_config())

        draft = _published(missive)
        assert draft.subject == "Re: Question"
        assert draft.body.startswith("<p>Hi Maria,</p><p><br></p><p>Thanks!</p>")
        assert "get started" in draft.body
        assert draft.body.endswith("<p>Alex<br>Tab Support</p>")

    @pytest.mark.anyio()
    async def test_classification_label_published_bare(self) -> None:
        missive = _make_missive(_thread())
        client = _make_anthropic("spam")

        await draft_reply("conv-1", missive=missive, anthropic_client=client, config=_config())

        assert _published(missive).body == "<p>spam</p>"

    @pytest.mark.anyio()
    async def test_internal_only_thread_has_no_recipient(self) -> None:
        internal = [m for m in _thread() if m.sender == AGENT]
        missive = _make_missive(internal)
        client = _make_anthropic("<p>Noted.</p>")

        await draft_reply("conv-1", missive=missive, anthropic_client=client, config=_config())

        draft = _published(missive)
        assert draft.to_fields == []
        assert draft.body.startswith("<p>Hi there,</p>")

    @pytest.mark.anyio()
    async def test_counts_created_drafts(self) -> None:
        labels = {"category": "in_person"}
        before = REGISTRY.get_sample_value("drafter_drafts_created_total", labels) or 0.0
        missive = _make_missive(_thread())

        await draft_reply(
            "conv-1",
            missive=missive,
            anthropic_client=_make_anthropic("<p>Yes.</p>"),
            config=_config(),
        )

        after = REGISTRY.get_sample_value("drafter_drafts_created_total", labels)
        assert after == before + 1

    @pytest.mark.anyio()
    async def test_fetch_failure_publishes_nothing(self) -> None:
        missive = _make_missive(_thread())
        missive.get_message = AsyncMock(side_effect=ThreadFetchError("Missive GET failed (500)"))
        client = _make_anthropic("<p>Unused</p>")

        with pytest.raises(ThreadFetchError):
            await draft_reply("conv-1", missive=missive, anthropic_client=client, config=_config())

        client.messages.create.assert_not_called()
        missive.create_draft.assert_not_awaited()

    @pytest.mark.anyio()
    async def test_generation_failure_publishes_nothing(self) -> None:
        missive = _make_missive(_thread())
        client = MagicMock()
        client.messages.create.side_effect = anthropic.APIConnectionError(
            request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        )

        with pytest.raises(GenerationError):
            await draft_reply("conv-1", missive=missive, anthropic_client=client, config=_config())

        missive.create_draft.assert_not_awaited()

    @pytest.mark.anyio()
    async def test_publish_failure_propagates(self) -> None:
        missive = _make_missive(_thread())
        missive.create_draft = AsyncMock(side_effect=PublishError("Missive draft create error"))

        with pytest.raises(PublishError):
            await draft_reply(
                "conv-1",
                missive=missive,
                anthropic_client=_make_anthropic("<p>Hi</p>"),
                config=_config(),
            )


class TestBuildDraft:
    """Tests for draft addressing."""

    def test_forced_sender_and_subject(self) -> None:
        target = _thread()[0]
        draft = build_draft("conv-1", "re: Hello", "<p>Body</p>", target, SENDER)
        assert draft.subject == "re: Hello"
        assert draft.from_field == SENDER
        assert draft.to_fields == [CUSTOMER]

    def test_no_target(self) -> None:
        draft = build_draft("conv-1", "", "<p>Body</p>", None, SENDER)
        assert draft.subject == "Re:"
        assert draft.to_fields == []


class TestPublishDraft:
    """Tests for draft id extraction."""

    @pytest.mark.anyio()
    @pytest.mark.parametrize(
        ("response", "expected"),
        [
            ({"drafts": {"id": "d1"}}, "d1"),
            ({"drafts": [{"id": "d2"}]}, "d2"),
            ({"drafts": []}, None),
            ({}, None),
        ],
    )
    async def test_draft_id(self, response: dict[str, Any], expected: str | None) -> None:
        missive = MagicMock()
        missive.create_draft = AsyncMock(return_value=response)
        draft = build_draft("conv-1", "Hi", "<p>x</p>", None, SENDER)

        assert await publish_draft(missive, draft) == expected


class TestBuildPipelineConfig:
    """Tests for deriving pipeline configuration from settings."""

    def test_from_settings(self, tmp_path: Path) -> None:
        (tmp_path / "faq.md").write_text("Fees are 1.5%.", encoding="utf-8")
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            sender_address="support@tab.travel",
            sender_name="Tab Support",
            internal_domains="tab.travel, tab.io",
            knowledge_file_ids="file_1,file_2",
            knowledge_base_dir=tmp_path,
            website_base="https://pay.example.com",
            thread_max_pages=3,
            operator_name="Sam",
        )

        config = build_pipeline_config(settings)

        assert config.sender == SENDER
        assert config.internal_domains == ["tab.travel", "tab.io"]
        assert config.knowledge.file_ids == ["file_1", "file_2"]
        assert [d.title for d in config.knowledge.documents] == ["faq"]
        assert config.routing.website_base == "https://pay.example.com"
        assert config.routing.routes
        assert config.max_pages == 3
        assert config.reply.operator_name == "Sam"
        assert config.instructions is None

    def test_routes_file(self, tmp_path: Path) -> None:
        routes = tmp_path / "routes.yaml"
        routes.write_text(
            "default_path: /start\nroutes:\n  - category: integrations\n"
            "    path: /connect\n    patterns: ['zapier']\n",
            encoding="utf-8",
        )
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            cta_routes_path=routes,
            knowledge_base_dir=tmp_path / "kb",
        )

        config = build_pipeline_config(settings)

        assert config.routing.default_path == "/start"
        assert [r.path for r in config.routing.routes] == ["/connect"]

    def test_unknown_generation_mode_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _config(generation_mode="poll")
