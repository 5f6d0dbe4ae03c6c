"""Tests for Missive domain models and API payload parsing."""

from drafter.missive.models import Contact, Conversation, DraftEmail, Message


class TestContact:
    """Tests for Contact parsing and helpers."""

    def test_domain_lowercased(self) -> None:
        assert Contact(address="Ana@Hotel-Sol.ES").domain == "hotel-sol.es"

    def test_domain_empty_without_at(self) -> None:
        assert Contact(address="not-an-address").domain == ""

    def test_from_api_reads_address(self) -> None:
        contact = Contact.from_api({"name": "Ana", "address": "ana@example.com"})
        assert contact == Contact(name="Ana", address="ana@example.com")

    def test_from_api_falls_back_to_email_key(self) -> None:
        contact = Contact.from_api({"email": "bot@example.com"})
        assert contact.address == "bot@example.com"
        assert contact.name == ""

    def test_from_api_none(self) -> None:
        assert Contact.from_api(None) == Contact()


class TestMessage:
    """Tests for Message.from_api and derived properties."""

    def test_from_api_full_payload(self) -> None:
        message = Message.from_api(
            {
                "id": "m1",
                "from_field": {"name": "Ana", "address": "ana@example.com"},
                "to_fields": [{"name": "Support", "address": "support@tab.travel"}],
                "created_at": 1700000000,
                "delivered_at": "1700000005",
                "body": "<p>Hello</p>",
                "conversation": {"id": "c1"},
            }
        )
        assert message.id == "m1"
        assert message.sender.address == "ana@example.com"
        assert message.recipients[0].address == "support@tab.travel"
        assert message.created_at == 1700000000
        assert message.delivered_at == 1700000005
        assert message.conversation_id == "c1"

    def test_sender_falls_back_to_creator(self) -> None:
        message = Message.from_api({"id": "m2", "creator": {"name": "Alex", "email": "a@x.com"}})
        assert message.sender.address == "a@x.com"

    def test_unparseable_timestamp_is_none(self) -> None:
        message = Message.from_api({"id": "m3", "created_at": "yesterday"})
        assert message.created_at is None

    def test_plain_text_prefers_text(self) -> None:
        message = Message(id="m", text="plain", body="<p>html</p>")
        assert message.plain_text == "plain"

    def test_plain_text_strips_body(self) -> None:
        message = Message(id="m", body="<p>Hello <b>there</b></p>")
        assert message.plain_text == "Hello there"

    def test_sort_key_uses_created_then_delivered(self) -> None:
        assert Message(id="a", created_at=5, delivered_at=9).sort_key == 5
        assert Message(id="b", delivered_at=9).sort_key == 9
        assert Message(id="c").sort_key == 0


class TestConversation:
    """Tests for conversation metadata parsing."""

    def test_subject_is_trimmed(self) -> None:
        conversation = Conversation.from_api({"id": "conv-1", "subject": "  Pricing  "})
        assert conversation == Conversation(id="conv-1", subject="Pricing")

    def test_falls_back_to_latest_message_subject(self) -> None:
        conversation = Conversation.from_api(
            {"id": "conv-1", "subject": None, "latest_message_subject": "Card readers"}
        )
        assert conversation.subject == "Card readers"

    def test_missing_subject_is_empty(self) -> None:
        assert Conversation.from_api({"id": "conv-1"}).subject == ""


class TestDraftEmail:
    """Tests for the POST /drafts payload."""

    def test_payload_shape(self) -> None:
        draft = DraftEmail(
            conversation_id="c1",
            subject="Re: Pricing",
            body="<p>Hi</p>",
            from_field=Contact(name="Tab Support", address="support@tab.travel"),
            to_fields=[Contact(name="Ana", address="ana@example.com"), Contact(address="b@x.com")],
        )
        payload = draft.to_payload()["drafts"]
        assert payload["conversation"] == "c1"
        assert payload["subject"] == "Re: Pricing"
        assert payload["from_field"] == {"address": "support@tab.travel", "name": "Tab Support"}
        assert payload["to_fields"] == [
            {"address": "ana@example.com", "name": "Ana"},
            {"address": "b@x.com"},
        ]
        assert payload["quote_previous_message"] is False
        assert payload["send"] is False

    def test_to_fields_omitted_when_empty(self) -> None:
        draft = DraftEmail(
            conversation_id="c1",
            subject="Re:",
            body="<p>Hi</p>",
            from_field=Contact(address="support@tab.travel"),
        )
        assert "to_fields" not in draft.to_payload()["drafts"]
