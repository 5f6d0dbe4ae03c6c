"""Missive REST API client for conversation reads and draft creation.

Provides the ``MissiveClient`` class wrapping the four endpoints the
pipeline needs: list a page of conversation messages, fetch one message in
full, fetch conversation metadata, and create a draft.  Every call is a
single attempt; a non-2xx response or transport error is converted to the
matching domain error.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from drafter.domain.errors import PublishError, ThreadFetchError
from drafter.missive.models import Conversation, DraftEmail, Message

logger = structlog.get_logger()

DEFAULT_API_BASE = "https://public.missiveapp.com/v1"


class MissiveClient:
    """Async wrapper around the Missive public API.

    Args:
        api_token: Bearer token for the Missive API.
        base_url: API root, without trailing slash.
        http_client: Optional pre-built ``httpx.AsyncClient`` (tests pass one
            backed by ``httpx.MockTransport``).  When omitted, the client is
            created here and closed by ``aclose``.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        api_token: str,
        base_url: str = DEFAULT_API_BASE,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_token}"}

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            response = await self._http.get(
                f"{self._base_url}{path}", headers=self._headers, params=params
            )
            response.raise_for_status()
            return dict(response.json())
        except httpx.HTTPStatusError as exc:
            msg = f"Missive GET {path} failed ({exc.response.status_code}): {exc.response.text}"
            raise ThreadFetchError(msg) from exc
        except (httpx.HTTPError, TypeError, ValueError) as exc:
            raise ThreadFetchError(f"Missive GET {path} failed: {exc}") from exc

    async def list_messages(
        self,
        conversation_id: str,
        limit: int = 10,
        until: int | None = None,
    ) -> list[dict[str, Any]]:
        """List one page of message summaries, newest first.

        Args:
            conversation_id: The Missive conversation id.
            limit: Page size.
            until: Only return messages delivered at or before this Unix
                timestamp.  ``None`` starts from the newest message.

        Returns:
            The raw message summary dicts of the page.

        Raises:
            ThreadFetchError: On any non-success response.
        """
        params: dict[str, Any] = {"limit": limit}
        if until is not None:
            params["until"] = until
        data = await self._get(f"/conversations/{conversation_id}/messages", params=params)
        return list(data.get("messages") or [])

    async def get_message(self, message_id: str) -> Message:
        """Fetch one message with its full body.

        Raises:
            ThreadFetchError: On any non-success response or a malformed payload.
        """
        data = await self._get(f"/messages/{message_id}")
        raw = data.get("messages")
        if isinstance(raw, list):
            raw = raw[0] if raw else None
        if not isinstance(raw, dict):
            raise ThreadFetchError(f"Missive message {message_id} missing from response")
        try:
            return Message.from_api(raw)
        except (KeyError, ValueError) as exc:
            raise ThreadFetchError(f"Missive message {message_id} is malformed: {exc}") from exc

    async def get_conversation(self, conversation_id: str) -> Conversation:
        """Fetch conversation metadata (id and subject).

        Raises:
            ThreadFetchError: On any non-success response.
        """
        data = await self._get(f"/conversations/{conversation_id}")
        raw = data.get("conversations", data.get("conversation"))
        if isinstance(raw, list):
            raw = raw[0] if raw else None
        if not isinstance(raw, dict):
            raise ThreadFetchError(
                f"Missive conversation {conversation_id} missing from response",
                conversation_id=conversation_id,
            )
        return Conversation.from_api(raw)

    async def create_draft(self, draft: DraftEmail) -> dict[str, Any]:
        """Create *draft* in its conversation without sending it.

        Returns:
            The API response dict (contains the created draft).

        Raises:
            PublishError: If the draft is rejected or the request fails.
        """
        try:
            response = await self._http.post(
                f"{self._base_url}/drafts",
                headers=self._headers,
                json=draft.to_payload(),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            msg = f"Missive draft create error ({exc.response.status_code}): {exc.response.text}"
            raise PublishError(msg) from exc
        except httpx.HTTPError as exc:
            raise PublishError(f"Missive draft create error: {exc}") from exc

        logger.info("Missive draft created", conversation_id=draft.conversation_id)
        try:
            return dict(response.json())
        except ValueError:
            return {}
