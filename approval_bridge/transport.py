"""
Chat transport seam.

The engine needs four things from the chat side: send a text, send a file,
send an interactive request, and look up a contact. ``HttpGatewayTransport``
talks to a messaging gateway over HTTP; tests substitute their own
implementation.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from approval_bridge.composer import ComposedRequest
from approval_bridge.models import ContactProfile, MediaAttachment

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    """Raised when the gateway rejects or fails a send."""


class ChatTransport(Protocol):
    async def send_text(
        self, chat_id: str, text: str, mentions: list[str] | None = None
    ) -> str | None: ...

    async def send_media(
        self,
        chat_id: str,
        media: MediaAttachment,
        caption: str | None = None,
        mentions: list[str] | None = None,
    ) -> str | None: ...

    async def send_interactive(
        self, chat_id: str, request: ComposedRequest, mentions: list[str] | None = None
    ) -> str | None: ...

    async def get_contact(self, jid: str) -> ContactProfile | None: ...


def contact_from_payload(data: dict[str, Any] | None) -> ContactProfile | None:
    if not data:
        return None
    return ContactProfile(
        id=data.get("id"),
        number=data.get("number"),
        push_name=data.get("pushname") or data.get("pushName"),
        name=data.get("name"),
        short_name=data.get("shortName"),
    )


class HttpGatewayTransport:
    """
    Transport backed by an HTTP messaging gateway.

    Gateway contract:
        POST /messages         {chatId, content | body+buttons | media, mentions?} -> {id}
        GET  /contacts/{jid}   -> {id, number, pushname, name, shortName}
    """

    def __init__(self, base_url: str, timeout: float = 10.0, client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def _post_message(self, payload: dict[str, Any]) -> str | None:
        response = await self._client.post("/messages", json=payload)
        if response.status_code >= 400:
            raise TransportError(
                f"Gateway rejected message to {payload.get('chatId')}: "
                f"{response.status_code} {response.text}"
            )
        try:
            data = response.json()
        except ValueError:
            return None
        return data.get("id") if isinstance(data, dict) else None

    async def send_text(
        self, chat_id: str, text: str, mentions: list[str] | None = None
    ) -> str | None:
        payload: dict[str, Any] = {"chatId": chat_id, "content": text}
        if mentions:
            payload["mentions"] = mentions
        return await self._post_message(payload)

    async def send_media(
        self,
        chat_id: str,
        media: MediaAttachment,
        caption: str | None = None,
        mentions: list[str] | None = None,
    ) -> str | None:
        payload: dict[str, Any] = {
            "chatId": chat_id,
            "type": "media",
            "mimeType": media.mime_type,
            "data": media.data,
            "filename": media.filename,
        }
        if caption:
            payload["caption"] = caption
        if mentions:
            payload["mentions"] = mentions
        return await self._post_message(payload)

    async def send_interactive(
        self, chat_id: str, request: ComposedRequest, mentions: list[str] | None = None
    ) -> str | None:
        payload: dict[str, Any] = {
            "chatId": chat_id,
            "type": "buttons",
            "body": request.body,
            "buttons": [{"id": b.id, "body": b.label} for b in request.buttons],
        }
        if request.title:
            payload["title"] = request.title
        if request.footer:
            payload["footer"] = request.footer
        if mentions:
            payload["mentions"] = mentions
        return await self._post_message(payload)

    async def get_contact(self, jid: str) -> ContactProfile | None:
        response = await self._client.get(f"/contacts/{jid}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return contact_from_payload(response.json())

    async def close(self) -> None:
        await self._client.aclose()
