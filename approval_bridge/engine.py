"""
Interactive decision correlation engine.

Wires the context store, classifiers, resolver and processor together. The
surrounding application calls ``send_interactive_request`` to ask for an
approval and feeds every chat event to ``handle_event``.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from enum import Enum
from typing import Any

from approval_bridge.backend_client import BackendClient
from approval_bridge.classifier import classify_button_event, classify_text_event
from approval_bridge.composer import ChoiceSpec, compose_interactive_request
from approval_bridge.config import Settings, settings
from approval_bridge.context_store import ContextStore
from approval_bridge.models import (
    Decision,
    EventKind,
    InboundEvent,
    MediaAttachment,
    RequestMetadata,
)
from approval_bridge.observability import trace_span
from approval_bridge.processor import DecisionProcessor
from approval_bridge.resolver import resolve_button_decision, resolve_text_decision
from approval_bridge.transport import ChatTransport, HttpGatewayTransport
from approval_bridge.utils.jid import normalize_jids

logger = logging.getLogger(__name__)


class CompositionError(ValueError):
    """The interactive request had no body or no usable choice."""


class EventOutcome(str, Enum):
    IGNORED = "ignored"
    DROPPED = "dropped"
    DECIDED = "decided"
    HELP = "help"
    SHOW_LEAVES = "show_leaves"


class ApprovalEngine:
    """
    Single logical worker over the correlation pipeline.

    Events are handled one at a time; a second event waits until the first
    has been fully processed, outbound calls included.
    """

    def __init__(
        self,
        config: Settings,
        transport: ChatTransport,
        store: ContextStore | None = None,
        backend: BackendClient | None = None,
    ):
        self.config = config
        self.transport = transport
        self.store = store or ContextStore(
            max_contexts=config.max_contexts, ttl_seconds=config.context_ttl_seconds
        )
        self.backend = backend or BackendClient(config, transport)
        self.processor = DecisionProcessor(config, self.store, transport, self.backend)
        self._lock = asyncio.Lock()

    async def send_interactive_request(
        self,
        chat_id: str,
        body: str,
        choices: list[ChoiceSpec],
        title: str | None = None,
        footer: str | None = None,
        metadata: dict[str, Any] | None = None,
        request_id: str | None = None,
        mentions: list[str] | None = None,
        media: MediaAttachment | None = None,
    ) -> str | None:
        """
        Send an approval request and remember it for later responses.

        With ``media`` the file is sent instead, captioned with the body; the
        gateway cannot attach buttons to a file, so only typed replies and
        quoted taps can answer it.

        Returns the gateway's message id (None if the gateway did not report
        one, in which case nothing can be correlated).

        Raises:
            CompositionError: If the body is blank or no choice is usable
        """
        normalized = RequestMetadata.from_mapping(metadata)
        if request_id and not normalized.request_id:
            normalized.request_id = str(request_id)

        composed = compose_interactive_request(body, choices, title, footer, normalized)
        if composed is None:
            raise CompositionError("Invalid buttons payload")

        resolved_mentions = normalize_jids(mentions or [])
        if media is not None:
            composed.metadata.extra["mimeType"] = media.mime_type
            composed.metadata.extra["filename"] = media.filename
            message_id = await self.transport.send_media(
                chat_id, media, caption=composed.body, mentions=resolved_mentions
            )
        else:
            message_id = await self.transport.send_interactive(
                chat_id, composed, resolved_mentions
            )
        if not message_id:
            logger.warning(f"Gateway returned no message id for request in {chat_id}")
            return None

        self.store.put(composed.bind(chat_id, message_id))
        logger.info(
            f"Tracking interactive request {message_id} "
            f"(chat={chat_id}, request_id={normalized.request_id})"
        )
        return message_id

    async def handle_event(self, event: InboundEvent, today: date | None = None) -> EventOutcome:
        async with self._lock:
            with trace_span("handle_event", kind=event.kind.value, chat=event.chat_id):
                if event.kind == EventKind.BUTTON_RESPONSE:
                    return await self._handle_button(event)
                if event.kind == EventKind.TEXT:
                    return await self._handle_text(event, today)
                return EventOutcome.IGNORED

    async def _handle_button(self, event: InboundEvent) -> EventOutcome:
        classified = classify_button_event(event, self.store, self.config.notification_chat_id)
        if classified is None:
            return EventOutcome.DROPPED

        resolution = resolve_button_decision(
            classified.context,
            event.selected_button_id,
            event.selected_button_text or event.body,
        )
        if resolution is None:
            return EventOutcome.DROPPED

        await self.processor.process(
            resolution, classified.context, event, classified.origin_message_id
        )
        return EventOutcome.DECIDED

    async def _handle_text(self, event: InboundEvent, today: date | None) -> EventOutcome:
        classified = classify_text_event(
            event, self.store, self.config.notification_chat_id, today=today
        )
        if classified is None:
            return EventOutcome.IGNORED

        if classified.decision == Decision.HELP:
            await self.processor.send_help(event)
            return EventOutcome.HELP
        if classified.decision == Decision.SHOW_LEAVES:
            await self.processor.show_leaves(event, classified.leave_query)
            return EventOutcome.SHOW_LEAVES

        if classified.context is None:
            return EventOutcome.DROPPED

        resolution = resolve_text_decision(classified.context, classified.decision)
        await self.processor.process(
            resolution, classified.context, event, classified.origin_message_id
        )
        return EventOutcome.DECIDED

    async def close(self) -> None:
        await self.backend.close()
        close = getattr(self.transport, "close", None)
        if close is not None:
            await close()


# Global engine instance
approval_engine = None


def get_engine() -> ApprovalEngine:
    """Get or create global engine instance."""
    global approval_engine
    if approval_engine is None:
        transport = HttpGatewayTransport(settings.gateway_url, timeout=settings.http_timeout_seconds)
        approval_engine = ApprovalEngine(settings, transport)
    return approval_engine
