"""
Inbound event classification.

Decides whether a chat event is a response to one of our approval requests
and, if so, which stored context it belongs to. Button taps and typed
replies are correlated differently but produce the same ClassifiedEvent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date

from approval_bridge.commands import parse_command
from approval_bridge.context_store import ContextStore
from approval_bridge.models import (
    ActionId,
    ButtonContext,
    Decision,
    EventKind,
    InboundEvent,
    LeaveQuery,
)
from approval_bridge.name_extraction import extract_applicant_name

logger = logging.getLogger(__name__)


@dataclass
class ClassifiedEvent:
    kind: EventKind
    decision: Decision | None = None
    context: ButtonContext | None = None
    origin_message_id: str | None = None
    leave_query: LeaveQuery | None = None


def is_notification_chat(chat_id: str | None, notification_chat_id: str) -> bool:
    return isinstance(chat_id, str) and chat_id.strip() == notification_chat_id


def _context_from_quote(
    event: InboundEvent, store: ContextStore
) -> tuple[str | None, ButtonContext | None]:
    if not event.quoted_message_id:
        return None, None
    return event.quoted_message_id, store.get_by_message_id(event.quoted_message_id)


def classify_button_event(
    event: InboundEvent, store: ContextStore, notification_chat_id: str
) -> ClassifiedEvent | None:
    """Correlate a button tap with its request: quoted message first, then request id."""
    origin_message_id, context = _context_from_quote(event, store)
    if context is None:
        action = ActionId.parse(event.selected_button_id)
        if action and action.request_id:
            context = store.get_by_request_id(action.request_id)
            if context is not None:
                origin_message_id = context.message_id

    if context is None:
        logger.warning(
            f"No button context found for response: {event.selected_button_id!r} "
            f"{event.selected_button_text!r}"
        )
        return None

    if not is_notification_chat(event.chat_id, notification_chat_id):
        logger.debug(f"Ignoring button response from chat {event.chat_id}")
        return None

    return ClassifiedEvent(
        kind=EventKind.BUTTON_RESPONSE, context=context, origin_message_id=origin_message_id
    )


def classify_text_event(
    event: InboundEvent,
    store: ContextStore,
    notification_chat_id: str,
    today: date | None = None,
) -> ClassifiedEvent | None:
    """
    Correlate a typed command: quoted message first, then the chat's latest request.

    Returns None for anything that is not a command. An approve/reject that
    matches no request comes back with ``context=None`` and must be dropped.
    """
    if event.from_me:
        return None
    if not is_notification_chat(event.chat_id, notification_chat_id):
        return None

    command = parse_command(event.body, today=today)
    if command is None:
        return None

    if command.decision in (Decision.HELP, Decision.SHOW_LEAVES):
        return ClassifiedEvent(
            kind=EventKind.TEXT, decision=command.decision, leave_query=command.leave_query
        )

    origin_message_id, context = _context_from_quote(event, store)
    if context is None:
        latest = store.get_latest_by_chat(event.chat_id)
        if latest is not None:
            origin_message_id, context = latest.message_id, latest

    if context is None:
        logger.warning("Manual approval received without context; ignoring.")
        return ClassifiedEvent(kind=EventKind.TEXT, decision=command.decision)

    applicant_name = extract_applicant_name(event.quoted_body)
    if applicant_name:
        metadata = context.metadata.copy()
        metadata.applicant_display_name = applicant_name
        context = replace(context, metadata=metadata)

    return ClassifiedEvent(
        kind=EventKind.TEXT,
        decision=command.decision,
        context=context,
        origin_message_id=origin_message_id,
    )
