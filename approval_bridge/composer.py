"""
Builds interactive approval requests.

A request is a text body plus a set of labelled buttons. Every button that
maps to a business decision carries an ActionId so that a later tap can be
traced back to the request and to the decision it stands for.
"""

from __future__ import annotations

import json
import logging
import re
import secrets
import string
from dataclasses import dataclass
from typing import Any

from approval_bridge.models import ActionId, ButtonContext, Decision, RequestMetadata

logger = logging.getLogger(__name__)

APPROVAL_LABEL_PATTERN = re.compile(r"lulus|approve|approved|setuju|ok")
REJECTION_LABEL_PATTERN = re.compile(r"tolak|reject|rejected|batal|no")

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
_BUTTON_ID_ALPHABET = string.ascii_letters + string.digits


@dataclass
class ChoiceSpec:
    """A button requested by the caller."""

    label: str
    action_id: str | None = None


@dataclass
class Button:
    id: str
    label: str


@dataclass
class ComposedRequest:
    """Rendering payload for the transport plus the context to register later."""

    body: str
    buttons: list[Button]
    actions_by_id: dict[str, str]
    actions_by_label: dict[str, str]
    metadata: RequestMetadata
    title: str | None = None
    footer: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "body": self.body,
            "choices": [{"label": b.label, "actionId": b.id} for b in self.buttons],
        }
        if self.title:
            payload["title"] = self.title
        if self.footer:
            payload["footer"] = self.footer
        return payload

    def bind(self, chat_id: str | None, message_id: str) -> ButtonContext:
        """Context for the sent message, once the transport reports its id."""
        return ButtonContext(
            actions_by_id=dict(self.actions_by_id),
            actions_by_label=dict(self.actions_by_label),
            metadata=self.metadata.copy(),
            chat_id=chat_id,
            message_id=message_id,
        )


def slugify_label(label: str) -> str:
    slug = _SLUG_PATTERN.sub("-", label.lower()).strip("-")
    return slug or "default"


def infer_action_id(label: str) -> str:
    """Guess a decision from a button label; empty string when nothing matches."""
    if not label:
        return ""
    lower = label.lower()
    if APPROVAL_LABEL_PATTERN.search(lower):
        return ActionId("auto", Decision.APPROVE, slugify_label(label)).encode()
    if REJECTION_LABEL_PATTERN.search(lower):
        return ActionId("auto", Decision.REJECT, slugify_label(label)).encode()
    return ""


def generate_button_id(length: int = 6) -> str:
    return "".join(secrets.choice(_BUTTON_ID_ALPHABET) for _ in range(length))


def _label_action_map(metadata: RequestMetadata) -> dict[str, str]:
    raw = metadata.extra.get("button_actions_json")
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError as e:
        logger.warning(f"Failed to parse button_actions_json: {e}")
        return {}
    if not isinstance(parsed, dict):
        logger.warning("Ignoring button_actions_json: expected a JSON object")
        return {}
    return {str(k).strip(): str(v).strip() for k, v in parsed.items() if v is not None}


def compose_interactive_request(
    body: str | None,
    choices: list[ChoiceSpec] | None,
    title: str | None = None,
    footer: str | None = None,
    metadata: dict[str, Any] | RequestMetadata | None = None,
) -> ComposedRequest | None:
    """
    Build the interactive payload and its correlation maps.

    Returns None when the body is blank or no button survives.
    """
    text_body = body.strip() if isinstance(body, str) else ""
    if not text_body:
        return None

    normalized = RequestMetadata.from_mapping(metadata)
    action_map = _label_action_map(normalized)

    final: list[ChoiceSpec] = []
    for choice in choices or []:
        if choice is None:
            continue
        label = str(choice.label or "").strip()
        if not label:
            continue
        explicit = str(choice.action_id).strip() if choice.action_id else ""
        action = explicit or action_map.get(label) or infer_action_id(label)
        final.append(ChoiceSpec(label=label, action_id=action or None))
        if action:
            action_map[label] = action

    if not final and action_map:
        for label, action in action_map.items():
            if not label:
                continue
            final.append(ChoiceSpec(label=label, action_id=action or infer_action_id(label) or None))

    if not final:
        return None

    buttons: list[Button] = []
    actions_by_id: dict[str, str] = {}
    actions_by_label: dict[str, str] = {}
    for choice in final:
        action = choice.action_id or ""
        buttons.append(Button(id=action or generate_button_id(), label=choice.label))
        actions_by_label[choice.label] = action
        if action:
            actions_by_id[action] = choice.label

    return ComposedRequest(
        body=text_body,
        buttons=buttons,
        actions_by_id=actions_by_id,
        actions_by_label=actions_by_label,
        metadata=normalized,
        title=title.strip() if isinstance(title, str) and title.strip() else None,
        footer=footer.strip() if isinstance(footer, str) and footer.strip() else None,
    )
