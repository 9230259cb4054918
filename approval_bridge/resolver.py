"""
Turns a classified response into a concrete decision.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from approval_bridge.composer import infer_action_id
from approval_bridge.models import ActionId, ButtonContext, Decision

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    decision: Decision
    action_id: ActionId
    request_id: str | None
    source: str


def determine_action_id(
    context: ButtonContext, selected_id: str | None, selected_text: str | None
) -> str | None:
    """Pick the raw action for a tap: known id, then label lookup, then the raw id."""
    direct_id = str(selected_id).strip() if selected_id else ""
    if direct_id and direct_id in context.actions_by_id:
        return direct_id

    text = str(selected_text or "").strip()
    if not text:
        return direct_id or None
    return context.actions_by_label.get(text) or direct_id or None


def _request_reference(context: ButtonContext, action: ActionId, raw_action: str) -> str | None:
    """
    Request id carried by the action itself.

    An action the composer inferred from its label holds the label slug in the
    request-id field; that is not a reference to anything.
    """
    label = context.actions_by_id.get(raw_action)
    if label is not None and raw_action == infer_action_id(label):
        return None
    return action.request_id


def resolve_button_decision(
    context: ButtonContext, selected_id: str | None, selected_text: str | None
) -> Resolution | None:
    raw_action = determine_action_id(context, selected_id, selected_text)
    if not raw_action:
        logger.warning(
            f"Unable to determine action for button response: id={selected_id!r} "
            f"text={selected_text!r}"
        )
        return None

    action = ActionId.parse(raw_action)
    if action is None or action.decision is None:
        logger.warning(f"Unknown decision action: {raw_action}")
        return None

    return Resolution(
        decision=action.decision,
        action_id=action,
        request_id=_request_reference(context, action, raw_action) or context.request_id,
        source="button",
    )


def resolve_text_decision(context: ButtonContext, decision: Decision) -> Resolution:
    request_id = context.request_id
    return Resolution(
        decision=decision,
        action_id=ActionId("manual", decision, request_id),
        request_id=request_id,
        source="manual",
    )
