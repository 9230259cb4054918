"""
Tests for inbound event classification and decision resolution.
"""

from datetime import date

from approval_bridge.classifier import classify_button_event, classify_text_event
from approval_bridge.models import ActionId, Decision, EventKind, InboundEvent
from approval_bridge.resolver import (
    determine_action_id,
    resolve_button_decision,
    resolve_text_decision,
)

NOTIFICATION_CHAT = "120363368545737149@g.us"
DRIVER_CHAT = "120363406616265454@g.us"


def tap(**kwargs):
    kwargs.setdefault("chat_id", NOTIFICATION_CHAT)
    return InboundEvent(kind=EventKind.BUTTON_RESPONSE, **kwargs)


def text(body, **kwargs):
    kwargs.setdefault("chat_id", NOTIFICATION_CHAT)
    return InboundEvent(kind=EventKind.TEXT, body=body, **kwargs)


class TestActionIdParsing:
    def test_full_action(self):
        action = ActionId.parse("auto:approve:42")
        assert action == ActionId("auto", Decision.APPROVE, "42")

    def test_past_tense_is_normalized(self):
        assert ActionId.parse("leave:REJECTED:7").decision == Decision.REJECT
        assert ActionId.parse("leave:approved").decision == Decision.APPROVE

    def test_unknown_decision_keeps_request_id(self):
        action = ActionId.parse("auto:maybe:9")
        assert action.decision is None
        assert action.request_id == "9"

    def test_unparseable(self):
        assert ActionId.parse("Xy12Ab") is None
        assert ActionId.parse("") is None

    def test_empty_request_id(self):
        assert ActionId.parse("manual:approve:").request_id is None
        assert str(ActionId("manual", Decision.REJECT, None)) == "manual:reject:"


class TestButtonClassification:
    def test_quoted_message_resolves_context(self, store, leave_context):
        store.put(leave_context)
        result = classify_button_event(
            tap(quoted_message_id="M1", selected_button_id="auto:approve:approve"),
            store,
            NOTIFICATION_CHAT,
        )
        assert result.context is leave_context
        assert result.origin_message_id == "M1"

    def test_request_id_in_button_resolves_context(self, store, leave_context):
        store.put(leave_context)
        result = classify_button_event(
            tap(selected_button_id="leave:approve:42"), store, NOTIFICATION_CHAT
        )
        assert result.context is leave_context
        assert result.origin_message_id == "M1"

    def test_unknown_context_is_dropped(self, store):
        result = classify_button_event(
            tap(quoted_message_id="M404", selected_button_id="auto:approve:approve"),
            store,
            NOTIFICATION_CHAT,
        )
        assert result is None

    def test_other_channel_is_ignored(self, store, leave_context):
        store.put(leave_context)
        result = classify_button_event(
            tap(chat_id=DRIVER_CHAT, quoted_message_id="M1"), store, NOTIFICATION_CHAT
        )
        assert result is None


class TestTextClassification:
    def test_latest_context_used_without_quote(self, store, leave_context):
        store.put(leave_context)
        result = classify_text_event(text("ok"), store, NOTIFICATION_CHAT)
        assert result.decision == Decision.APPROVE
        assert result.context is leave_context
        assert result.origin_message_id == "M1"

    def test_quote_wins_over_latest(self, store, leave_context):
        store.put(leave_context)
        newer = leave_context.__class__(
            actions_by_id={},
            actions_by_label={},
            metadata=leave_context.metadata.copy(),
            chat_id=NOTIFICATION_CHAT,
            message_id="M2",
        )
        store.put(newer)
        result = classify_text_event(text("no", quoted_message_id="M1"), store, NOTIFICATION_CHAT)
        assert result.context is leave_context
        assert result.decision == Decision.REJECT

    def test_quoted_announcement_overrides_display_name(self, store, leave_context):
        store.put(leave_context)
        result = classify_text_event(
            text(
                "yes",
                quoted_message_id="M1",
                quoted_body="Permohonan cuti baharu pada 12/11/2025: Ahmad Ali (LOWBED)",
            ),
            store,
            NOTIFICATION_CHAT,
        )
        assert result.context.metadata.applicant_display_name == "Ahmad Ali"
        assert store.get_by_message_id("M1").metadata.applicant_display_name == "Ahmad"

    def test_help_needs_no_context(self, store):
        result = classify_text_event(text("help"), store, NOTIFICATION_CHAT)
        assert result.decision == Decision.HELP
        assert result.context is None

    def test_show_leaves_carries_query(self, store):
        result = classify_text_event(
            text("l11"), store, NOTIFICATION_CHAT, today=date(2025, 3, 1)
        )
        assert result.decision == Decision.SHOW_LEAVES
        assert result.leave_query.month == 11

    def test_decision_without_context_has_no_context(self, store):
        result = classify_text_event(text("ok"), store, NOTIFICATION_CHAT)
        assert result.decision == Decision.APPROVE
        assert result.context is None

    def test_own_messages_are_ignored(self, store, leave_context):
        store.put(leave_context)
        assert classify_text_event(text("ok", from_me=True), store, NOTIFICATION_CHAT) is None

    def test_other_channel_is_ignored(self, store, leave_context):
        store.put(leave_context)
        assert classify_text_event(text("ok", chat_id=DRIVER_CHAT), store, NOTIFICATION_CHAT) is None

    def test_chatter_is_ignored(self, store, leave_context):
        store.put(leave_context)
        assert classify_text_event(text("good morning"), store, NOTIFICATION_CHAT) is None


class TestResolver:
    def test_known_id_is_authoritative(self, leave_context):
        assert (
            determine_action_id(leave_context, "auto:reject:reject", "Approve")
            == "auto:reject:reject"
        )

    def test_label_fallback(self, leave_context):
        assert determine_action_id(leave_context, "Zx81Qa", "Approve") == "auto:approve:approve"

    def test_raw_id_fallback(self, leave_context):
        assert determine_action_id(leave_context, "ext:approved:77", "Unknown") == "ext:approved:77"
        assert determine_action_id(leave_context, None, None) is None

    def test_inferred_action_uses_context_request_id(self, leave_context):
        """auto ids carry a label slug, not a request id."""
        resolution = resolve_button_decision(leave_context, "auto:approve:approve", None)
        assert resolution.decision == Decision.APPROVE
        assert resolution.request_id == "42"

    def test_explicit_action_request_id_wins(self, leave_context):
        resolution = resolve_button_decision(leave_context, "leave:approved:77", None)
        assert resolution.decision == Decision.APPROVE
        assert resolution.request_id == "77"

    def test_button_resolution_falls_back_to_metadata_request_id(self, leave_context):
        leave_context.actions_by_id["leave:reject"] = "Reject"
        resolution = resolve_button_decision(leave_context, "leave:reject", None)
        assert resolution.decision == Decision.REJECT
        assert resolution.request_id == "42"
        assert resolution.source == "button"

    def test_unresolvable_action(self, leave_context):
        assert resolve_button_decision(leave_context, "Zx81Qa", "Details") is None
        assert resolve_button_decision(leave_context, "auto:maybe:1", None) is None

    def test_text_resolution_synthesizes_action(self, leave_context):
        resolution = resolve_text_decision(leave_context, Decision.REJECT)
        assert resolution.action_id.encode() == "manual:reject:42"
        assert resolution.request_id == "42"
        assert resolution.source == "manual"
