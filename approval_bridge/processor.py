"""
Side effects of a resolved decision.

Once a response has been tied to a request and a decision, the processor
announces it in the chats, forwards it to the backend and retires the
request's context. Each delivery is best-effort: a failed send is logged and
never prevents the other sends, the backend call, or the eviction.
"""

from __future__ import annotations

import asyncio
import logging

from approval_bridge.backend_client import BackendClient
from approval_bridge.config import Settings
from approval_bridge.context_store import ContextStore
from approval_bridge.models import ButtonContext, ContactProfile, InboundEvent, LeaveQuery
from approval_bridge.resolver import Resolution
from approval_bridge.transport import ChatTransport
from approval_bridge.utils.jid import jid_handle, normalize_jid
from data.message_templates import help_menu, render_decision_text

logger = logging.getLogger(__name__)


class DecisionProcessor:
    def __init__(
        self,
        config: Settings,
        store: ContextStore,
        transport: ChatTransport,
        backend: BackendClient,
    ):
        self.config = config
        self.store = store
        self.transport = transport
        self.backend = backend

    async def _resolve_applicant(self, jid: str | None) -> str | None:
        """Confirm the applicant's id with the gateway; keep the JID when lookup fails."""
        if not jid:
            return None
        try:
            contact = await self.transport.get_contact(jid)
        except Exception as e:
            logger.warning(f"Unable to fetch applicant contact for mention {jid}: {e}")
            return jid
        return (contact.id if contact and contact.id else None) or jid

    async def _send(self, chat_id: str, text: str, mentions: list[str], label: str) -> None:
        try:
            await self.transport.send_text(chat_id, text, mentions or None)
        except Exception as e:
            logger.error(f"Failed to send decision message to {label} chat {chat_id}: {e}")

    async def process(
        self,
        resolution: Resolution,
        context: ButtonContext,
        event: InboundEvent,
        origin_message_id: str | None = None,
    ) -> None:
        decision = resolution.decision
        request_id = resolution.request_id

        metadata = context.metadata.copy()
        if request_id and not metadata.request_id:
            metadata.request_id = request_id

        contact = event.contact or ContactProfile()
        approver = contact.to_approver()
        # templates supply the localized default
        approver_name = contact.display_name

        applicant_jid = normalize_jid(metadata.applicant_jid) or normalize_jid(
            metadata.applicant_phone_number
        )
        applicant_id = await self._resolve_applicant(applicant_jid)
        handle = jid_handle(applicant_id)
        mention_tag = f"@{handle}" if handle else metadata.applicant_display_name
        mentions = [applicant_id] if applicant_id else []

        audit_chat_id = self.config.audit_chat_id
        original_chat_id = (metadata.chat_id or "").strip() or (context.chat_id or "").strip()
        incoming_chat_id = (event.chat_id or "").strip()
        target_chat_id = original_chat_id or incoming_chat_id or audit_chat_id

        def confirmation(language: str) -> str:
            return render_decision_text(
                decision.value,
                language,
                applicant=mention_tag,
                approver=approver_name,
                date_range_label=metadata.date_range_label,
                capacity_reject=metadata.is_capacity_reject,
                capacity=self.config.daily_leave_capacity,
            )

        tasks = []
        if original_chat_id and original_chat_id != audit_chat_id:
            tasks.append(
                self._send(
                    original_chat_id,
                    confirmation(self.config.origin_language),
                    mentions,
                    "original",
                )
            )
        tasks.append(
            self._send(audit_chat_id, confirmation(self.config.audit_language), mentions, "audit")
        )
        tasks.append(
            self.backend.forward_decision(
                decision,
                metadata.to_dict(),
                target_chat_id,
                request_id=request_id,
                message_id=event.message_id,
                origin_message_id=origin_message_id,
                approver=approver,
                source=resolution.source,
            )
        )

        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Decision delivery failed: {result}")

        self.store.evict(
            origin_message_id or context.message_id,
            context.request_id or request_id,
            context.chat_id,
        )
        logger.info(
            f"Decision {decision.value} processed: action={resolution.action_id} "
            f"request_id={request_id} target={target_chat_id}"
        )

    async def send_help(self, event: InboundEvent) -> None:
        if not event.chat_id:
            logger.warning("Unable to determine chat for help menu response.")
            return
        try:
            await self.transport.send_text(event.chat_id, help_menu())
        except Exception as e:
            logger.error(f"Failed to send help menu: {e}")

    async def show_leaves(self, event: InboundEvent, leave_query: LeaveQuery | None) -> None:
        if not event.chat_id:
            return
        await self.backend.request_show_leaves(event.chat_id, leave_query, command=event.body)
