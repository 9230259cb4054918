"""
Approval backend client with backend health tracking.

Delivery is at-most-once: every decision is posted exactly one time, with no
retry. Callers must not assume the backend received it; the backend is
expected to be idempotent on request_id.

The circuit breaker only tracks backend health for monitoring. Network errors
and 5xx answers count as failures, but a decision is always attempted, even
while the circuit is open.
"""

import logging
from typing import Any

import httpx

from approval_bridge.circuit_breaker import CircuitBreaker
from approval_bridge.config import Settings
from approval_bridge.models import Decision, LeaveQuery
from approval_bridge.observability import trace_span
from approval_bridge.transport import ChatTransport
from data.message_templates import render_capacity_follow_up

logger = logging.getLogger(__name__)


class BackendServerError(Exception):
    """The backend answered with a 5xx status."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"Backend answered {response.status_code}")
        self.response = response


class BackendClient:
    """Posts decisions and leave listings to the approval endpoint."""

    def __init__(
        self,
        config: Settings,
        transport: ChatTransport,
        client: httpx.AsyncClient | None = None,
    ):
        self.endpoint = config.approval_endpoint
        self.capacity = config.daily_leave_capacity
        self.transport = transport
        self._client = client or httpx.AsyncClient(timeout=config.http_timeout_seconds)

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=config.circuit_breaker_failure_threshold,
            timeout=config.circuit_breaker_timeout,
            name="BackendCircuitBreaker",
            fail_fast=False,
        )

    async def _post(self, payload: dict[str, Any]) -> httpx.Response | None:
        if not self.endpoint:
            logger.warning("Backend notification skipped: no approval endpoint configured")
            return None
        try:
            return await self.circuit_breaker.call(self._send, payload)
        except BackendServerError as e:
            return e.response
        except httpx.HTTPError as e:
            logger.error(f"Error notifying backend about {payload.get('action')}: {e}")
        return None

    async def _send(self, payload: dict[str, Any]) -> httpx.Response:
        response = await self._client.post(self.endpoint, json=payload)
        if response.is_server_error:
            raise BackendServerError(response)
        return response

    async def forward_decision(
        self,
        decision: Decision,
        metadata: dict[str, str],
        chat_id: str,
        request_id: str | None = None,
        message_id: str | None = None,
        origin_message_id: str | None = None,
        approver: dict[str, Any] | None = None,
        source: str | None = None,
    ) -> bool:
        """
        Send one approve/reject decision. Returns True when the backend answered 2xx.

        A 2xx answer flagged ``rejection_reason == "capacity_full"`` triggers a
        single explanatory message into ``chat_id``.
        """
        if not decision.is_business_decision:
            return False

        metadata_for_backend = dict(metadata)
        if request_id and not metadata_for_backend.get("request_id"):
            metadata_for_backend["request_id"] = request_id
        if source:
            metadata_for_backend.setdefault("decision_source", source)

        payload: dict[str, Any] = {
            "action": decision.value,
            "chatId": chat_id,
            "metadata": metadata_for_backend,
        }
        if request_id:
            payload["request_id"] = request_id
        if message_id:
            payload["messageId"] = message_id
        if origin_message_id:
            payload["originMessageId"] = origin_message_id
        if approver:
            payload["approver"] = approver

        with trace_span("forward_decision", action=decision.value, request_id=request_id):
            response = await self._post(payload)
        if response is None:
            return False

        if not response.is_success:
            logger.error(
                f"Failed to notify backend about decision: {response.status_code} {response.text}"
            )
            return False

        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("rejection_reason") == "capacity_full":
            await self._send_capacity_follow_up(chat_id, metadata.get("date_range_label"))
        return True

    async def _send_capacity_follow_up(self, chat_id: str, date_range_label: str | None) -> None:
        text = render_capacity_follow_up(date_range_label, self.capacity)
        try:
            await self.transport.send_text(chat_id, text)
        except Exception as e:
            logger.error(f"Failed to send capacity explanation message: {e}")

    async def request_show_leaves(
        self, chat_id: str, leave_query: LeaveQuery | None, command: str | None = None
    ) -> bool:
        """Ask the backend to post approved leaves for a period into ``chat_id``."""
        metadata: dict[str, Any] = {"request_type": "show_leaves", "source": "manual"}
        if leave_query:
            metadata["leave_query"] = leave_query.to_dict()
        payload: dict[str, Any] = {
            "action": Decision.SHOW_LEAVES.value,
            "chatId": chat_id,
            "metadata": metadata,
        }
        if command:
            payload["command"] = command

        with trace_span("request_show_leaves", chat=chat_id):
            response = await self._post(payload)
        if response is None:
            return False
        if not response.is_success:
            logger.error(
                f"Failed to request approved leaves from backend: "
                f"{response.status_code} {response.text}"
            )
            return False
        return True

    def get_circuit_breaker_state(self) -> dict:
        """Get circuit breaker state for monitoring."""
        return self.circuit_breaker.get_state()

    async def close(self):
        await self._client.aclose()
        logger.info("Backend client closed")
