"""
Pytest configuration and fixtures.
Shared fakes for the chat gateway and the approval backend.
"""

import json
import os
from datetime import date

import httpx
import pytest

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from approval_bridge.backend_client import BackendClient  # noqa: E402
from approval_bridge.composer import ChoiceSpec, compose_interactive_request  # noqa: E402
from approval_bridge.config import Settings  # noqa: E402
from approval_bridge.context_store import ContextStore  # noqa: E402
from approval_bridge.engine import ApprovalEngine  # noqa: E402
from approval_bridge.models import ContactProfile  # noqa: E402
from approval_bridge.transport import TransportError  # noqa: E402

NOTIFICATION_CHAT = "120363368545737149@g.us"
DRIVER_CHAT = "120363406616265454@g.us"
BACKEND_URL = "http://backend.test/handle_approval_message"


class RecordingTransport:
    """In-memory stand-in for the chat gateway."""

    def __init__(self, message_ids=None, contacts=None, failing_chats=()):
        self.message_ids = list(message_ids or ["M1"])
        self.contacts = contacts or {}
        self.failing_chats = set(failing_chats)
        self.texts = []
        self.interactive = []
        self.media = []

    async def send_text(self, chat_id, text, mentions=None):
        if chat_id in self.failing_chats:
            raise TransportError(f"gateway down for {chat_id}")
        self.texts.append({"chat_id": chat_id, "text": text, "mentions": mentions})
        return f"T{len(self.texts)}"

    async def send_media(self, chat_id, media, caption=None, mentions=None):
        if chat_id in self.failing_chats:
            raise TransportError(f"gateway down for {chat_id}")
        self.media.append(
            {"chat_id": chat_id, "media": media, "caption": caption, "mentions": mentions}
        )
        return self.message_ids.pop(0) if self.message_ids else None

    async def send_interactive(self, chat_id, request, mentions=None):
        self.interactive.append({"chat_id": chat_id, "request": request, "mentions": mentions})
        return self.message_ids.pop(0) if self.message_ids else None

    async def get_contact(self, jid):
        return self.contacts.get(jid)

    def texts_for(self, chat_id):
        return [t["text"] for t in self.texts if t["chat_id"] == chat_id]


class RecordingBackend:
    """Captures POSTs to the approval endpoint and answers with a canned response."""

    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.body = {"ok": True} if body is None else body
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if isinstance(self.body, str):
            return httpx.Response(self.status_code, text=self.body)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def actions(self):
        return [r["action"] for r in self.requests]


@pytest.fixture
def test_settings():
    """Settings isolated from the environment."""
    return Settings(
        approval_endpoint=BACKEND_URL,
        notification_chat_id=NOTIFICATION_CHAT,
        audit_chat_id=NOTIFICATION_CHAT,
        gateway_url="http://gateway.test",
        context_ttl_seconds=0,
        max_contexts=100,
    )


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def backend_recorder():
    return RecordingBackend()


@pytest.fixture
def backend(test_settings, transport, backend_recorder):
    client = httpx.AsyncClient(transport=httpx.MockTransport(backend_recorder))
    return BackendClient(test_settings, transport, client=client)


@pytest.fixture
def store():
    return ContextStore(max_contexts=100)


@pytest.fixture
def engine(test_settings, transport, store, backend):
    return ApprovalEngine(test_settings, transport, store=store, backend=backend)


@pytest.fixture
def approver():
    return ContactProfile(
        id="60123456789@c.us", number="60123456789", push_name="Boss Lim", name="Lim"
    )


@pytest.fixture
def today():
    return date(2025, 3, 15)


@pytest.fixture
def leave_context():
    """Context for an approve/reject request sent into the notification chat."""
    composed = compose_interactive_request(
        "Permohonan cuti baharu pada 12/11/2025: Ahmad Ali (LOWBED)",
        [ChoiceSpec("Approve"), ChoiceSpec("Reject")],
        metadata={
            "request_id": "42",
            "date_range_label": "12/11/2025",
            "applicant_display_name": "Ahmad",
        },
    )
    return composed.bind(NOTIFICATION_CHAT, "M1")
