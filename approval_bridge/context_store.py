"""
In-memory registry of outstanding interactive requests.

Three indices point at the same stored context:
- message id  -> context (primary)
- request id  -> message id
- chat id     -> message id of the newest request sent into that chat

The registry is volatile. It is bounded by size and, optionally, by age so
that requests nobody ever answers do not accumulate forever.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from approval_bridge.models import ButtonContext

logger = logging.getLogger(__name__)


class ContextStore:
    """
    Volatile context registry with constant-time lookups.

    Entries are kept in insertion order, so the oldest entry is always at the
    front; expiry and capacity pruning only ever pop from that end.
    """

    def __init__(
        self,
        max_contexts: int = 5000,
        ttl_seconds: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_contexts = max_contexts
        self.ttl_seconds = ttl_seconds
        self._clock = clock

        # message_id -> {"ts": inserted_at, "context": ButtonContext}
        self._by_message: OrderedDict[str, dict[str, Any]] = OrderedDict()
        self._message_by_request: dict[str, str] = {}
        self._message_by_chat: dict[str, str] = {}

        logger.info(
            f"ContextStore initialized: max_contexts={max_contexts}, ttl={ttl_seconds}s"
        )

    def __len__(self) -> int:
        return len(self._by_message)

    def put(self, context: ButtonContext) -> None:
        """Register a context under its message id, request id and chat id."""
        message_id = context.message_id
        if not message_id:
            logger.warning("Refusing to store context without message id")
            return

        previous = self._by_message.get(message_id)
        if previous is not None:
            # re-registration: drop the old entry's indices first
            old: ButtonContext = previous["context"]
            self.evict(message_id, old.request_id, old.chat_id)
        self._by_message[message_id] = {"ts": self._clock(), "context": context}

        if context.request_id:
            self._message_by_request[context.request_id] = message_id
        if context.chat_id:
            self._message_by_chat[context.chat_id] = message_id

        self._prune()

    def get_by_message_id(self, message_id: str | None) -> ButtonContext | None:
        if not message_id:
            return None
        entry = self._by_message.get(message_id)
        if entry is None:
            return None
        if self._is_expired(entry):
            logger.info(f"Context for message {message_id} expired")
            self._drop(message_id)
            return None
        return entry["context"]

    def get_by_request_id(self, request_id: str | None) -> ButtonContext | None:
        if not request_id:
            return None
        return self.get_by_message_id(self._message_by_request.get(request_id))

    def get_latest_by_chat(self, chat_id: str | None) -> ButtonContext | None:
        if not chat_id:
            return None
        return self.get_by_message_id(self._message_by_chat.get(chat_id))

    def evict(
        self,
        message_id: str | None = None,
        request_id: str | None = None,
        chat_id: str | None = None,
    ) -> None:
        """
        Retire a context. Any identifier may be missing.

        Request and chat indices are only removed while they still point at
        ``message_id``, so a newer request in the same chat survives.
        """
        if message_id:
            self._by_message.pop(message_id, None)
        if request_id and (
            not message_id or self._message_by_request.get(request_id) == message_id
        ):
            self._message_by_request.pop(request_id, None)
        if chat_id and (not message_id or self._message_by_chat.get(chat_id) == message_id):
            self._message_by_chat.pop(chat_id, None)

    def stats(self) -> dict[str, int]:
        """Index sizes for monitoring."""
        return {
            "contexts": len(self._by_message),
            "request_ids": len(self._message_by_request),
            "chats": len(self._message_by_chat),
            "max_contexts": self.max_contexts,
            "ttl_seconds": self.ttl_seconds,
        }

    def _is_expired(self, entry: dict[str, Any]) -> bool:
        if self.ttl_seconds <= 0:
            return False
        return self._clock() - entry["ts"] > self.ttl_seconds

    def _drop(self, message_id: str) -> None:
        entry = self._by_message.pop(message_id, None)
        if entry is None:
            return
        context: ButtonContext = entry["context"]
        self.evict(message_id, context.request_id, context.chat_id)

    def _prune(self) -> None:
        # Expired entries first, then enforce capacity.
        while self._by_message:
            oldest_id, oldest = next(iter(self._by_message.items()))
            if not self._is_expired(oldest):
                break
            self._drop(oldest_id)

        while len(self._by_message) > self.max_contexts:
            oldest_id = next(iter(self._by_message))
            logger.warning(f"Context store full, evicting message {oldest_id}")
            self._drop(oldest_id)
