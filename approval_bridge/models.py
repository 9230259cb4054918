"""
Domain records shared by the correlation engine.

Plain dataclasses: they carry state between the classifier, the resolver
and the processor and never talk to the network themselves.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum
from typing import Any

from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    """Outcome of a response to an approval request."""

    APPROVE = "approve"
    REJECT = "reject"
    SHOW_LEAVES = "show_leaves"
    HELP = "help"

    @property
    def is_business_decision(self) -> bool:
        return self in (Decision.APPROVE, Decision.REJECT)


_DECISION_ALIASES = {
    "approve": Decision.APPROVE,
    "approved": Decision.APPROVE,
    "reject": Decision.REJECT,
    "rejected": Decision.REJECT,
}


@dataclass(frozen=True)
class ActionId:
    """
    Machine payload attached to a button: ``origin:decision:request_id``.

    ``decision`` is None when the middle field is not a recognised business
    decision; such an id can still carry a request id.
    """

    origin: str
    decision: Decision | None
    request_id: str | None = None

    @classmethod
    def parse(cls, raw: str | None) -> ActionId | None:
        if not raw:
            return None
        parts = str(raw).split(":")
        if len(parts) < 2:
            return None
        decision = _DECISION_ALIASES.get(parts[1].strip().lower())
        request_id = parts[2] if len(parts) >= 3 and parts[2] else None
        return cls(origin=parts[0], decision=decision, request_id=request_id)

    def encode(self) -> str:
        decision = self.decision.value if self.decision else ""
        return f"{self.origin}:{decision}:{self.request_id or ''}"

    def __str__(self) -> str:
        return self.encode()


@dataclass
class RequestMetadata:
    """
    Business data carried from request creation to decision forwarding.

    Well-known keys are fields; anything else lands in ``extra`` untouched.
    """

    request_id: str | None = None
    chat_id: str | None = None
    applicant_jid: str | None = None
    applicant_phone_number: str | None = None
    applicant_display_name: str | None = None
    date_range_label: str | None = None
    reject_reason: str | None = None
    rejection_reason: str | None = None
    reason: str | None = None
    decision_source: str | None = None
    extra: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, source: Any) -> RequestMetadata:
        """Build from an arbitrary mapping, dropping None values and stringifying the rest."""
        if isinstance(source, RequestMetadata):
            return source.copy()
        if not isinstance(source, dict):
            if source is not None:
                logger.warning(f"Discarding non-mapping metadata: {type(source).__name__}")
            return cls()

        known = {f.name for f in fields(cls) if f.name != "extra"}
        values: dict[str, str] = {}
        extra: dict[str, str] = {}
        for key, value in source.items():
            if value is None:
                continue
            key = str(key)
            target = values if key in known else extra
            target[key] = str(value)
        return cls(**values, extra=extra)

    def to_dict(self) -> dict[str, str]:
        out = dict(self.extra)
        for f in fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            if value is not None:
                out[f.name] = value
        return out

    def copy(self) -> RequestMetadata:
        return RequestMetadata.from_mapping(self.to_dict())

    @property
    def is_capacity_reject(self) -> bool:
        return "capacity_full" in (self.reject_reason, self.rejection_reason, self.reason)


@dataclass
class ButtonContext:
    """One outstanding interactive request."""

    actions_by_id: dict[str, str]
    actions_by_label: dict[str, str]
    metadata: RequestMetadata
    chat_id: str | None
    message_id: str

    @property
    def request_id(self) -> str | None:
        return self.metadata.request_id or None


@dataclass
class LeaveQuery:
    """Reporting period requested with the ``leave`` command."""

    type: str
    year: int
    raw: str
    month: int | None = None
    explicit_year: bool = False

    def period(self) -> tuple[date, date]:
        """First and last calendar day covered by the query."""
        if self.type == "month" and self.month:
            start = date(self.year, self.month, 1)
            return start, start + relativedelta(months=1, days=-1)
        start = date(self.year, 1, 1)
        return start, start + relativedelta(years=1, days=-1)

    def to_dict(self) -> dict[str, Any]:
        start, end = self.period()
        data: dict[str, Any] = {
            "type": self.type,
            "year": self.year,
            "explicitYear": self.explicit_year,
            "raw": self.raw,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
        }
        if self.month is not None:
            data["month"] = self.month
        return data


@dataclass
class ContactProfile:
    """Profile fields the gateway exposes for a chat participant."""

    id: str | None = None
    number: str | None = None
    push_name: str | None = None
    name: str | None = None
    short_name: str | None = None

    @property
    def display_name(self) -> str | None:
        return self.push_name or self.name or self.short_name or self.number or None

    def to_approver(self) -> dict[str, str | None]:
        display = self.display_name or "Admin"
        return {
            "id": self.id,
            "number": self.number,
            "pushName": self.push_name,
            "shortName": self.short_name,
            "name": display,
        }


class EventKind(str, Enum):
    BUTTON_RESPONSE = "buttons_response"
    TEXT = "chat"
    OTHER = "other"


@dataclass
class InboundEvent:
    """Transport-neutral view of a message arriving from the chat."""

    kind: EventKind
    chat_id: str | None
    body: str = ""
    message_id: str | None = None
    author: str | None = None
    from_me: bool = False
    selected_button_id: str | None = None
    selected_button_text: str | None = None
    quoted_message_id: str | None = None
    quoted_body: str | None = None
    contact: ContactProfile | None = None


_MEDIA_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "video/mp4": "mp4",
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "application/pdf": "pdf",
}


@dataclass
class MediaAttachment:
    """Base64 file content sent alongside or instead of text."""

    mime_type: str
    data: str
    filename: str

    @classmethod
    def from_base64(
        cls, data: str, mime_type: str, filename: str | None = None
    ) -> MediaAttachment:
        """
        Accepts raw base64 or a ``data:<mime>;base64,`` URL.

        Raises:
            ValueError: If the content is not valid base64
        """
        marker = data.find("base64,")
        if marker >= 0:
            data = data[marker + len("base64,"):]
        data = data.strip()
        try:
            base64.b64decode(data, validate=True)
        except binascii.Error as e:
            raise ValueError("Invalid base64 media payload") from e
        if not filename:
            filename = f"file.{_MEDIA_EXTENSIONS.get(mime_type, 'bin')}"
        return cls(mime_type=mime_type, data=data, filename=filename)
