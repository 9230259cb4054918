"""
Free-text command grammar for the notification chat.

Admins answer approval requests with short words ("ok", "no") and ask for
leave listings with a compact period syntax:

    leave | l              current month
    l11 | leave 11         November (next year if November already passed)
    25l10 | 25 leave 10    October 2025
    25l | 2025 leave       all of 2025
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from approval_bridge.models import Decision, LeaveQuery

APPROVAL_WORDS = frozenset({"y", "yes", "ok", "okay", "k"})
REJECTION_WORDS = frozenset({"no", "n", "cannot", "not ok"})
HELP_WORDS = frozenset({"help", "h"})

_TOKEN_SPLIT = re.compile(r"[\s,.!?:;()\[\]-]+")
_WHITESPACE = re.compile(r"\s+")
LEAVE_PATTERN = re.compile(r"^(?P<year>\d{2,4})?(?P<cmd>l(?:eave)?)(?P<month>\d{1,2})?$")


@dataclass
class ParsedCommand:
    decision: Decision
    leave_query: LeaveQuery | None = None


def _matches(words: frozenset[str], first_token: str, normalized: str) -> bool:
    return first_token in words or normalized in words


def parse_command(text: str | None, today: date | None = None) -> ParsedCommand | None:
    """Classify a chat message; None when it is not a command."""
    if not text:
        return None
    normalized = str(text).strip().lower()
    if not normalized:
        return None

    tokens = [t for t in _TOKEN_SPLIT.split(normalized) if t]
    first_token = tokens[0] if tokens else normalized

    if _matches(APPROVAL_WORDS, first_token, normalized):
        return ParsedCommand(Decision.APPROVE)
    if _matches(REJECTION_WORDS, first_token, normalized):
        return ParsedCommand(Decision.REJECT)
    if _matches(HELP_WORDS, first_token, normalized):
        return ParsedCommand(Decision.HELP)

    leave_query = parse_leave_command(text, today=today)
    if leave_query:
        return ParsedCommand(Decision.SHOW_LEAVES, leave_query)
    return None


def parse_leave_year(year_text: str | None, today: date | None = None) -> int:
    today = today or date.today()
    if not year_text or not year_text.isdigit():
        return today.year
    value = int(year_text)
    if len(year_text) == 2:
        return 2000 + value
    return value


def parse_leave_command(text: str | None, today: date | None = None) -> LeaveQuery | None:
    if not text:
        return None
    raw = str(text).strip()
    if not raw:
        return None

    today = today or date.today()
    collapsed = _WHITESPACE.sub("", raw.lower())
    match = LEAVE_PATTERN.match(collapsed)
    if not match:
        return None

    year_part = match.group("year")
    month_part = match.group("month")
    explicit_year = bool(year_part)

    if month_part:
        month = int(month_part)
        if not 1 <= month <= 12:
            return None
        if explicit_year:
            year = parse_leave_year(year_part, today)
        elif month < today.month:
            year = today.year + 1
        else:
            year = today.year
        return LeaveQuery(type="month", year=year, month=month, explicit_year=explicit_year, raw=raw)

    if explicit_year:
        return LeaveQuery(
            type="year", year=parse_leave_year(year_part, today), explicit_year=True, raw=raw
        )

    return LeaveQuery(type="month", year=today.year, month=today.month, raw=raw)
