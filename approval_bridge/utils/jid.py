"""
Chat identity helpers.

Gateway identities look like ``<digits>@c.us`` for people and
``<digits>@g.us`` for groups. Phone numbers arrive in local Malaysian form
(``012...``), international form (``6012...``) or with punctuation.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

_NON_DIGITS = re.compile(r"[^\d]")


def normalize_jid(value: object) -> str | None:
    """Return a ``@c.us`` / ``@g.us`` identity, or None if nothing usable remains."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("@c.us") or text.endswith("@g.us"):
        return text

    digits = _NON_DIGITS.sub("", text)
    if not digits:
        return None
    if digits.startswith("60"):
        return f"{digits}@c.us"
    if digits.startswith("0") and len(digits) > 1:
        # local trunk prefix: 012... -> 6012...
        return f"6{digits}@c.us"
    return f"{digits}@c.us"


def normalize_jids(values: Iterable[object]) -> list[str]:
    """Normalize and de-duplicate, keeping first-seen order."""
    seen: dict[str, None] = {}
    for value in values:
        jid = normalize_jid(value)
        if jid:
            seen.setdefault(jid, None)
    return list(seen)


def jid_handle(jid: str | None) -> str | None:
    """The part before ``@``, used for ``@mention`` tags."""
    if not jid:
        return None
    return jid.split("@", 1)[0] or None
