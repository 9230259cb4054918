"""
Applicant name extraction from leave request announcements.

Announcements start with a localized header followed by the date and the
driver's name, e.g.::

    Permohonan cuti baharu pada 12/11/2025: Ahmad Ali (LOWBED)

This is a heuristic; callers treat None as "no name found".
"""

from __future__ import annotations

import re

_HEADER = r"(Permohonan cuti baharu pada|New leave request on)"

NAME_PATTERNS = [
    # name on the header line
    re.compile(_HEADER + r"\s+[^:]+:\s*([^\n\r(]+)", re.IGNORECASE),
    # name on the line after the header
    re.compile(_HEADER + r"\s+[^:]+:\s*\n\s*([^\n\r(]+)", re.IGNORECASE),
    # anything after the first colon
    re.compile(_HEADER + r"[^:]*:\s*([^\n\r]+)", re.IGNORECASE),
]

_WHITESPACE = re.compile(r"\s+")
_TRAILING_CATEGORY = re.compile(r"\s*\([^)]+\)\s*$")


def extract_applicant_name(text: str | None) -> str | None:
    if not text:
        return None
    for pattern in NAME_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        name = _WHITESPACE.sub(" ", match.group(2)).strip()
        name = _TRAILING_CATEGORY.sub("", name).strip()
        if name:
            return name
    return None
