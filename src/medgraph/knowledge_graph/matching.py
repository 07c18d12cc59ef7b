"""String matching policies used for seeding and ranking.

A policy is any ``(candidate, term) -> bool`` callable. The query engine and
the ranker take one as a constructor argument so the recall-oriented default
can be swapped without touching traversal or scoring.
"""

from __future__ import annotations

import re
from typing import Callable

MatchPolicy = Callable[[str, str], bool]

_TOKEN = re.compile(r"[a-z0-9]+")


def substring_match(candidate: str, term: str) -> bool:
    """Three-way match: equal ignoring case, or either string contains the other."""
    a = (candidate or "").lower()
    b = (term or "").lower()
    if not a or not b:
        return False
    return a == b or b in a or a in b


def token_set_match(candidate: str, term: str) -> bool:
    """Stricter alternative: every token of the shorter side appears in the other."""
    a = set(_TOKEN.findall((candidate or "").lower()))
    b = set(_TOKEN.findall((term or "").lower()))
    if not a or not b:
        return False
    small, big = (a, b) if len(a) <= len(b) else (b, a)
    return small <= big


def type_matches(edge_type: str, wanted: list[str]) -> bool:
    """Relationship filter: no filter when ``wanted`` is empty, else contains-any."""
    if not wanted:
        return True
    et = (edge_type or "").lower()
    return any(w.lower() in et for w in wanted)


def clean_terms(terms: list[str] | None) -> list[str]:
    # Blank terms would match everything through ``in``.
    return [t.strip() for t in (terms or []) if t and t.strip()]
