from __future__ import annotations

import re
from typing import Any, Protocol

from .records import QueryAnalysis

_MEDICAL_TERMS = re.compile(
    r"\b(?:aspirin|cancer|diabetes|heart|blood|pressure|treatment|drug|disease|symptom|therapy"
    r"|clinical|trial|study|patient|medication|dosage)\b",
    re.IGNORECASE,
)


class IntentAnalyzer(Protocol):
    """External intent collaborator (usually an LLM call)."""

    def analyze(self, question: str, context: dict[str, Any] | None = None) -> QueryAnalysis: ...


def fallback_analysis(question: str) -> QueryAnalysis:
    """Keyword reading of a question for when the intent collaborator fails."""
    return QueryAnalysis(
        query_type="entity_lookup",
        medical_domain="general",
        key_entities=_MEDICAL_TERMS.findall(question or ""),
        relationship_types=["related_to", "associated_with"],
        query_intent=question or "",
        search_depth=2,
    )
