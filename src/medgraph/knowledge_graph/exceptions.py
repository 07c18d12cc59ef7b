"""Error taxonomy for the knowledge graph core.

Ingestion and query paths degrade instead of aborting: a ``ValidationError``
drops one record, a ``ResolutionError`` drops one query term and an
``EmptyGraphError`` turns into an empty result. Only structurally invalid
top-level input reaches the caller.
"""

from __future__ import annotations


class KnowledgeGraphError(Exception):
    """Base class for knowledge graph errors."""


class ValidationError(KnowledgeGraphError):
    """A malformed ingestion record (blank label/type, bad confidence, self-loop)."""

    def __init__(self, message: str, *, record: object = None):
        super().__init__(message)
        self.record = record


class ResolutionError(KnowledgeGraphError):
    """A query term that matches nothing in the graph or its schema."""

    def __init__(self, term: str, kind: str):
        super().__init__(f"Unresolved {kind}: {term!r}")
        self.term = term
        self.kind = kind


class EmptyGraphError(KnowledgeGraphError):
    """Query issued before anything was ingested."""
