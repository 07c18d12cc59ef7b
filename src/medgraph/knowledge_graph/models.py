from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Node:
    """A deduplicated entity vertex.

    `id` is derived from the normalized `(type, label)` pair, so repeated
    mentions of one entity across documents collapse into a single node.
    """

    id: str
    type: str
    label: str
    properties: dict[str, Any] = field(default_factory=dict)
    source_document: str | None = None
    confidence: float = 0.8
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    source_documents: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "properties": dict(self.properties),
            "sourceDocument": self.source_document,
            "sourceDocuments": list(self.source_documents),
            "confidence": self.confidence,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class Edge:
    """A directed relationship.

    `source` and `target` keep the endpoint references as supplied by the
    extractor (usually labels). They are resolved to nodes lazily, so an edge
    may be stored before its endpoints exist.
    """

    id: str
    source: str
    target: str
    type: str
    properties: dict[str, Any] = field(default_factory=dict)
    source_document: str | None = None
    confidence: float = 0.7
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    source_documents: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.type,
            "properties": dict(self.properties),
            "sourceDocument": self.source_document,
            "sourceDocuments": list(self.source_documents),
            "confidence": self.confidence,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(slots=True)
class GraphMetadata:
    created_at: datetime = field(default_factory=utcnow)
    last_updated: datetime = field(default_factory=utcnow)
    entity_count: int = 0
    relationship_count: int = 0
    document_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "createdAt": self.created_at.isoformat(),
            "lastUpdated": self.last_updated.isoformat(),
            "entityCount": self.entity_count,
            "relationshipCount": self.relationship_count,
            "documentCount": self.document_count,
        }


@dataclass(slots=True)
class SearchStats:
    seed_nodes_found: int = 0
    total_nodes_retrieved: int = 0
    total_relationships_retrieved: int = 0
    fallback_used: bool = False
    unresolved_terms: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "seedNodesFound": self.seed_nodes_found,
            "totalNodesRetrieved": self.total_nodes_retrieved,
            "totalRelationshipsRetrieved": self.total_relationships_retrieved,
            "fallbackUsed": self.fallback_used,
            "unresolvedTerms": list(self.unresolved_terms),
        }


@dataclass(slots=True)
class RetrievedSubgraph:
    """Per-query result handed to answer generation. Never stored."""

    nodes: list[Node] = field(default_factory=list)
    relationships: list[Edge] = field(default_factory=list)
    search_stats: SearchStats = field(default_factory=SearchStats)
    node_scores: dict[str, float] = field(default_factory=dict)
    relationship_scores: dict[str, float] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.relationships

    def to_dict(self) -> dict[str, Any]:
        nodes = []
        for n in self.nodes:
            d = n.to_dict()
            if n.id in self.node_scores:
                d["relevanceScore"] = self.node_scores[n.id]
            nodes.append(d)
        rels = []
        for e in self.relationships:
            d = e.to_dict()
            if e.id in self.relationship_scores:
                d["relevanceScore"] = self.relationship_scores[e.id]
            rels.append(d)
        return {"nodes": nodes, "relationships": rels, "searchStats": self.search_stats.to_dict()}
