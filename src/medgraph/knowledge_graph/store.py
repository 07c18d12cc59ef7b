from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterator, Protocol

from ..settings import settings
from .exceptions import EmptyGraphError, ValidationError
from .keys import edge_id, node_id, normalize_label
from .models import Edge, GraphMetadata, Node, utcnow
from .records import EntityRecord, GraphSchema, RelationshipRecord

logger = logging.getLogger(__name__)


class GraphStore(Protocol):
    """Abstraction for the backing graph store."""

    def upsert_node(self, record: EntityRecord) -> Node: ...

    def upsert_edge(self, record: RelationshipRecord) -> Edge: ...

    def get_node(self, node_id: str) -> Node | None: ...

    def edges_touching(self, node_id: str) -> list[Edge]: ...

    def resolve(self, ref: str) -> Node | None: ...

    def nodes(self) -> Iterator[Node]: ...

    def edges(self) -> Iterator[Edge]: ...


def merge_properties(existing: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    """Shallow merge, most recent record wins per key."""
    merged = dict(existing)
    merged.update(incoming)
    return merged


def merge_confidence(existing: float, incoming: float) -> float:
    return max(existing, incoming)


def _add_source(sources: tuple[str, ...], doc: str | None) -> tuple[str, ...]:
    if doc is None or doc in sources:
        return sources
    return sources + (doc,)


def _require_text(value: str, name: str, record: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must not be blank", record=record)
    return value.strip()


class InMemoryGraphStore:
    """Process-local graph holding one node map and one edge map.

    No internal locking: writers must be serialised by the owner (see
    `KnowledgeGraphSession`). Nodes and edges are never removed.

    Edges may reference endpoints that do not exist yet. Endpoints are
    resolved on read, first by node id, then by normalized label; when several
    nodes share a label the earliest ingested one wins.
    """

    def __init__(
        self,
        *,
        default_entity_confidence: float | None = None,
        default_relationship_confidence: float | None = None,
    ):
        self.default_entity_confidence = float(
            settings.default_entity_confidence if default_entity_confidence is None else default_entity_confidence
        )
        self.default_relationship_confidence = float(
            settings.default_relationship_confidence
            if default_relationship_confidence is None
            else default_relationship_confidence
        )

        self._nodes: dict[str, Node] = {}
        self._edges: dict[str, Edge] = {}
        self._edge_order: dict[str, int] = {}
        # normalized label -> node ids, insertion ordered
        self._label_index: dict[str, list[str]] = {}
        # normalized endpoint ref -> edge ids
        self._adjacency: dict[str, set[str]] = {}
        self._documents: set[str] = set()

        self.schema = GraphSchema()
        self.metadata = GraphMetadata()

    # --- writes ---

    def upsert_node(self, record: EntityRecord) -> Node:
        label = _require_text(record.label, "label", record)
        etype = _require_text(record.type, "type", record)
        nid = node_id(etype, label)
        confidence = self.default_entity_confidence if record.confidence is None else float(record.confidence)
        now = utcnow()

        existing = self._nodes.get(nid)
        if existing is None:
            node = Node(
                id=nid,
                type=etype,
                label=label,
                properties=dict(record.properties),
                source_document=record.source_document,
                confidence=confidence,
                created_at=now,
                updated_at=now,
                source_documents=_add_source((), record.source_document),
            )
            self._label_index.setdefault(normalize_label(label), []).append(nid)
        else:
            node = replace(
                existing,
                properties=merge_properties(existing.properties, record.properties),
                confidence=merge_confidence(existing.confidence, confidence),
                source_document=existing.source_document or record.source_document,
                source_documents=_add_source(existing.source_documents, record.source_document),
                updated_at=now,
            )

        self._nodes[nid] = node
        self._touch(record.source_document, now)
        return node

    def upsert_edge(self, record: RelationshipRecord) -> Edge:
        source = _require_text(record.source, "source", record)
        target = _require_text(record.target, "target", record)
        rtype = _require_text(record.type, "type", record)
        eid = edge_id(source, rtype, target)
        confidence = (
            self.default_relationship_confidence if record.confidence is None else float(record.confidence)
        )
        now = utcnow()

        existing = self._edges.get(eid)
        if existing is None:
            edge = Edge(
                id=eid,
                source=source,
                target=target,
                type=rtype,
                properties=dict(record.properties),
                source_document=record.source_document,
                confidence=confidence,
                created_at=now,
                updated_at=now,
                source_documents=_add_source((), record.source_document),
            )
            self._edge_order[eid] = len(self._edge_order)
            self._adjacency.setdefault(normalize_label(source), set()).add(eid)
            self._adjacency.setdefault(normalize_label(target), set()).add(eid)
        else:
            edge = replace(
                existing,
                properties=merge_properties(existing.properties, record.properties),
                confidence=merge_confidence(existing.confidence, confidence),
                source_document=existing.source_document or record.source_document,
                source_documents=_add_source(existing.source_documents, record.source_document),
                updated_at=now,
            )

        self._edges[eid] = edge
        self._touch(record.source_document, now)
        return edge

    def set_schema(self, schema: GraphSchema | dict[str, Any] | None) -> None:
        if schema is None:
            self.schema = GraphSchema()
        elif isinstance(schema, GraphSchema):
            self.schema = schema
        else:
            self.schema = GraphSchema.model_validate(schema)

    def refresh_metadata(self) -> GraphMetadata:
        self.metadata.entity_count = len(self._nodes)
        self.metadata.relationship_count = len(self._edges)
        self.metadata.document_count = len(self._documents)
        return self.metadata

    def _touch(self, doc: str | None, now) -> None:
        if doc is not None:
            self._documents.add(doc)
        self.metadata.last_updated = now
        self.refresh_metadata()

    # --- reads ---

    def get_node(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Edge | None:
        return self._edges.get(edge_id)

    def nodes(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))

    def edges(self) -> Iterator[Edge]:
        return iter(list(self._edges.values()))

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def is_empty(self) -> bool:
        return not self._nodes and not self._edges

    def require_populated(self) -> None:
        if self.is_empty:
            raise EmptyGraphError("Knowledge graph is empty; ingest records before querying")

    def resolve(self, ref: str) -> Node | None:
        """Map an edge endpoint reference to a node (id first, then label)."""
        node = self._nodes.get(ref)
        if node is not None:
            return node
        ids = self._label_index.get(normalize_label(ref))
        if not ids:
            return None
        if len(ids) > 1:
            logger.debug("Endpoint %r is ambiguous (%d nodes); using %s", ref, len(ids), ids[0])
        return self._nodes[ids[0]]

    def edges_touching(self, node_id: str) -> list[Edge]:
        """Edges whose resolved source or target is `node_id`, in ingestion order."""
        node = self._nodes.get(node_id)
        if node is None:
            return []
        candidates: set[str] = set()
        for key in {normalize_label(node.id), normalize_label(node.label)}:
            candidates |= self._adjacency.get(key, set())

        out: list[Edge] = []
        for eid in sorted(candidates, key=self._edge_order.__getitem__):
            edge = self._edges[eid]
            src = self.resolve(edge.source)
            dst = self.resolve(edge.target)
            if (src is not None and src.id == node_id) or (dst is not None and dst.id == node_id):
                out.append(edge)
        return out

    def other_endpoint(self, edge: Edge, node_id: str) -> Node | None:
        src = self.resolve(edge.source)
        if src is not None and src.id == node_id:
            return self.resolve(edge.target)
        return src

    def statistics(self) -> dict[str, Any]:
        """Counts and distinct types, for operational dashboards."""
        entity_types = list(dict.fromkeys(n.type for n in self._nodes.values()))
        rel_types = list(dict.fromkeys(e.type for e in self._edges.values()))
        return {
            "nodes": len(self._nodes),
            "edges": len(self._edges),
            "entityTypes": entity_types,
            "relationshipTypes": rel_types,
            "metadata": self.refresh_metadata().to_dict(),
        }
