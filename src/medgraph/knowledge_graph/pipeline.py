from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from .exceptions import ValidationError
from .keys import normalize_label
from .records import EntityRecord, RelationshipRecord, parse_model
from .store import InMemoryGraphStore

logger = logging.getLogger(__name__)


class EntityRelationExtractor(Protocol):
    """External extraction agent (structured or free-text documents)."""

    def extract(
        self, document: Mapping[str, Any]
    ) -> tuple[list[EntityRecord | Mapping[str, Any]], list[RelationshipRecord | Mapping[str, Any]]]: ...


@dataclass(slots=True)
class IngestStats:
    entities: int = 0
    relationships: int = 0
    skipped: int = 0
    schema_mismatches: int = 0
    upsert_ms: float = 0.0
    errors: list[str] = field(default_factory=list)

    def merge(self, other: IngestStats) -> None:
        self.entities += other.entities
        self.relationships += other.relationships
        self.skipped += other.skipped
        self.schema_mismatches += other.schema_mismatches
        self.upsert_ms += other.upsert_ms
        self.errors.extend(other.errors)


def _as_batch(value: Any, name: str) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
        raise TypeError(f"{name} must be an iterable of records, got {type(value).__name__}")
    return list(value)


class GraphIngestor:
    """Applies record batches to a store, one batch at a time.

    Entities go first, then relationships, each in input order, so for a
    given input the surviving properties are always the same. A bad record is
    logged and skipped; the rest of the batch still lands.
    """

    def __init__(self, store: InMemoryGraphStore, extractor: EntityRelationExtractor | None = None):
        self.store = store
        self.extractor = extractor

    def ingest(
        self,
        *,
        entities: Iterable[EntityRecord | Mapping[str, Any]] | None = None,
        relationships: Iterable[RelationshipRecord | Mapping[str, Any]] | None = None,
    ) -> IngestStats:
        ents = _as_batch(entities, "entities")
        rels = _as_batch(relationships, "relationships")
        stats = IngestStats()
        schema = self.store.schema

        t0 = time.perf_counter()
        for raw in ents:
            try:
                rec = parse_model(EntityRecord, raw)
                self.store.upsert_node(rec)
            except ValidationError as e:
                self._skip(stats, e)
                continue
            stats.entities += 1
            if not schema.knows_entity_type(rec.type):
                stats.schema_mismatches += 1
                logger.warning("Entity type %r is not in the proposed schema (%s)", rec.type, rec.label)

        for raw in rels:
            try:
                rec = parse_model(RelationshipRecord, raw)
                if normalize_label(rec.source) == normalize_label(rec.target):
                    raise ValidationError(f"Self-loop on {rec.source!r} ({rec.type})", record=raw)
                self.store.upsert_edge(rec)
            except ValidationError as e:
                self._skip(stats, e)
                continue
            stats.relationships += 1
            if not schema.knows_relationship_type(rec.type):
                stats.schema_mismatches += 1
                logger.warning("Relationship type %r is not in the proposed schema", rec.type)
        stats.upsert_ms = (time.perf_counter() - t0) * 1000.0

        meta = self.store.refresh_metadata()
        logger.info(
            "Ingested batch: %d entities, %d relationships, %d skipped (graph: %d nodes, %d edges)",
            stats.entities,
            stats.relationships,
            stats.skipped,
            meta.entity_count,
            meta.relationship_count,
        )
        return stats

    def ingest_documents(self, documents: Iterable[Mapping[str, Any]]) -> IngestStats:
        """Run the configured extractor over each document and ingest the output."""
        if self.extractor is None:
            raise RuntimeError("ingest_documents requires an extractor")
        total = IngestStats()
        for doc in _as_batch(documents, "documents"):
            try:
                entities, relationships = self.extractor.extract(doc)
            except Exception as e:
                title = (doc.get("metadata") or {}).get("title", "unknown") if isinstance(doc, Mapping) else "unknown"
                logger.error("Extraction failed for document %s: %s", title, e)
                total.errors.append(f"extract {title}: {e}")
                continue
            total.merge(self.ingest(entities=entities, relationships=relationships))
        return total

    @staticmethod
    def _skip(stats: IngestStats, err: ValidationError) -> None:
        stats.skipped += 1
        stats.errors.append(str(err))
        logger.warning("Skipping record: %s", err)
