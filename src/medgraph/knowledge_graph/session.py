from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from .context import format_knowledge_context, identify_limitations, response_confidence
from .export import GraphExporter
from .intent import IntentAnalyzer, fallback_analysis
from .matching import MatchPolicy, substring_match
from .models import RetrievedSubgraph
from .pipeline import EntityRelationExtractor, GraphIngestor, IngestStats
from .query_engine import GraphQueryEngine
from .records import EntityRecord, GraphSchema, QueryAnalysis, RelationshipRecord
from .store import InMemoryGraphStore

logger = logging.getLogger(__name__)


class AnswerGenerator(Protocol):
    """External answer-synthesis collaborator."""

    def generate(self, question: str, knowledge_context: str, analysis: QueryAnalysis) -> str: ...


class KnowledgeGraphSession:
    """Owns one graph for the lifetime of a session or tenant.

    The store has no locking of its own; this object is the boundary. One
    re-entrant lock serialises ingestion batches against queries and exports,
    so a traversal never sees a half-applied batch.
    """

    def __init__(
        self,
        *,
        store: InMemoryGraphStore | None = None,
        extractor: EntityRelationExtractor | None = None,
        matcher: MatchPolicy = substring_match,
    ):
        self.store = store or InMemoryGraphStore()
        self.ingestor = GraphIngestor(self.store, extractor)
        self.engine = GraphQueryEngine(self.store, matcher=matcher)
        self.exporter = GraphExporter(self.store)
        self._lock = threading.RLock()

    def set_schema(self, schema: GraphSchema | Mapping[str, Any] | None) -> None:
        with self._lock:
            self.store.set_schema(schema)

    def ingest(
        self,
        *,
        entities: Iterable[EntityRecord | Mapping[str, Any]] | None = None,
        relationships: Iterable[RelationshipRecord | Mapping[str, Any]] | None = None,
    ) -> IngestStats:
        with self._lock:
            return self.ingestor.ingest(entities=entities, relationships=relationships)

    def ingest_documents(self, documents: Iterable[Mapping[str, Any]]) -> IngestStats:
        with self._lock:
            return self.ingestor.ingest_documents(documents)

    def query(self, analysis: QueryAnalysis | Mapping[str, Any]) -> RetrievedSubgraph:
        analysis = QueryAnalysis.from_payload(analysis)
        with self._lock:
            return self.engine.query(analysis)

    def export(self, fmt: str = "json") -> dict[str, Any] | str:
        with self._lock:
            return self.exporter.export(fmt)

    def statistics(self) -> dict[str, Any]:
        with self._lock:
            return self.store.statistics()

    def ask(
        self,
        question: str,
        *,
        analyzer: IntentAnalyzer | None = None,
        generator: AnswerGenerator | None = None,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Analyse, retrieve, then hand the ranked subgraph to the generator."""
        analysis: QueryAnalysis | None = None
        if analyzer is not None:
            try:
                analysis = QueryAnalysis.from_payload(analyzer.analyze(question, context))
            except Exception as e:
                logger.warning("Intent analysis failed (%s); using keyword fallback", e)
        if analysis is None:
            analysis = fallback_analysis(question)

        subgraph = self.query(analysis)
        knowledge = format_knowledge_context(subgraph)

        response: dict[str, Any] = {
            "answer": None,
            "knowledgeUsed": {
                "entitiesReferenced": len(subgraph.nodes),
                "relationshipsReferenced": len(subgraph.relationships),
            },
            "confidence": response_confidence(subgraph),
            "limitations": identify_limitations(subgraph, analysis),
        }
        success = True
        if generator is not None:
            try:
                response["answer"] = generator.generate(question, knowledge, analysis)
            except Exception as e:
                logger.error("Answer generation failed: %s", e)
                response["error"] = str(e)
                success = False

        return {
            "success": success,
            "query": question,
            "queryAnalysis": analysis.to_dict(),
            "retrievedKnowledge": subgraph.to_dict(),
            "knowledgeContext": knowledge,
            "response": response,
            "metadata": {
                "nodesRetrieved": len(subgraph.nodes),
                "relationshipsRetrieved": len(subgraph.relationships),
                "queryTime": time.time(),
            },
        }
