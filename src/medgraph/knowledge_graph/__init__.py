"""Knowledge graph subsystem.

This module provides:
- An in-memory graph store with deterministic node/edge identifiers
- A batch ingestor that merges extraction records into the store
- A query engine for seed resolution, bounded expansion and ranking
- Exporters for JSON, Cypher and node-link interchange

Extraction, schema proposal, intent analysis and answer generation are
external collaborators; only their interfaces live here.
"""

from .exceptions import EmptyGraphError, KnowledgeGraphError, ResolutionError, ValidationError
from .export import GraphExporter
from .models import Edge, Node, RetrievedSubgraph, SearchStats
from .pipeline import GraphIngestor, IngestStats
from .query_engine import GraphQueryEngine
from .ranking import RelevanceRanker
from .records import EntityRecord, GraphSchema, QueryAnalysis, RelationshipRecord
from .session import KnowledgeGraphSession
from .store import GraphStore, InMemoryGraphStore

__all__ = [
    "Edge",
    "EmptyGraphError",
    "EntityRecord",
    "GraphExporter",
    "GraphIngestor",
    "GraphQueryEngine",
    "GraphSchema",
    "GraphStore",
    "InMemoryGraphStore",
    "IngestStats",
    "KnowledgeGraphError",
    "KnowledgeGraphSession",
    "Node",
    "QueryAnalysis",
    "RelationshipRecord",
    "RelevanceRanker",
    "ResolutionError",
    "RetrievedSubgraph",
    "SearchStats",
    "ValidationError",
]
