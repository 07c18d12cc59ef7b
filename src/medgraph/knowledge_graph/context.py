"""Turns a retrieved subgraph into what the answer generator consumes."""

from __future__ import annotations

import json

from ..settings import settings
from .models import RetrievedSubgraph
from .records import QueryAnalysis

MAX_RESPONSE_CONFIDENCE = 0.95
EMPTY_RESPONSE_CONFIDENCE = 0.1
MISSING_EDGE_CONFIDENCE = 0.5


def format_knowledge_context(
    subgraph: RetrievedSubgraph,
    *,
    node_limit: int | None = None,
    relationship_limit: int | None = None,
) -> str:
    """Plain-text ENTITIES / RELATIONSHIPS block for the answer prompt."""
    node_limit = settings.context_node_limit if node_limit is None else node_limit
    relationship_limit = settings.context_relationship_limit if relationship_limit is None else relationship_limit

    lines = ["ENTITIES:"]
    for node in subgraph.nodes[:node_limit]:
        lines.append(f"- {node.label} ({node.type}): {json.dumps(node.properties, default=str)}")

    lines += ["", "RELATIONSHIPS:"]
    for edge in subgraph.relationships[:relationship_limit]:
        line = f"- {edge.source} {edge.type.upper()} {edge.target}"
        if edge.properties:
            line += f" [{json.dumps(edge.properties, default=str)}]"
        lines.append(line)
    return "\n".join(lines) + "\n"


def response_confidence(subgraph: RetrievedSubgraph) -> float:
    """Mean of node and edge confidence, capped; low when nothing was found."""
    if not subgraph.nodes:
        return EMPTY_RESPONSE_CONFIDENCE
    node_avg = sum(n.confidence for n in subgraph.nodes) / len(subgraph.nodes)
    if subgraph.relationships:
        edge_avg = sum(e.confidence for e in subgraph.relationships) / len(subgraph.relationships)
    else:
        edge_avg = MISSING_EDGE_CONFIDENCE
    return min(MAX_RESPONSE_CONFIDENCE, (node_avg + edge_avg) / 2)


def identify_limitations(subgraph: RetrievedSubgraph, analysis: QueryAnalysis) -> list[str]:
    limitations: list[str] = []
    if not subgraph.nodes:
        limitations.append("No relevant entities found in knowledge graph")
    if not subgraph.relationships:
        limitations.append("No relationships found between entities")
    if analysis.key_entities and len(subgraph.nodes) < len(analysis.key_entities):
        limitations.append("Some queried entities not found in knowledge graph")
    return limitations
