from __future__ import annotations

import logging

from ..settings import settings
from .matching import MatchPolicy, clean_terms, substring_match
from .models import Edge, Node, RetrievedSubgraph, SearchStats
from .records import QueryAnalysis

logger = logging.getLogger(__name__)

ENTITY_MATCH_WEIGHT = 10.0
TYPE_IN_INTENT_WEIGHT = 5.0
CONFIDENCE_WEIGHT = 3.0
DOMAIN_MATCH_WEIGHT = 3.0
RELATIONSHIP_MATCH_WEIGHT = 8.0


class RelevanceRanker:
    """Additive relevance scoring with fixed caps.

    Sorting is stable, so equal scores keep discovery order (which follows
    ingestion order).
    """

    def __init__(
        self,
        *,
        matcher: MatchPolicy = substring_match,
        max_nodes: int | None = None,
        max_relationships: int | None = None,
    ):
        self.matcher = matcher
        self.max_nodes = int(max_nodes or settings.max_ranked_nodes)
        self.max_relationships = int(max_relationships or settings.max_ranked_relationships)

    def score_node(self, node: Node, analysis: QueryAnalysis) -> float:
        score = 0.0
        for entity in clean_terms(analysis.key_entities):
            if self.matcher(node.label, entity):
                score += ENTITY_MATCH_WEIGHT
        intent = analysis.query_intent.lower()
        if node.type and node.type.lower() in intent:
            score += TYPE_IN_INTENT_WEIGHT
        score += node.confidence * CONFIDENCE_WEIGHT
        if analysis.medical_domain is not None and node.properties.get("domain") == analysis.medical_domain:
            score += DOMAIN_MATCH_WEIGHT
        return score

    def score_edge(self, edge: Edge, analysis: QueryAnalysis) -> float:
        score = 0.0
        et = edge.type.lower()
        for rel_type in clean_terms(analysis.relationship_types):
            if rel_type.lower() in et:
                score += RELATIONSHIP_MATCH_WEIGHT
        score += edge.confidence * CONFIDENCE_WEIGHT
        return score

    def rank(
        self,
        nodes: list[Node],
        edges: list[Edge],
        analysis: QueryAnalysis,
        stats: SearchStats | None = None,
    ) -> RetrievedSubgraph:
        node_scores = {n.id: self.score_node(n, analysis) for n in nodes}
        edge_scores = {e.id: self.score_edge(e, analysis) for e in edges}

        ranked_nodes = sorted(nodes, key=lambda n: node_scores[n.id], reverse=True)[: self.max_nodes]
        ranked_edges = sorted(edges, key=lambda e: edge_scores[e.id], reverse=True)[: self.max_relationships]

        if len(nodes) > self.max_nodes or len(edges) > self.max_relationships:
            logger.debug(
                "Truncated ranking: %d->%d nodes, %d->%d edges",
                len(nodes),
                len(ranked_nodes),
                len(edges),
                len(ranked_edges),
            )

        return RetrievedSubgraph(
            nodes=ranked_nodes,
            relationships=ranked_edges,
            search_stats=stats or SearchStats(),
            node_scores={n.id: node_scores[n.id] for n in ranked_nodes},
            relationship_scores={e.id: edge_scores[e.id] for e in ranked_edges},
        )
