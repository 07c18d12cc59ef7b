from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from ..settings import settings
from .exceptions import EmptyGraphError, ResolutionError
from .matching import MatchPolicy, clean_terms, substring_match, type_matches
from .models import Edge, Node, RetrievedSubgraph, SearchStats
from .ranking import RelevanceRanker
from .records import QueryAnalysis
from .store import InMemoryGraphStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Subgraph:
    """Unranked traversal result, in discovery order."""

    nodes: dict[str, Node] = field(default_factory=dict)
    edges: dict[str, Edge] = field(default_factory=dict)

    def add_node(self, node: Node) -> None:
        self.nodes.setdefault(node.id, node)

    def add_edge(self, edge: Edge) -> None:
        self.edges.setdefault(edge.id, edge)


class GraphQueryEngine:
    """Seed resolution, bounded expansion and fallback search over a store.

    Read-only with respect to the store. Callers running queries alongside
    ingestion must provide their own synchronisation.
    """

    def __init__(
        self,
        store: InMemoryGraphStore,
        *,
        matcher: MatchPolicy = substring_match,
        ranker: RelevanceRanker | None = None,
        max_search_depth: int | None = None,
    ):
        self.store = store
        self.matcher = matcher
        self.ranker = ranker or RelevanceRanker(matcher=matcher)
        self.max_search_depth = int(max_search_depth or settings.max_search_depth)

    def find_seed_nodes(self, key_entities: list[str]) -> list[Node]:
        entities = clean_terms(key_entities)
        if not entities:
            return []
        seeds: list[Node] = []
        for node in self.store.nodes():
            for entity in entities:
                if self.matcher(node.label, entity) or self.matcher(node.type, entity):
                    seeds.append(node)
                    break
        return seeds

    def expand(
        self,
        seeds: list[Node],
        *,
        search_depth: int,
        relationship_types: list[str] | None = None,
    ) -> Subgraph:
        """Breadth-first walk from every seed with one shared visited set.

        A node popped at depth ``d < search_depth`` is expanded; neighbours
        that would sit at ``search_depth`` or deeper are kept as frontier
        leaves and not walked further.
        """
        wanted = clean_terms(relationship_types)
        out = Subgraph()
        visited: set[str] = set()

        for seed in seeds:
            queue: deque[tuple[str, int]] = deque([(seed.id, 0)])
            while queue:
                nid, depth = queue.popleft()
                if nid in visited or depth >= search_depth:
                    continue
                node = self.store.get_node(nid)
                if node is None:
                    continue
                visited.add(nid)
                out.add_node(node)

                for edge in self.store.edges_touching(nid):
                    if not type_matches(edge.type, wanted):
                        continue
                    out.add_edge(edge)
                    other = self.store.other_endpoint(edge, nid)
                    if other is None:
                        logger.debug("Edge %s has an unresolved endpoint", edge.id)
                        continue
                    if depth + 1 < search_depth:
                        if other.id not in visited:
                            queue.append((other.id, depth + 1))
                    else:
                        out.add_node(other)

        logger.debug("Expanded %d seeds to %d nodes, %d edges", len(seeds), len(out.nodes), len(out.edges))
        return out

    def broad_search(self, query_intent: str) -> Subgraph:
        """Lexical scan used when no seed resolves."""
        out = Subgraph()
        terms = [t for t in (query_intent or "").lower().split() if t]
        if not terms:
            return out

        for node in self.store.nodes():
            text = f"{node.label} {node.type}".lower()
            if any(t in text for t in terms):
                out.add_node(node)
        matched = set(out.nodes)

        for edge in self.store.edges():
            src = self.store.resolve(edge.source)
            dst = self.store.resolve(edge.target)
            if (src is not None and src.id in matched) or (dst is not None and dst.id in matched):
                out.add_edge(edge)
                if src is not None:
                    out.add_node(src)
                if dst is not None:
                    out.add_node(dst)
        return out

    def unresolved_terms(self, analysis: QueryAnalysis, seeds: list[Node]) -> list[ResolutionError]:
        errors: list[ResolutionError] = []
        for entity in clean_terms(analysis.key_entities):
            if not any(self.matcher(n.label, entity) or self.matcher(n.type, entity) for n in seeds):
                errors.append(ResolutionError(entity, "entity"))
        schema = self.store.schema
        for rel_type in clean_terms(analysis.relationship_types):
            if not schema.knows_relationship_type(rel_type):
                errors.append(ResolutionError(rel_type, "relationship type"))
        return errors

    def retrieve(self, analysis: QueryAnalysis) -> tuple[Subgraph, SearchStats]:
        """Seed, expand (or fall back) without ranking."""
        stats = SearchStats()
        try:
            self.store.require_populated()
        except EmptyGraphError as e:
            logger.info("%s", e)
            return Subgraph(), stats

        depth = analysis.search_depth
        if depth > self.max_search_depth:
            logger.warning("searchDepth %d exceeds limit %d; clamping", depth, self.max_search_depth)
            depth = self.max_search_depth

        seeds = self.find_seed_nodes(analysis.key_entities)
        stats.seed_nodes_found = len(seeds)
        for err in self.unresolved_terms(analysis, seeds):
            logger.info("%s", err)
            stats.unresolved_terms.append(err.term)

        if seeds:
            sub = self.expand(seeds, search_depth=depth, relationship_types=analysis.relationship_types)
        else:
            logger.info("No seed nodes for %s; falling back to broad search", analysis.key_entities)
            stats.fallback_used = True
            sub = self.broad_search(analysis.query_intent)

        stats.total_nodes_retrieved = len(sub.nodes)
        stats.total_relationships_retrieved = len(sub.edges)
        return sub, stats

    def query(self, analysis: QueryAnalysis) -> RetrievedSubgraph:
        sub, stats = self.retrieve(analysis)
        return self.ranker.rank(list(sub.nodes.values()), list(sub.edges.values()), analysis, stats)
