from __future__ import annotations

import json
import logging
import re
from typing import Any

from .models import Edge
from .store import InMemoryGraphStore

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "cypher", "networkx")

_SIMPLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Written by the exporter itself; MATCH lines look nodes up by `id`.
NODE_RESERVED_KEYS = frozenset({"id", "label", "confidence", "sourceDocument"})
EDGE_RESERVED_KEYS = frozenset({"id", "confidence", "sourceDocument"})


def _quote_name(name: str) -> str:
    if _SIMPLE_NAME.match(name):
        return name
    return "`" + name.replace("`", "``") + "`"


def _literal(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (list, tuple)) and all(
        v is None or isinstance(v, (str, int, float, bool)) for v in value
    ):
        return "[" + ", ".join(_literal(v) for v in value) + "]"
    # Nested structures have no Cypher property equivalent; store them as JSON text.
    return json.dumps(value, ensure_ascii=False, default=str)


def _map_literal(props: dict[str, Any]) -> str:
    return "{" + ", ".join(f"{_quote_name(k)}: {_literal(v)}" for k, v in props.items()) + "}"


def _extra_properties(properties: dict[str, Any], reserved: frozenset[str], owner: str) -> dict[str, Any]:
    """Extracted properties minus the keys the import script relies on."""
    clashes = reserved.intersection(properties)
    if clashes:
        logger.warning("Dropping reserved property keys %s from %s in cypher export", sorted(clashes), owner)
    return {k: v for k, v in properties.items() if k not in reserved}


class GraphExporter:
    """Read-only serialisations of a store for external tooling."""

    def __init__(self, store: InMemoryGraphStore):
        self.store = store

    def _endpoints(self, edge: Edge) -> tuple[str | None, str | None]:
        src = self.store.resolve(edge.source)
        dst = self.store.resolve(edge.target)
        return (src.id if src else None, dst.id if dst else None)

    def to_json(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.store.nodes()],
            "edges": [e.to_dict() for e in self.store.edges()],
            "schema": self.store.schema.to_dict(),
            "metadata": self.store.refresh_metadata().to_dict(),
        }

    def to_cypher(self) -> str:
        """Declarative creation script for graph database import.

        MERGE keeps re-imports idempotent. Edges with an endpoint that does
        not resolve to a node are left out with a comment.
        """
        lines = ["// Knowledge Graph Creation Queries", "", "// Create Nodes"]
        for node in self.store.nodes():
            props: dict[str, Any] = {
                "label": node.label,
                "confidence": node.confidence,
                "sourceDocument": node.source_document,
            }
            props.update(_extra_properties(node.properties, NODE_RESERVED_KEYS, node.id))
            lines.append(
                f"MERGE (n:{_quote_name(node.type)} {{id: {_literal(node.id)}}}) SET n += {_map_literal(props)};"
            )

        lines += ["", "// Create Relationships"]
        for edge in self.store.edges():
            src_id, dst_id = self._endpoints(edge)
            if src_id is None or dst_id is None:
                lines.append(f"// skipped {edge.id}: unresolved endpoint")
                continue
            props = {"id": edge.id, "confidence": edge.confidence, "sourceDocument": edge.source_document}
            props.update(_extra_properties(edge.properties, EDGE_RESERVED_KEYS, edge.id))
            lines.append(
                f"MATCH (a {{id: {_literal(src_id)}}}), (b {{id: {_literal(dst_id)}}}) "
                f"MERGE (a)-[r:{_quote_name(edge.type)}]->(b) SET r += {_map_literal(props)};"
            )
        return "\n".join(lines) + "\n"

    def to_node_link(self) -> dict[str, Any]:
        """Directed node-link structure (the layout networkx reads and writes)."""
        links = []
        for edge in self.store.edges():
            src_id, dst_id = self._endpoints(edge)
            link = edge.to_dict()
            link["sourceRef"] = edge.source
            link["targetRef"] = edge.target
            link["source"] = src_id or edge.source
            link["target"] = dst_id or edge.target
            links.append(link)
        return {
            "directed": True,
            "multigraph": False,
            "graph": self.store.refresh_metadata().to_dict(),
            "nodes": [n.to_dict() for n in self.store.nodes()],
            "links": links,
        }

    def to_networkx(self):
        """Build a `networkx.DiGraph`. Dependency: networkx (optional extra)."""
        import networkx as nx  # type: ignore

        g = nx.DiGraph(**self.store.refresh_metadata().to_dict())
        for node in self.store.nodes():
            attrs = node.to_dict()
            attrs.pop("id")
            g.add_node(node.id, **attrs)
        for edge in self.store.edges():
            src_id, dst_id = self._endpoints(edge)
            if src_id is None or dst_id is None:
                continue
            attrs = edge.to_dict()
            attrs.pop("source")
            attrs.pop("target")
            g.add_edge(src_id, dst_id, **attrs)
        return g

    def export(self, fmt: str = "json") -> dict[str, Any] | str:
        fmt = (fmt or "json").lower()
        if fmt == "cypher":
            return self.to_cypher()
        if fmt == "networkx":
            return self.to_node_link()
        if fmt != "json":
            logger.warning("Unknown export format %r; using json", fmt)
        return self.to_json()

    def dumps(self, fmt: str = "json") -> str:
        out = self.export(fmt)
        if isinstance(out, str):
            return out
        return json.dumps(out, indent=2, ensure_ascii=False, default=str)
