from __future__ import annotations

import argparse
import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from medgraph.settings import settings

console = Console()


def _configure_logging() -> None:
    import logging

    level = (settings.log_level or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {n}")
    return n


def _load_session(paths: list[str]):
    """Ingest each records file as one batch into a fresh session."""
    from medgraph.knowledge_graph import KnowledgeGraphSession

    session = KnowledgeGraphSession()
    for path in paths:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise SystemExit(f"{path}: expected a JSON object with 'entities'/'relationships'")
        if payload.get("schema") is not None:
            session.set_schema(payload["schema"])
        session.ingest(entities=payload.get("entities") or [], relationships=payload.get("relationships") or [])
    return session


def cmd_version() -> int:
    from medgraph import __version__

    print(__version__)
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    _configure_logging()
    stats = _load_session(args.files).statistics()

    table = Table(title="Knowledge Graph")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", overflow="fold")
    table.add_row("Nodes", str(stats["nodes"]))
    table.add_row("Edges", str(stats["edges"]))
    table.add_row("Documents", str(stats["metadata"]["documentCount"]))
    table.add_row("Entity types", ", ".join(stats["entityTypes"]))
    table.add_row("Relationship types", ", ".join(stats["relationshipTypes"]))
    console.print(table)
    return 0


def cmd_query(args: argparse.Namespace) -> int:
    _configure_logging()
    from medgraph.knowledge_graph import QueryAnalysis

    session = _load_session(args.files)
    analysis = QueryAnalysis(
        query_type=args.query_type,
        key_entities=args.entity or [],
        relationship_types=args.relationship or [],
        search_depth=args.depth,
        query_intent=args.intent or " ".join(args.entity or []),
        medical_domain=args.domain,
    )
    result = session.query(analysis)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return 0

    nodes = Table(title="Nodes")
    nodes.add_column("Score", style="cyan", justify="right")
    nodes.add_column("Type", style="magenta")
    nodes.add_column("Label")
    for n in result.nodes:
        nodes.add_row(f"{result.node_scores[n.id]:.2f}", n.type, n.label)
    console.print(nodes)

    rels = Table(title="Relationships")
    rels.add_column("Score", style="cyan", justify="right")
    rels.add_column("Source")
    rels.add_column("Type", style="magenta")
    rels.add_column("Target")
    for e in result.relationships:
        rels.add_row(f"{result.relationship_scores[e.id]:.2f}", e.source, e.type, e.target)
    console.print(rels)

    s = result.search_stats
    console.print(
        f"seeds={s.seed_nodes_found} nodes={s.total_nodes_retrieved} "
        f"relationships={s.total_relationships_retrieved} fallback={s.fallback_used}",
        markup=False,
    )
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    _configure_logging()
    session = _load_session(args.files)
    text = session.exporter.dumps(args.format or settings.export_format)
    if args.out:
        Path(args.out).write_text(text, encoding="utf-8")
        console.print(f"Wrote {args.out}")
    else:
        print(text)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="medgraph")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("version").set_defaults(func=lambda _a: cmd_version())

    stats = sub.add_parser("stats", help="Ingest records files and show graph statistics")
    stats.add_argument("files", nargs="+", help="JSON records files, one batch each")
    stats.set_defaults(func=cmd_stats)

    query = sub.add_parser("query", help="Retrieve a ranked subgraph")
    query.add_argument("files", nargs="+", help="JSON records files, one batch each")
    query.add_argument("--entity", action="append", help="Key entity (repeatable)")
    query.add_argument("--relationship", action="append", help="Relationship type filter (repeatable)")
    query.add_argument("--depth", type=_positive_int, default=2, help="Traversal depth (>= 1)")
    query.add_argument("--intent", default=None, help="Free-text intent for fallback search")
    query.add_argument("--domain", default=None, help="Medical domain tag")
    query.add_argument("--query-type", default="entity_lookup")
    query.add_argument("--json", action="store_true", help="Print the raw result as JSON")
    query.set_defaults(func=cmd_query)

    export = sub.add_parser("export", help="Export the graph")
    export.add_argument("files", nargs="+", help="JSON records files, one batch each")
    export.add_argument("--format", default=None, help="json|cypher|networkx")
    export.add_argument("--out", default=None)
    export.set_defaults(func=cmd_export)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


def app() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    app()
