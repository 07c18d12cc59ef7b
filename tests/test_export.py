import json

import pytest

from medgraph.knowledge_graph import GraphExporter
from medgraph.knowledge_graph.keys import node_id


@pytest.fixture
def exporter(session):
    return GraphExporter(session.store)


def test_json_export(exporter, session):
    out = exporter.export("json")

    assert {n["label"] for n in out["nodes"]} == {
        "Aspirin", "Heart Disease", "Gastrointestinal Bleeding", "Metformin", "Type 2 Diabetes"
    }
    assert len(out["edges"]) == 3
    assert out["metadata"]["entityCount"] == 5
    assert out["metadata"]["relationshipCount"] == 3
    assert out["schema"] == {"entityTypes": [], "relationshipTypes": []}
    json.dumps(out)


def test_cypher_export(exporter):
    script = exporter.export("cypher")

    assert script.startswith("// Knowledge Graph Creation Queries")
    assert 'MERGE (n:Drug {id: "node_drug_aspirin"}) SET n += {label: "Aspirin"' in script
    assert "dosage: \"81mg\"" in script
    assert (
        'MATCH (a {id: "node_drug_aspirin"}), (b {id: "node_disease_heart_disease"}) '
        "MERGE (a)-[r:treats]->(b)"
    ) in script
    assert script.count("MERGE (n:") == 5


def test_cypher_quotes_awkward_names(session):
    session.ingest(
        entities=[{"label": "Low-dose aspirin", "type": "Drug Class", "properties": {"half life": 2}}],
        relationships=[{"source": "Low-dose aspirin", "target": "Aspirin", "type": "subclass of"}],
    )
    script = session.export("cypher")
    assert "MERGE (n:`Drug Class`" in script
    assert "`half life`: 2" in script
    assert "[r:`subclass of`]" in script


def test_cypher_skips_unresolved_edges(session):
    session.ingest(relationships=[{"source": "Aspirin", "target": "Warfarin", "type": "interacts_with"}])
    script = session.export("cypher")
    assert "// skipped edge_aspirin_interacts_with_warfarin: unresolved endpoint" in script


def test_cypher_keeps_node_ids_when_properties_collide(session, caplog):
    session.ingest(
        entities=[
            {"label": "A", "type": "T", "properties": {"id": "ext-1", "label": "row label", "site": "x"}},
            {"label": "B", "type": "T"},
        ],
        relationships=[{"source": "A", "target": "B", "type": "links", "properties": {"id": "rel-9", "weight": 2}}],
    )
    script = session.export("cypher")

    node_line = next(l for l in script.splitlines() if l.startswith('MERGE (n:T {id: "node_t_a"})'))
    assert "ext-1" not in node_line
    assert "row label" not in node_line
    assert 'site: "x"' in node_line
    edge_line = next(l for l in script.splitlines() if "[r:links]" in l)
    assert 'MATCH (a {id: "node_t_a"}), (b {id: "node_t_b"})' in edge_line
    assert 'id: "edge_a_links_b"' in edge_line
    assert "rel-9" not in edge_line
    assert "weight: 2" in edge_line
    assert "Dropping reserved property keys" in caplog.text


def test_node_link_export(exporter):
    out = exporter.export("networkx")

    assert out["directed"] is True
    assert out["multigraph"] is False
    assert len(out["nodes"]) == 5
    treats = [l for l in out["links"] if l["type"] == "treats"]
    assert {(l["source"], l["target"]) for l in treats} == {
        (node_id("Drug", "Aspirin"), node_id("Disease", "Heart Disease")),
        (node_id("Drug", "Metformin"), node_id("Disease", "Type 2 Diabetes")),
    }
    assert treats[0]["sourceRef"] == "Aspirin"


def test_unknown_format_falls_back_to_json(exporter, caplog):
    out = exporter.export("graphml")
    assert set(out) == {"nodes", "edges", "schema", "metadata"}
    assert "Unknown export format" in caplog.text


def test_export_does_not_mutate_graph(exporter, session):
    before = session.statistics()
    for fmt in ("json", "cypher", "networkx"):
        exporter.export(fmt)
    after = session.statistics()
    assert after["nodes"] == before["nodes"]
    assert after["edges"] == before["edges"]
    assert after["metadata"]["lastUpdated"] == before["metadata"]["lastUpdated"]


def test_dumps_is_text(exporter):
    assert json.loads(exporter.dumps("json"))["metadata"]["entityCount"] == 5
    assert exporter.dumps("cypher").endswith(";\n")


def test_to_networkx(exporter):
    nx = pytest.importorskip("networkx")
    g = exporter.to_networkx()

    assert isinstance(g, nx.DiGraph)
    assert g.number_of_nodes() == 5
    assert g.number_of_edges() == 3
    assert g.nodes[node_id("Drug", "Aspirin")]["label"] == "Aspirin"
    assert g.has_edge(node_id("Drug", "Aspirin"), node_id("Disease", "Heart Disease"))
    assert g.graph["entityCount"] == 5
