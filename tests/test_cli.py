import json

import pytest

from medgraph.cli.main import build_parser, main


@pytest.fixture
def records_file(tmp_path, medical_batch):
    entities, relationships = medical_batch
    path = tmp_path / "batch.json"
    path.write_text(
        json.dumps({
            "schema": {"entityTypes": ["Drug", "Disease", "Side_Effect"], "relationshipTypes": ["treats", "causes"]},
            "entities": entities,
            "relationships": relationships,
        }),
        encoding="utf-8",
    )
    return path


def test_version(capsys):
    assert main(["version"]) == 0
    assert capsys.readouterr().out.strip() == "0.1.0"


def test_stats(records_file, capsys):
    assert main(["stats", str(records_file)]) == 0
    out = capsys.readouterr().out
    assert "Nodes" in out
    assert "Side_Effect" in out


def test_query_json(records_file, capsys):
    rc = main(["query", str(records_file), "--entity", "Aspirin", "--relationship", "treat", "--json"])
    assert rc == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["nodes"][0]["label"] == "Aspirin"
    assert payload["searchStats"]["seedNodesFound"] == 1
    assert [r["type"] for r in payload["relationships"]] == ["treats"]


def test_query_table(records_file, capsys):
    assert main(["query", str(records_file), "--entity", "nonexistent_term_xyz", "--intent", "diabetes"]) == 0
    out = capsys.readouterr().out
    assert "fallback=True" in out
    assert "Type 2 Diabetes" in out


@pytest.mark.parametrize("depth", ["0", "-3", "deep"])
def test_query_rejects_bad_depth(records_file, capsys, depth):
    with pytest.raises(SystemExit) as exc:
        main(["query", str(records_file), "--entity", "Aspirin", "--depth", depth])
    assert exc.value.code == 2
    assert "--depth" in capsys.readouterr().err


def test_export_cypher_to_file(records_file, tmp_path):
    target = tmp_path / "graph.cypher"
    assert main(["export", str(records_file), "--format", "cypher", "--out", str(target)]) == 0
    assert target.read_text(encoding="utf-8").startswith("// Knowledge Graph Creation Queries")


def test_export_json_stdout(records_file, capsys):
    assert main(["export", str(records_file)]) == 0
    assert json.loads(capsys.readouterr().out)["metadata"]["entityCount"] == 5


def test_non_object_payload_is_rejected(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(SystemExit):
        main(["stats", str(path)])


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
