import pytest

from medgraph.knowledge_graph import EntityRecord, InMemoryGraphStore, RelationshipRecord, ValidationError
from medgraph.knowledge_graph.exceptions import EmptyGraphError
from medgraph.knowledge_graph.keys import edge_id, node_id, normalize_label


def test_node_id_ignores_case_and_surrounding_whitespace():
    assert node_id("Drug", "Aspirin") == node_id("Drug", "aspirin  ")
    assert node_id("Drug", "Heart   Disease") == "node_drug_heart_disease"


def test_edge_id_uses_normalized_endpoints():
    assert edge_id("Aspirin", "treats", "Heart Disease") == "edge_aspirin_treats_heart_disease"
    assert edge_id("aspirin ", "Treats", "heart  disease") == edge_id("Aspirin", "treats", "Heart Disease")


def test_normalize_label():
    assert normalize_label("  New   York ") == "new_york"


def test_upsert_same_entity_twice_keeps_one_node(store):
    store.upsert_node(EntityRecord(label="Aspirin", type="Drug", confidence=0.6, properties={"a": 1}))
    node = store.upsert_node(
        EntityRecord(label="aspirin  ", type="Drug", confidence=0.9, properties={"a": 2, "b": 3})
    )

    assert len(store) == 1
    assert node.confidence == 0.9
    assert node.properties == {"a": 2, "b": 3}
    assert node.label == "Aspirin"
    assert store.metadata.entity_count == 1


def test_merge_keeps_higher_confidence_when_later_is_lower(store):
    store.upsert_node(EntityRecord(label="Aspirin", type="Drug", confidence=0.9))
    node = store.upsert_node(EntityRecord(label="Aspirin", type="Drug", confidence=0.2))
    assert node.confidence == 0.9


def test_same_label_different_type_are_distinct(store):
    store.upsert_node(EntityRecord(label="Aspirin", type="Drug"))
    store.upsert_node(EntityRecord(label="Aspirin", type="Study"))
    assert len(store) == 2


def test_default_confidences(store):
    node = store.upsert_node(EntityRecord(label="Aspirin", type="Drug"))
    edge = store.upsert_edge(RelationshipRecord(source="Aspirin", target="Pain", type="treats"))
    assert node.confidence == 0.8
    assert edge.confidence == 0.7


def test_explicit_zero_confidence_is_kept(store):
    node = store.upsert_node(EntityRecord(label="Aspirin", type="Drug", confidence=0.0))
    assert node.confidence == 0.0


def test_blank_label_is_rejected(store):
    record = EntityRecord.model_construct(label="   ", type="Drug", properties={}, confidence=None, source_document=None)
    with pytest.raises(ValidationError):
        store.upsert_node(record)
    assert len(store) == 0


def test_duplicate_edges_collapse(store):
    store.upsert_edge(RelationshipRecord(source="Aspirin", target="Pain", type="treats", confidence=0.5,
                                         properties={"study": "A"}))
    edge = store.upsert_edge(RelationshipRecord(source="aspirin", target="pain", type="Treats", confidence=0.8,
                                                properties={"n": 10}))
    assert store.metadata.relationship_count == 1
    assert edge.confidence == 0.8
    assert edge.properties == {"study": "A", "n": 10}


def test_dangling_edge_resolves_once_node_arrives(store):
    edge = store.upsert_edge(RelationshipRecord(source="Aspirin", target="Pain", type="treats"))
    assert store.resolve(edge.source) is None

    aspirin = store.upsert_node(EntityRecord(label="Aspirin", type="Drug"))
    assert store.resolve("ASPIRIN").id == aspirin.id
    assert store.edges_touching(aspirin.id) == [edge]
    assert store.other_endpoint(edge, aspirin.id) is None


def test_resolve_accepts_node_ids(store):
    node = store.upsert_node(EntityRecord(label="Aspirin", type="Drug"))
    assert store.resolve(node.id) is node


def test_source_documents_are_tracked(store):
    store.upsert_node(EntityRecord(label="Aspirin", type="Drug", source_document="doc-1"))
    node = store.upsert_node(EntityRecord(label="Aspirin", type="Drug", source_document="doc-2"))
    store.upsert_node(EntityRecord(label="Aspirin", type="Drug", source_document="doc-1"))

    assert node.source_document == "doc-1"
    assert store.get_node(node.id).source_documents == ("doc-1", "doc-2")
    assert store.metadata.document_count == 2


def test_metadata_last_updated_moves(store):
    before = store.metadata.last_updated
    store.upsert_node(EntityRecord(label="Aspirin", type="Drug"))
    assert store.metadata.last_updated >= before


def test_require_populated_on_empty_store():
    with pytest.raises(EmptyGraphError):
        InMemoryGraphStore().require_populated()


def test_statistics(store):
    store.upsert_node(EntityRecord(label="Aspirin", type="Drug"))
    store.upsert_node(EntityRecord(label="Ibuprofen", type="Drug"))
    store.upsert_node(EntityRecord(label="Pain", type="Symptom"))
    store.upsert_edge(RelationshipRecord(source="Aspirin", target="Pain", type="treats"))

    stats = store.statistics()
    assert stats["nodes"] == 3
    assert stats["edges"] == 1
    assert stats["entityTypes"] == ["Drug", "Symptom"]
    assert stats["relationshipTypes"] == ["treats"]
    assert stats["metadata"]["entityCount"] == 3
