import pytest

from medgraph.knowledge_graph import GraphIngestor, GraphQueryEngine, InMemoryGraphStore, KnowledgeGraphSession


@pytest.fixture
def store():
    return InMemoryGraphStore()


@pytest.fixture
def ingestor(store):
    return GraphIngestor(store)


@pytest.fixture
def engine(store):
    return GraphQueryEngine(store)


@pytest.fixture
def medical_batch():
    """Small cardiology/diabetes batch as an extraction agent would emit it."""
    entities = [
        {"label": "Aspirin", "type": "Drug", "confidence": 0.95, "sourceDocument": "doc-1",
         "properties": {"domain": "cardiology", "dosage": "81mg"}},
        {"label": "Heart Disease", "type": "Disease", "sourceDocument": "doc-1",
         "properties": {"domain": "cardiology"}},
        {"label": "Gastrointestinal Bleeding", "type": "Side_Effect", "confidence": 0.6, "sourceDocument": "doc-2"},
        {"label": "Metformin", "type": "Drug", "sourceDocument": "doc-3", "properties": {"domain": "endocrinology"}},
        {"label": "Type 2 Diabetes", "type": "Disease", "sourceDocument": "doc-3"},
    ]
    relationships = [
        {"source": "Aspirin", "target": "Heart Disease", "type": "treats", "confidence": 0.9, "sourceDocument": "doc-1"},
        {"source": "Aspirin", "target": "Gastrointestinal Bleeding", "type": "causes", "sourceDocument": "doc-2"},
        {"source": "Metformin", "target": "Type 2 Diabetes", "type": "treats", "confidence": 0.85, "sourceDocument": "doc-3"},
    ]
    return entities, relationships


@pytest.fixture
def session(medical_batch):
    s = KnowledgeGraphSession()
    entities, relationships = medical_batch
    s.ingest(entities=entities, relationships=relationships)
    return s
