"""medgraph: in-memory medical knowledge graph with GraphRAG retrieval."""

__version__ = "0.1.0"
