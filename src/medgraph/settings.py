from __future__ import annotations

from pydantic import Field

try:
    from pydantic_settings import BaseSettings, SettingsConfigDict
except Exception as e:  # pragma: no cover
    raise RuntimeError(
        "pydantic-settings is required. Install with: pip install pydantic-settings"
    ) from e


class MedGraphSettings(BaseSettings):
    """Unified configuration for medgraph.

    Environment variables are prefixed with MEDGRAPH_.
    """

    model_config = SettingsConfigDict(env_prefix="MEDGRAPH_", extra="ignore")

    # --- Core ---
    log_level: str = Field(default="INFO", description="Python logging level")

    # --- Ingestion ---
    default_entity_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    default_relationship_confidence: float = Field(default=0.7, ge=0.0, le=1.0)

    # --- Retrieval ---
    max_ranked_nodes: int = Field(default=20, ge=1, description="Cap on ranked nodes per query")
    max_ranked_relationships: int = Field(default=15, ge=1, description="Cap on ranked edges per query")
    max_search_depth: int = Field(default=5, ge=1, description="Requested depths above this are clamped")

    # --- Answer context ---
    context_node_limit: int = Field(default=10, ge=0)
    context_relationship_limit: int = Field(default=10, ge=0)

    # --- Export ---
    export_format: str = Field(default="json", description="json|cypher|networkx")


settings = MedGraphSettings()
