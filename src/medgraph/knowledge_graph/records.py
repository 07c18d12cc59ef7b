"""Input contracts shared with the external collaborators.

Extraction agents hand us entity/relationship records, the schema proposer
hands us a `GraphSchema`, and the intent analyser hands us a `QueryAnalysis`.
All of them arrive as loosely shaped JSON, so they are validated here with
pydantic and accept both the collaborators' camelCase keys and snake_case.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import ValidationError

_Model = TypeVar("_Model", bound=BaseModel)


def _required_text(value: str, name: str) -> str:
    value = value.strip() if isinstance(value, str) else value
    if not value:
        raise ValueError(f"{name} must not be blank")
    return value


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    properties: dict[str, Any] = Field(default_factory=dict)
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    source_document: str | None = Field(default=None, alias="sourceDocument")

    @field_validator("properties", mode="before")
    @classmethod
    def _none_properties(cls, v: Any) -> Any:
        return {} if v is None else v


class EntityRecord(_Record):
    """One entity mention from an extraction agent."""

    label: str
    type: str

    @field_validator("label", "type")
    @classmethod
    def _not_blank(cls, v: str, info) -> str:
        return _required_text(v, info.field_name)


class RelationshipRecord(_Record):
    """One relationship mention; `source`/`target` are labels or node ids."""

    source: str
    target: str
    type: str

    @field_validator("source", "target", "type")
    @classmethod
    def _not_blank(cls, v: str, info) -> str:
        return _required_text(v, info.field_name)


class GraphSchema(BaseModel):
    """Entity/relationship types proposed externally. Soft guidance only."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    entity_types: list[str] = Field(default_factory=list, alias="entityTypes")
    relationship_types: list[str] = Field(default_factory=list, alias="relationshipTypes")

    @property
    def is_empty(self) -> bool:
        return not self.entity_types and not self.relationship_types

    def knows_entity_type(self, entity_type: str) -> bool:
        if not self.entity_types:
            return True
        t = entity_type.lower()
        return any(t == known.lower() for known in self.entity_types)

    def knows_relationship_type(self, rel_type: str) -> bool:
        """Contains-match, mirroring the traversal filter."""
        if not self.relationship_types:
            return True
        t = rel_type.lower()
        return any(t in known.lower() or known.lower() in t for known in self.relationship_types)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class QueryAnalysis(BaseModel):
    """Structured reading of a question, produced by the intent collaborator."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    query_type: str = Field(default="entity_lookup", alias="queryType")
    key_entities: list[str] = Field(default_factory=list, alias="keyEntities")
    relationship_types: list[str] = Field(default_factory=list, alias="relationshipTypes")
    search_depth: int = Field(default=2, ge=1, alias="searchDepth")
    query_intent: str = Field(default="", alias="queryIntent")
    medical_domain: str | None = Field(default=None, alias="medicalDomain")

    @field_validator("key_entities", "relationship_types", mode="before")
    @classmethod
    def _none_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("query_intent", mode="before")
    @classmethod
    def _none_intent(cls, v: Any) -> Any:
        return "" if v is None else v

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | QueryAnalysis) -> QueryAnalysis:
        """Validate a collaborator payload; structural problems are hard failures."""
        if isinstance(payload, QueryAnalysis):
            return payload
        if not isinstance(payload, Mapping):
            raise TypeError(f"QueryAnalysis payload must be a mapping, got {type(payload).__name__}")
        return parse_model(cls, payload)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def parse_model(model: type[_Model], raw: Any) -> _Model:
    """Validate `raw` into `model`, raising our `ValidationError` on failure."""
    if isinstance(raw, model):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError(f"{model.__name__} must be a mapping, got {type(raw).__name__}", record=raw)
    try:
        return model.model_validate(dict(raw))
    except pydantic.ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<record>'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid {model.__name__}: {problems}", record=raw) from e
