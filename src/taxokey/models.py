"""Data model for identification keys.

A Project holds features (characteristics with discrete states) and entities
(the items being identified). Each entity maps feature ids to the list of
state ids it exhibits.

Models are frozen so merge functions cannot mutate their inputs; derived
objects are produced with ``model_copy(update=...)`` or fresh construction.
On the wire (JSON/YAML files, AI payloads) field names are camelCase
(``imageUrl``, ``scientificName``); Python code uses snake_case. Both are
accepted on input.

Cross-reference consistency (trait keys pointing at existing features and
states) is NOT validated here: candidate projects routinely violate it and
the sanitizer restores it after a merge.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

__all__ = [
    "Entity",
    "EntityLink",
    "Feature",
    "FeatureState",
    "Project",
    "TraitMap",
    "coerce_trait_map",
]

TraitMap = dict[str, list[str]]


def coerce_trait_map(data: dict[Any, Any]) -> TraitMap:
    """Normalize trait values into lists of state ids.

    A bare state id or integer index becomes a one-element list. Values that
    are neither a scalar id nor a list are discarded.
    """
    traits: TraitMap = {}
    for feature_id, state_ids in data.items():
        if isinstance(state_ids, str):
            traits[str(feature_id)] = [state_ids]
        elif isinstance(state_ids, int) and not isinstance(state_ids, bool):
            traits[str(feature_id)] = [str(state_ids)]
        elif isinstance(state_ids, (list, tuple)):
            traits[str(feature_id)] = [str(s) for s in state_ids if s is not None]
    return traits

_MODEL_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class FeatureState(BaseModel):
    """One discrete value a feature can take (e.g. "Oval")."""

    model_config = _MODEL_CONFIG

    id: str
    label: str = ""
    image_url: str | None = None


class Feature(BaseModel):
    """A characteristic axis of classification (e.g. "Leaf Shape").

    Attributes:
        id: Feature identifier, unique within a project.
        name: Display name, used for fuzzy matching across schemas.
        image_url: Optional illustration.
        states: Discrete values; state ids unique within the feature.

    """

    model_config = _MODEL_CONFIG

    id: str
    name: str = ""
    image_url: str | None = None
    states: list[FeatureState] = Field(default_factory=list)

    @property
    def state_ids(self) -> list[str]:
        return [s.id for s in self.states]


class EntityLink(BaseModel):
    """External reference attached to an entity."""

    model_config = _MODEL_CONFIG

    id: str
    label: str = ""
    url: str = ""


class Entity(BaseModel):
    """An item or species being classified.

    Attributes:
        id: Entity identifier, unique within a project.
        name: Display name, used for fuzzy matching across schemas.
        scientific_name: Optional binomial name.
        family: Optional taxonomic family.
        description: Optional free text.
        image_url: Optional picture; may be a placeholder URL.
        links: External references.
        traits: Mapping of feature id to the state ids this entity exhibits.

    """

    model_config = _MODEL_CONFIG

    id: str
    name: str = ""
    scientific_name: str | None = None
    family: str | None = None
    description: str | None = None
    image_url: str | None = None
    links: list[EntityLink] = Field(default_factory=list)
    traits: TraitMap = Field(default_factory=dict)

    @field_validator("links", mode="before")
    @classmethod
    def coerce_none_links(cls, v: Any) -> Any:
        if v is None:
            return []
        return v

    @field_validator("traits", mode="before")
    @classmethod
    def coerce_trait_values(cls, v: Any) -> Any:
        """Accept the shapes AI output actually takes.

        ``None`` becomes an empty map; values go through coerce_trait_map().
        """
        if v is None:
            return {}
        if not isinstance(v, dict):
            return v
        return coerce_trait_map(v)


class Project(BaseModel):
    """An identification key: features, entities and their trait matrix."""

    model_config = _MODEL_CONFIG

    id: str
    name: str = ""
    description: str = ""
    features: list[Feature] = Field(default_factory=list)
    entities: list[Entity] = Field(default_factory=list)

    @field_validator("features", "entities", mode="before")
    @classmethod
    def coerce_none_to_empty_list(cls, v: Any) -> Any:
        """YAML parses empty keys as None."""
        if v is None:
            return []
        return v

    @field_validator("description", mode="before")
    @classmethod
    def coerce_none_description(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v

    def feature_by_id(self, feature_id: str) -> Feature | None:
        """Return the first feature with this id, or None."""
        for feature in self.features:
            if feature.id == feature_id:
                return feature
        return None

    def entity_by_id(self, entity_id: str) -> Entity | None:
        """Return the first entity with this id, or None."""
        for entity in self.entities:
            if entity.id == entity_id:
                return entity
        return None

    def to_wire(self) -> dict[str, Any]:
        """Serialize with camelCase keys, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)
