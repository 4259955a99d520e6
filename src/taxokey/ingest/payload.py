"""Turn raw AI or import payloads into candidate projects.

AI responses arrive in several shapes, and the same model will switch
between them from one call to the next:

- Full project: ``features`` with state objects, ``entities`` with an
  id-keyed ``traits`` map
- Generation format: ``projectName``, features whose states are bare label
  strings, entity traits as ``"Feature: State"`` strings or
  ``{"featureName", "stateValue"}`` objects
- Refine format: entities carrying ``traitsMap`` as a JSON-encoded string
- Gap-fill format: ``filledEntities`` with ``entityId`` and ``filledTraits``

The adapter is tolerant: missing ids are generated and unusable items are
skipped. A malformed trait map affects only its own entity, which falls back
to the traits of its existing counterpart.

Public API:
    extract_json_payload: Parse JSON out of a chatty response string
    parse_trait_map: Decode one id-keyed trait map
    candidate_from_payload: Build a candidate Project from a payload
    generate_id: Short random id for generated objects
"""

import json
import logging
import re
import uuid
from typing import Any

from taxokey.core.exceptions import PayloadError, TraitPayloadError
from taxokey.merge.matcher import names_match
from taxokey.merge.normalizer import normalize
from taxokey.models import (
    Entity,
    EntityLink,
    Feature,
    FeatureState,
    Project,
    TraitMap,
    coerce_trait_map,
)

logger = logging.getLogger(__name__)

__all__ = [
    "ENTITY_LIST_KEYS",
    "TRAIT_KEYS",
    "candidate_from_payload",
    "entity_items",
    "extract_json_payload",
    "generate_id",
    "parse_trait_map",
    "raw_traits",
]

# Keys under which models return the entity list, in preference order
ENTITY_LIST_KEYS: tuple[str, ...] = ("entities", "filledEntities")

# Keys under which models return an entity's traits, in preference order
TRAIT_KEYS: tuple[str, ...] = ("traitsMap", "filledTraits", "traits")

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def generate_id() -> str:
    """Return a short random id for objects the payload left unnamed."""
    return uuid.uuid4().hex[:9]


def extract_json_payload(text: str) -> Any:
    """Parse the JSON value in an AI response.

    Accepts plain JSON, JSON inside a fenced code block, or a JSON object
    surrounded by prose. Truncated JSON is not repaired.

    Args:
        text: Raw response text.

    Returns:
        Parsed JSON value.

    Raises:
        PayloadError: If no JSON value can be parsed.

    Examples:
        >>> extract_json_payload('Here you go:\\n```json\\n{"entities": []}\\n```')
        {'entities': []}

    """
    stripped = text.strip()
    if not stripped:
        raise PayloadError("Empty response text")

    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        pass

    for match in _FENCE_PATTERN.finditer(stripped):
        try:
            return json.loads(match.group(1).strip())
        except json.JSONDecodeError:
            continue

    start = stripped.find("{")
    end = stripped.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(stripped[start : end + 1])
        except json.JSONDecodeError as e:
            raise PayloadError(f"Response contains malformed JSON: {e}") from e

    raise PayloadError("No JSON object found in response text")


def parse_trait_map(raw: Any) -> TraitMap:
    """Decode an id-keyed trait map given as an object or a JSON string.

    Args:
        raw: ``None``, a mapping, or a JSON-encoded mapping.

    Returns:
        Feature id -> state ids.

    Raises:
        TraitPayloadError: If the value is not a mapping or not valid JSON.

    Examples:
        >>> parse_trait_map('{"f1": ["s1"], "f2": "s4"}')
        {'f1': ['s1'], 'f2': ['s4']}

    """
    if raw is None:
        return {}
    if isinstance(raw, str):
        if not raw.strip():
            return {}
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise TraitPayloadError(f"Trait map is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise TraitPayloadError(f"Trait map must be an object, got {type(raw).__name__}")
    return coerce_trait_map(raw)


def raw_traits(item: dict[str, Any]) -> Any:
    """Return the first non-empty trait value an entity item carries."""
    for key in TRAIT_KEYS:
        value = item.get(key)
        if value not in (None, ""):
            return value
    return None


def entity_items(data: dict[str, Any]) -> list[Any]:
    """Return the entity list of a payload under whichever key it uses."""
    for key in ENTITY_LIST_KEYS:
        value = data.get(key)
        if isinstance(value, list) and value:
            return value
    return []


def _split_named_trait(trait: Any) -> tuple[str, str] | None:
    if isinstance(trait, str):
        feature_name, sep, state_value = trait.partition(":")
        if not sep:
            return None
        return feature_name.strip(), state_value.strip()
    if isinstance(trait, dict):
        feature_name = trait.get("featureName")
        state_value = trait.get("stateValue")
        if isinstance(feature_name, str) and isinstance(state_value, str):
            return feature_name.strip(), state_value.strip()
    return None


def _traits_from_named_list(items: list[Any], features: list[Feature]) -> TraitMap:
    """Resolve ``Feature: State`` references against the payload's features."""
    traits: TraitMap = {}
    for trait in items:
        parts = _split_named_trait(trait)
        if parts is None or not all(parts):
            continue
        feature_name, state_value = normalize(parts[0]), normalize(parts[1])
        feature = next((f for f in features if normalize(f.name) == feature_name), None)
        if feature is None:
            logger.debug("Named trait references unknown feature %r", parts[0])
            continue
        state = next((s for s in feature.states if normalize(s.label) == state_value), None)
        if state is None:
            logger.debug("Named trait references unknown state %r of %r", parts[1], parts[0])
            continue
        state_ids = traits.setdefault(feature.id, [])
        if state.id not in state_ids:
            state_ids.append(state.id)
    return traits


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _feature_from_item(item: dict[str, Any]) -> Feature:
    states: list[FeatureState] = []
    for raw_state in item.get("states") or []:
        if isinstance(raw_state, dict):
            states.append(
                FeatureState(
                    id=_optional_str(raw_state.get("id")) or generate_id(),
                    label=_optional_str(raw_state.get("label") or raw_state.get("name")) or "",
                    image_url=_optional_str(raw_state.get("imageUrl")),
                )
            )
        elif isinstance(raw_state, str) and raw_state.strip():
            states.append(FeatureState(id=generate_id(), label=raw_state.strip()))
    return Feature(
        id=_optional_str(item.get("id")) or generate_id(),
        name=_optional_str(item.get("name")) or "",
        image_url=_optional_str(item.get("imageUrl")),
        states=states,
    )


def _links_from_item(item: dict[str, Any]) -> list[EntityLink]:
    raw_links = item.get("links")
    if not isinstance(raw_links, list):
        return []
    return [
        EntityLink(
            id=_optional_str(link.get("id")) or generate_id(),
            label=_optional_str(link.get("label")) or "Link",
            url=_optional_str(link.get("url")) or "#",
        )
        for link in raw_links
        if isinstance(link, dict)
    ]


def _existing_traits(entity_id: str | None, name: str, existing: Project | None) -> TraitMap:
    if existing is None:
        return {}
    if entity_id:
        match = existing.entity_by_id(entity_id)
        if match is not None:
            return dict(match.traits)
    for entity in existing.entities:
        if names_match(name, entity.name):
            return dict(entity.traits)
    return {}


def _entity_from_item(
    item: dict[str, Any],
    features: list[Feature],
    existing: Project | None,
) -> Entity:
    given_id = _optional_str(item.get("id") or item.get("entityId"))
    name = _optional_str(item.get("name")) or ""

    value = raw_traits(item)
    if isinstance(value, list):
        traits = _traits_from_named_list(value, features)
    else:
        try:
            traits = parse_trait_map(value)
        except TraitPayloadError as e:
            logger.warning(
                "Malformed traits for entity %r (%s) - keeping its existing traits",
                given_id or name,
                e,
            )
            traits = _existing_traits(given_id, name, existing)

    return Entity(
        id=given_id or generate_id(),
        name=name,
        scientific_name=_optional_str(item.get("scientificName")),
        family=_optional_str(item.get("family")),
        description=_optional_str(item.get("description")),
        image_url=_optional_str(item.get("imageUrl")),
        links=_links_from_item(item),
        traits=traits,
    )


def candidate_from_payload(data: Any, existing: Project | None = None) -> Project:
    """Build a candidate project from a parsed AI or import payload.

    Args:
        data: Parsed JSON payload.
        existing: Project the candidate will be merged into, used as the
            fallback source of traits for entities with malformed trait maps.

    Returns:
        Candidate Project. May have no entities or features; the safety gate
        decides whether it is mergeable.

    Raises:
        PayloadError: If the payload is not a JSON object.

    """
    if not isinstance(data, dict):
        raise PayloadError(f"Payload must be a JSON object, got {type(data).__name__}")

    raw_features = data.get("features")
    features = [
        _feature_from_item(item)
        for item in (raw_features if isinstance(raw_features, list) else [])
        if isinstance(item, dict)
    ]

    entities = [
        _entity_from_item(item, features, existing)
        for item in entity_items(data)
        if isinstance(item, dict)
    ]

    return Project(
        id=_optional_str(data.get("id")) or generate_id(),
        name=_optional_str(data.get("projectName") or data.get("name")) or "",
        description=_optional_str(data.get("projectDescription") or data.get("description")) or "",
        features=features,
        entities=entities,
    )
