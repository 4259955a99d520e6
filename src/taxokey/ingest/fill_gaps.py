"""Gap filling: add missing trait data to existing entities.

The AI is shown the existing key and asked only for the trait values it
left empty. Its answer never creates or removes entities or features: each
returned item is attached to an existing entity (by id, then by name),
translated through the id mapper, and written only into empty slots.

Trait maps keyed by feature *name* instead of id (a common model mistake)
are resolved through the mapper's name index.
"""

import logging
from typing import Any

from taxokey.core.exceptions import PayloadError, TraitPayloadError
from taxokey.ingest.payload import entity_items, parse_trait_map, raw_traits
from taxokey.merge.id_mapper import IdMapper
from taxokey.merge.matcher import names_match
from taxokey.merge.report import MergeReport, MergeResult, RejectionReason
from taxokey.merge.sanitizer import sanitize_project
from taxokey.merge.traits import TraitMergeContext, merge_traits
from taxokey.models import Entity, Project, TraitMap

logger = logging.getLogger(__name__)

__all__ = ["fill_gaps"]


def _resolve_target(item: dict[str, Any], existing: Project) -> Entity | None:
    entity_id = item.get("entityId") or item.get("id")
    if entity_id:
        match = existing.entity_by_id(str(entity_id))
        if match is not None:
            return match
    name = item.get("name")
    if isinstance(name, str):
        for entity in existing.entities:
            if names_match(name, entity.name):
                return entity
    return None


def _collect_filled_traits(items: list[Any], existing: Project) -> dict[str, TraitMap]:
    """Group usable items by target entity id; malformed items are skipped."""
    filled: dict[str, TraitMap] = {}
    for item in items:
        if not isinstance(item, dict):
            continue
        target = _resolve_target(item, existing)
        if target is None:
            logger.debug(
                "Ignoring filled traits for unknown entity %r",
                item.get("entityId") or item.get("id"),
            )
            continue
        try:
            traits = parse_trait_map(raw_traits(item))
        except TraitPayloadError as e:
            logger.warning("Malformed filled traits for entity %r (%s) - skipped", target.id, e)
            continue
        entry = filled.setdefault(target.id, {})
        for feature_id, state_ids in traits.items():
            entry.setdefault(feature_id, state_ids)
    return filled


def fill_gaps(existing: Project, data: Any) -> MergeResult:
    """Apply a gap-fill response to an existing project.

    Args:
        existing: Project whose empty trait slots should be filled.
        data: Parsed response, expected to carry ``filledEntities`` (or
            ``entities``) items with ``entityId``/``id`` and
            ``filledTraits``/``traitsMap``/``traits``.

    Returns:
        MergeResult with the same entities and features as ``existing``.
        An empty response returns ``existing`` itself with an
        ``empty-ai-response`` rejection.

    Raises:
        PayloadError: If ``data`` is neither None nor a JSON object.

    """
    if data is None:
        return MergeResult(project=existing, rejection=RejectionReason.EMPTY_AI_RESPONSE)
    if not isinstance(data, dict):
        raise PayloadError(f"Gap-fill payload must be a JSON object, got {type(data).__name__}")

    items = entity_items(data)
    if not items:
        logger.warning("Gap-fill response has no entities - keeping existing project")
        return MergeResult(project=existing, rejection=RejectionReason.EMPTY_AI_RESPONSE)

    report = MergeReport()
    filled = _collect_filled_traits(items, existing)
    if not filled:
        report.entities_preserved = len(existing.entities)
        return MergeResult(project=existing, report=report)

    known_feature_ids = {f.id for f in existing.features}
    hints = {
        feature_key: feature_key
        for traits in filled.values()
        for feature_key in traits
        if feature_key not in known_feature_ids
    }
    mapper = IdMapper(existing, existing, feature_name_hints=hints)
    context = TraitMergeContext.for_mapper(mapper, report)

    entities: list[Entity] = []
    for entity in existing.entities:
        candidate_traits = filled.get(entity.id)
        if candidate_traits is None:
            entities.append(entity)
            report.entities_preserved += 1
            continue
        merged = merge_traits(candidate_traits, entity.traits, context)
        entities.append(entity.model_copy(update={"traits": merged}))
        report.entities_updated += 1

    report.features_preserved = len(existing.features)
    final = sanitize_project(existing.model_copy(update={"entities": entities}), report)

    logger.info(
        "Gap fill: %d traits filled across %d entities",
        report.traits_filled,
        report.entities_updated,
    )
    return MergeResult(project=final, report=report)
