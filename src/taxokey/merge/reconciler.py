"""Reconciliation engine: lossless merge of a candidate key into a project.

This module combines:
1. The existing project (trusted, possibly edited by hand)
2. A candidate project (AI output or import, with its own id space)

and applies per-object merge rules:
- Matched entity: keep existing id, prefer real data over placeholders,
  gap-fill traits through the id mapper
- Matched feature: keep existing id AND existing states, since traits were
  already translated into the existing state-id space
- Unmatched candidate object: added as new
- Unmatched existing object: preserved unchanged (NEVER delete)

Because every unmatched existing object is appended, a truncated or partial
candidate can never make entities or features disappear.

Public API:
    merge_projects_preserving_data: Raw merge step (safety gate assumed passed)
    reconcile_projects: Full pipeline - safety gate, merge, sanitize
"""

import logging

from taxokey.core.config import MergeConfig, get_config
from taxokey.merge.fields import pick_description, pick_image_url, pick_text
from taxokey.merge.id_mapper import IdMapper
from taxokey.merge.matcher import names_match
from taxokey.merge.report import MergeReport, MergeResult
from taxokey.merge.safety import can_merge
from taxokey.merge.sanitizer import sanitize_project
from taxokey.merge.traits import TraitMergeContext, merge_traits
from taxokey.models import Entity, Feature, Project

logger = logging.getLogger(__name__)

__all__ = [
    "merge_projects_preserving_data",
    "reconcile_projects",
    # Internal helpers exported for testing
    "_find_counterpart",
    "_merge_entity",
    "_merge_feature",
]


# ============================================================================
# Helper Functions
# ============================================================================


def _find_counterpart(
    item_id: str,
    name: str,
    existing_by_id: dict[str, Entity] | dict[str, Feature],
    existing_items: list[Entity] | list[Feature],
) -> Entity | Feature | None:
    """Find the existing object matching a candidate: by id, then by name.

    A name hit resolves to the first object carrying that id, the one trait
    validation treats as canonical.
    """
    found = existing_by_id.get(item_id)
    if found is not None:
        return found
    for item in existing_items:
        if names_match(name, item.name):
            return existing_by_id[item.id]
    return None


def _merge_entity(
    candidate: Entity,
    existing: Entity,
    context: TraitMergeContext,
    config: MergeConfig,
) -> Entity:
    """Combine a candidate entity with its existing counterpart.

    Args:
        candidate: Entity from the candidate project.
        existing: Matched entity from the existing project.
        context: Trait merge context for this merge.
        config: Merge tunables.

    Returns:
        New Entity carrying the existing id.

    """
    return Entity(
        id=existing.id,
        name=pick_text(candidate.name, existing.name) or "",
        scientific_name=pick_text(candidate.scientific_name, existing.scientific_name),
        family=pick_text(candidate.family, existing.family),
        description=pick_description(
            candidate.description, existing.description, config.description_min_length
        ),
        image_url=pick_image_url(
            candidate.image_url, existing.image_url, config.placeholder_domains
        ),
        links=list(candidate.links) if candidate.links else list(existing.links),
        traits=merge_traits(candidate.traits, existing.traits, context),
    )


def _merge_feature(candidate: Feature, existing: Feature, config: MergeConfig) -> Feature:
    """Combine a candidate feature with its existing counterpart.

    The existing states are always kept: entity traits were mapped into the
    existing state-id space, and candidate states would invalidate them.
    """
    return Feature(
        id=existing.id,
        name=pick_text(candidate.name, existing.name) or "",
        image_url=pick_image_url(
            candidate.image_url, existing.image_url, config.placeholder_domains
        ),
        states=list(existing.states),
    )


def _index_by_id(items: list[Entity] | list[Feature]) -> dict:
    index: dict = {}
    for item in items:
        index.setdefault(item.id, item)
    return index


# ============================================================================
# Main Merge Functions
# ============================================================================


def merge_projects_preserving_data(
    candidate: Project,
    existing: Project,
    config: MergeConfig | None = None,
    report: MergeReport | None = None,
) -> Project:
    """Merge a candidate project into an existing one without losing data.

    Assumes the safety gate passed (candidate has entities and features).
    The result may still hold invalid trait references or repeated ids;
    run sanitize_project over it, or use reconcile_projects.

    Args:
        candidate: Incoming project, ids not necessarily consistent.
        existing: Trusted project being edited.
        config: Merge tunables (default: active configuration).
        report: Optional report to record counters in.

    Returns:
        New Project: merged and new objects first, then every unmatched
        existing object in its original order.

    """
    config = config or get_config().merge
    report = report if report is not None else MergeReport()
    mapper = IdMapper(candidate, existing)
    context = TraitMergeContext.for_mapper(mapper, report)

    # ========================================================================
    # Step 1: Entities
    # ========================================================================

    existing_entities_by_id = _index_by_id(existing.entities)
    matched_entity_ids: set[str] = set()
    result_entities: list[Entity] = []

    for candidate_entity in candidate.entities:
        counterpart = _find_counterpart(
            candidate_entity.id,
            candidate_entity.name,
            existing_entities_by_id,
            existing.entities,
        )
        if counterpart is None:
            # New entity: only its trait ids are translated into the merged id space
            translated = merge_traits(candidate_entity.traits, {}, context)
            result_entities.append(candidate_entity.model_copy(update={"traits": translated}))
            report.entities_added += 1
            continue

        matched_entity_ids.add(counterpart.id)
        result_entities.append(_merge_entity(candidate_entity, counterpart, context, config))
        report.entities_updated += 1

    for entity in existing.entities:
        if entity.id not in matched_entity_ids:
            result_entities.append(entity)
            report.entities_preserved += 1

    # ========================================================================
    # Step 2: Features
    # ========================================================================

    existing_features_by_id = _index_by_id(existing.features)
    matched_feature_ids: set[str] = set()
    result_features: list[Feature] = []

    for candidate_feature in candidate.features:
        counterpart = _find_counterpart(
            candidate_feature.id,
            candidate_feature.name,
            existing_features_by_id,
            existing.features,
        )
        if counterpart is None:
            if not candidate_feature.states:
                logger.debug("Skipping new feature %s without states", candidate_feature.id)
                continue
            result_features.append(candidate_feature)
            report.features_added += 1
            continue

        matched_feature_ids.add(counterpart.id)
        result_features.append(_merge_feature(candidate_feature, counterpart, config))
        report.features_updated += 1

    for feature in existing.features:
        if feature.id not in matched_feature_ids:
            result_features.append(feature)
            report.features_preserved += 1

    if report.entities_preserved:
        logger.info(
            "Candidate omitted %d existing entities - preserved unchanged",
            report.entities_preserved,
        )

    return candidate.model_copy(
        update={
            "id": existing.id or candidate.id,
            "name": candidate.name or existing.name,
            "description": candidate.description or existing.description,
            "entities": result_entities,
            "features": result_features,
        }
    )


def reconcile_projects(
    candidate: Project | None,
    existing: Project,
    config: MergeConfig | None = None,
) -> MergeResult:
    """Run the full merge pipeline: safety gate, merge, sanitize.

    Args:
        candidate: Incoming project, or None for an empty response.
        existing: Trusted project being edited.
        config: Merge tunables (default: active configuration).

    Returns:
        MergeResult. On rejection, ``result.project is existing``.

    Examples:
        >>> result = reconcile_projects(candidate, existing)
        >>> print(result.report.summary())
        "Merge: 1 entities updated, 0 added, 4 preserved; ..."

    """
    verdict = can_merge(candidate)
    if not verdict.ok:
        return MergeResult(project=existing, rejection=verdict.reason)
    assert candidate is not None  # can_merge rejects None

    report = MergeReport()
    merged = merge_projects_preserving_data(candidate, existing, config=config, report=report)
    final = sanitize_project(merged, report)

    logger.info("%s", report.summary())
    return MergeResult(project=final, report=report)
