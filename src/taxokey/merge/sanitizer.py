"""Final consistency pass over a merged project.

Restores the trait invariant (every trait references a feature of the
project and only states of that feature) and removes repeated entity and
feature ids. Runs once, after the reconciler, over the final feature set,
so it holds regardless of how inconsistent intermediate merge state was.

Idempotent: sanitizing a sanitized project returns an equal project.

Public API:
    build_valid_state_index: feature id -> valid state ids
    sanitize_traits: Filter one trait map against an index
    dedupe_by_id: Keep first occurrence of each id
    sanitize_project: Full pass over a project
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import TypeVar

from taxokey.merge.report import MergeReport
from taxokey.models import Entity, Feature, Project, TraitMap

logger = logging.getLogger(__name__)

__all__ = [
    "ValidStateIndex",
    "build_valid_state_index",
    "dedupe_by_id",
    "sanitize_project",
    "sanitize_traits",
]

ValidStateIndex = dict[str, frozenset[str]]

_T = TypeVar("_T", Entity, Feature)


def build_valid_state_index(features: Iterable[Feature]) -> ValidStateIndex:
    """Map each feature id to its set of state ids.

    When a feature id repeats, the first occurrence defines the valid states,
    matching the deduplicator which keeps that same occurrence.
    """
    index: ValidStateIndex = {}
    for feature in features:
        if feature.id not in index:
            index[feature.id] = frozenset(feature.state_ids)
    return index


def sanitize_traits(
    traits: Mapping[str, Sequence[str]],
    index: ValidStateIndex,
) -> tuple[TraitMap, int]:
    """Filter a trait map down to valid references.

    Args:
        traits: Feature id -> state ids, possibly with stale references.
        index: Valid state ids per feature.

    Returns:
        Tuple of (clean trait map, number of removed trait entries and
        state ids).

    Examples:
        >>> sanitize_traits({"f1": ["s1", "bogus"], "gone": ["s9"]}, {"f1": frozenset({"s1"})})
        ({'f1': ['s1']}, 2)

    """
    clean: TraitMap = {}
    removed = 0
    for feature_id, state_ids in traits.items():
        valid = index.get(feature_id)
        if valid is None:
            removed += 1
            continue
        kept = [s for s in state_ids if s in valid]
        removed += len(state_ids) - len(kept)
        if kept:
            clean[feature_id] = kept
        elif not state_ids:
            # Empty entry carries no data
            removed += 1
    return clean, removed


def dedupe_by_id(items: Sequence[_T], kind: str = "item") -> tuple[list[_T], int]:
    """Keep the first occurrence of each id, preserving order.

    Args:
        items: Entities or features.
        kind: Label used in the log message.

    Returns:
        Tuple of (deduplicated list, number dropped).

    """
    seen: set[str] = set()
    unique: list[_T] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)

    dropped = len(items) - len(unique)
    if dropped:
        logger.warning("Removed %d duplicate %s id(s)", dropped, kind)
    return unique, dropped


def sanitize_project(project: Project, report: MergeReport | None = None) -> Project:
    """Strip invalid trait references and duplicate ids.

    Args:
        project: Project after a raw merge step.
        report: Optional report to record removals in.

    Returns:
        New Project satisfying the trait invariant with unique ids.

    """
    index = build_valid_state_index(project.features)

    features, dup_features = dedupe_by_id(project.features, "feature")
    entities, dup_entities = dedupe_by_id(project.entities, "entity")

    removed_total = 0
    clean_entities: list[Entity] = []
    for entity in entities:
        clean, removed = sanitize_traits(entity.traits, index)
        if removed:
            logger.debug("Removed %d invalid trait reference(s) from entity %r", removed, entity.id)
            removed_total += removed
            entity = entity.model_copy(update={"traits": clean})
        clean_entities.append(entity)

    if report is not None:
        report.invalid_traits_removed += removed_total
        report.duplicate_entities_removed += dup_entities
        report.duplicate_features_removed += dup_features

    return project.model_copy(update={"features": features, "entities": clean_entities})
