"""Gap-filling merge of entity trait maps.

Candidate traits are translated into the existing project's id space and
written only where the existing entity has no data for that feature.
Existing user data always wins over incoming fill data.

Per candidate entry:
- Feature resolves: states are mapped; if any map and the existing entity
  has nothing recorded for the feature, they fill the gap
- Feature is brand new in the candidate: its candidate-scoped state ids pass
  through, since the feature itself joins the project with those ids
- Otherwise: dropped as an orphaned reference

The existing trait map is cleaned first, so stale references left by an
earlier failed merge never compound across merge cycles.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from taxokey.merge.id_mapper import IdMapper
from taxokey.merge.report import MergeReport
from taxokey.merge.sanitizer import ValidStateIndex, build_valid_state_index, sanitize_traits
from taxokey.models import TraitMap

logger = logging.getLogger(__name__)

__all__ = ["TraitMergeContext", "merge_traits"]


@dataclass
class TraitMergeContext:
    """Shared state for merging many entities' traits in one merge.

    Attributes:
        mapper: Id translation tables for this merge.
        existing_index: Valid state ids per existing feature.
        report: Counters updated as entries are filled, kept or dropped.

    """

    mapper: IdMapper
    existing_index: ValidStateIndex
    report: MergeReport = field(default_factory=MergeReport)

    @classmethod
    def for_mapper(cls, mapper: IdMapper, report: MergeReport | None = None) -> "TraitMergeContext":
        return cls(
            mapper=mapper,
            existing_index=build_valid_state_index(mapper.existing.features),
            report=report if report is not None else MergeReport(),
        )


def _map_states(
    context: TraitMergeContext,
    candidate_state_ids: Sequence[str],
    existing_feature_id: str,
    candidate_feature_id: str,
) -> list[str]:
    mapped: list[str] = []
    for state_id in candidate_state_ids:
        resolved = context.mapper.map_state_id(state_id, existing_feature_id, candidate_feature_id)
        if resolved is not None and resolved not in mapped:
            mapped.append(resolved)
    return mapped


def merge_traits(
    candidate_traits: Mapping[str, Sequence[str]],
    existing_traits: Mapping[str, Sequence[str]],
    context: TraitMergeContext,
) -> TraitMap:
    """Merge a candidate entity's traits into an existing entity's traits.

    Args:
        candidate_traits: Trait map in the candidate's id space.
        existing_traits: Trait map of the existing entity (may hold stale
            references, which are discarded).
        context: Per-merge mapper, index and report.

    Returns:
        New trait map: every valid existing entry plus the filled gaps.

    Examples:
        >>> merge_traits({"f1": ["s2"], "f2": ["s4"]}, {"f1": ["s1"]}, context)
        {'f1': ['s1'], 'f2': ['s4']}

    """
    merged, _ = sanitize_traits(existing_traits, context.existing_index)
    report = context.report

    for candidate_feature_id, candidate_state_ids in candidate_traits.items():
        existing_feature_id = context.mapper.map_feature_id(candidate_feature_id)

        if existing_feature_id is not None:
            mapped = _map_states(
                context, candidate_state_ids, existing_feature_id, candidate_feature_id
            )
            if not mapped:
                report.traits_dropped += 1
                continue
            if merged.get(existing_feature_id):
                report.traits_kept += 1
                continue
            merged[existing_feature_id] = mapped
            report.traits_filled += 1

        elif context.mapper.is_new_feature(candidate_feature_id):
            if merged.get(candidate_feature_id) or not candidate_state_ids:
                continue
            merged[candidate_feature_id] = list(candidate_state_ids)
            report.traits_filled += 1

        else:
            logger.debug("Dropping orphaned trait reference %r", candidate_feature_id)
            report.traits_dropped += 1

    return merged
