"""Identifier translation between a candidate schema and an existing one.

A candidate project (AI output, file import) carries its own independently
generated feature and state ids. IdMapper resolves each candidate id to the
corresponding id in the existing project, or None when no correspondence can
be established. Resolution never raises.

Feature resolution, in priority order:
1. Candidate id already exists among existing features
2. Candidate feature found by id, its name matched against existing names
3. Name taken from the precomputed id -> name index, matched the same way

State resolution, in priority order (each a strictly weaker signal):
1. Candidate id is one of the existing feature's state ids
2. Candidate label, exact normalized match against existing labels
3. Candidate label, partial (substring) normalized match
4. Position of the candidate state within its feature
5. Candidate id parsed as a numeric index

Results are memoized so each id is resolved once per merge.

Public API:
    IdMapper: Per-merge lookup table builder
    map_feature_id: One-shot feature resolution
    map_state_id: One-shot state resolution
"""

import logging
from collections.abc import Mapping

from taxokey.merge.matcher import names_match
from taxokey.merge.normalizer import normalize
from taxokey.models import Feature, FeatureState, Project

logger = logging.getLogger(__name__)

__all__ = [
    "IdMapper",
    "label_from_state_id",
    "map_feature_id",
    "map_state_id",
]


def label_from_state_id(state_id: str) -> str | None:
    """Derive a label from a generated state id.

    Generators often build state ids as ``<label-slug>_<suffix>``. Strips the
    trailing suffix token and turns dashes back into spaces.

    Returns:
        Derived label, or None if the id has no ``_`` separator.

    Examples:
        >>> label_from_state_id("ovate-acuminate_s3")
        'ovate acuminate'
        >>> label_from_state_id("s3") is None
        True

    """
    if "_" not in state_id:
        return None
    stem = state_id.rsplit("_", 1)[0]
    label = stem.replace("-", " ").strip()
    return label or None


class IdMapper:
    """Resolve candidate feature/state ids into an existing project's ids.

    Built once per merge. Both projects are treated as read-only snapshots.

    Args:
        candidate: Incoming project with its own id space.
        existing: Trusted project whose ids are the target space.
        feature_name_hints: Extra ``candidate id -> name`` entries for ids
            that are referenced (e.g. as trait keys) without a feature
            object in the candidate.

    Example:
        >>> mapper = IdMapper(candidate, existing)
        >>> mapper.map_feature_id("feat_leaf")
        'f1'
        >>> mapper.map_state_id("oval_x", "f1", "feat_leaf")
        's1a'

    """

    def __init__(
        self,
        candidate: Project,
        existing: Project,
        feature_name_hints: Mapping[str, str] | None = None,
    ) -> None:
        self.candidate = candidate
        self.existing = existing

        self._existing_features: dict[str, Feature] = {}
        for feature in existing.features:
            self._existing_features.setdefault(feature.id, feature)

        self._candidate_features: dict[str, Feature] = {}
        for feature in candidate.features:
            self._candidate_features.setdefault(feature.id, feature)

        # Fallback index for id-only references
        self._candidate_names: dict[str, str] = dict(feature_name_hints or {})
        for feature_id, feature in self._candidate_features.items():
            self._candidate_names.setdefault(feature_id, feature.name)

        self._feature_cache: dict[str, str | None] = {}
        self._state_cache: dict[tuple[str, str, str], str | None] = {}

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def existing_feature(self, feature_id: str) -> Feature | None:
        return self._existing_features.get(feature_id)

    def candidate_feature(self, feature_id: str) -> Feature | None:
        return self._candidate_features.get(feature_id)

    def is_new_feature(self, candidate_feature_id: str) -> bool:
        """Candidate declares this feature and the existing project lacks it."""
        return (
            candidate_feature_id in self._candidate_features
            and candidate_feature_id not in self._existing_features
        )

    def _match_existing_feature_by_name(self, name: str) -> str | None:
        for feature in self.existing.features:
            if names_match(name, feature.name):
                return feature.id
        return None

    # ------------------------------------------------------------------
    # Feature resolution
    # ------------------------------------------------------------------

    def map_feature_id(self, candidate_feature_id: str) -> str | None:
        """Resolve a candidate feature id to an existing feature id.

        Args:
            candidate_feature_id: Feature id in the candidate's id space.

        Returns:
            Existing feature id, or None if no correspondence was found.

        """
        if candidate_feature_id in self._feature_cache:
            return self._feature_cache[candidate_feature_id]

        resolved: str | None = None
        if candidate_feature_id in self._existing_features:
            resolved = candidate_feature_id
        else:
            candidate_feature = self._candidate_features.get(candidate_feature_id)
            if candidate_feature is not None:
                resolved = self._match_existing_feature_by_name(candidate_feature.name)
            else:
                hinted_name = self._candidate_names.get(candidate_feature_id)
                if hinted_name:
                    resolved = self._match_existing_feature_by_name(hinted_name)

        if resolved is None:
            logger.debug("Feature %r has no counterpart in existing project", candidate_feature_id)
        self._feature_cache[candidate_feature_id] = resolved
        return resolved

    # ------------------------------------------------------------------
    # State resolution
    # ------------------------------------------------------------------

    def _candidate_state_label(self, state_id: str, candidate_feature_id: str) -> str | None:
        feature = self._candidate_features.get(candidate_feature_id)
        if feature is not None:
            for state in feature.states:
                if state.id == state_id:
                    return state.label
        for other in self.candidate.features:
            for state in other.states:
                if state.id == state_id:
                    return state.label
        return label_from_state_id(state_id)

    @staticmethod
    def _match_label(label: str, states: list[FeatureState]) -> str | None:
        target = normalize(label)
        if not target:
            return None
        for state in states:
            if normalize(state.label) == target:
                return state.id
        for state in states:
            existing_label = normalize(state.label)
            if existing_label and (target in existing_label or existing_label in target):
                return state.id
        return None

    def map_state_id(
        self,
        candidate_state_id: str,
        existing_feature_id: str,
        candidate_feature_id: str,
    ) -> str | None:
        """Resolve a candidate state id within corresponding features.

        Args:
            candidate_state_id: State id in the candidate's id space.
            existing_feature_id: Feature the state should land in.
            candidate_feature_id: Feature the state came from.

        Returns:
            Existing state id, or None if no correspondence was found.

        """
        key = (candidate_state_id, existing_feature_id, candidate_feature_id)
        if key in self._state_cache:
            return self._state_cache[key]

        resolved = self._resolve_state(
            candidate_state_id, existing_feature_id, candidate_feature_id
        )
        if resolved is None:
            logger.debug(
                "State %r of feature %r has no counterpart in %r",
                candidate_state_id,
                candidate_feature_id,
                existing_feature_id,
            )
        self._state_cache[key] = resolved
        return resolved

    def _resolve_state(
        self,
        candidate_state_id: str,
        existing_feature_id: str,
        candidate_feature_id: str,
    ) -> str | None:
        existing_feature = self._existing_features.get(existing_feature_id)
        if existing_feature is None or not existing_feature.states:
            return None
        existing_states = existing_feature.states

        # 1. Direct id hit
        if candidate_state_id in existing_feature.state_ids:
            return candidate_state_id

        # 2-3. Label exact, then partial
        label = self._candidate_state_label(candidate_state_id, candidate_feature_id)
        if label:
            matched = self._match_label(label, existing_states)
            if matched is not None:
                return matched

        # 4. Position within the candidate feature
        candidate_feature = self._candidate_features.get(candidate_feature_id)
        if candidate_feature is not None:
            for index, state in enumerate(candidate_feature.states):
                if state.id == candidate_state_id:
                    if index < len(existing_states):
                        return existing_states[index].id
                    break

        # 5. Numeric id used as an index
        try:
            index = int(candidate_state_id)
        except ValueError:
            return None
        if 0 <= index < len(existing_states):
            return existing_states[index].id
        return None


def map_feature_id(
    candidate_feature_id: str,
    candidate: Project,
    existing: Project,
) -> str | None:
    """Resolve one candidate feature id. See IdMapper.map_feature_id."""
    return IdMapper(candidate, existing).map_feature_id(candidate_feature_id)


def map_state_id(
    candidate_state_id: str,
    existing_feature_id: str,
    candidate_feature_id: str,
    candidate: Project,
    existing: Project,
) -> str | None:
    """Resolve one candidate state id. See IdMapper.map_state_id."""
    return IdMapper(candidate, existing).map_state_id(
        candidate_state_id, existing_feature_id, candidate_feature_id
    )
