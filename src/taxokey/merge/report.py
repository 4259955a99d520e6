"""Merge statistics and results.

Statistics are returned as values from each merge call instead of being
accumulated in module state, so concurrent or repeated merges never share
counters.

Public API:
    RejectionReason: Why the safety gate refused a candidate
    MergeReport: Counters collected during one merge
    MergeResult: Final project plus its report
"""

from dataclasses import dataclass, field
from enum import Enum

from taxokey.models import Project

__all__ = [
    "MergeReport",
    "MergeResult",
    "RejectionReason",
]


class RejectionReason(Enum):
    """Catastrophic candidate shapes refused before merging.

    EMPTY_AI_RESPONSE:
        Candidate is missing or has no entities.

    NO_FEATURES:
        Candidate has entities but no features; treated as a corrupt response.

    Examples:
        >>> RejectionReason.EMPTY_AI_RESPONSE.value
        'empty-ai-response'

    """

    EMPTY_AI_RESPONSE = "empty-ai-response"
    NO_FEATURES = "no-features"


@dataclass
class MergeReport:
    """Counters collected while merging one candidate into a project.

    Attributes:
        entities_updated: Candidate entities merged into an existing entity.
        entities_added: Candidate entities with no existing counterpart.
        entities_preserved: Existing entities absent from the candidate,
            carried over unchanged.
        features_updated: Candidate features merged into an existing feature.
        features_added: Brand-new candidate features.
        features_preserved: Existing features absent from the candidate.
        traits_filled: Trait entries written into a gap.
        traits_kept: Trait entries skipped because existing data was present.
        traits_dropped: Trait entries that could not be mapped.
        invalid_traits_removed: Trait entries or state ids removed by the
            sanitizer.
        duplicate_entities_removed: Entities dropped for a repeated id.
        duplicate_features_removed: Features dropped for a repeated id.

    Examples:
        >>> report = MergeReport(entities_updated=3, entities_preserved=2)
        >>> report.summary()
        'Merge: 3 entities updated, 0 added, 2 preserved; ...'

    """

    entities_updated: int = 0
    entities_added: int = 0
    entities_preserved: int = 0
    features_updated: int = 0
    features_added: int = 0
    features_preserved: int = 0
    traits_filled: int = 0
    traits_kept: int = 0
    traits_dropped: int = 0
    invalid_traits_removed: int = 0
    duplicate_entities_removed: int = 0
    duplicate_features_removed: int = 0

    def summary(self) -> str:
        """Return human-readable summary of the merge."""
        return (
            f"Merge: {self.entities_updated} entities updated, "
            f"{self.entities_added} added, {self.entities_preserved} preserved; "
            f"{self.features_updated} features updated, {self.features_added} added, "
            f"{self.features_preserved} preserved; "
            f"{self.traits_filled} traits filled, {self.traits_dropped} dropped"
        )


@dataclass
class MergeResult:
    """Outcome of a merge pipeline.

    When the safety gate rejects the candidate, ``project`` is the existing
    project object itself and ``rejection`` names the reason.

    Attributes:
        project: Final project.
        report: Counters collected during the merge.
        rejection: Safety gate reason, None when the merge ran.

    """

    project: Project
    report: MergeReport = field(default_factory=MergeReport)
    rejection: RejectionReason | None = None

    @property
    def merged(self) -> bool:
        return self.rejection is None
