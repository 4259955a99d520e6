"""Pre-merge safety gate.

Catches only the catastrophic candidate shapes: nothing at all to merge.
A partial candidate (fewer entities than the existing project) is allowed
through, since the reconciler appends every unmatched existing entity and
partial responses are therefore safe to merge.
"""

import logging
from dataclasses import dataclass

from taxokey.merge.report import RejectionReason
from taxokey.models import Project

logger = logging.getLogger(__name__)

__all__ = ["SafetyVerdict", "can_merge"]


@dataclass(frozen=True)
class SafetyVerdict:
    """Result of the safety gate.

    Attributes:
        ok: True when the candidate may be merged.
        reason: Rejection reason when ``ok`` is False.

    """

    ok: bool
    reason: RejectionReason | None = None

    def __bool__(self) -> bool:
        return self.ok


def can_merge(candidate: Project | None) -> SafetyVerdict:
    """Decide whether a candidate is structurally fit to merge.

    Args:
        candidate: Candidate project, possibly None for an empty response.

    Returns:
        SafetyVerdict; when rejected, the caller must keep the existing
        project untouched.

    Examples:
        >>> can_merge(Project(id="p", entities=[], features=[])).reason
        <RejectionReason.EMPTY_AI_RESPONSE: 'empty-ai-response'>

    """
    if candidate is None or not candidate.entities:
        logger.warning("Candidate has no entities - keeping existing project")
        return SafetyVerdict(ok=False, reason=RejectionReason.EMPTY_AI_RESPONSE)

    if not candidate.features:
        logger.warning(
            "Candidate has %d entities but no features - treating as corrupt response",
            len(candidate.entities),
        )
        return SafetyVerdict(ok=False, reason=RejectionReason.NO_FEATURES)

    return SafetyVerdict(ok=True)
