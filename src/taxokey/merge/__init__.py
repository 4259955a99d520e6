"""Reconciliation engine for identification keys.

Merges a candidate project (AI output, import) into an existing project:

    candidate -> can_merge -> merge_projects_preserving_data -> sanitize_project

All functions are pure over their inputs and return new objects.

Usage:
    from taxokey.merge import reconcile_projects

    result = reconcile_projects(candidate, existing)
    if result.merged:
        print(result.report.summary())
"""

from taxokey.merge.id_mapper import IdMapper, map_feature_id, map_state_id
from taxokey.merge.matcher import names_match
from taxokey.merge.normalizer import normalize
from taxokey.merge.reconciler import merge_projects_preserving_data, reconcile_projects
from taxokey.merge.report import MergeReport, MergeResult, RejectionReason
from taxokey.merge.safety import SafetyVerdict, can_merge
from taxokey.merge.sanitizer import dedupe_by_id, sanitize_project
from taxokey.merge.traits import TraitMergeContext, merge_traits

__all__ = [
    "IdMapper",
    "MergeReport",
    "MergeResult",
    "RejectionReason",
    "SafetyVerdict",
    "TraitMergeContext",
    "can_merge",
    "dedupe_by_id",
    "map_feature_id",
    "map_state_id",
    "merge_projects_preserving_data",
    "merge_traits",
    "names_match",
    "normalize",
    "reconcile_projects",
    "sanitize_project",
]
