"""Adapters from raw AI/import payloads to the merge engine."""

from taxokey.ingest.fill_gaps import fill_gaps
from taxokey.ingest.payload import (
    candidate_from_payload,
    extract_json_payload,
    generate_id,
    parse_trait_map,
)

__all__ = [
    "candidate_from_payload",
    "extract_json_payload",
    "fill_gaps",
    "generate_id",
    "parse_trait_map",
]
