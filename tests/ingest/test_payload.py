"""Tests for the AI payload adapter.

Tests cover:
- JSON extraction from chatty responses
- Trait map decoding (object, JSON string, malformed)
- Candidate construction from full, generation and refine formats
- Fallback to existing traits for malformed trait maps
"""

import json
import logging

import pytest

from taxokey.core.exceptions import PayloadError, TraitPayloadError
from taxokey.ingest.payload import (
    candidate_from_payload,
    entity_items,
    extract_json_payload,
    generate_id,
    parse_trait_map,
    raw_traits,
)
from taxokey.models import Project

# ============================================================================
# extract_json_payload
# ============================================================================


class TestExtractJsonPayload:
    """Tests for extract_json_payload()."""

    def test_plain_json(self) -> None:
        assert extract_json_payload('{"entities": []}') == {"entities": []}

    def test_fenced_block(self) -> None:
        text = 'Here is the refined key:\n```json\n{"projectName": "Trees"}\n```\nEnjoy!'
        assert extract_json_payload(text) == {"projectName": "Trees"}

    def test_unlabelled_fence(self) -> None:
        assert extract_json_payload('```\n{"a": 1}\n```') == {"a": 1}

    def test_object_in_prose(self) -> None:
        text = 'Sure! {"entities": [{"id": "e1"}]} Let me know if you need more.'
        assert extract_json_payload(text) == {"entities": [{"id": "e1"}]}

    def test_json_array(self) -> None:
        assert extract_json_payload("[1, 2]") == [1, 2]

    @pytest.mark.parametrize("text", ["", "   ", "no json here"])
    def test_nothing_to_parse(self, text: str) -> None:
        with pytest.raises(PayloadError):
            extract_json_payload(text)

    def test_truncated_json(self) -> None:
        with pytest.raises(PayloadError, match="malformed JSON"):
            extract_json_payload('Result: {"entities": [{"id": "e1"} }')


# ============================================================================
# parse_trait_map
# ============================================================================


class TestParseTraitMap:
    """Tests for parse_trait_map()."""

    def test_json_string(self) -> None:
        assert parse_trait_map('{"f1": ["s1"], "f2": "s4"}') == {"f1": ["s1"], "f2": ["s4"]}

    def test_object(self) -> None:
        assert parse_trait_map({"f1": ["s1", None], "f2": {"x": 1}}) == {"f1": ["s1"]}

    def test_integer_index_kept(self) -> None:
        assert parse_trait_map('{"f1": 0, "f2": [1]}') == {"f1": ["0"], "f2": ["1"]}

    @pytest.mark.parametrize("raw", [None, "", "  "])
    def test_empty(self, raw) -> None:
        assert parse_trait_map(raw) == {}

    def test_invalid_json(self) -> None:
        with pytest.raises(TraitPayloadError, match="not valid JSON"):
            parse_trait_map('{"f1": ["s1"')

    @pytest.mark.parametrize("raw", ['["f1"]', ["f1"], 42])
    def test_not_an_object(self, raw) -> None:
        with pytest.raises(TraitPayloadError, match="must be an object"):
            parse_trait_map(raw)

    def test_is_payload_error(self) -> None:
        assert issubclass(TraitPayloadError, PayloadError)


class TestPayloadKeys:
    """Tests for raw_traits() and entity_items()."""

    def test_trait_key_preference(self) -> None:
        item = {"traits": {"f1": ["a"]}, "traitsMap": '{"f1": ["b"]}'}
        assert raw_traits(item) == '{"f1": ["b"]}'

    def test_empty_trait_value_skipped(self) -> None:
        assert raw_traits({"traitsMap": "", "filledTraits": {"f1": ["a"]}}) == {"f1": ["a"]}

    def test_no_traits(self) -> None:
        assert raw_traits({"id": "e1"}) is None

    def test_entity_list_keys(self) -> None:
        assert entity_items({"filledEntities": [{"id": "e1"}]}) == [{"id": "e1"}]
        assert entity_items({"entities": [], "filledEntities": [{"id": "e2"}]}) == [{"id": "e2"}]
        assert entity_items({"entities": "nope"}) == []


class TestGenerateId:
    """Tests for generate_id()."""

    def test_short_and_unique(self) -> None:
        ids = {generate_id() for _ in range(50)}
        assert len(ids) == 50
        assert all(len(i) == 9 for i in ids)


# ============================================================================
# candidate_from_payload
# ============================================================================


class TestCandidateFromPayload:
    """Tests for candidate_from_payload()."""

    def test_full_project_format(self, existing_key: Project) -> None:
        data = existing_key.to_wire()
        assert candidate_from_payload(data) == existing_key

    def test_generation_format(self) -> None:
        data = {
            "projectName": "Garden Trees",
            "projectDescription": "Generated key",
            "features": [
                {"name": "Leaf Shape", "states": ["Oval", "Lanceolate"]},
                {"name": "Flower Color", "states": ["White"]},
            ],
            "entities": [
                {
                    "name": "Inga edulis",
                    "scientificName": "Inga edulis",
                    "traits": [
                        "Leaf Shape: Oval",
                        {"featureName": "leaf shape", "stateValue": "LANCEOLATE"},
                        "Flower Color: Purple",
                        "Unknown: X",
                        "no separator",
                        42,
                    ],
                    "links": [{"url": "https://example.org"}, {"label": "Flora"}, "bad"],
                }
            ],
        }

        project = candidate_from_payload(data)

        assert project.name == "Garden Trees"
        assert project.description == "Generated key"
        leaf, color = project.features
        assert [s.label for s in leaf.states] == ["Oval", "Lanceolate"]
        entity = project.entities[0]
        assert entity.scientific_name == "Inga edulis"
        assert entity.traits == {leaf.id: leaf.state_ids}
        assert [(link.label, link.url) for link in entity.links] == [
            ("Link", "https://example.org"),
            ("Flora", "#"),
        ]
        assert color.id not in entity.traits

    def test_refine_format_trait_string(self) -> None:
        data = {
            "features": [{"id": "f1", "name": "Leaf", "states": [{"id": "s1", "label": "Oval"}]}],
            "entities": [{"id": "e1", "name": "Inga", "traitsMap": '{"f1": ["s1"]}'}],
        }
        project = candidate_from_payload(data)
        assert project.entities[0].traits == {"f1": ["s1"]}

    def test_malformed_traits_fall_back_to_existing(self, existing_key: Project, caplog) -> None:
        data = {
            "features": [{"id": "f1", "name": "Leaf Shape"}],
            "entities": [
                {"id": "e2", "name": "Eugenia uniflora", "traitsMap": "{broken json"},
                {"name": "Inga edulis L.", "traitsMap": "[]"},
                {"id": "e9", "name": "Myrcia splendens", "traitsMap": "{nope"},
            ],
        }

        with caplog.at_level(logging.WARNING):
            project = candidate_from_payload(data, existing_key)

        assert project.entities[0].traits == {"f1": ["s1b"], "f2": ["s2a"]}
        assert project.entities[1].traits == {"f1": ["s1a"]}
        assert project.entities[2].traits == {}
        assert "Malformed traits" in caplog.text

    def test_malformed_traits_without_existing(self) -> None:
        data = {"features": [], "entities": [{"id": "e1", "traitsMap": "{oops"}]}
        assert candidate_from_payload(data).entities[0].traits == {}

    def test_missing_ids_generated(self) -> None:
        data = {
            "features": [{"name": "Leaf", "states": [{"label": "Oval"}, {"name": "Round"}]}],
            "entities": [{"name": "A"}, {"name": "B"}],
        }

        project = candidate_from_payload(data)

        assert project.id
        assert project.features[0].id
        assert [s.label for s in project.features[0].states] == ["Oval", "Round"]
        assert len({s.id for s in project.features[0].states}) == 2
        assert project.entities[0].id != project.entities[1].id

    def test_gap_fill_keys(self) -> None:
        data = {
            "filledEntities": [{"entityId": "e3", "filledTraits": {"f1": ["s1a"]}}],
        }
        project = candidate_from_payload(data)
        assert project.entities[0].id == "e3"
        assert project.entities[0].traits == {"f1": ["s1a"]}

    def test_non_dict_items_skipped(self) -> None:
        data = {"features": ["Leaf", {"name": "Bark"}], "entities": [None, {"name": "A"}]}

        project = candidate_from_payload(data)

        assert [f.name for f in project.features] == ["Bark"]
        assert [e.name for e in project.entities] == ["A"]

    def test_empty_payload_gives_empty_candidate(self) -> None:
        project = candidate_from_payload({})
        assert project.entities == []
        assert project.features == []

    @pytest.mark.parametrize("data", [None, [], "text", 3])
    def test_not_an_object(self, data) -> None:
        with pytest.raises(PayloadError, match="must be a JSON object"):
            candidate_from_payload(data)

    def test_roundtrip_through_json_text(self, existing_key: Project) -> None:
        text = "```json\n" + json.dumps(existing_key.to_wire()) + "\n```"
        assert candidate_from_payload(extract_json_payload(text)) == existing_key
