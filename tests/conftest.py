"""Pytest configuration and fixtures for taxokey tests."""

import pytest

from taxokey.models import Entity, EntityLink, Feature, FeatureState, Project


@pytest.fixture(autouse=True)
def reset_and_load_default_config(request):
    """Reset config singleton and load default config for tests.

    Tests that need NO config (e.g., testing lazy defaults) can use:
        @pytest.mark.no_auto_config
    """
    from taxokey.core.config import _reset_config, load_config

    _reset_config()
    if not request.node.get_closest_marker("no_auto_config"):
        load_config({})

    yield

    _reset_config()


# ============================================================================
# Shared keys
# ============================================================================


def _feature(feature_id: str, name: str, states: list[tuple[str, str]]) -> Feature:
    return Feature(
        id=feature_id,
        name=name,
        states=[FeatureState(id=state_id, label=label) for state_id, label in states],
    )


@pytest.fixture
def existing_key() -> Project:
    """Hand-edited key with three features and three entities.

    e1 has a real image, e2 a placeholder image, e3 no traits at all.
    """
    return Project(
        id="proj_test",
        name="Amazon Trees",
        description="Field key for riverside trees",
        features=[
            _feature(
                "f1", "Leaf Shape", [("s1a", "Oval"), ("s1b", "Lanceolate"), ("s1c", "Round")]
            ),
            _feature("f2", "Flower Color", [("s2a", "White"), ("s2b", "Yellow"), ("s2c", "Red")]),
            _feature("f3", "Bark Texture", [("s3a", "Smooth"), ("s3b", "Rough")]),
        ],
        entities=[
            Entity(
                id="e1",
                name="Inga edulis",
                scientific_name="Inga edulis",
                family="Fabaceae",
                description="Ice-cream bean tree of river banks",
                image_url="https://example.org/inga.jpg",
                links=[
                    EntityLink(
                        id="l1",
                        label="Wikipedia",
                        url="https://en.wikipedia.org/wiki/Inga_edulis",
                    )
                ],
                traits={"f1": ["s1a"]},
            ),
            Entity(
                id="e2",
                name="Eugenia uniflora",
                family="Myrtaceae",
                image_url="https://picsum.photos/seed/eugenia/400/300",
                traits={"f1": ["s1b"], "f2": ["s2a"]},
            ),
            Entity(id="e3", name="Psidium guajava"),
        ],
    )


@pytest.fixture
def ai_candidate() -> Project:
    """AI response for ``existing_key`` using its own id space.

    Matches e1 and e2 by name, adds one species and one feature, and omits
    e3 and the bark feature.
    """
    return Project(
        id="ai_1",
        name="Amazon Trees v2",
        description="Refined key",
        features=[
            _feature(
                "cf1",
                "leaf shape",
                [("cs1", "Oval shaped"), ("cs2", "LANCEOLATE"), ("cs3", "Cordate")],
            ),
            _feature("cf2", "Flower Color", [("cs4", "Yellow"), ("cs5", "Red")]),
            _feature("cf9", "Fruit Type", [("cs9", "Berry"), ("cs10", "Pod")]),
        ],
        entities=[
            Entity(
                id="x1",
                name="Inga edulis Mart.",
                description="Short",
                image_url="https://picsum.photos/seed/inga/400/300",
                traits={"cf1": ["cs2"], "cf2": ["cs5"], "cf9": ["cs10"]},
            ),
            Entity(
                id="x2",
                name="Eugenia uniflora L.",
                family="Myrtaceae",
                description="Shrub with ribbed red fruits, common in gardens",
                image_url="https://example.org/pitanga.jpg",
                traits={"cf2": ["cs4"]},
            ),
            Entity(
                id="x3",
                name="Myrcia splendens",
                traits={"cf1": ["cs1"], "cf9": ["cs9"], "ghost": ["g1"]},
            ),
        ],
    )


_SPECIES = (
    "Inga edulis",
    "Eugenia uniflora",
    "Psidium guajava",
    "Myrcia splendens",
    "Ocotea puberula",
    "Cecropia pachystachya",
    "Schinus terebinthifolia",
    "Handroanthus albus",
)
_FEATURES = ("Leaf Shape", "Flower Color", "Bark Texture", "Fruit Type", "Stem Habit")
_STATE_LABELS = ("Smooth", "Hairy", "Glossy")


def build_project(
    entity_count: int = 5, feature_count: int = 3, project_id: str = "proj"
) -> Project:
    """Build a consistent key where every entity has one state per feature."""
    features = [
        Feature(
            id=f"feature_{i}",
            name=_FEATURES[i],
            states=[
                FeatureState(id=f"feature_{i}_state_{j}", label=label)
                for j, label in enumerate(_STATE_LABELS)
            ],
        )
        for i in range(feature_count)
    ]
    entities = [
        Entity(
            id=f"entity_{i}",
            name=_SPECIES[i],
            description=f"Description of {_SPECIES[i]}",
            image_url=f"https://example.org/entity_{i}.jpg",
            traits={f"feature_{j}": [f"feature_{j}_state_{i % 3}"] for j in range(feature_count)},
        )
        for i in range(entity_count)
    ]
    return Project(
        id=project_id,
        name="Test Project",
        description="Project for merge tests",
        features=features,
        entities=entities,
    )


@pytest.fixture
def make_project():
    """Factory fixture for consistent keys of a given size."""
    return build_project


def assert_traits_valid(project: Project) -> None:
    """Every trait references a feature of the project and only its states."""
    valid = {f.id: set(f.state_ids) for f in project.features}
    for entity in project.entities:
        for feature_id, state_ids in entity.traits.items():
            assert feature_id in valid, f"{entity.id}: unknown feature {feature_id!r}"
            assert state_ids, f"{entity.id}: empty entry for {feature_id!r}"
            for state_id in state_ids:
                assert state_id in valid[feature_id], f"{entity.id}: bad state {state_id!r}"


@pytest.fixture
def traits_valid():
    """Expose the trait invariant check to test modules."""
    return assert_traits_valid
