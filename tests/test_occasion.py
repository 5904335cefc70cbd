"""Tests for occasion archetypes and keyword classification."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from fitcomposer.nlp.occasion import OccasionArchetype, OccasionClassifier, load_archetypes


@pytest.fixture(scope="module")
def classifier() -> OccasionClassifier:
    return OccasionClassifier()


def test_default_archetypes_are_loaded_in_file_order() -> None:
    archetypes = load_archetypes()

    assert [archetype.name for archetype in archetypes] == [
        "casual-date",
        "work-meeting",
        "formal-event",
        "weekend-hangout",
        "athletic",
        "travel",
        "party",
        "custom",
    ]
    work = archetypes[1]
    assert "Formal shoes" in work.must_haves
    assert "Sneakers" in work.avoidances


@pytest.mark.parametrize(
    ("intent", "expected"),
    [
        ("reunión de trabajo importante", "work-meeting"),
        ("Primera CITA en un café", "casual-date"),
        ("boda de mi prima", "formal-event"),
        ("workout at the gym", "athletic"),
        ("trip to Lisbon next week", "travel"),
        ("club night out", "party"),
        ("something to wear", "custom"),
    ],
)
def test_classify_matches_keywords_case_insensitively(
    classifier: OccasionClassifier,
    intent: str,
    expected: str,
) -> None:
    assert classifier.classify(intent).name == expected


def test_first_matching_archetype_wins(classifier: OccasionClassifier) -> None:
    # "fiesta" is listed by both formal-event and party.
    assert classifier.classify("fiesta de cumpleaños").name == "formal-event"


def test_get_rejects_unknown_archetype(classifier: OccasionClassifier) -> None:
    assert classifier.get("travel").name == "travel"
    with pytest.raises(ValueError, match="beach"):
        classifier.get("beach")


def test_custom_fallback_is_added_when_missing() -> None:
    classifier = OccasionClassifier([OccasionArchetype(name="gala", keywords=("gala",))])

    assert classifier.names == ("gala", "custom")
    assert classifier.classify("picnic").name == "custom"


def test_load_archetypes_from_custom_file(tmp_path: Path) -> None:
    path = tmp_path / "occasions.json"
    path.write_text(
        json.dumps({"beach": {"keywords": ["Playa"], "must_haves": ["Sandals"]}}),
        encoding="utf-8",
    )

    (beach,) = load_archetypes(path)

    assert beach.keywords == ("playa",)
    assert beach.must_haves == ("Sandals",)
    assert beach.avoidances == ()


def test_load_archetypes_rejects_non_list_fields(tmp_path: Path) -> None:
    path = tmp_path / "occasions.json"
    path.write_text(json.dumps({"beach": {"keywords": "playa"}}), encoding="utf-8")

    with pytest.raises(ValueError, match="keywords"):
        load_archetypes(path)
