"""Tests for analysis payload normalization."""

from __future__ import annotations

import pytest

from soundwave.analysis import SongAnalysis, as_string_list, normalize_analysis
from soundwave.errors import AnalysisFailed


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ({"0": "love", "1": "rain"}, ["love", "rain"]),
        (["love", "rain"], ["love", "rain"]),
        ("love", ["love"]),
        ({}, []),
        ([], []),
        (None, []),
        ("", []),
        ([" padded ", "", None, 3], ["padded", "3"]),
    ],
)
def test_as_string_list_normalizes_shapes(value, expected) -> None:
    assert as_string_list(value) == expected


def test_normalize_analysis_reads_upstream_keys() -> None:
    payload = {
        "language": "English",
        "language-iso": "en",
        "summary": "A bittersweet farewell.",
        "explicit": True,
        "keywords": {"0": "goodbye", "1": "train"},
        "ddex moods": ["Sad", "Reflective"],
        "ddex themes": "Separation",
        "flags": {"profanity": False},
    }

    analysis = normalize_analysis(payload)

    assert analysis == SongAnalysis(
        language="English",
        language_code="en",
        summary="A bittersweet farewell.",
        explicit=True,
        keywords=("goodbye", "train"),
        moods=("Sad", "Reflective"),
        themes=("Separation",),
        flags={"profanity": False},
    )


def test_normalize_analysis_applies_defaults() -> None:
    analysis = normalize_analysis({"ddex moods": {}, "flags": ["bogus"]})

    assert analysis.language == "unknown"
    assert analysis.language_code == "unknown"
    assert analysis.summary == ""
    assert analysis.explicit is False
    assert analysis.keywords == ()
    assert analysis.moods == ()
    assert analysis.themes == ()
    assert analysis.flags == {}


def test_normalize_analysis_parses_string_explicit_flag() -> None:
    assert normalize_analysis({"explicit": "false"}).explicit is False
    assert normalize_analysis({"explicit": "True"}).explicit is True


@pytest.mark.parametrize("payload", [None, [], "text", 3])
def test_normalize_analysis_rejects_non_objects(payload) -> None:
    with pytest.raises(AnalysisFailed):
        normalize_analysis(payload)


def test_embedding_text_joins_summary_and_tags() -> None:
    analysis = SongAnalysis(
        summary="Road trip song",
        keywords=("highway",),
        moods=("Happy",),
        themes=("Freedom", "Youth"),
    )

    assert analysis.embedding_text() == "Road trip song highway Happy Freedom Youth"
    assert SongAnalysis().embedding_text() == ""
