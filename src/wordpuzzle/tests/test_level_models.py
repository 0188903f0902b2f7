"""Tests for level models and validation."""
import pytest

from wordpuzzle.models.level_models import (
    LevelSpec,
    WordSpec,
    check_cluster_pool,
    is_valid_cluster_text,
    normalize_cluster_text,
    validate_level,
)


def make_level(**overrides) -> LevelSpec:
    data = {
        "level_id": 1,
        "target_words": (WordSpec("TEST", ("TE", "ST")),),
        "available_clusters": ("TE", "ST"),
        "cells_per_word": 6,
    }
    data.update(overrides)
    return LevelSpec(**data)


def test_valid_level_passes(four_word_level: LevelSpec) -> None:
    """Test that a well-formed level validates."""
    result = validate_level(four_word_level)
    assert result
    assert result.reason is None


def test_word_clusters_must_spell_word() -> None:
    """Test the decomposition invariant."""
    assert WordSpec("TEST", ("TE", "ST")).validate()
    result = WordSpec("TEST", ("TE", "SS")).validate()
    assert not result
    assert "do not spell" in result.reason


def test_word_rejects_empty_parts() -> None:
    """Test that empty words and empty cluster lists are rejected."""
    assert not WordSpec("", ("A",)).validate()
    assert not WordSpec("AB", ()).validate()
    assert not WordSpec("AB", ("AB", "")).validate()


@pytest.mark.parametrize(
    "overrides, fragment",
    [
        ({"level_id": 0}, "level id"),
        ({"level_id": -3}, "level id"),
        ({"target_words": ()}, "no target words"),
        ({"available_clusters": ()}, "no available clusters"),
        ({"target_words": (WordSpec("TEST", ("TE", "SX")),)}, "target word 0"),
    ],
)
def test_validate_level_failures(overrides, fragment) -> None:
    """Test each structural failure of a level."""
    result = validate_level(make_level(**overrides))
    assert not result
    assert fragment in result.reason


def test_validate_level_short_circuits_in_order() -> None:
    """Test that the id check is reported before the missing words."""
    result = validate_level(make_level(level_id=0, target_words=()))
    assert "level id" in result.reason


def test_validate_level_rejects_invalid_word_among_valid(four_word_level: LevelSpec) -> None:
    """Test that one bad word invalidates the whole level."""
    words = list(four_word_level.target_words)
    words[2] = WordSpec("WINTER", ("WIN", "TRE"))
    result = validate_level(make_level(
        target_words=tuple(words),
        available_clusters=four_word_level.available_clusters,
    ))
    assert not result
    assert "target word 2" in result.reason


def test_validate_level_rejects_word_wider_than_row() -> None:
    """Test that a word longer than the row can never be placed."""
    level = make_level(
        target_words=(WordSpec("GARDENS", ("GAR", "DENS")),),
        available_clusters=("GAR", "DENS"),
    )
    assert "does not fit" in validate_level(level).reason


def test_validate_level_rejects_repeated_word() -> None:
    """Test that a word listed twice is rejected."""
    level = make_level(
        target_words=(WordSpec("TEST", ("TE", "ST")), WordSpec("TEST", ("TE", "ST"))),
        available_clusters=("TE", "ST", "TE", "ST"),
    )
    assert "repeated" in validate_level(level).reason


def test_validate_level_rejects_bad_pool_text() -> None:
    """Test that pool entries must be 1-4 letters."""
    level = make_level(available_clusters=("TE", "ST", "LONGER"))
    assert "invalid text" in validate_level(level).reason


def test_cluster_pool_multiplicity() -> None:
    """Test that a shared cluster needs one pool entry per use."""
    level = make_level(
        target_words=(WordSpec("ANTS", ("AN", "TS")), WordSpec("ANEW", ("AN", "EW"))),
        available_clusters=("AN", "TS", "EW"),
    )
    result = check_cluster_pool(level)
    assert not result
    assert "'AN'" in result.reason
    assert not validate_level(level)
    assert validate_level(level, check_pool=False)

    enough = make_level(
        target_words=level.target_words,
        available_clusters=("AN", "TS", "EW", "AN"),
    )
    assert validate_level(enough)


def test_cluster_text_rules() -> None:
    """Test the cluster text length and alphabet rules."""
    assert is_valid_cluster_text("A")
    assert is_valid_cluster_text("ABCD")
    assert not is_valid_cluster_text("")
    assert not is_valid_cluster_text("ABCDE")
    assert not is_valid_cluster_text("A1")


def test_normalize_cluster_text() -> None:
    """Test trimming, upper-casing and dropping non-letters."""
    assert normalize_cluster_text("  te ") == "TE"
    assert normalize_cluster_text("s-t!") == "ST"
    assert normalize_cluster_text("ёж") == "ЁЖ"


def test_level_from_dict_normalizes_and_round_trips() -> None:
    """Test parsing a level document."""
    level = LevelSpec.from_dict({
        "levelId": 5,
        "targetWords": [{"word": "test", "clusters": ["te", " st"]}],
        "availableClusters": ["st", "te"],
    })
    assert level.level_id == 5
    assert level.target_words[0] == WordSpec("TEST", ("TE", "ST"))
    assert level.available_clusters == ("ST", "TE")
    assert level.cells_per_word == 6
    assert validate_level(level)
    assert LevelSpec.from_dict(level.to_dict()) == level


@pytest.mark.parametrize(
    "document, error",
    [
        ([], TypeError),
        ({}, KeyError),
        ({"levelId": "1"}, TypeError),
        ({"levelId": 1, "targetWords": "TEST"}, TypeError),
        ({"levelId": 1, "targetWords": [{"word": "TEST"}]}, KeyError),
        ({"levelId": 1, "targetWords": {}}, TypeError),
        ({"levelId": 1, "targetWords": [], "availableClusters": {}}, TypeError),
        ({"levelId": 1, "availableClusters": [1, 2]}, TypeError),
        ({"levelId": 1, "cellsPerWord": 0}, ValueError),
    ],
)
def test_level_from_dict_rejects_malformed(document, error) -> None:
    """Test that malformed documents raise a parse error."""
    with pytest.raises(error):
        LevelSpec.from_dict(document)


def test_word_cluster_lookup() -> None:
    """Test cluster membership helpers."""
    word = WordSpec("PLANET", ("PL", "AN", "ET"))
    assert word.word_length == 6
    assert word.clusters_count == 3
    assert word.contains_cluster("AN")
    assert word.get_cluster_index("ET") == 2
    assert word.get_cluster_index("XX") == -1


if __name__ == "__main__":
    pytest.main([__file__])
