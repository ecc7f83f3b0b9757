import pytest

from src.selection.prng import SplitMix64
from src.selection.rarity import RARITY_WEIGHTS, get_rarity_info, weighted_rarity


def test_rarity_info_labels_and_colors():
    assert get_rarity_info("common").label == "Common"
    assert "gray" in get_rarity_info("common").color
    assert get_rarity_info("rare").label == "Rare"
    assert "blue" in get_rarity_info("rare").color
    assert get_rarity_info("epic").label == "Epic"
    assert "purple" in get_rarity_info("epic").color
    assert get_rarity_info("legendary").label == "Legendary"
    assert "amber" in get_rarity_info("legendary").color


@pytest.mark.parametrize("value", [None, "", "mythic"])
def test_rarity_info_defaults_to_common(value):
    info = get_rarity_info(value)
    assert info.label == "Common"
    assert "gray" in info.color


def test_glow_only_for_higher_rarities():
    assert get_rarity_info("common").glow == ""
    assert "shadow" in get_rarity_info("legendary").glow


def test_weights_sum_to_100():
    assert sum(RARITY_WEIGHTS.values()) == 100


def test_weighted_rarity_single_choice():
    rng = SplitMix64(1)
    assert all(weighted_rarity(["epic"], rng) == "epic" for _ in range(50))


def test_weighted_rarity_requires_choices():
    with pytest.raises(ValueError):
        weighted_rarity([], SplitMix64(1))
