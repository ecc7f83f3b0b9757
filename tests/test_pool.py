import json

import pytest
from pydantic import ValidationError

from conftest import BUNDLED_POOL, make_pool
from src.errors import PoolFormatError
from src.models.pool import TONES
from src.pool.loader import PoolStore, load_pool, parse_pool


def test_bundled_pool_structure(bundled_pool):
    assert set(TONES) <= set(bundled_pool.messages.morning)
    assert set(TONES) <= set(bundled_pool.messages.night)
    for occasion in ("anniversary", "birthday", "milestone"):
        assert occasion in bundled_pool.messages.special_occasions
    assert set(bundled_pool.messages.love_language_specific) == {
        "words_of_affirmation",
        "acts_of_service",
        "receiving_gifts",
        "quality_time",
        "physical_touch",
    }
    assert bundled_pool.messages.premium
    assert bundled_pool.nicknames


def test_bucket_key_fills_defaults(bundled_pool):
    first = bundled_pool.messages.morning["poetic"][0]
    assert first.tone == "poetic"
    anniversary = bundled_pool.messages.special_occasions["anniversary"][0]
    assert anniversary.occasion == "anniversary"
    gift = bundled_pool.messages.love_language_specific["receiving_gifts"][0]
    assert gift.love_language == "receiving_gifts"


def test_plain_string_entries_are_upgraded():
    pool = make_pool({"morning": {"sweet": ["hello"]}, "premium": ["vip"]})
    record = pool.messages.morning["sweet"][0]
    assert record.content == "hello"
    assert record.target == "neutral"
    assert record.rarity == "common"
    assert record.tier == 0
    assert record.tone == "sweet"
    assert pool.messages.premium[0].content == "vip"


def test_records_are_frozen():
    pool = make_pool({"morning": {"sweet": ["hello"]}})
    with pytest.raises(ValidationError):
        pool.messages.morning["sweet"][0].content = "changed"


def test_candidates_filter(bundled_pool):
    feminine = bundled_pool.candidates("morning", "feminine", max_tier=0)
    assert feminine
    assert all(r.target in ("neutral", "feminine") and r.tier == 0 for r in feminine)

    playful = bundled_pool.candidates("night", "neutral", bucket="playful")
    assert playful and all(r.tone == "playful" for r in playful)

    assert bundled_pool.candidates("morning", "neutral", bucket="missing") == []


def test_unknown_section():
    pool = make_pool({})
    with pytest.raises(KeyError):
        pool.candidates("brunch", "neutral")


@pytest.mark.parametrize(
    "raw",
    [
        {"nicknames": []},
        {"messages": {"morning": {"sweet": [{"content": ""}]}}},
        {"messages": {"morning": {"sweet": [{"content": "x", "target": "robot"}]}}},
        {"messages": {"morning": {"sweet": [{"content": "x", "tier": 5}]}}},
        {"messages": {"morning": {"sweet": [{"content": "x", "rarity": "mythic"}]}}},
        {"messages": {"morning": {"sweet": [{"content": "x", "love_language": "money"}]}}},
        {"messages": {"morning": {"sweet": [{"content": "x", "tone": "grumpy"}]}}},
        {"messages": {"morning": {"grumpy": ["x"]}}},
        {"messages": {"midday": {"brunch": ["x"]}}},
        {"messages": {"quick_replies": {"sweet": ["x"]}}},
        {"messages": {"premium": [{"content": "x", "tone": "check_in"}]}},
        {"messages": {"special_occasions": {"graduation": ["x"]}}},
        {"messages": {"special_occasions": {"birthday": [{"content": "x", "occasion": "wedding"}]}}},
        ["not", "a", "dict"],
    ],
)
def test_malformed_pool_fails_fast(raw):
    with pytest.raises(PoolFormatError):
        parse_pool(raw)


def test_load_pool_missing_file(tmp_path):
    with pytest.raises(PoolFormatError):
        load_pool(str(tmp_path / "nope.json"))


def test_load_pool_invalid_json(tmp_path):
    path = tmp_path / "pool.json"
    path.write_text("{broken", encoding="utf-8")
    with pytest.raises(PoolFormatError):
        load_pool(str(path))


def test_store_loads_once_and_reloads(tmp_path):
    path = tmp_path / "pool.json"
    path.write_text(
        json.dumps({"version": "1", "messages": {"morning": {"sweet": ["a"]}}}),
        encoding="utf-8",
    )
    store = PoolStore(str(path))
    assert not store.loaded
    first = store.get()
    assert store.get() is first

    path.write_text(
        json.dumps({"version": "2", "messages": {"morning": {"sweet": ["b"]}}}),
        encoding="utf-8",
    )
    assert store.get().version == "1"
    assert store.reload().version == "2"
    assert store.get().version == "2"


def test_store_keeps_old_pool_when_reload_fails(tmp_path):
    path = tmp_path / "pool.json"
    path.write_text(json.dumps({"messages": {"night": {"sweet": ["x"]}}}), encoding="utf-8")
    store = PoolStore(str(path))
    old = store.get()
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(PoolFormatError):
        store.reload()
    assert store.get() is old


def test_default_path_points_to_bundled_pool():
    assert PoolStore().path == BUNDLED_POOL


def test_section_specific_tones_are_accepted():
    pool = make_pool(
        {
            "midday": {"check_in": ["water?"]},
            "quick_replies": {"flirty": ["stop it"]},
            "special_occasions": {"holiday": ["cheers"]},
        }
    )
    assert pool.messages.midday["check_in"][0].tone == "check_in"
    assert pool.messages.quick_replies["flirty"][0].tone == "flirty"
    assert pool.messages.special_occasions["holiday"][0].occasion == "holiday"
