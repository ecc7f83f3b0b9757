import json
from datetime import date

import pytest

from src.selection.archive import (
    ArchiveEntry,
    archive_days_for_tier,
    build_archive,
    export_archive,
    filter_archive,
)


@pytest.mark.parametrize("tier, days", [(0, 7), (1, 30), (2, 90)])
def test_window_by_tier(bundled_selector, tier, days):
    entries = build_archive(bundled_selector, date(2026, 5, 20), "neutral", tier)
    assert archive_days_for_tier(tier) == days
    assert len(entries) == days
    assert entries[0].date == "2026-05-20"
    assert entries[-1].date < entries[0].date


def test_archive_agrees_with_daily_view(bundled_selector):
    entries = build_archive(bundled_selector, date(2026, 5, 20), "feminine", 0)
    for entry in entries:
        spark = bundled_selector.select_daily_spark(entry.date, "feminine")
        assert entry.morning == spark.morning.content
        assert entry.night == spark.night.content
        assert entry.morning_rarity == spark.morning.rarity


def test_favorites_flagged(bundled_selector):
    entries = build_archive(
        bundled_selector, "2026-05-20", "neutral", 0, favorites=["2026-05-18"]
    )
    flagged = [e.date for e in entries if e.is_favorite]
    assert flagged == ["2026-05-18"]


def _entry(day, morning, night, mr="common", nr="common", fav=False):
    return ArchiveEntry(day, morning, night, mr, nr, "sweet", "sweet", fav)


ENTRIES = [
    _entry("2026-01-03", "Good Morning Sunshine", "Sleep well", "rare", "common"),
    _entry("2026-01-02", "Hello love", "Dream of me", "common", "epic", fav=True),
    _entry("2026-01-01", "Coffee time", "Goodnight sunshine"),
]


def test_filter_by_query_is_case_insensitive():
    assert [e.date for e in filter_archive(ENTRIES, query="SUNSHINE")] == [
        "2026-01-03",
        "2026-01-01",
    ]


def test_filter_by_rarity_either_slot():
    assert [e.date for e in filter_archive(ENTRIES, rarity="epic")] == ["2026-01-02"]
    assert [e.date for e in filter_archive(ENTRIES, rarity="rare")] == ["2026-01-03"]


def test_filter_favorites_only():
    assert [e.date for e in filter_archive(ENTRIES, favorites_only=True)] == ["2026-01-02"]


def test_filter_without_criteria_keeps_all():
    assert filter_archive(ENTRIES) == ENTRIES


def test_export_json():
    data = json.loads(export_archive(ENTRIES, "json"))
    assert data[0]["date"] == "2026-01-03"
    assert data[1]["is_favorite"] is True


def test_export_text():
    text = export_archive(ENTRIES[:2], "text")
    assert "2026-01-02 ★" in text
    assert "Morning: Hello love" in text


def test_export_unknown_format():
    with pytest.raises(ValueError):
        export_archive(ENTRIES, "csv")
