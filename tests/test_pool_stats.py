from conftest import make_pool
from src.stats.pool_stats import collect_pool_stats, render_markdown, render_summary, status


def test_counts(bundled_pool):
    stats = collect_pool_stats(bundled_pool)
    assert stats.total == bundled_pool.total_messages()
    assert sum(stats.by_tier.values()) == stats.total
    assert sum(stats.by_target.values()) == stats.total
    assert sum(stats.by_rarity.values()) == stats.total
    assert stats.sections["premium"] == len(bundled_pool.messages.premium)
    assert stats.buckets["morning"]["poetic"] == len(bundled_pool.messages.morning["poetic"])


def test_rarity_share_small_pool():
    pool = make_pool(
        {
            "morning": {
                "sweet": [
                    {"content": "a"},
                    {"content": "b"},
                    {"content": "c", "rarity": "rare"},
                    {"content": "d", "rarity": "legendary", "target": "feminine"},
                ]
            }
        }
    )
    stats = collect_pool_stats(pool)
    assert stats.by_rarity == {"common": 2, "rare": 1, "epic": 0, "legendary": 1}
    assert stats.rarity_share() == {"common": 50, "rare": 25, "epic": 0, "legendary": 25}
    assert stats.by_target["feminine"] == 1


def test_empty_pool_share():
    stats = collect_pool_stats(make_pool({}))
    assert stats.total == 0
    assert set(stats.rarity_share().values()) == {0}


def test_status_thresholds():
    assert status(100, 100).startswith("✅")
    assert status(70, 100).startswith("🟡")
    assert status(10, 100).startswith("🔴")


def test_markdown_report(bundled_pool):
    report = render_markdown(collect_pool_stats(bundled_pool), "2026-10-19")
    assert report.startswith("# Message Pool Statistics")
    assert "**Last Updated:** 2026-10-19" in report
    assert "| legendary |" in report
    assert "~50%" in report


def test_summary(bundled_pool):
    summary = render_summary(collect_pool_stats(bundled_pool))
    assert f"v{bundled_pool.version}" in summary
    assert "common" in summary
