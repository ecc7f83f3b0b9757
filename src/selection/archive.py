import json
from datetime import timedelta
from typing import Iterable, NamedTuple, Optional

from ..models.pool import TIER_HERO, TIER_LEGEND
from .occasions import normalize_date
from .selector import SparkSelector


class ArchiveEntry(NamedTuple):
    date: str
    morning: str
    night: str
    morning_rarity: str
    night_rarity: str
    morning_tone: Optional[str]
    night_tone: Optional[str]
    is_favorite: bool = False


def archive_days_for_tier(tier: int) -> int:
    """归档可回看的天数：Legend 90 天，Hero 30 天，免费 7 天"""
    if tier >= TIER_LEGEND:
        return 90
    if tier >= TIER_HERO:
        return 30
    return 7


def build_archive(
    selector: SparkSelector,
    end_day,
    target: str,
    tier: int,
    *,
    favorites: Iterable[str] = (),
) -> list[ArchiveEntry]:
    """按需重算历史情话 (不落库)，最新的一天在前"""
    end = normalize_date(end_day)
    favorite_set = set(favorites)
    entries = []
    for offset in range(archive_days_for_tier(tier)):
        day = end - timedelta(days=offset)
        spark = selector.select_daily_spark(day, target)
        entries.append(
            ArchiveEntry(
                date=spark.date,
                morning=spark.morning.content,
                night=spark.night.content,
                morning_rarity=spark.morning.rarity,
                night_rarity=spark.night.rarity,
                morning_tone=spark.morning.tone,
                night_tone=spark.night.tone,
                is_favorite=spark.date in favorite_set,
            )
        )
    return entries


def filter_archive(
    entries: Iterable[ArchiveEntry],
    query: Optional[str] = None,
    rarity: Optional[str] = None,
    favorites_only: bool = False,
) -> list[ArchiveEntry]:
    needle = query.lower() if query else None
    result = []
    for entry in entries:
        if needle and not any(
            needle in text.lower() for text in (entry.morning, entry.night)
        ):
            continue
        if rarity and rarity not in (entry.morning_rarity, entry.night_rarity):
            continue
        if favorites_only and not entry.is_favorite:
            continue
        result.append(entry)
    return result


def export_archive(entries: Iterable[ArchiveEntry], fmt: str = "json") -> str:
    entries = list(entries)
    if fmt == "json":
        return json.dumps([e._asdict() for e in entries], ensure_ascii=False, indent=2)
    if fmt == "text":
        blocks = []
        for e in entries:
            star = " ★" if e.is_favorite else ""
            blocks.append(f"{e.date}{star}\nMorning: {e.morning}\nNight: {e.night}")
        return "\n\n".join(blocks)
    raise ValueError(f"Unsupported export format: {fmt}")
