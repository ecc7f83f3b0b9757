from typing import Iterable, NamedTuple, Optional

from .prng import SplitMix64

RARITY_ORDER = ("common", "rare", "epic", "legendary")

# 目标稀有度分布 (百分比)，与内容统计报表的理想占比一致
RARITY_WEIGHTS = {"common": 50, "rare": 30, "epic": 15, "legendary": 5}


class RarityInfo(NamedTuple):
    label: str
    color: str
    glow: str


RARITY_INFO = {
    "common": RarityInfo("Common", "text-gray-400 border-gray-400", ""),
    "rare": RarityInfo(
        "Rare", "text-blue-400 border-blue-400", "shadow-md shadow-blue-500/30"
    ),
    "epic": RarityInfo(
        "Epic", "text-purple-400 border-purple-400", "shadow-lg shadow-purple-500/40"
    ),
    "legendary": RarityInfo(
        "Legendary",
        "text-amber-400 border-amber-400",
        "shadow-xl shadow-amber-500/50",
    ),
}


def get_rarity_info(rarity: Optional[str] = None) -> RarityInfo:
    """稀有度展示信息；None 或未知取值一律按 common 处理"""
    return RARITY_INFO.get(rarity or "common", RARITY_INFO["common"])


def weighted_rarity(available: Iterable[str], rng: SplitMix64) -> str:
    """
    在实际存在的稀有度中按固定权重抽取一个。
    权重只在出现的稀有度之间重新归一化，因此缺少某一档时不会抽空。
    """
    present = set(available)
    ordered = [r for r in RARITY_ORDER if r in present]
    if not ordered:
        raise ValueError("no rarity to draw from")

    total = sum(RARITY_WEIGHTS[r] for r in ordered)
    roll = rng.random() * total
    cumulative = 0.0
    for rarity in ordered:
        cumulative += RARITY_WEIGHTS[rarity]
        if roll < cumulative:
            return rarity
    return ordered[-1]
