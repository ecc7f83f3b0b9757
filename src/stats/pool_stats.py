from collections import Counter
from typing import NamedTuple

from ..models.pool import BUCKETED_SECTIONS, RARITIES, TARGETS, MessagePool
from ..selection.rarity import RARITY_WEIGHTS

# 内容建设目标 (条数)
CONTENT_TARGETS = {
    "total": 1500,
    "nicknames": 100,
    "morning": 300,
    "night": 300,
    "midday": 100,
    "premium": 100,
    "special_occasions": 300,
    "love_language_specific": 500,
    "quick_replies": 250,
    "tier_0": 200,
    "tier_1": 300,
    "tier_2": 200,
    "target_neutral": 500,
    "target_feminine": 300,
    "target_masculine": 300,
}

SECTION_TITLES = {
    "morning": "Morning",
    "night": "Night",
    "midday": "Midday",
    "premium": "Premium",
    "special_occasions": "Special Occasions",
    "love_language_specific": "Love Language",
    "quick_replies": "Quick Replies",
}


class PoolStats(NamedTuple):
    version: str
    total: int
    nicknames: int
    sections: dict
    buckets: dict
    by_tier: dict
    by_target: dict
    by_rarity: dict

    def rarity_share(self) -> dict:
        """各稀有度的实际占比 (0-100)"""
        if not self.total:
            return {r: 0 for r in RARITIES}
        return {r: round(self.by_rarity.get(r, 0) * 100 / self.total) for r in RARITIES}


def collect_pool_stats(pool: MessagePool) -> PoolStats:
    sections = Counter()
    buckets = {}
    by_tier = Counter()
    by_target = Counter()
    by_rarity = Counter()

    for section, bucket, record in pool.iter_records():
        sections[section] += 1
        section_buckets = buckets.setdefault(section, Counter())
        section_buckets[bucket] += 1
        by_tier[record.tier] += 1
        by_target[record.target] += 1
        by_rarity[record.rarity] += 1

    return PoolStats(
        version=pool.version,
        total=sum(sections.values()),
        nicknames=len(pool.nicknames),
        sections={s: sections.get(s, 0) for s in (*BUCKETED_SECTIONS, "premium")},
        buckets={s: dict(c) for s, c in buckets.items()},
        by_tier={t: by_tier.get(t, 0) for t in (0, 1, 2)},
        by_target={t: by_target.get(t, 0) for t in TARGETS},
        by_rarity={r: by_rarity.get(r, 0) for r in RARITIES},
    )


def status(current: int, target: int) -> str:
    percent = round(current * 100 / target) if target else 100
    if percent >= 100:
        return f"✅ {percent}%"
    if percent >= 70:
        return f"🟡 {percent}%"
    return f"🔴 {percent}%"


def render_markdown(stats: PoolStats, today: str) -> str:
    lines = [
        "# Message Pool Statistics",
        "",
        f"**Pool Version:** {stats.version}  ",
        f"**Last Updated:** {today}",
        "",
        "## Overall Summary",
        "",
        "| Metric | Current | Target | Status |",
        "|--------|---------|--------|--------|",
        f"| Total Messages | {stats.total} | {CONTENT_TARGETS['total']}+ "
        f"| {status(stats.total, CONTENT_TARGETS['total'])} |",
        f"| Nicknames | {stats.nicknames} | {CONTENT_TARGETS['nicknames']}+ "
        f"| {status(stats.nicknames, CONTENT_TARGETS['nicknames'])} |",
        "",
        "## By Section",
        "",
        "| Section | Current | Target | Status |",
        "|---------|---------|--------|--------|",
    ]
    for section, count in stats.sections.items():
        target = CONTENT_TARGETS[section]
        lines.append(
            f"| {SECTION_TITLES[section]} | {count} | {target}+ | {status(count, target)} |"
        )

    lines += [
        "",
        "## By Tier",
        "",
        "| Tier | Current | Target | Status |",
        "|------|---------|--------|--------|",
    ]
    for tier, count in stats.by_tier.items():
        target = CONTENT_TARGETS[f"tier_{tier}"]
        lines.append(f"| {tier} | {count} | {target}+ | {status(count, target)} |")

    lines += [
        "",
        "## By Target (Recipient)",
        "",
        "| Target | Current | Target | Status |",
        "|--------|---------|--------|--------|",
    ]
    for name, count in stats.by_target.items():
        target = CONTENT_TARGETS[f"target_{name}"]
        lines.append(f"| {name} | {count} | {target}+ | {status(count, target)} |")

    share = stats.rarity_share()
    lines += [
        "",
        "## By Rarity Distribution",
        "",
        "| Rarity | Count | Percentage | Ideal % |",
        "|--------|-------|------------|---------|",
    ]
    for rarity in RARITIES:
        lines.append(
            f"| {rarity} | {stats.by_rarity[rarity]} | {share[rarity]}% "
            f"| ~{RARITY_WEIGHTS[rarity]}% |"
        )
    return "\n".join(lines) + "\n"


def render_summary(stats: PoolStats) -> str:
    """聊天里展示用的简短摘要"""
    share = stats.rarity_share()
    rarity_line = " / ".join(
        f"{r} {share[r]}% (~{RARITY_WEIGHTS[r]}%)" for r in RARITIES
    )
    target_line = " / ".join(f"{t} {c}" for t, c in stats.by_target.items())
    section_line = "，".join(f"{SECTION_TITLES[s]} {c}" for s, c in stats.sections.items())
    return (
        f"消息池 v{stats.version}: 共 {stats.total} 条，昵称 {stats.nicknames} 个\n"
        f"分区: {section_line}\n"
        f"等级: Free {stats.by_tier[0]} / Hero {stats.by_tier[1]} / Legend {stats.by_tier[2]}\n"
        f"对象: {target_line}\n"
        f"稀有度: {rarity_line}"
    )
