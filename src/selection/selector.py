from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..errors import EmptyCandidatePoolError
from ..models.pool import (
    TARGETS,
    TIER_HERO,
    TIER_LEGEND,
    DailySpark,
    MessagePool,
    MessageRecord,
    SparkMessage,
    Target,
)
from .occasions import days_until_occasion, normalize_date
from .prng import SplitMix64, rng_for
from .rarity import weighted_rarity

SLOTS = ("morning", "night")


class LegendSparkOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    target: Target = "neutral"
    love_language: Optional[str] = None
    preferred_tone: Optional[str] = None
    anniversary_date: Optional[str] = None
    partner_birthday: Optional[str] = None


class SparkSelector:
    """
    每日情话选择器。
    纯函数式：输出只取决于 (日期, 对象, 可选的用户参数) 与注入的只读消息池，
    同一输入在任何进程中反复调用都得到完全相同的结果。
    """

    def __init__(self, pool: MessagePool):
        self.pool = pool

    # ---- 基础抽取 ----

    @staticmethod
    def _draw(candidates: list[MessageRecord], rng: SplitMix64) -> MessageRecord:
        # 1. 先按稀有度权重抽档，再在档内均匀抽取
        groups: dict[str, list[MessageRecord]] = {}
        for record in candidates:
            groups.setdefault(record.rarity, []).append(record)
        rarity = weighted_rarity(groups.keys(), rng)
        group = groups[rarity]
        return group[rng.randbelow(len(group))]

    def _pick(
        self, candidates: list[MessageRecord], slot: str, target: str, *seed
    ) -> SparkMessage:
        if not candidates:
            raise EmptyCandidatePoolError(slot, target)
        return SparkMessage.from_record(self._draw(candidates, rng_for(*seed)))

    @staticmethod
    def _check_target(target: str):
        if target not in TARGETS:
            raise ValueError(f"Unknown target: {target!r}")

    def _nickname(self, iso: str) -> Optional[str]:
        nicknames = self.pool.nicknames
        if not nicknames:
            return None
        return nicknames[rng_for(iso, "nick").randbelow(len(nicknames))]

    # ---- 公开接口 ----

    def select_slot(self, day, target: str, slot: str) -> SparkMessage:
        """单个时段 (morning/night/midday) 的每日消息，只从免费档抽取"""
        self._check_target(target)
        iso = normalize_date(day).isoformat()
        candidates = self.pool.candidates(slot, target, max_tier=0)
        return self._pick(candidates, slot, target, iso, target, slot)

    def select_daily_spark(self, day, target: str = "neutral") -> DailySpark:
        iso = normalize_date(day).isoformat()
        return DailySpark(
            date=iso,
            nickname=self._nickname(iso),
            morning=self.select_slot(iso, target, "morning"),
            night=self.select_slot(iso, target, "night"),
        )

    def select_midday(self, day, target: str = "neutral", kind: Optional[str] = None):
        self._check_target(target)
        iso = normalize_date(day).isoformat()
        candidates = self.pool.candidates("midday", target, max_tier=0, bucket=kind)
        return self._pick(
            candidates, "midday", target, iso, target, "midday", kind or ""
        )

    def select_premium_spark(
        self, day, user_id: str, target: str = "neutral", tier: int = TIER_HERO
    ) -> DailySpark:
        """Hero 及以上：种子包含 user_id，每位付费用户拿到各自的消息"""
        self._check_target(target)
        iso = normalize_date(day).isoformat()
        premium = self.pool.candidates("premium", target, max_tier=tier)

        slots = {}
        for slot in SLOTS:
            candidates = self.pool.candidates(slot, target, max_tier=tier) + premium
            slots[slot] = self._pick(
                candidates, slot, target, iso, "premium", user_id, target, slot
            )
        return DailySpark(
            date=iso,
            nickname=self._nickname(iso),
            morning=slots["morning"],
            night=slots["night"],
        )

    def _occasion_today(self, day, options: LegendSparkOptions) -> Optional[str]:
        for kind, value in (
            ("anniversary", options.anniversary_date),
            ("birthday", options.partner_birthday),
        ):
            if value and days_until_occasion(value, day) == 0:
                return kind
        return None

    def _legend_candidates(
        self, slot: str, options: LegendSparkOptions
    ) -> list[MessageRecord]:
        target = options.target
        base = self.pool.candidates(slot, target, max_tier=TIER_LEGEND)
        base += self.pool.candidates("premium", target, max_tier=TIER_LEGEND)
        if options.love_language:
            base += self.pool.candidates(
                "love_language_specific",
                target,
                max_tier=TIER_LEGEND,
                bucket=options.love_language,
            )

        # 逐层收窄，收窄后为空则保留上一层
        narrowed = base
        if options.preferred_tone:
            by_tone = [r for r in narrowed if r.tone == options.preferred_tone]
            narrowed = by_tone or narrowed
        if options.love_language:
            by_language = [
                r for r in narrowed if r.love_language in (options.love_language, "")
            ]
            narrowed = by_language or narrowed
        return narrowed

    def select_legend_spark(self, day, options: LegendSparkOptions) -> DailySpark:
        iso = normalize_date(day).isoformat()
        target = options.target

        occasion = self._occasion_today(iso, options)
        slots = {}
        if occasion:
            special = self.pool.candidates(
                "special_occasions", target, max_tier=TIER_LEGEND, bucket=occasion
            )
            if special:
                slots["morning"] = self._pick(
                    special, "morning", target, iso, "legend", options.user_id, occasion
                )
            else:
                occasion = None

        for slot in SLOTS:
            if slot in slots:
                continue
            slots[slot] = self._pick(
                self._legend_candidates(slot, options),
                slot,
                target,
                iso,
                "legend",
                options.user_id,
                target,
                slot,
            )

        return DailySpark(
            date=iso,
            nickname=self._nickname(iso),
            morning=slots["morning"],
            night=slots["night"],
            is_special_occasion=occasion is not None,
            occasion=occasion,
        )

    def quick_replies(
        self, day, tone: Optional[str] = None, count: int = 3
    ) -> list[str]:
        """回复建议：优先同语气分桶，没有则从全部快捷回复中抽取，结果互不重复"""
        iso = normalize_date(day).isoformat()
        buckets = self.pool.messages.quick_replies
        records = list(buckets.get(tone or "", ()))
        if not records:
            records = [r for bucket in buckets.values() for r in bucket]

        contents = list(dict.fromkeys(r.content for r in records))
        rng = rng_for(iso, "replies", tone or "")
        # 部分 Fisher-Yates 洗牌
        picked = []
        for i in range(min(count, len(contents))):
            j = i + rng.randbelow(len(contents) - i)
            contents[i], contents[j] = contents[j], contents[i]
            picked.append(contents[i])
        return picked

    def spark_for_user(
        self,
        day,
        *,
        user_id: str,
        target: str = "neutral",
        tier: int = 0,
        love_language: Optional[str] = None,
        preferred_tone: Optional[str] = None,
        anniversary_date: Optional[str] = None,
        partner_birthday: Optional[str] = None,
    ) -> DailySpark:
        """按订阅等级分派到对应的选择逻辑"""
        if tier >= TIER_LEGEND:
            options = LegendSparkOptions(
                user_id=user_id,
                target=target,
                love_language=love_language or None,
                preferred_tone=preferred_tone or None,
                anniversary_date=anniversary_date or None,
                partner_birthday=partner_birthday or None,
            )
            return self.select_legend_spark(day, options)
        if tier >= TIER_HERO:
            return self.select_premium_spark(day, user_id, target, tier)
        return self.select_daily_spark(day, target)
