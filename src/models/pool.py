from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Target = Literal["neutral", "feminine", "masculine"]
Rarity = Literal["common", "rare", "epic", "legendary"]

TARGETS = ("neutral", "feminine", "masculine")
TONES = ("poetic", "playful", "romantic", "passionate", "sweet", "supportive")
RARITIES = ("common", "rare", "epic", "legendary")
LOVE_LANGUAGES = (
    "words_of_affirmation",
    "acts_of_service",
    "receiving_gifts",
    "quality_time",
    "physical_touch",
)
OCCASIONS = ("daily", "anniversary", "birthday", "valentines", "holiday", "milestone")
MIDDAY_KINDS = ("check_in", "encouragement")
REPLY_TONES = ("flirty", "grateful", "loving", "supportive", "playful")

# 订阅等级 (0=Free, 1=Hero, 2=Legend)
TIER_FREE = 0
TIER_HERO = 1
TIER_LEGEND = 2
TIER_NAMES = {TIER_FREE: "Voyager", TIER_HERO: "Hero", TIER_LEGEND: "Legend"}

TONE_NAMES = {
    "poetic": "Poetic",
    "playful": "Playful",
    "romantic": "Romantic",
    "passionate": "Passionate",
    "sweet": "Sweet",
    "supportive": "Supportive",
}

LOVE_LANGUAGE_NAMES = {
    "words_of_affirmation": "Words of Affirmation",
    "acts_of_service": "Acts of Service",
    "receiving_gifts": "Receiving Gifts",
    "quality_time": "Quality Time",
    "physical_touch": "Physical Touch",
}

SECTION_TONES = {
    "morning": TONES,
    "night": TONES,
    "premium": TONES,
    "special_occasions": TONES,
    "love_language_specific": TONES,
    "midday": MIDDAY_KINDS,
    "quick_replies": REPLY_TONES,
}

# 按桶组织的分区；premium 是扁平列表
BUCKETED_SECTIONS = (
    "morning",
    "night",
    "midday",
    "special_occasions",
    "love_language_specific",
    "quick_replies",
)


class MessageRecord(BaseModel):
    """消息池中的单条消息，发布后不可变"""

    model_config = ConfigDict(frozen=True, extra="ignore")

    content: str = Field(min_length=1)
    target: Target = "neutral"
    tone: Optional[str] = None
    rarity: Rarity = "common"
    tier: int = Field(default=0, ge=0, le=2)
    love_language: str = ""
    occasion: Optional[str] = None

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("content must not be blank")
        return v

    @field_validator("love_language")
    @classmethod
    def _known_language(cls, v: str) -> str:
        if v and v not in LOVE_LANGUAGES:
            raise ValueError(f"unknown love_language {v!r}")
        return v

    @field_validator("occasion")
    @classmethod
    def _known_occasion(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in OCCASIONS:
            raise ValueError(f"unknown occasion {v!r}")
        return v

    def eligible_for(self, target: str) -> bool:
        return self.target == "neutral" or self.target == target


def _upgrade_entry(entry, section: str, bucket: Optional[str]):
    """旧格式的纯字符串条目升级为记录，并用桶名补全缺省字段"""
    if isinstance(entry, str):
        entry = {"content": entry}
    if not isinstance(entry, dict) or bucket is None:
        return entry
    entry = dict(entry)
    if section in ("morning", "night", "midday", "quick_replies"):
        entry.setdefault("tone", bucket)
    elif section == "special_occasions":
        entry.setdefault("occasion", bucket)
    elif section == "love_language_specific" and not entry.get("love_language"):
        entry["love_language"] = bucket
    return entry


def _section_records(messages, section: str):
    if section == "premium":
        return messages.premium
    return [r for records in getattr(messages, section).values() for r in records]


class PoolMessages(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    morning: dict[str, tuple[MessageRecord, ...]] = Field(default_factory=dict)
    night: dict[str, tuple[MessageRecord, ...]] = Field(default_factory=dict)
    midday: dict[str, tuple[MessageRecord, ...]] = Field(default_factory=dict)
    premium: tuple[MessageRecord, ...] = ()
    special_occasions: dict[str, tuple[MessageRecord, ...]] = Field(
        default_factory=dict
    )
    love_language_specific: dict[str, tuple[MessageRecord, ...]] = Field(
        default_factory=dict
    )
    quick_replies: dict[str, tuple[MessageRecord, ...]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _upgrade_entries(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for section in BUCKETED_SECTIONS:
            buckets = data.get(section)
            if isinstance(buckets, dict):
                data[section] = {
                    bucket: [_upgrade_entry(e, section, bucket) for e in items]
                    if isinstance(items, list)
                    else items
                    for bucket, items in buckets.items()
                }
        premium = data.get("premium")
        if isinstance(premium, list):
            data["premium"] = [_upgrade_entry(e, "premium", None) for e in premium]
        return data

    @model_validator(mode="after")
    def _known_tones(self):
        # midday 与 quick_replies 的 tone 是各自的分桶名
        for section, allowed in SECTION_TONES.items():
            for record in _section_records(self, section):
                if record.tone is not None and record.tone not in allowed:
                    raise ValueError(f"unknown tone {record.tone!r} in {section}")
        return self


class MessagePool(BaseModel):
    """静态、带版本号的消息池。加载后只读，由调用方注入选择器"""

    model_config = ConfigDict(frozen=True, extra="ignore")

    version: str = "1"
    nicknames: tuple[str, ...] = ()
    messages: PoolMessages

    def section(self, name: str):
        if name == "premium":
            return self.messages.premium
        if name not in BUCKETED_SECTIONS:
            raise KeyError(f"unknown pool section {name!r}")
        return getattr(self.messages, name)

    def buckets(self, section: str) -> dict[str, tuple[MessageRecord, ...]]:
        if section == "premium":
            return {"premium": self.messages.premium}
        return self.section(section)

    def candidates(
        self,
        slot: str,
        target: str,
        *,
        max_tier: int = 0,
        bucket: Optional[str] = None,
    ) -> list[MessageRecord]:
        """
        返回某个分区中对 target 可见的消息 (按池内顺序)。
        target 为 neutral 的消息对所有对象可见；tier 超过 max_tier 的消息被过滤。
        """
        buckets = self.buckets(slot)
        if bucket is not None:
            buckets = {bucket: buckets.get(bucket, ())}
        result = []
        for records in buckets.values():
            for record in records:
                if not record.eligible_for(target):
                    continue
                if record.tier > max_tier:
                    continue
                result.append(record)
        return result

    def iter_records(self):
        """遍历所有消息，产出 (section, bucket, record)"""
        for section in BUCKETED_SECTIONS:
            for bucket, records in self.section(section).items():
                for record in records:
                    yield section, bucket, record
        for record in self.messages.premium:
            yield "premium", "premium", record

    def total_messages(self) -> int:
        return sum(1 for _ in self.iter_records())


class SparkMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    rarity: Rarity = "common"
    tone: Optional[str] = None

    @classmethod
    def from_record(cls, record: MessageRecord) -> "SparkMessage":
        return cls(content=record.content, rarity=record.rarity, tone=record.tone)


class DailySpark(BaseModel):
    """某一天 (date, target) 的选择结果"""

    model_config = ConfigDict(frozen=True)

    date: str
    nickname: Optional[str] = None
    morning: SparkMessage
    night: SparkMessage
    is_special_occasion: bool = False
    occasion: Optional[str] = None
