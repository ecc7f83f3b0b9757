import re
from typing import Iterable, Optional

from ..models.pool import (
    LOVE_LANGUAGE_NAMES,
    TIER_NAMES,
    TONE_NAMES,
    DailySpark,
    SparkMessage,
)
from ..selection.archive import ArchiveEntry
from ..selection.occasions import Occasion
from ..selection.rarity import get_rarity_info

SIGNATURE = "— Luvora"

HEADERS = {
    "morning": "💝 早安情话",
    "night": "🌙 晚安情话",
    "midday": "☀️ 午间问候",
    "anniversary": "💕 纪念日快乐！",
    "birthday": "🎂 生日祝福",
}

OCCASION_LABELS = {"anniversary": "纪念日", "birthday": "TA 的生日"}

PARTNER_RE = re.compile(r"\{(partner|name)\}", re.IGNORECASE)


def personalize(content: str, partner_name: Optional[str]) -> str:
    """替换 {partner} / {name} 占位符；没有昵称时替换为 "you" """
    return PARTNER_RE.sub(partner_name or "you", content)


def format_spark_message(
    content: str, partner_name: Optional[str] = None, kind: str = "morning"
) -> str:
    """推送用的完整消息：标题 + 正文 + 签名"""
    header = HEADERS.get(kind, HEADERS["morning"])
    return f"{header}\n\n{personalize(content, partner_name)}\n\n{SIGNATURE}"


def _badge(message: SparkMessage) -> str:
    rarity = get_rarity_info(message.rarity).label
    tone = TONE_NAMES.get(message.tone or "", message.tone or "")
    return f"[{rarity}{' · ' + tone if tone else ''}]"


def format_daily_spark(
    spark: DailySpark,
    partner_name: Optional[str] = None,
    tier: int = 0,
    slot: Optional[str] = None,
) -> str:
    lines = [f"📅 {spark.date} · {TIER_NAMES.get(tier, TIER_NAMES[0])}"]
    if spark.nickname:
        lines.append(f"今日昵称: {spark.nickname}")
    if spark.is_special_occasion and spark.occasion:
        lines.append(HEADERS.get(spark.occasion, "🎉"))

    for name in ("morning", "night"):
        if slot and slot != name:
            continue
        message = getattr(spark, name)
        lines.append("")
        lines.append(f"{HEADERS[name]} {_badge(message)}")
        lines.append(personalize(message.content, partner_name))

    lines.append("")
    lines.append(SIGNATURE)
    return "\n".join(lines)


def format_archive(entries: Iterable[ArchiveEntry], limit: int = 10) -> str:
    entries = list(entries)
    if not entries:
        return "没有找到符合条件的情话。"

    lines = [f"📚 情话归档 (共 {len(entries)} 天)"]
    for entry in entries[:limit]:
        star = " ★" if entry.is_favorite else ""
        lines.append("")
        lines.append(f"{entry.date}{star}")
        lines.append(
            f"  🌅 [{get_rarity_info(entry.morning_rarity).label}] {entry.morning}"
        )
        lines.append(f"  🌙 [{get_rarity_info(entry.night_rarity).label}] {entry.night}")
    if len(entries) > limit:
        lines.append("")
        lines.append(f"…… 还有 {len(entries) - limit} 天未显示")
    return "\n".join(lines)


def format_countdown(
    occasions: Iterable[Occasion],
    together: Optional[int] = None,
    partner_name: Optional[str] = None,
) -> str:
    occasions = list(occasions)
    if not occasions and together is None:
        return "还没有设置纪念日或生日，使用「情话设置 anniversary YYYY-MM-DD」添加。"

    lines = []
    if together is not None:
        years, days = divmod(together, 365)
        lines.append(f"💞 已经在一起 {together} 天 ({years} 年 {days} 天)")

    for occasion in occasions:
        label = OCCASION_LABELS.get(occasion.kind, occasion.kind)
        if occasion.kind == "birthday" and partner_name:
            label = f"{partner_name} 的生日"
        if occasion.days_until == 0:
            lines.append(f"🎉 今天就是{label}！")
        else:
            soon = " (快到了！)" if occasion.days_until <= 7 else ""
            lines.append(f"⏳ 距离{label}还有 {occasion.days_until} 天{soon}")
    return "\n".join(lines)


def format_tier_history(logs: Iterable) -> str:
    logs = list(logs)
    if not logs:
        return "暂无等级变更记录。"
    lines = ["📜 等级变更记录"]
    for log in logs:
        old = TIER_NAMES.get(log.old_tier, str(log.old_tier))
        new = TIER_NAMES.get(log.new_tier, str(log.new_tier))
        reason = f" ({log.reason})" if log.reason else ""
        lines.append(f"- {old} → {new} by {log.changed_by}{reason}")
    return "\n".join(lines)


def format_quick_replies(replies: Iterable[str]) -> str:
    replies = list(replies)
    if not replies:
        return "暂无回复建议。"
    return "💬 回复建议:\n" + "\n".join(f"{i}. {r}" for i, r in enumerate(replies, 1))


def format_profile(profile) -> str:
    """「情话设置」不带参数时展示当前偏好"""
    language = LOVE_LANGUAGE_NAMES.get(profile.love_language, "未设置")
    tone = TONE_NAMES.get(profile.preferred_tone, "未设置")
    lines = [
        f"⚙️ 当前情话设置 ({TIER_NAMES.get(profile.tier, TIER_NAMES[0])})",
        f"target: {profile.target}",
        f"partner: {profile.partner_name or '未设置'}",
        f"love_language: {language}",
        f"tone: {tone}",
        f"anniversary: {profile.anniversary_date or '未设置'}",
        f"birthday: {profile.partner_birthday or '未设置'}",
        f"together_since: {profile.relationship_start or '未设置'}",
    ]
    if profile.delivery_enabled:
        lines.append(f"推送: 早安 {profile.morning_time} / 晚安 {profile.night_time}")
    else:
        lines.append("推送: 未开启")
    return "\n".join(lines)
