import json
import re
import time
from datetime import date, timedelta

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import InvalidDateError
from ..models.pool import LOVE_LANGUAGES, TARGETS, TIER_NAMES, TONES
from ..models.tables import SparkProfile, TierAuditLog
from ..selection.occasions import normalize_date
from .database import DBManager

HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

DATE_FIELDS = ("anniversary_date", "partner_birthday", "relationship_start")
EDITABLE_FIELDS = (
    "partner_name",
    "target",
    "love_language",
    "preferred_tone",
    "morning_time",
    "night_time",
    *DATE_FIELDS,
)


def validate_profile_field(field: str, value):
    """校验并规整单个可编辑字段；非法输入抛出 ValueError"""
    if field not in EDITABLE_FIELDS:
        raise ValueError(f"未知字段: {field}")

    value = "" if value is None else str(value).strip()
    if field == "target":
        if value not in TARGETS:
            raise ValueError(f"target 只能是 {', '.join(TARGETS)}")
    elif field == "love_language":
        if value and value not in LOVE_LANGUAGES:
            raise ValueError(f"love_language 只能是 {', '.join(LOVE_LANGUAGES)}")
    elif field == "preferred_tone":
        if value and value not in TONES:
            raise ValueError(f"tone 只能是 {', '.join(TONES)}")
    elif field in ("morning_time", "night_time"):
        if not HHMM_RE.match(value):
            raise ValueError("时间格式应为 HH:MM (24 小时制)")
    elif field in DATE_FIELDS:
        if value:
            try:
                value = normalize_date(value).isoformat()
            except InvalidDateError:
                raise ValueError("日期格式应为 YYYY-MM-DD") from None
    elif field == "partner_name":
        if len(value) > 40:
            raise ValueError("昵称不能超过 40 个字符")
    return value


class SparkRepo:
    """数据仓库，封装所有的数据库交互逻辑"""

    def __init__(self, db_manager: DBManager):
        self.db = db_manager

    async def get_or_create_profile(
        self,
        session: AsyncSession,
        group_id: str,
        user_id: str,
        default_target: str = "neutral",
    ) -> SparkProfile:
        stmt = select(SparkProfile).where(
            SparkProfile.group_id == group_id,
            SparkProfile.user_id == user_id,
        )
        result = await session.execute(stmt)
        profile = result.scalar_one_or_none()

        if not profile:
            profile = SparkProfile(
                group_id=group_id,
                user_id=user_id,
                target=default_target,
                updated_at=time.time(),
            )
            session.add(profile)
            await session.flush()

        return profile

    async def get_profile(self, group_id: str, user_id: str) -> SparkProfile | None:
        async with self.db.get_session() as session:
            stmt = select(SparkProfile).where(
                SparkProfile.group_id == group_id,
                SparkProfile.user_id == user_id,
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def ensure_profile(
        self, group_id: str, user_id: str, default_target: str = "neutral"
    ) -> SparkProfile:
        async with self.db.get_session() as session:
            return await self.get_or_create_profile(
                session, group_id, user_id, default_target
            )

    async def update_profile(
        self, group_id: str, user_id: str, **fields
    ) -> SparkProfile:
        """更新偏好字段，先整体校验再写入"""
        cleaned = {k: validate_profile_field(k, v) for k, v in fields.items()}
        async with self.db.get_session() as session:
            profile = await self.get_or_create_profile(session, group_id, user_id)
            for key, value in cleaned.items():
                setattr(profile, key, value)
            profile.updated_at = time.time()
            session.add(profile)
            return profile

    async def set_tier(
        self,
        group_id: str,
        user_id: str,
        new_tier: int,
        changed_by: str,
        reason: str = "",
    ) -> tuple[int, int]:
        """调整订阅等级并写入审计记录，返回 (旧等级, 新等级)"""
        if new_tier not in TIER_NAMES:
            raise ValueError(f"tier 只能是 {', '.join(str(t) for t in TIER_NAMES)}")

        async with self.db.get_session() as session:
            profile = await self.get_or_create_profile(session, group_id, user_id)
            old_tier = profile.tier
            if old_tier == new_tier:
                return old_tier, new_tier

            profile.tier = new_tier
            profile.updated_at = time.time()
            session.add(profile)
            session.add(
                TierAuditLog(
                    group_id=group_id,
                    user_id=user_id,
                    old_tier=old_tier,
                    new_tier=new_tier,
                    changed_by=changed_by,
                    reason=reason,
                    created_at=time.time(),
                )
            )
            return old_tier, new_tier

    async def get_tier_history(
        self, group_id: str, user_id: str, limit: int = 10
    ) -> list[TierAuditLog]:
        async with self.db.get_session() as session:
            stmt = (
                select(TierAuditLog)
                .where(
                    TierAuditLog.group_id == group_id,
                    TierAuditLog.user_id == user_id,
                )
                .order_by(TierAuditLog.created_at.desc(), TierAuditLog.id.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    @staticmethod
    def favorites_of(profile: SparkProfile | None) -> list[str]:
        if not profile or not profile.favorites:
            return []
        return json.loads(profile.favorites)

    async def toggle_favorite(self, group_id: str, user_id: str, day: str) -> bool:
        """切换收藏状态，返回操作后是否处于收藏中"""
        iso = normalize_date(day).isoformat()
        async with self.db.get_session() as session:
            profile = await self.get_or_create_profile(session, group_id, user_id)
            favorites = self.favorites_of(profile)
            if iso in favorites:
                favorites.remove(iso)
                now_favorite = False
            else:
                favorites.append(iso)
                favorites.sort(reverse=True)
                now_favorite = True
            profile.favorites = json.dumps(favorites)
            profile.updated_at = time.time()
            session.add(profile)
            return now_favorite

    async def set_delivery(
        self,
        group_id: str,
        user_id: str,
        enabled: bool,
        unified_msg_origin: str = "",
        morning_time: str | None = None,
        night_time: str | None = None,
    ) -> SparkProfile:
        times = {}
        if morning_time:
            times["morning_time"] = validate_profile_field("morning_time", morning_time)
        if night_time:
            times["night_time"] = validate_profile_field("night_time", night_time)

        async with self.db.get_session() as session:
            profile = await self.get_or_create_profile(session, group_id, user_id)
            profile.delivery_enabled = enabled
            if unified_msg_origin:
                profile.unified_msg_origin = unified_msg_origin
            for key, value in times.items():
                setattr(profile, key, value)
            profile.updated_at = time.time()
            session.add(profile)
            return profile

    async def due_deliveries(
        self, slot: str, now_hhmm: str, today: str, since_hhmm: str | None = None
    ) -> list[SparkProfile]:
        """
        到点且今天尚未推送该时段的订阅用户。
        给出 since_hhmm 时只匹配时间落在 (since_hhmm, now_hhmm] 内的用户，
        错过的时段不补发；窗口可跨越午夜。
        """
        if slot == "morning":
            time_col = SparkProfile.morning_time
            last_col = SparkProfile.last_morning_date
        elif slot == "night":
            time_col = SparkProfile.night_time
            last_col = SparkProfile.last_night_date
        else:
            raise ValueError(f"Unknown delivery slot: {slot}")

        if since_hhmm is None:
            in_window = time_col <= now_hhmm
        elif since_hhmm <= now_hhmm:
            in_window = and_(time_col > since_hhmm, time_col <= now_hhmm)
        else:
            in_window = or_(time_col > since_hhmm, time_col <= now_hhmm)

        async with self.db.get_session() as session:
            stmt = select(SparkProfile).where(
                SparkProfile.delivery_enabled == True,  # noqa: E712
                SparkProfile.unified_msg_origin != "",
                in_window,
                last_col != today,
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def mark_delivered(
        self, profile_id: int, slot: str, today: str
    ) -> SparkProfile | None:
        """记录推送完成；早安推送连续则 streak +1，中断则重置为 1"""
        async with self.db.get_session() as session:
            profile = await session.get(SparkProfile, profile_id)
            if not profile:
                return None

            if slot == "morning":
                if profile.last_morning_date != today:
                    yesterday = (
                        date.fromisoformat(today) - timedelta(days=1)
                    ).isoformat()
                    if profile.last_morning_date == yesterday:
                        profile.streak += 1
                    else:
                        profile.streak = 1
                profile.last_morning_date = today
            else:
                profile.last_night_date = today

            profile.updated_at = time.time()
            session.add(profile)
            return profile
