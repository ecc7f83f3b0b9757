import os
from datetime import date

from astrbot.api import logger
from astrbot.api.event import AstrMessageEvent, filter
from astrbot.core.message.components import Image
from astrbot.core.star import Star
from astrbot.core.star.context import Context

from .src.errors import EmptyCandidatePoolError, InvalidDateError, PoolFormatError
from .src.handlers.delivery import DeliveryScheduler
from .src.handlers.spark_formatter import (
    format_archive,
    format_countdown,
    format_daily_spark,
    format_profile,
    format_quick_replies,
    format_spark_message,
    format_tier_history,
)
from .src.models.pool import MIDDAY_KINDS, TIER_NAMES
from .src.persistence.database import DBManager
from .src.persistence.repo import SparkRepo
from .src.pool.loader import PoolStore
from .src.selection.archive import build_archive, export_archive, filter_archive
from .src.selection.occasions import days_together, upcoming_occasions
from .src.selection.selector import SparkSelector
from .src.stats.pool_stats import collect_pool_stats, render_markdown, render_summary
from .src.visual.renderer import SparkCardRenderer, build_card_data
from .src.visual.theme_manager import ThemeManager

# 「情话设置」的字段别名 -> SparkProfile 字段
SETTING_ALIASES = {
    "target": "target",
    "对象": "target",
    "partner": "partner_name",
    "昵称": "partner_name",
    "love_language": "love_language",
    "爱语": "love_language",
    "tone": "preferred_tone",
    "语气": "preferred_tone",
    "anniversary": "anniversary_date",
    "纪念日": "anniversary_date",
    "birthday": "partner_birthday",
    "生日": "partner_birthday",
    "together_since": "relationship_start",
    "在一起": "relationship_start",
}


class LuvoraPlugin(Star):
    def __init__(self, context: Context, config: dict):
        super().__init__(context)
        self.config = config

        # 1. 持久化存储路径: data/plugin_data/astrbot_plugin_luvora/
        from astrbot.core.utils.astrbot_path import get_astrbot_plugin_data_path

        data_dir = os.path.join(get_astrbot_plugin_data_path(), "astrbot_plugin_luvora")
        if not os.path.exists(data_dir):
            os.makedirs(data_dir, exist_ok=True)

        self.db_mgr = DBManager(os.path.join(data_dir, "luvora.db"))
        self.repo = SparkRepo(self.db_mgr)

        # 2. 消息池只在首次使用时加载，选择器持有加载后的只读数据
        plugin_root = os.path.dirname(os.path.abspath(__file__))
        self.pool_store = PoolStore(self.config.get("pool_path") or None)
        self._selector: SparkSelector | None = None

        self.theme_mgr = ThemeManager(plugin_root)
        self.renderer = SparkCardRenderer(self.theme_mgr)
        self.scheduler = DeliveryScheduler(
            context, self.repo, self._get_selector, self.config
        )

    async def initialize(self):
        """AstrBot 调用的异步初始化方法"""
        await self.db_mgr.init_db()
        logger.info("Luvora DB initialized.")

        pool = self.pool_store.get()
        self._selector = SparkSelector(pool)
        logger.info(
            f"Luvora 消息池已加载: v{pool.version}, {pool.total_messages()} 条, 来源 {self.pool_store.path}"
        )

        if self.config.get("enable_delivery", True):
            self.scheduler.start()

    async def terminate(self):
        await self.scheduler.stop()
        await self.db_mgr.dispose()

    def _get_selector(self) -> SparkSelector:
        if self._selector is None:
            self._selector = SparkSelector(self.pool_store.get())
        return self._selector

    def _scope(self, event: AstrMessageEvent) -> tuple[str, str]:
        group_id = event.message_obj.group_id
        user_id = str(event.message_obj.sender.user_id)
        return (str(group_id) if group_id else "private"), user_id

    async def _profile(self, event: AstrMessageEvent):
        group_id, user_id = self._scope(event)
        return await self.repo.ensure_profile(
            group_id, user_id, self.config.get("default_target", "neutral")
        )

    def _spark_for(self, profile, day):
        return self._get_selector().spark_for_user(
            day,
            user_id=profile.user_id,
            target=profile.target,
            tier=profile.tier,
            love_language=profile.love_language,
            preferred_tone=profile.preferred_tone,
            anniversary_date=profile.anniversary_date,
            partner_birthday=profile.partner_birthday,
        )

    @filter.command("今日情话")
    async def cmd_today(self, event: AstrMessageEvent, slot: str = ""):
        """获取今天的早安/晚安情话"""
        if not self._is_group_allowed(event.message_obj.group_id):
            return
        if slot and slot not in ("morning", "night"):
            yield event.plain_result("用法: 今日情话 [morning|night]")
            return

        profile = await self._profile(event)
        try:
            spark = self._spark_for(profile, date.today())
        except EmptyCandidatePoolError as e:
            logger.error(f"[Luvora] 消息池缺少可选消息: {e}")
            yield event.plain_result("消息池中暂时没有适合你的情话，请联系管理员检查消息池。")
            return

        yield event.plain_result(
            format_daily_spark(spark, profile.partner_name, profile.tier, slot or None)
        )

    @filter.command("情话归档")
    async def cmd_archive(self, event: AstrMessageEvent, keyword: str = ""):
        """
        按订阅等级回看历史情话 (免费 7 天 / Hero 30 天 / Legend 90 天)。
        关键词: 收藏 / 稀有度 / 导出 / json / 任意搜索词
        """
        if not self._is_group_allowed(event.message_obj.group_id):
            return

        profile = await self._profile(event)
        try:
            entries = build_archive(
                self._get_selector(),
                date.today(),
                profile.target,
                profile.tier,
                favorites=self.repo.favorites_of(profile),
            )
        except EmptyCandidatePoolError as e:
            logger.error(f"[Luvora] 归档生成失败: {e}")
            yield event.plain_result("归档生成失败，消息池数据不完整。")
            return

        if keyword in ("导出", "export"):
            yield event.plain_result(export_archive(entries, "text"))
            return
        if keyword == "json":
            yield event.plain_result(export_archive(entries, "json"))
            return

        if keyword in ("收藏", "favorites"):
            entries = filter_archive(entries, favorites_only=True)
        elif keyword in ("common", "rare", "epic", "legendary"):
            entries = filter_archive(entries, rarity=keyword)
        elif keyword:
            entries = filter_archive(entries, query=keyword)
        yield event.plain_result(format_archive(entries))

    @filter.command("情话收藏")
    async def cmd_favorite(self, event: AstrMessageEvent, day: str = ""):
        """收藏/取消收藏某天的情话，默认今天"""
        if not self._is_group_allowed(event.message_obj.group_id):
            return

        group_id, user_id = self._scope(event)
        try:
            is_favorite = await self.repo.toggle_favorite(
                group_id, user_id, day or date.today().isoformat()
            )
        except InvalidDateError:
            yield event.plain_result("日期格式应为 YYYY-MM-DD")
            return
        yield event.plain_result("已收藏 ★" if is_favorite else "已取消收藏")

    @filter.command("情话设置")
    async def cmd_settings(
        self, event: AstrMessageEvent, field: str = "", value: str = ""
    ):
        """设置情话偏好，例如: 情话设置 target feminine"""
        if not self._is_group_allowed(event.message_obj.group_id):
            return

        if not field:
            profile = await self._profile(event)
            yield event.plain_result(format_profile(profile))
            return

        key = SETTING_ALIASES.get(field)
        if not key:
            yield event.plain_result(
                "用法: 情话设置 <字段> <值>\n"
                "字段: target / partner / love_language / tone / anniversary / birthday / together_since"
            )
            return

        group_id, user_id = self._scope(event)
        try:
            await self.repo.update_profile(group_id, user_id, **{key: value})
        except ValueError as e:
            yield event.plain_result(f"设置失败: {e}")
            return
        logger.debug(f"[Luvora] {user_id}@{group_id} 更新 {key}={value!r}")
        yield event.plain_result(f"已更新 {field} = {value or '(清空)'}")

    @filter.command("纪念日倒数")
    async def cmd_countdown(self, event: AstrMessageEvent):
        """纪念日 / 生日倒数与在一起天数"""
        if not self._is_group_allowed(event.message_obj.group_id):
            return

        profile = await self._profile(event)
        today = date.today()
        occasions = upcoming_occasions(
            today,
            anniversary=profile.anniversary_date or None,
            birthday=profile.partner_birthday or None,
        )
        together = (
            days_together(profile.relationship_start, today)
            if profile.relationship_start
            else None
        )
        yield event.plain_result(
            format_countdown(occasions, together, profile.partner_name)
        )

    @filter.command("午间情话")
    async def cmd_midday(self, event: AstrMessageEvent, kind: str = ""):
        """午间问候，可选 check_in / encouragement"""
        if not self._is_group_allowed(event.message_obj.group_id):
            return
        if kind and kind not in MIDDAY_KINDS:
            yield event.plain_result(f"用法: 午间情话 [{'|'.join(MIDDAY_KINDS)}]")
            return

        profile = await self._profile(event)
        try:
            message = self._get_selector().select_midday(
                date.today(), profile.target, kind or None
            )
        except EmptyCandidatePoolError as e:
            logger.error(f"[Luvora] 消息池缺少午间消息: {e}")
            yield event.plain_result("消息池中暂时没有午间情话。")
            return
        yield event.plain_result(
            format_spark_message(message.content, profile.partner_name, "midday")
        )

    @filter.command("情话回复")
    async def cmd_replies(self, event: AstrMessageEvent):
        """根据今天早安情话的语气给出回复建议"""
        if not self._is_group_allowed(event.message_obj.group_id):
            return

        profile = await self._profile(event)
        today = date.today()
        try:
            tone = self._spark_for(profile, today).morning.tone
        except EmptyCandidatePoolError:
            tone = None
        replies = self._get_selector().quick_replies(today, tone)
        yield event.plain_result(format_quick_replies(replies))

    @filter.command("情话卡片")
    async def cmd_card(self, event: AstrMessageEvent):
        """把今天的情话渲染成卡片图片"""
        if not self._is_group_allowed(event.message_obj.group_id):
            return

        profile = await self._profile(event)
        try:
            spark = self._spark_for(profile, date.today())
        except EmptyCandidatePoolError as e:
            logger.error(f"[Luvora] 消息池缺少可选消息: {e}")
            yield event.plain_result("消息池中暂时没有适合你的情话，请联系管理员检查消息池。")
            return

        if not self.config.get("enable_card_render", True):
            text = format_daily_spark(spark, profile.partner_name, profile.tier)
            yield event.plain_result(text)
            return

        data = build_card_data(
            spark, profile.partner_name, TIER_NAMES.get(profile.tier, TIER_NAMES[0])
        )
        theme = self.config.get("theme", "classic")
        try:
            image_path = await self.renderer.render(data, theme_name=theme)
            yield event.chain_result([Image.fromFileSystem(image_path)])
        except Exception as e:
            # 渲染失败回退为文本
            logger.error(f"Render failed: {e}", exc_info=True)
            text = format_daily_spark(spark, profile.partner_name, profile.tier)
            yield event.plain_result(text)

    @filter.command("情话订阅")
    async def cmd_subscribe(
        self,
        event: AstrMessageEvent,
        switch: str = "",
        morning_time: str = "",
        night_time: str = "",
    ):
        """开启/关闭定时推送，例如: 情话订阅 on 07:30 23:00"""
        if not self._is_group_allowed(event.message_obj.group_id):
            return
        if switch not in ("on", "off"):
            yield event.plain_result("用法: 情话订阅 <on|off> [早安时间 HH:MM] [晚安时间 HH:MM]")
            return

        group_id, user_id = self._scope(event)
        enabled = switch == "on"
        profile = await self.repo.get_profile(group_id, user_id)
        if enabled and not morning_time and (not profile or not profile.delivery_enabled):
            morning_time = self.config.get("default_morning_time", "08:00")
            night_time = night_time or self.config.get("default_night_time", "22:00")

        try:
            profile = await self.repo.set_delivery(
                group_id,
                user_id,
                enabled,
                unified_msg_origin=event.unified_msg_origin,
                morning_time=morning_time or None,
                night_time=night_time or None,
            )
        except ValueError as e:
            yield event.plain_result(f"订阅失败: {e}")
            return

        if enabled:
            yield event.plain_result(
                f"已订阅每日情话: 早安 {profile.morning_time}，晚安 {profile.night_time}"
            )
        else:
            yield event.plain_result("已取消每日情话推送")

    @filter.permission_type(filter.PermissionType.ADMIN)
    @filter.command("情话等级")
    async def cmd_set_tier(
        self,
        event: AstrMessageEvent,
        user_id: str = "",
        tier: str = "",
        reason: str = "",
    ):
        """管理员调整用户订阅等级 (0=Voyager, 1=Hero, 2=Legend)"""
        if not user_id or not tier.isdigit():
            yield event.plain_result("用法: 情话等级 <用户ID> <0|1|2> [原因]")
            return

        group_id, admin_id = self._scope(event)
        try:
            old, new = await self.repo.set_tier(
                group_id, user_id, int(tier), changed_by=admin_id, reason=reason
            )
        except ValueError as e:
            yield event.plain_result(f"调整失败: {e}")
            return

        logger.info(f"[Luvora] {admin_id} 将 {user_id}@{group_id} 的等级从 {old} 调整为 {new}")
        yield event.plain_result(f"{user_id}: {TIER_NAMES[old]} → {TIER_NAMES[new]}")

    @filter.permission_type(filter.PermissionType.ADMIN)
    @filter.command("情话等级记录")
    async def cmd_tier_history(self, event: AstrMessageEvent, user_id: str = ""):
        if not user_id:
            yield event.plain_result("用法: 情话等级记录 <用户ID>")
            return
        group_id, _ = self._scope(event)
        logs = await self.repo.get_tier_history(group_id, user_id)
        yield event.plain_result(format_tier_history(logs))

    @filter.permission_type(filter.PermissionType.ADMIN)
    @filter.command("情话统计")
    async def cmd_stats(self, event: AstrMessageEvent, fmt: str = ""):
        """消息池内容统计，「情话统计 md」输出完整报告"""
        stats = collect_pool_stats(self.pool_store.get())
        if fmt == "md":
            yield event.plain_result(render_markdown(stats, date.today().isoformat()))
        else:
            yield event.plain_result(render_summary(stats))

    @filter.permission_type(filter.PermissionType.ADMIN)
    @filter.command("情话重载")
    async def cmd_reload(self, event: AstrMessageEvent):
        """重新加载消息池，失败时保留旧数据"""
        try:
            pool = self.pool_store.reload()
        except PoolFormatError as e:
            logger.error(f"[Luvora] 消息池重载失败: {e}")
            yield event.plain_result(f"重载失败，继续使用旧消息池: {e}")
            return

        self._selector = SparkSelector(pool)
        logger.info(f"[Luvora] 消息池已重载: v{pool.version}")
        yield event.plain_result(f"消息池已重载: v{pool.version}，共 {pool.total_messages()} 条")

    def _is_group_allowed(self, group_id: int | str | None) -> bool:
        """检查群组是否在黑白名单允许范围内"""
        if not group_id:
            return True  # 私聊不限制

        mode = self.config.get("group_list_mode", "none")
        if mode == "none":
            return True

        group_list = [str(g) for g in self.config.get("group_list", [])]
        group_id_str = str(group_id)

        if mode == "whitelist":
            return group_id_str in group_list
        if mode == "blacklist":
            return group_id_str not in group_list

        return True
