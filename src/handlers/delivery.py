import asyncio
from datetime import datetime, timedelta
from typing import Callable

from astrbot.api import logger
from astrbot.api.event import MessageChain
from astrbot.core.star.context import Context

from ..models.tables import SparkProfile
from ..persistence.repo import SparkRepo
from ..selection.selector import SparkSelector
from .spark_formatter import format_spark_message


class DeliveryScheduler:
    """
    定时推送每日情话。
    每隔 check_interval 秒检查一次到点的订阅，通过 AstrBot 平台主动发送。
    """

    def __init__(
        self,
        context: Context,
        repo: SparkRepo,
        selector_provider: Callable[[], SparkSelector],
        config: dict,
    ):
        self.context = context
        self.repo = repo
        self.selector_provider = selector_provider
        self.check_interval = max(10, int(config.get("delivery_check_interval", 60)))
        self._task: asyncio.Task | None = None
        self._last_tick: datetime | None = None

    def start(self):
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"[Luvora] 定时推送已启动，检查间隔 {self.check_interval}s")

    async def stop(self):
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[Luvora] 定时推送已停止")

    async def _run(self):
        while True:
            try:
                await self.tick(datetime.now())
            except Exception as e:
                logger.error(f"[Luvora] 推送轮询失败: {e}", exc_info=True)
            await asyncio.sleep(self.check_interval)

    def build_message(self, profile: SparkProfile, slot: str, today: str) -> str:
        spark = self.selector_provider().spark_for_user(
            today,
            user_id=profile.user_id,
            target=profile.target,
            tier=profile.tier,
            love_language=profile.love_language,
            preferred_tone=profile.preferred_tone,
            anniversary_date=profile.anniversary_date,
            partner_birthday=profile.partner_birthday,
        )
        kind = slot
        if slot == "morning" and spark.is_special_occasion and spark.occasion:
            kind = spark.occasion
        return format_spark_message(
            getattr(spark, slot).content, profile.partner_name, kind
        )

    def _window_start(self, now: datetime) -> str | None:
        # 窗口从上一轮开始；首轮往前看一个检查间隔
        since = self._last_tick or now - timedelta(seconds=self.check_interval)
        if now - since >= timedelta(days=1):
            return None
        return since.strftime("%H:%M")

    async def tick(self, now: datetime) -> dict:
        """执行一轮推送，返回 {"sent": n, "errors": n}"""
        today = now.date().isoformat()
        hhmm = now.strftime("%H:%M")
        since = self._window_start(now)
        self._last_tick = now
        stats = {"sent": 0, "errors": 0}

        for slot in ("morning", "night"):
            profiles = await self.repo.due_deliveries(slot, hhmm, today, since)
            for profile in profiles:
                try:
                    text = self.build_message(profile, slot, today)
                    await self.context.send_message(
                        profile.unified_msg_origin, MessageChain().message(text)
                    )
                    await self.repo.mark_delivered(profile.id, slot, today)
                    stats["sent"] += 1
                except Exception as e:
                    # 单个用户失败不影响本轮其他用户
                    stats["errors"] += 1
                    logger.warning(
                        f"[Luvora] 向 {profile.user_id} 推送 {slot} 失败: {e}"
                    )

        if stats["sent"] or stats["errors"]:
            logger.info(f"[Luvora] 本轮推送完成: {stats}")
        return stats
