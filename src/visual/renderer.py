from astrbot.core import html_renderer
from astrbot.core.log import LogManager
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..models.pool import TONE_NAMES, DailySpark
from ..selection.rarity import get_rarity_info
from ..handlers.spark_formatter import personalize
from .theme_manager import ThemeManager

logger = LogManager.GetLogger("astrbot_plugin_luvora.renderer")


def build_card_data(
    spark: DailySpark, partner_name: str = "", tier_name: str = "Voyager"
) -> dict:
    """整理模板需要的数据"""
    slots = {}
    for name in ("morning", "night"):
        message = getattr(spark, name)
        info = get_rarity_info(message.rarity)
        slots[name] = {
            "content": personalize(message.content, partner_name),
            "rarity": message.rarity,
            "rarity_label": info.label,
            "tone_label": TONE_NAMES.get(message.tone or "", message.tone or ""),
        }
    return {
        "date": spark.date,
        "nickname": spark.nickname or "",
        "partner_name": partner_name,
        "tier_name": tier_name,
        "occasion": spark.occasion if spark.is_special_occasion else "",
        "morning": slots["morning"],
        "night": slots["night"],
    }


class SparkCardRenderer:
    def __init__(self, theme_manager: ThemeManager):
        self.theme_manager = theme_manager
        self.env = Environment(
            loader=FileSystemLoader(theme_manager.themes_dir),
            autoescape=select_autoescape(["html"]),
        )

    def resolve_theme(self, theme_name: str) -> str:
        """配置的主题不存在时回退到 classic"""
        if theme_name in self.theme_manager.list_themes():
            return theme_name
        logger.warning(f"主题 {theme_name} 不存在，使用 classic")
        return "classic"

    def render_html(self, data: dict, theme_name: str = "classic") -> str:
        template_name = self.theme_manager.get_template_name(theme_name)
        template = self.env.get_template(template_name)
        theme_config = self.theme_manager.get_theme_config(theme_name)

        data = dict(data)
        for slot in ("morning", "night"):
            color = self.theme_manager.get_rarity_color(data[slot]["rarity"], theme_name)
            data[slot] = {**data[slot], "color": color}
        return template.render(data=data, theme_config=theme_config)

    async def render(self, data: dict, theme_name: str = "classic") -> str:
        """
        Render the spark card to an image.
        Returns: absolute path to the generated image file.
        """
        theme_name = self.resolve_theme(theme_name)
        logger.info(f"开始渲染情话卡片，主题: {theme_name}")

        try:
            html_content = self.render_html(data, theme_name)
            logger.debug(f"HTML 生成成功，长度: {len(html_content)}")
        except Exception as e:
            logger.error(f"Jinja2 渲染失败: {e}")
            raise

        size = self.theme_manager.get_theme_config(theme_name).get("size", {})
        try:
            path = await html_renderer.render_custom_template(
                tmpl_str=html_content,
                tmpl_data={},
                return_url=False,
                options={
                    "type": "jpeg",
                    "clip": {
                        "x": 0,
                        "y": 0,
                        "width": size.get("width", 540),
                        "height": size.get("height", 760),
                    },
                },
            )
            logger.info(f"卡片生成完成: {path}")
            return path
        except Exception as e:
            logger.error(f"AstrBot 渲染引擎调用失败: {e}")
            raise
