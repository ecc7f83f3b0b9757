import os
import yaml
from typing import Dict, Any


class ThemeManager:
    """情话卡片主题：assets/themes/<theme>/{config.yaml, template.html}"""

    def __init__(self, plugin_root: str, default_theme: str = "classic"):
        self.plugin_root = plugin_root
        self.themes_dir = os.path.join(plugin_root, "assets", "themes")
        self.current_theme = default_theme
        self._cache = {}

    def list_themes(self) -> list[str]:
        if not os.path.isdir(self.themes_dir):
            return []
        return sorted(
            name
            for name in os.listdir(self.themes_dir)
            if os.path.exists(os.path.join(self.themes_dir, name, "config.yaml"))
        )

    def get_theme_config(self, theme_name: str = None) -> Dict[str, Any]:
        theme = theme_name or self.current_theme
        if theme in self._cache:
            return self._cache[theme]

        config_path = os.path.join(self.themes_dir, theme, "config.yaml")
        if not os.path.exists(config_path):
            raise ValueError(f"Theme {theme} not found at {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

        self._cache[theme] = config
        return config

    def get_template_name(self, theme_name: str = None) -> str:
        """相对 themes_dir 的模板名，供 Jinja2 FileSystemLoader 使用"""
        theme = theme_name or self.current_theme
        return f"{theme}/template.html"

    def get_rarity_color(self, rarity: str, theme_name: str = None) -> str:
        colors = self.get_theme_config(theme_name).get("rarity_colors", {})
        return colors.get(rarity or "common", colors.get("common", "#9ca3af"))
