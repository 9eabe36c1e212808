"""
Theme presets and the theme cascade.

The ThemeManager owns the named presets and the "current" theme pointer. It is
created once per process (or per test) and injected into the orchestrator and
its engines, so every consumer sees the same presets.
"""
import copy
import logging
from typing import Any, Dict, Optional, Union

from ..chart_types import CHART_FAMILY, VisualizationType
from ..exceptions import InvalidTypeError, UnknownThemeError
from .merge import set_default_path

LIGHT_THEME = {
    "backgroundColor": "#ffffff",
    "textColor": "#333333",
    "gridColor": "#dddddd",
    "colors": ["#4285F4", "#EA4335", "#FBBC05", "#34A853",
               "#FF6D01", "#46BDC6", "#7B61FF", "#1E88E5"],
}

DARK_THEME = {
    "backgroundColor": "#222222",
    "textColor": "#ffffff",
    "gridColor": "#444444",
    "colors": ["#8AB4F8", "#F28B82", "#FDD663", "#81C995",
               "#FCAD70", "#78D9EC", "#C58FFF", "#64B5F6"],
}

THEME_FIELDS = ("backgroundColor", "textColor", "gridColor", "colors")

ThemeLike = Union[str, Dict[str, Any]]


def adjust_color(color: Optional[str], amount: int) -> Optional[str]:
    """Lighten (positive) or darken (negative) a hex color, clamping each channel."""
    if not color or not isinstance(color, str) or color[0] != "#":
        return color
    hex_value = color[1:]
    if len(hex_value) == 3:
        hex_value = "".join(ch * 2 for ch in hex_value)
    if len(hex_value) != 6:
        return color
    try:
        channels = [int(hex_value[i:i + 2], 16) for i in (0, 2, 4)]
    except ValueError:
        return color
    adjusted = [max(0, min(255, channel + amount)) for channel in channels]
    return "#" + "".join(f"{channel:02x}" for channel in adjusted)


class ThemeManager:
    """Stores theme presets, tracks the current theme and merges themes into options."""

    def __init__(self, theme: Optional[ThemeLike] = None):
        self.logger = logging.getLogger("PolyViz." + self.__class__.__name__)
        self.themes: Dict[str, Dict[str, Any]] = {
            "light": copy.deepcopy(LIGHT_THEME),
            "dark": copy.deepcopy(DARK_THEME),
        }
        self._current_theme = copy.deepcopy(self.themes["light"])
        if theme is not None:
            self.set_theme(theme)

    def set_theme(self, theme: ThemeLike) -> Dict[str, Any]:
        """Switch the current theme to a registered name or a copy of a theme dict."""
        self._current_theme = self.resolve(theme)
        self.logger.debug("Current theme set to %s", theme if isinstance(theme, str) else "<custom>")
        return self.get_current_theme()

    def register_theme(self, name: str, theme: Dict[str, Any]) -> None:
        """Add or overwrite a named preset."""
        if not name or not isinstance(name, str):
            raise ValueError("Theme name is required")
        if not theme or not isinstance(theme, dict):
            raise ValueError("Theme configuration is required")
        self.themes[name] = copy.deepcopy(theme)
        self.logger.info("Registered theme '%s'", name)

    def get_theme(self, name: str) -> Dict[str, Any]:
        """Return a copy of a registered preset."""
        if name not in self.themes:
            raise UnknownThemeError(f"Theme \"{name}\" not found")
        return copy.deepcopy(self.themes[name])

    def get_current_theme(self) -> Dict[str, Any]:
        """Return a copy of the theme applied when none is given explicitly."""
        return copy.deepcopy(self._current_theme)

    def get_all_themes(self) -> Dict[str, Dict[str, Any]]:
        """Return copies of every registered preset keyed by name."""
        return copy.deepcopy(self.themes)

    def resolve(self, theme: Optional[ThemeLike]) -> Dict[str, Any]:
        """Turn a theme name, dict or None (current theme) into a new theme dict."""
        if theme is None:
            return self.get_current_theme()
        if isinstance(theme, str):
            return self.get_theme(theme)
        if isinstance(theme, dict):
            return copy.deepcopy(theme)
        raise TypeError(f"Invalid theme: expected name or dict, got {type(theme).__name__}")

    def apply_theme(self, options: Optional[Dict[str, Any]], visualization_type,
                    theme: Optional[ThemeLike] = None) -> Dict[str, Any]:
        """
        Merge a theme into visualization options without overriding the caller.

        Args:
            options: Options supplied by the caller; never mutated.
            visualization_type: Type (enum or string) the options are for.
            theme: Theme name or dict; defaults to the current theme.

        Returns:
            A new options dict where only unset fields were filled from the
            theme. Chart types additionally get legend, tooltip and axis
            colors synthesized from the theme when absent.
        """
        theme_to_apply = self.resolve(theme)
        themed = copy.deepcopy(options) if options else {}

        for field in THEME_FIELDS:
            if theme_to_apply.get(field) is not None and themed.get(field) is None:
                themed[field] = copy.deepcopy(theme_to_apply[field])

        if self._is_chart_type(visualization_type):
            self._apply_chart_theme(themed, theme_to_apply)
        return themed

    def _apply_chart_theme(self, themed: Dict[str, Any], theme: Dict[str, Any]) -> None:
        """Fill chart-specific structural color fields that the caller left unset."""
        text_color = theme.get("textColor")
        grid_color = theme.get("gridColor")

        set_default_path(themed, ("plugins", "legend", "labels", "color"), text_color)

        tooltip = ("plugins", "tooltip")
        set_default_path(themed, tooltip + ("backgroundColor",),
                         adjust_color(theme.get("backgroundColor"), -20))
        set_default_path(themed, tooltip + ("titleColor",), text_color)
        set_default_path(themed, tooltip + ("bodyColor",), text_color)
        set_default_path(themed, tooltip + ("borderColor",), grid_color)

        for axis in ("x", "y"):
            set_default_path(themed, ("scales", axis, "grid", "color"), grid_color)
            set_default_path(themed, ("scales", axis, "ticks", "color"), text_color)

    @staticmethod
    def _is_chart_type(visualization_type) -> bool:
        try:
            return VisualizationType.from_string(visualization_type) in CHART_FAMILY
        except InvalidTypeError:
            return False
