"""Visualization types supported by the facade and the engine family handling each."""

from enum import Enum

from .exceptions import InvalidTypeError


class EngineKind(Enum):
    """Tag identifying which engine owns a visualization."""
    CHART = "chart"
    LAYOUT = "layout"
    SCENE = "scene"


class VisualizationType(Enum):
    """Enumeration of supported visualization types."""
    # 2D chart types
    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    DOUGHNUT = "doughnut"
    RADAR = "radar"
    POLAR_AREA = "polarArea"
    BUBBLE = "bubble"
    SCATTER = "scatter"
    # custom layouts
    TREE = "tree"
    FORCE = "force"
    SANKEY = "sankey"
    TREEMAP = "treemap"
    CHORD = "chord"
    PACK = "pack"
    # 3D scenes
    BAR_3D = "bar3d"
    SCATTER_3D = "scatter3d"
    SURFACE = "surface"
    GLOBE = "globe"

    @classmethod
    def from_string(cls, visualization_type) -> 'VisualizationType':
        """Convert a value ("polarArea") or member name ("POLAR_AREA") to the enum."""
        if isinstance(visualization_type, cls):
            return visualization_type
        if not isinstance(visualization_type, str):
            raise InvalidTypeError(f"Unknown visualization type: {visualization_type!r}")
        for member in cls:
            if member.value == visualization_type:
                return member
        try:
            return cls[visualization_type.upper()]
        except KeyError as exc:
            raise InvalidTypeError(
                f"Unknown visualization type: {visualization_type}"
            ) from exc

    @property
    def family(self) -> EngineKind:
        """The engine family that renders this type."""
        if self in CHART_FAMILY:
            return EngineKind.CHART
        if self in LAYOUT_FAMILY:
            return EngineKind.LAYOUT
        return EngineKind.SCENE


CHART_FAMILY = frozenset({
    VisualizationType.BAR, VisualizationType.LINE, VisualizationType.PIE,
    VisualizationType.DOUGHNUT, VisualizationType.RADAR, VisualizationType.POLAR_AREA,
    VisualizationType.BUBBLE, VisualizationType.SCATTER,
})

LAYOUT_FAMILY = frozenset({
    VisualizationType.TREE, VisualizationType.FORCE, VisualizationType.SANKEY,
    VisualizationType.TREEMAP, VisualizationType.CHORD, VisualizationType.PACK,
})

SCENE_FAMILY = frozenset({
    VisualizationType.BAR_3D, VisualizationType.SCATTER_3D,
    VisualizationType.SURFACE, VisualizationType.GLOBE,
})

# Sub-types whose rendering is a logged placeholder
PLACEHOLDER_TYPES = frozenset({
    VisualizationType.SANKEY, VisualizationType.CHORD,
    VisualizationType.SURFACE, VisualizationType.GLOBE,
})

ANIMATION_PRESETS = {
    "fade_in": {"duration": 1000, "easing": "easeOutQuad"},
    "slide_in": {"duration": 800, "easing": "easeOutCubic"},
    "bounce": {"duration": 1200, "easing": "easeOutBounce"},
}
