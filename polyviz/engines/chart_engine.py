"""
Engine for the 2D chart family (bar, line, pie, doughnut, radar, polarArea,
bubble, scatter).
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from bs4 import Tag

from ..chart_types import ANIMATION_PRESETS, CHART_FAMILY, EngineKind, VisualizationType
from ..utils.merge import deep_merge
from .base import BaseEngine, EngineResource

BASE_OPTIONS = {
    "responsive": True,
    "maintainAspectRatio": False,
    "animation": {"duration": 1000, "easing": "easeOutQuad"},
    "plugins": {
        "legend": {"display": True, "position": "top"},
        "tooltip": {"enabled": True},
    },
}

TYPE_OPTIONS = {
    VisualizationType.BAR: {
        "scales": {"x": {"grid": {"display": False}}, "y": {"beginAtZero": True}},
    },
    VisualizationType.LINE: {
        "elements": {"line": {"tension": 0.4}},
    },
}


@dataclass
class ChartResource(EngineResource):
    chart: Any = None
    surface: Optional[Tag] = None
    owns_surface: bool = False


class ChartEngine(BaseEngine):
    """
    Draws charts through a chart backend bound to the container's canvas.
    """
    kind = EngineKind.CHART

    @property
    def supported_types(self) -> frozenset:
        return CHART_FAMILY

    def default_options(self, visualization_type: VisualizationType) -> Dict[str, Any]:
        return deep_merge(BASE_OPTIONS, TYPE_OPTIONS.get(visualization_type, {}))

    def build_options(self, visualization_type, options, theme=None) -> Dict[str, Any]:
        rendered = super().build_options(visualization_type, options, theme)
        animation = rendered.get("animation")
        if isinstance(animation, str):
            if animation in ANIMATION_PRESETS:
                rendered["animation"] = dict(ANIMATION_PRESETS[animation])
            else:
                self.logger.warning("Unknown animation preset '%s'; using defaults", animation)
                rendered["animation"] = dict(BASE_OPTIONS["animation"])
        return rendered

    def _surface(self, container: Tag, width: int, height: int):
        """The container's canvas, created (after clearing the container) if missing."""
        canvas = container.find("canvas", recursive=False)
        owns_surface = canvas is None
        if owns_surface:
            container.clear()
            canvas = self.page.new_tag("canvas")
            container.append(canvas)
        else:
            canvas.clear()
        canvas["width"] = str(width)
        canvas["height"] = str(height)
        return canvas, owns_surface

    def create_visualization(self, container: Tag, visualization_type: VisualizationType,
                             data: Any, options: Dict[str, Any], theme=None,
                             visualization_id: Optional[str] = None) -> ChartResource:
        backend = self.require_backend("create")
        rendered = self.build_options(visualization_type, options, theme)
        width, height = self.dimensions(container, rendered)
        with self.rendering("create", visualization_id):
            surface, owns_surface = self._surface(container, width, height)
            chart = backend(surface, {"type": visualization_type.value, "data": data,
                                      "options": rendered})
        self.logger.debug("Created %s chart %s", visualization_type.value, visualization_id)
        return ChartResource(
            id=visualization_id, type=visualization_type, container=container, data=data,
            options=options, theme=theme, rendered_options=rendered, width=width, height=height,
            chart=chart, surface=surface, owns_surface=owns_surface,
        )

    def update_visualization(self, resource: ChartResource, data: Any,
                             options: Dict[str, Any], theme=None) -> ChartResource:
        self.require_backend("update")
        rendered = self.build_options(resource.type, options, theme)
        chart = resource.chart
        previous = (chart.data, chart.options)
        with self.rendering("update", resource.id):
            try:
                if data is not None:
                    chart.data = data
                chart.options = rendered
                chart.update()
            except Exception:
                chart.data, chart.options = previous
                raise
        if data is not None:
            resource.data = data
        resource.options = options
        resource.theme = theme
        resource.rendered_options = rendered
        return resource

    def destroy_visualization(self, resource: ChartResource) -> bool:
        self.require_backend("destroy")
        with self.rendering("destroy", resource.id):
            resource.chart.destroy()
        if resource.owns_surface and resource.surface is not None:
            resource.surface.extract()
        resource.chart = None
        self.logger.debug("Destroyed chart %s", resource.id)
        return True

    def export_as_image(self, resource: ChartResource, image_format: str = "png", **options):
        self.require_backend("export")
        image_format = self.check_export_format(image_format)
        quality = options.get("quality", self.settings.jpeg_quality)
        with self.rendering("export", resource.id):
            return resource.chart.to_data_url(f"image/{image_format}", quality)
