"""
Chart objects backed by plotly figures.

``PlotlyChart(surface, config)`` takes a Chart.js-style config (``type``,
``data`` with ``labels``/``datasets``, ``options``) and keeps an equivalent
``plotly.graph_objects.Figure``. The figure JSON is written into the surface
element so the page carries the drawn chart. Mutate ``chart.data`` or
``chart.options`` and call ``update()`` to redraw in place.
"""
import base64
import logging
from typing import Any, Dict, List, Optional

import plotly.graph_objects as go
from bs4 import BeautifulSoup, Tag

from ..chart_types import ANIMATION_PRESETS

logger = logging.getLogger("PolyViz.PlotlyChart")

FIGURE_MIME = "application/vnd.plotly.v1+json"

EASINGS = {
    "linear": "linear",
    "easeInQuad": "quad-in",
    "easeOutQuad": "quad-out",
    "easeInOutQuad": "quad-in-out",
    "easeInCubic": "cubic-in",
    "easeOutCubic": "cubic-out",
    "easeInOutCubic": "cubic-in-out",
    "easeOutBounce": "bounce-out",
    "easeInBounce": "bounce-in",
    "easeOutElastic": "elastic-out",
}

LEGEND_POSITIONS = {
    "top": {"orientation": "h", "x": 0.5, "xanchor": "center", "y": 1.02, "yanchor": "bottom"},
    "bottom": {"orientation": "h", "x": 0.5, "xanchor": "center", "y": -0.15, "yanchor": "top"},
    "left": {"orientation": "v", "x": -0.15, "xanchor": "right", "y": 1, "yanchor": "top"},
    "right": {"orientation": "v", "x": 1.02, "xanchor": "left", "y": 1, "yanchor": "top"},
}


def _get(mapping: Optional[Dict], *path, default=None):
    for key in path:
        if not isinstance(mapping, dict) or key not in mapping:
            return default
        mapping = mapping[key]
    return mapping


def _first(value):
    """Chart.js allows per-point colour lists; plotly line colours take one value."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _closed(values: List) -> List:
    return list(values) + list(values[:1])


class PlotlyChart:
    """A chart drawn into a surface element."""

    def __init__(self, surface: Tag, config: Dict[str, Any]):
        if not isinstance(config, dict) or "type" not in config:
            raise ValueError("Chart config requires a 'type'")
        self.surface = surface
        self.config = config
        self.data: Dict[str, Any] = config.get("data") or {"labels": [], "datasets": []}
        self.options: Dict[str, Any] = config.get("options") or {}
        self.renders = 0
        self.destroyed = False
        self.figure = go.Figure()
        self._script = BeautifulSoup("", "html.parser").new_tag(
            "script", attrs={"type": FIGURE_MIME})
        surface.append(self._script)
        self._draw(animate=True)

    @property
    def type(self) -> str:
        return self.config["type"]

    def update(self, animate: bool = True) -> None:
        """Redraw the existing figure from the current data and options."""
        if self.destroyed:
            raise RuntimeError("Cannot update a destroyed chart")
        self._draw(animate)

    def destroy(self) -> None:
        """Detach the chart from its surface and release the figure."""
        if self.destroyed:
            return
        self._script.extract()
        self.figure = None
        self.destroyed = True

    def to_data_url(self, mime: str = "image/png", quality: Optional[float] = None) -> str:
        """Encode the chart as an image data URL (requires kaleido)."""
        # pylint: disable=unused-argument
        # kaleido picks its own jpeg quality
        if self.destroyed:
            raise RuntimeError("Cannot export a destroyed chart")
        width, height = self._size()
        payload = self.figure.to_image(format=mime.split("/")[-1], width=width, height=height)
        return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"

    def _size(self):
        def _read(name):
            value = self.surface.get(name) or (self.surface.parent.get("data-" + name)
                                               if self.surface.parent is not None else None)
            try:
                return int(float(value)) if value else None
            except ValueError:
                return None
        return _read("width"), _read("height")

    def _draw(self, animate: bool) -> None:
        self.figure.data = []
        self.figure.add_traces(self._traces())
        self.figure.layout = self._layout(animate)
        self._script.string = self.figure.to_json()
        self.renders += 1

    def _traces(self) -> List[Any]:
        chart_type = self.type
        labels = list(self.data.get("labels") or [])
        datasets = self.data.get("datasets") or []
        palette = self.options.get("colors") or []
        traces = []
        for index, dataset in enumerate(datasets):
            values = list(dataset.get("data") or [])
            name = dataset.get("label")
            background = dataset.get("backgroundColor")
            border = _first(dataset.get("borderColor"))
            border_width = dataset.get("borderWidth", 1)
            if chart_type == "bar":
                traces.append(go.Bar(
                    x=labels, y=values, name=name,
                    marker=dict(color=background, line=dict(color=border, width=border_width)),
                ))
            elif chart_type == "line":
                tension = dataset.get("tension", _get(self.options, "elements", "line", "tension", default=0))
                traces.append(go.Scatter(
                    x=labels, y=values, name=name, mode="lines+markers",
                    fill="tozeroy" if dataset.get("fill") else None,
                    fillcolor=_first(background) if dataset.get("fill") else None,
                    line=dict(color=border, width=border_width,
                              shape="spline" if tension else "linear",
                              smoothing=min(1.3, tension * 2.5) if tension else None),
                ))
            elif chart_type in ("pie", "doughnut"):
                colors = background if isinstance(background, list) else palette or None
                traces.append(go.Pie(
                    labels=labels, values=values, name=name, sort=False,
                    hole=0.5 if chart_type == "doughnut" else 0,
                    marker=dict(colors=colors, line=dict(color=border, width=border_width)),
                    domain=dict(x=[index / len(datasets), (index + 1) / len(datasets)]),
                ))
            elif chart_type == "radar":
                traces.append(go.Scatterpolar(
                    r=_closed(values), theta=_closed(labels), name=name, fill="toself",
                    fillcolor=_first(background), line=dict(color=border, width=border_width),
                ))
            elif chart_type == "polarArea":
                colors = background if isinstance(background, list) else palette or None
                traces.append(go.Barpolar(
                    r=values, theta=labels, name=name,
                    marker=dict(color=colors, line=dict(color=border, width=border_width)),
                ))
            elif chart_type in ("scatter", "bubble"):
                marker = dict(color=background, line=dict(color=border, width=border_width))
                if chart_type == "bubble":
                    marker["size"] = [(point.get("r") or 5) * 2 for point in values]
                traces.append(go.Scatter(
                    x=[point.get("x") for point in values],
                    y=[point.get("y") for point in values],
                    name=name, mode="markers", marker=marker,
                ))
            else:
                raise ValueError(f"Unsupported chart type: {chart_type}")
        return traces

    def _layout(self, animate: bool) -> Dict[str, Any]:
        options = self.options
        layout: Dict[str, Any] = {"autosize": bool(options.get("responsive", True))}
        if options.get("backgroundColor"):
            layout["paper_bgcolor"] = options["backgroundColor"]
            layout["plot_bgcolor"] = options["backgroundColor"]
        if options.get("textColor"):
            layout["font"] = {"color": options["textColor"]}
        if options.get("colors"):
            layout["colorway"] = list(options["colors"])

        legend = _get(options, "plugins", "legend", default={}) or {}
        layout["showlegend"] = legend.get("display", True) is not False
        layout["legend"] = dict(LEGEND_POSITIONS.get(legend.get("position", "top"), LEGEND_POSITIONS["top"]))
        if _get(legend, "labels", "color"):
            layout["legend"]["font"] = {"color": legend["labels"]["color"]}

        title = _get(options, "plugins", "title", default={}) or {}
        if title.get("display") and title.get("text"):
            layout["title"] = {"text": title["text"]}

        tooltip = _get(options, "plugins", "tooltip", default={}) or {}
        if tooltip.get("enabled") is False:
            layout["hovermode"] = False
        hoverlabel = {}
        if tooltip.get("backgroundColor"):
            hoverlabel["bgcolor"] = tooltip["backgroundColor"]
        if tooltip.get("borderColor"):
            hoverlabel["bordercolor"] = tooltip["borderColor"]
        if tooltip.get("bodyColor"):
            hoverlabel["font"] = {"color": tooltip["bodyColor"]}
        if hoverlabel:
            layout["hoverlabel"] = hoverlabel

        axes = {axis: self._axis(_get(options, "scales", axis, default={}) or {}) for axis in ("x", "y")}
        if self.type in ("radar", "polarArea"):
            layout["polar"] = {"radialaxis": axes["y"], "angularaxis": axes["x"]}
        elif self.type not in ("pie", "doughnut"):
            layout["xaxis"] = axes["x"]
            layout["yaxis"] = axes["y"]

        layout["transition"] = self._transition(animate)
        return layout

    @staticmethod
    def _axis(scale: Dict[str, Any]) -> Dict[str, Any]:
        axis: Dict[str, Any] = {}
        grid = scale.get("grid") or {}
        if grid.get("display") is False:
            axis["showgrid"] = False
        if grid.get("color"):
            axis["gridcolor"] = grid["color"]
        if _get(scale, "ticks", "color"):
            axis["tickfont"] = {"color": scale["ticks"]["color"]}
        if scale.get("beginAtZero"):
            axis["rangemode"] = "tozero"
        if _get(scale, "title", "text"):
            axis["title"] = {"text": scale["title"]["text"]}
        return axis

    def _transition(self, animate: bool) -> Dict[str, Any]:
        animation = self.options.get("animation", {})
        if isinstance(animation, str):
            animation = ANIMATION_PRESETS.get(animation, {})
        if not animate or animation is False:
            return {"duration": 0}
        animation = animation if isinstance(animation, dict) else {}
        return {
            "duration": animation.get("duration", 1000),
            "easing": EASINGS.get(animation.get("easing"), "quad-out"),
        }
