"""
Engine for custom SVG layouts (tree, force, treemap, pack, sankey, chord).

Each visualization owns an ``<svg>`` element inside its container. Updates
clear the svg and run the layout again. Force layouts keep animating through
a render loop on the shared frame scheduler until the simulation cools.
"""
import asyncio
import base64
import copy
import functools
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from bs4 import Tag

from ..chart_types import LAYOUT_FAMILY, PLACEHOLDER_TYPES, EngineKind, VisualizationType
from ..exceptions import RenderError
from ..layouts import (TreeArena, build_simulation, clamp_nodes, diagonal, pack_layout,
                       placeholder_layout, tree_layout, treemap_layout)
from ..scheduler import RenderLoop
from .base import BaseEngine, EngineResource

SVG_NS = "http://www.w3.org/2000/svg"
TREE_MARGIN = {"top": 20, "right": 90, "bottom": 30, "left": 90}
NODE_RADIUS = 5

DEFAULT_OPTIONS = {
    "animation": True,
    "showLabels": True,
}


@dataclass
class LayoutState(EngineResource):
    svg: Optional[Tag] = None
    arena: Optional[TreeArena] = None
    network: Optional[Dict[str, Any]] = None
    simulation: Any = None
    loop: Optional[RenderLoop] = None
    placeholder: Optional[Dict[str, Any]] = None


class _Palette:
    """Stable colour per key, assigned in first-seen order."""

    def __init__(self, colors: List[str]):
        self.colors = colors or ["#4285F4"]
        self.assigned: Dict[Any, str] = {}

    def __call__(self, key: Any) -> str:
        if key not in self.assigned:
            self.assigned[key] = self.colors[len(self.assigned) % len(self.colors)]
        return self.assigned[key]


class LayoutEngine(BaseEngine):
    """
    Draws custom layouts into SVG with the layout backend.
    """
    kind = EngineKind.LAYOUT

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.states: Dict[str, LayoutState] = {}

    @property
    def supported_types(self) -> frozenset:
        return LAYOUT_FAMILY

    def default_options(self, visualization_type: VisualizationType) -> Dict[str, Any]:
        return copy.deepcopy(DEFAULT_OPTIONS)

    def create_visualization(self, container: Tag, visualization_type: VisualizationType,
                             data: Any, options: Dict[str, Any], theme=None,
                             visualization_id: Optional[str] = None) -> LayoutState:
        backend = self.require_backend("create")
        rendered = self.build_options(visualization_type, options, theme)
        width, height = self.dimensions(container, rendered)
        state = LayoutState(
            id=visualization_id, type=visualization_type, container=container, data=data,
            options=options, theme=theme, rendered_options=rendered, width=width, height=height,
        )
        with self.rendering("create", visualization_id):
            container.clear()
            state.svg = backend.create("svg")
            container.append(state.svg)
            self._draw(state)
        self.states[visualization_id] = state
        self.logger.debug("Created %s layout %s (%dx%d)", visualization_type.value,
                          visualization_id, width, height)
        return state

    def update_visualization(self, resource: LayoutState, data: Any,
                             options: Dict[str, Any], theme=None) -> LayoutState:
        self.require_backend("update")
        rendered = self.build_options(resource.type, options, theme)
        with self.rendering("update", resource.id), self.restoring(resource, "arena"):
            if data is not None:
                resource.data = data
                resource.arena = None
            resource.options = options
            resource.theme = theme
            resource.rendered_options = rendered
            resource.width, resource.height = self.dimensions(resource.container, rendered)
            self._stop(resource)
            self._draw(resource)
        return resource

    def destroy_visualization(self, resource: LayoutState) -> bool:
        self.require_backend("destroy")
        self._stop(resource)
        if resource.svg is not None:
            resource.svg.extract()
            resource.svg = None
        self.states.pop(resource.id, None)
        self.logger.debug("Destroyed layout %s", resource.id)
        return True

    def export_as_image(self, resource: LayoutState, image_format: str = "png", **options):
        """svg: data URL right away; png/jpeg: awaitable rasterising off the event loop."""
        self.require_backend("export")
        image_format = self.check_export_format(image_format, ("svg", "png", "jpeg"))
        markup = str(resource.svg)
        if image_format == "svg":
            return "data:image/svg+xml;charset=utf-8," + quote(markup)
        quality = options.get("quality", self.settings.jpeg_quality)
        background = resource.rendered_options.get("backgroundColor")
        return self._rasterize(resource, markup, image_format, quality, background)

    async def _rasterize(self, resource: LayoutState, markup: str, image_format: str,
                         quality: float, background: Optional[str]) -> str:
        loop = asyncio.get_running_loop()
        job = functools.partial(self.backend.rasterize, markup, resource.width, resource.height,
                                background, image_format, quality)
        try:
            payload = await loop.run_in_executor(None, job)
        except Exception as e:
            self.logger.error("Error exporting %s: %s", resource.id, str(e), exc_info=True)
            raise RenderError("export", resource.id, e) from e
        return f"data:image/{image_format};base64,{base64.b64encode(payload).decode('ascii')}"

    def toggle_node(self, resource: LayoutState, node_id: int) -> bool:
        """Collapse or expand a tree node and redraw; returns the new collapsed state."""
        if resource.type is not VisualizationType.TREE:
            raise ValueError(f"Cannot toggle nodes of a {resource.type.value} layout")
        self.require_backend("toggle")
        collapsed = resource.arena.toggle(node_id)
        with self.rendering("toggle", resource.id):
            self._clear(resource)
            self._draw(resource)
        return collapsed

    def drag_start(self, resource: LayoutState, node_id: Any) -> Dict[str, Any]:
        """Pin a force node under the pointer and reheat the simulation."""
        node = self._force_node(resource, node_id)
        resource.simulation.drag_start(node)
        if resource.loop is not None and not resource.loop.running:
            resource.loop.resume()
        return node

    def drag(self, resource: LayoutState, node_id: Any, x: float, y: float) -> Dict[str, Any]:
        node = self._force_node(resource, node_id)
        resource.simulation.drag(node, x, y)
        return node

    def drag_end(self, resource: LayoutState, node_id: Any) -> Dict[str, Any]:
        """Let the simulation cool; the pin stays when the fixedNodes option is set."""
        node = self._force_node(resource, node_id)
        keep_fixed = bool(resource.rendered_options.get("fixedNodes"))
        resource.simulation.drag_end(node, keep_fixed=keep_fixed)
        return node

    def _force_node(self, resource: LayoutState, node_id: Any) -> Dict[str, Any]:
        if resource.simulation is None:
            raise ValueError(f"Visualization {resource.id} has no force simulation")
        node = resource.simulation.find(node_id)
        if node is None:
            raise KeyError(f"Unknown node: {node_id}")
        return node

    def _stop(self, state: LayoutState) -> None:
        """Cancel the render loop and halt the simulation, then empty the svg."""
        if state.loop is not None and not state.loop.cancelled:
            state.loop.cancel()
        state.loop = None
        if state.simulation is not None:
            state.simulation.stop()
            state.simulation = None
        self._clear(state)

    def _clear(self, state: LayoutState) -> None:
        if state.svg is not None:
            self.backend.select(state.svg).clear()

    def _draw(self, state: LayoutState) -> None:
        options = state.rendered_options
        svg = self.backend.select(state.svg)
        svg.attr("xmlns", SVG_NS) \
            .attr("width", state.width) \
            .attr("height", state.height) \
            .attr("viewBox", f"0 0 {state.width} {state.height}") \
            .style("background-color", options.get("backgroundColor"))
        state.placeholder = None
        if state.type in PLACEHOLDER_TYPES:
            self._draw_placeholder(state)
        elif state.type is VisualizationType.TREE:
            self._draw_tree(state)
        elif state.type is VisualizationType.FORCE:
            self._draw_force(state)
        elif state.type is VisualizationType.TREEMAP:
            self._draw_treemap(state)
        elif state.type is VisualizationType.PACK:
            self._draw_pack(state)

    def _draw_placeholder(self, state: LayoutState) -> None:
        state.placeholder = placeholder_layout(state.type.value, state.data)
        self.backend.select(state.svg).append("text") \
            .attr("class", "placeholder") \
            .attr("x", state.width / 2) \
            .attr("y", state.height / 2) \
            .attr("text-anchor", "middle") \
            .attr("fill", state.rendered_options.get("textColor")) \
            .text(f"{state.type.value} visualization (placeholder)")

    def _draw_tree(self, state: LayoutState) -> None:
        options = state.rendered_options
        if state.arena is None:
            state.arena = TreeArena.from_hierarchy(state.data)
        inner_height = state.height - TREE_MARGIN["top"] - TREE_MARGIN["bottom"]
        spacing = options.get("depthSpacing", self.settings.tree_depth_spacing)
        geometry = tree_layout(state.arena, inner_height, spacing)
        positions = geometry.positions
        accent = (options.get("colors") or ["#4285F4"])[0]

        root = self.backend.select(state.svg).append("g") \
            .attr("transform", f"translate({TREE_MARGIN['left']},{TREE_MARGIN['top']})")
        root.select_all("path.link").bind(geometry.links, parent=root.node()).join("path") \
            .attr("class", "link") \
            .attr("d", lambda link, i: diagonal(positions[link[0]], positions[link[1]])) \
            .attr("fill", "none") \
            .attr("stroke", options.get("gridColor", "#cccccc")) \
            .attr("stroke-width", 1.5)

        visible = [state.arena[node_id] for node_id in positions]
        nodes = root.select_all("g.node").bind(visible, key=lambda node, i: node.id,
                                               parent=root.node()).join("g") \
            .attr("class", lambda node, i: "node collapsed" if node.collapsed else "node") \
            .attr("data-node-id", lambda node, i: node.id) \
            .attr("transform", lambda node, i: "translate({:g},{:g})".format(
                positions[node.id][1], positions[node.id][0]))
        nodes.append("circle") \
            .attr("r", NODE_RADIUS) \
            .attr("fill", lambda node, i: accent if node.collapsed else options.get("backgroundColor", "#ffffff")) \
            .attr("stroke", accent) \
            .attr("stroke-width", 1.5)
        if options.get("showLabels", True):
            nodes.append("text") \
                .attr("dy", "0.31em") \
                .attr("x", lambda node, i: -8 if node.has_children else 8) \
                .attr("text-anchor", lambda node, i: "end" if node.has_children else "start") \
                .attr("fill", options.get("textColor")) \
                .text(lambda node, i: node.name)

    def _draw_force(self, state: LayoutState) -> None:
        options = state.rendered_options
        # link endpoints are rewritten into node references, so work on a copy
        state.network = copy.deepcopy(state.data)
        simulation = build_simulation(
            state.network, state.width, state.height, backend=self.backend,
            alpha_min=self.settings.force_alpha_min,
            alpha_decay=self.settings.force_alpha_decay,
            velocity_decay=self.settings.force_velocity_decay,
            link_distance=options.get("linkDistance", 100),
            charge=options.get("chargeStrength", -300),
        )
        state.simulation = simulation
        palette = _Palette(options.get("colors") or [])

        svg = self.backend.select(state.svg)
        link_group = svg.append("g").attr("class", "links")
        links = link_group.select_all("line") \
            .bind(state.network["links"], parent=link_group.node()).join("line") \
            .attr("stroke", options.get("gridColor", "#999999")) \
            .attr("stroke-opacity", 0.6) \
            .attr("stroke-width", lambda link, i: max(1.0, float(link.get("value", 1)) ** 0.5))
        group = svg.append("g").attr("class", "nodes")
        nodes = group.select_all("circle").bind(state.network["nodes"], parent=group.node()) \
            .join("circle") \
            .attr("data-node-id", lambda node, i: node.get("id")) \
            .attr("r", lambda node, i: node.get("size") or NODE_RADIUS) \
            .attr("fill", lambda node, i: palette(node.get("group", 0))) \
            .attr("stroke", options.get("backgroundColor", "#ffffff")) \
            .attr("stroke-width", 1.5)
        labels = None
        if options.get("showLabels", True):
            label_group = svg.append("g").attr("class", "labels")
            labels = label_group.select_all("text") \
                .bind(state.network["nodes"], parent=label_group.node()).join("text") \
                .attr("font-size", 10) \
                .attr("fill", options.get("textColor")) \
                .text(lambda node, i: node.get("name", node.get("id")))

        def on_tick(sim):
            clamp_nodes(sim.nodes, state.width, state.height, NODE_RADIUS)
            links.attr("x1", lambda link, i: link["source"]["x"]) \
                .attr("y1", lambda link, i: link["source"]["y"]) \
                .attr("x2", lambda link, i: link["target"]["x"]) \
                .attr("y2", lambda link, i: link["target"]["y"])
            nodes.attr("cx", lambda node, i: node["x"]).attr("cy", lambda node, i: node["y"])
            if labels is not None:
                labels.attr("x", lambda node, i: node["x"] + 8).attr("y", lambda node, i: node["y"] + 3)

        simulation.on("tick", on_tick)
        on_tick(simulation)
        if options.get("animation") is False:
            simulation.run()
            return
        state.loop = RenderLoop(self.scheduler, lambda timestamp: self._step(state, simulation),
                                name=f"{state.id}:force").start()

    def _step(self, state: LayoutState, simulation) -> bool:
        with self.rendering("render", state.id):
            return simulation.step()

    def _draw_treemap(self, state: LayoutState) -> None:
        options = state.rendered_options
        cells = treemap_layout(state.data, state.width, state.height,
                               padding=options.get("padding", 2))
        palette = _Palette(options.get("colors") or [])
        svg = self.backend.select(state.svg)
        leaves = [cell for cell in cells if cell.leaf]
        groups = svg.select_all("g.cell").bind(leaves, parent=state.svg).join("g") \
            .attr("class", "cell") \
            .attr("transform", lambda cell, i: f"translate({cell.x0:g},{cell.y0:g})")
        groups.append("rect") \
            .attr("width", lambda cell, i: cell.width) \
            .attr("height", lambda cell, i: cell.height) \
            .attr("fill", lambda cell, i: palette(cell.parent)) \
            .attr("stroke", options.get("backgroundColor", "#ffffff"))
        if options.get("showLabels", True):
            groups.filter(lambda cell, i: cell.width > 30 and cell.height > 14).append("text") \
                .attr("x", 4) \
                .attr("y", 14) \
                .attr("font-size", 10) \
                .attr("fill", options.get("textColor")) \
                .text(lambda cell, i: cell.name)

    def _draw_pack(self, state: LayoutState) -> None:
        options = state.rendered_options
        circles = pack_layout(state.data, state.width, state.height,
                              padding=options.get("padding", 3))
        palette = _Palette(options.get("colors") or [])
        svg = self.backend.select(state.svg)
        nodes = svg.select_all("g.node").bind(circles, parent=state.svg).join("g") \
            .attr("class", lambda circle, i: "node leaf" if circle.leaf else "node") \
            .attr("transform", lambda circle, i: f"translate({circle.x:g},{circle.y:g})")
        nodes.append("circle") \
            .attr("r", lambda circle, i: circle.r) \
            .attr("fill", lambda circle, i: palette(circle.parent) if circle.leaf else "none") \
            .attr("stroke", lambda circle, i: None if circle.leaf else options.get("gridColor", "#cccccc"))
        if options.get("showLabels", True):
            nodes.filter(lambda circle, i: circle.leaf and circle.r > 10).append("text") \
                .attr("text-anchor", "middle") \
                .attr("dy", "0.3em") \
                .attr("font-size", 10) \
                .attr("fill", options.get("textColor")) \
                .text(lambda circle, i: circle.name)
