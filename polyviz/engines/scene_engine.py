"""
Engine for the 3D scene family (bar3d, scatter3d, surface, globe).
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from bs4 import Tag

from ..chart_types import PLACEHOLDER_TYPES, SCENE_FAMILY, EngineKind, VisualizationType
from ..layouts import placeholder_layout
from ..page import Page
from ..scheduler import RenderLoop
from .base import BaseEngine, EngineResource

DEFAULT_OPTIONS = {
    "cameraZ": 5,
    "controls": True,
    "animation": True,
    "showAxes": True,
    "maxHeight": 5,
    "barWidth": 0.5,
    "barDepth": 0.5,
    "barSpacing": 0.2,
    "pointSize": 0.1,
    "axisLength": 5,
}
GROW_DURATION = 1000
MIN_SCALE = 0.01


@dataclass
class SceneState(EngineResource):
    scene: Any = None
    camera: Any = None
    renderer: Any = None
    controls: Any = None
    loop: Optional[RenderLoop] = None
    resize_listener: Optional[Callable] = None
    lights: List[Any] = field(default_factory=list)
    objects: List[Any] = field(default_factory=list)
    animation: Optional[Dict[str, Any]] = None
    placeholder: Optional[Dict[str, Any]] = None


def _ease_out_quad(progress: float) -> float:
    return progress * (2 - progress)


class SceneEngine(BaseEngine):
    """
    Keeps a retained scene per visualization and renders it every frame.
    """
    kind = EngineKind.SCENE

    @property
    def supported_types(self) -> frozenset:
        return SCENE_FAMILY

    def default_options(self, visualization_type: VisualizationType) -> Dict[str, Any]:
        return dict(DEFAULT_OPTIONS)

    def create_visualization(self, container: Tag, visualization_type: VisualizationType,
                             data: Any, options: Dict[str, Any], theme=None,
                             visualization_id: Optional[str] = None) -> SceneState:
        backend = self.require_backend("create")
        rendered = self.build_options(visualization_type, options, theme)
        width, height = self.dimensions(container, rendered)
        state = SceneState(
            id=visualization_id, type=visualization_type, container=container, data=data,
            options=options, theme=theme, rendered_options=rendered, width=width, height=height,
        )
        with self.rendering("create", visualization_id):
            container.clear()
            state.scene = backend.Scene()
            state.camera = backend.PerspectiveCamera(75, width / height if height else 1, 0.1, 1000)
            state.renderer = backend.Renderer(width, height, antialias=True, alpha=True)
            state.renderer.set_pixel_ratio(rendered.get("pixelRatio", 1))
            container.append(state.renderer.dom_element)

            ambient = backend.AmbientLight(0xFFFFFF, 0.5)
            directional = backend.DirectionalLight(0xFFFFFF, 0.8)
            directional.position.set(1, 1, 1)
            state.lights = [ambient, directional]
            state.scene.add(ambient, directional)

            if rendered.get("controls") is not False:
                state.controls = backend.OrbitControls(state.camera, state.renderer.dom_element)
                state.controls.enable_damping = True
                state.controls.damping_factor = 0.05

            self._configure(state)
            self._build(state)
            state.renderer.render(state.scene, state.camera)

        state.resize_listener = self._resize_handler(state)
        self.page.add_event_listener("resize", state.resize_listener)
        state.loop = RenderLoop(self.scheduler, lambda timestamp: self._frame(state, timestamp),
                                name=f"{visualization_id}:render").start()
        self.logger.debug("Created %s scene %s", visualization_type.value, visualization_id)
        return state

    def update_visualization(self, resource: SceneState, data: Any,
                             options: Dict[str, Any], theme=None) -> SceneState:
        self.require_backend("update")
        rendered = self.build_options(resource.type, options, theme)
        with self.rendering("update", resource.id), self.restoring(resource):
            if data is not None:
                resource.data = data
            resource.options = options
            resource.theme = theme
            resource.rendered_options = rendered
            self._remove_objects(resource)
            self._configure(resource)
            self._build(resource)
            resource.renderer.render(resource.scene, resource.camera)
        return resource

    def destroy_visualization(self, resource: SceneState) -> bool:
        self.require_backend("destroy")
        if resource.loop is not None:
            resource.loop.cancel()
            resource.loop = None
        if resource.resize_listener is not None:
            self.page.remove_event_listener("resize", resource.resize_listener)
            resource.resize_listener = None
        if resource.controls is not None:
            resource.controls.dispose()
        with self.rendering("destroy", resource.id):
            self._remove_objects(resource)
            resource.renderer.dispose()
        resource.renderer.dom_element.extract()
        self.logger.debug("Destroyed scene %s", resource.id)
        return True

    def export_as_image(self, resource: SceneState, image_format: str = "png", **options):
        self.require_backend("export")
        image_format = self.check_export_format(image_format)
        quality = options.get("quality", self.settings.jpeg_quality)
        with self.rendering("export", resource.id):
            resource.renderer.render(resource.scene, resource.camera)
            return resource.renderer.to_data_url(f"image/{image_format}", quality)

    def _configure(self, state: SceneState) -> None:
        """Apply background and camera options."""
        options = state.rendered_options
        state.scene.background = options.get("backgroundColor")
        state.camera.position.z = options.get("cameraZ") or 5
        if hasattr(state.camera, "look_at"):
            state.camera.look_at(0, 0, 0)

    def _resize_handler(self, state: SceneState) -> Callable:
        def on_resize(_event=None):
            width, height = Page.client_size(state.container, state.width, state.height)
            state.width, state.height = width, height
            state.camera.aspect = width / height if height else 1
            state.camera.update_projection_matrix()
            state.renderer.set_size(width, height)
        return on_resize

    def _frame(self, state: SceneState, timestamp: float) -> None:
        with self.rendering("render", state.id):
            if state.animation is not None:
                self._advance_animation(state, timestamp)
            if state.controls is not None:
                state.controls.update()
            state.renderer.render(state.scene, state.camera)

    def _advance_animation(self, state: SceneState, timestamp: float) -> None:
        animation = state.animation
        if animation["start"] is None:
            animation["start"] = timestamp
        progress = min(1.0, (timestamp - animation["start"]) / animation["duration"])
        scale = max(MIN_SCALE, _ease_out_quad(progress))
        for mesh in state.objects:
            height = mesh.user_data.get("height")
            if height is None:
                continue
            mesh.scale.y = scale
            mesh.position.y = height * scale / 2
        if progress >= 1.0:
            state.animation = None

    def _add(self, state: SceneState, obj) -> None:
        state.scene.add(obj)
        state.objects.append(obj)

    def _remove_objects(self, state: SceneState) -> None:
        """Remove and dispose everything this engine added; lights stay."""
        for obj in state.objects:
            state.scene.remove(obj)
            geometry = getattr(obj, "geometry", None)
            if geometry is not None:
                geometry.dispose()
            material = getattr(obj, "material", None)
            if material is not None:
                material.dispose()
        state.objects = []
        state.animation = None

    def _build(self, state: SceneState) -> None:
        state.placeholder = None
        if state.type in PLACEHOLDER_TYPES:
            state.placeholder = placeholder_layout(state.type.value, state.data)
        elif state.type is VisualizationType.BAR_3D:
            self._build_bars(state)
        elif state.type is VisualizationType.SCATTER_3D:
            self._build_points(state)

    def _build_bars(self, state: SceneState) -> None:
        backend = self.backend
        options = state.rendered_options
        datasets = state.data.get("datasets") or []
        colors = options.get("colors") or ["#4285F4"]
        values = [value for dataset in datasets for value in dataset.get("data") or []]
        max_value = max((abs(value or 0) for value in values), default=0) or 1
        bar_width = options["barWidth"]
        bar_depth = options["barDepth"]
        step = bar_width + options["barSpacing"]
        grow = options.get("animation") is not False

        for row, dataset in enumerate(datasets):
            series = dataset.get("data") or []
            offset_x = (len(series) - 1) * step / 2
            offset_z = (len(datasets) - 1) * (bar_depth + options["barSpacing"]) / 2
            for index, value in enumerate(series):
                height = abs(value or 0) / max_value * options["maxHeight"]
                mesh = backend.Mesh(backend.BoxGeometry(bar_width, height, bar_depth),
                                    backend.MeshLambertMaterial(color=colors[index % len(colors)]))
                mesh.name = f"bar-{row}-{index}"
                mesh.user_data["height"] = height
                mesh.user_data["value"] = value
                mesh.position.set(index * step - offset_x, height / 2,
                                  row * (bar_depth + options["barSpacing"]) - offset_z)
                if grow:
                    mesh.scale.y = MIN_SCALE
                    mesh.position.y = height * MIN_SCALE / 2
                self._add(state, mesh)
        if grow and state.objects:
            state.animation = {"start": None, "duration": GROW_DURATION}
        self._add_axes(state)

    def _build_points(self, state: SceneState) -> None:
        backend = self.backend
        options = state.rendered_options
        colors = options.get("colors") or ["#4285F4"]
        for index, point in enumerate(state.data):
            mesh = backend.Mesh(backend.SphereGeometry(options["pointSize"], 16, 16),
                                backend.MeshLambertMaterial(
                                    color=point.get("color") or colors[index % len(colors)]))
            mesh.name = f"point-{index}"
            mesh.position.set(point["x"], point["y"], point.get("z", 0))
            self._add(state, mesh)
        self._add_axes(state)

    def _add_axes(self, state: SceneState) -> None:
        if state.rendered_options.get("showAxes"):
            self._add(state, self.backend.AxesHelper(state.rendered_options["axisLength"]))
