"""
Retained 3D scene graph rendered to plotly figures.

Objects form a tree under a ``Scene``. Geometries hold numpy vertex and face
buffers that must be released with ``dispose``. ``Renderer.render`` flattens
the scene into a plotly figure dict (one ``mesh3d`` trace per mesh, lighting
taken from the scene's lights) which is the renderer's current frame.
"""
import base64
import logging
import math
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import plotly.graph_objects as go
from bs4 import BeautifulSoup

logger = logging.getLogger("PolyViz.scene3d")

_FACTORY = BeautifulSoup("", "html.parser")


def to_hex(color) -> str:
    """Convert 0xRRGGBB ints to '#rrggbb'; strings pass through."""
    if isinstance(color, str):
        return color
    return f"#{int(color) & 0xFFFFFF:06x}"


class Vector3:
    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0):
        self.x, self.y, self.z = x, y, z

    def set(self, x: float, y: float, z: float) -> "Vector3":
        self.x, self.y, self.z = x, y, z
        return self

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    def length(self) -> float:
        return math.sqrt(self.x ** 2 + self.y ** 2 + self.z ** 2)

    def __iter__(self):
        return iter((self.x, self.y, self.z))

    def __repr__(self):
        return f"Vector3({self.x}, {self.y}, {self.z})"


def _rotation_matrix(rotation: Vector3) -> np.ndarray:
    cx, sx = math.cos(rotation.x), math.sin(rotation.x)
    cy, sy = math.cos(rotation.y), math.sin(rotation.y)
    cz, sz = math.cos(rotation.z), math.sin(rotation.z)
    rx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]])
    ry = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]])
    rz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]])
    return rz @ ry @ rx


class Object3D:
    """Node of the scene graph with a local transform."""

    def __init__(self):
        self.name = ""
        self.parent: Optional["Object3D"] = None
        self.children: List["Object3D"] = []
        self.position = Vector3()
        self.rotation = Vector3()
        self.scale = Vector3(1.0, 1.0, 1.0)
        self.visible = True
        self.user_data: Dict[str, Any] = {}

    def add(self, *objects: "Object3D") -> "Object3D":
        for obj in objects:
            if obj.parent is not None:
                obj.parent.remove(obj)
            obj.parent = self
            self.children.append(obj)
        return self

    def remove(self, *objects: "Object3D") -> "Object3D":
        for obj in objects:
            if obj in self.children:
                self.children.remove(obj)
                obj.parent = None
        return self

    def traverse(self, callback: Callable[["Object3D"], None]) -> None:
        """Call callback on this object and every descendant, depth first."""
        callback(self)
        for child in list(self.children):
            child.traverse(callback)

    def world_transform(self, points: np.ndarray) -> np.ndarray:
        """Map local points (N x 3) into world space."""
        node = self
        while node is not None:
            points = points * node.scale.to_array()
            points = points @ _rotation_matrix(node.rotation).T
            points = points + node.position.to_array()
            node = node.parent
        return points


class Scene(Object3D):
    def __init__(self):
        super().__init__()
        self.background = None


class Light(Object3D):
    def __init__(self, color=0xFFFFFF, intensity: float = 1.0):
        super().__init__()
        self.color = color
        self.intensity = intensity


class AmbientLight(Light):
    """Uniform light applied to every surface."""


class DirectionalLight(Light):
    """Parallel light shining from ``position`` towards the origin."""

    def __init__(self, color=0xFFFFFF, intensity: float = 1.0):
        super().__init__(color, intensity)
        self.position.set(0.0, 1.0, 0.0)


class PerspectiveCamera(Object3D):
    def __init__(self, fov: float = 50, aspect: float = 1, near: float = 0.1, far: float = 2000):
        super().__init__()
        self.fov = fov
        self.aspect = aspect
        self.near = near
        self.far = far
        self.target = Vector3()
        self.projection_matrix = np.identity(4)
        self.update_projection_matrix()

    def update_projection_matrix(self) -> None:
        """Recompute the projection matrix after fov/aspect/near/far changed."""
        focal = 1.0 / math.tan(math.radians(self.fov) / 2)
        depth = self.near - self.far
        self.projection_matrix = np.array([
            [focal / self.aspect, 0, 0, 0],
            [0, focal, 0, 0],
            [0, 0, (self.far + self.near) / depth, 2 * self.far * self.near / depth],
            [0, 0, -1, 0],
        ])

    def look_at(self, x: float, y: float, z: float) -> None:
        self.target.set(x, y, z)


class BufferGeometry:
    """Triangle mesh buffers; ``dispose`` releases them."""

    def __init__(self, vertices: np.ndarray, faces: np.ndarray):
        self.vertices: Optional[np.ndarray] = np.asarray(vertices, dtype=float)
        self.faces: Optional[np.ndarray] = np.asarray(faces, dtype=int)
        self.disposed = False

    def dispose(self) -> None:
        self.vertices = None
        self.faces = None
        self.disposed = True


class BoxGeometry(BufferGeometry):
    def __init__(self, width: float = 1, height: float = 1, depth: float = 1):
        self.parameters = {"width": width, "height": height, "depth": depth}
        hx, hy, hz = width / 2, height / 2, depth / 2
        vertices = [[x, y, z] for x in (-hx, hx) for y in (-hy, hy) for z in (-hz, hz)]
        faces = [
            [0, 1, 3], [0, 3, 2],  # -x
            [4, 6, 7], [4, 7, 5],  # +x
            [0, 4, 5], [0, 5, 1],  # -y
            [2, 3, 7], [2, 7, 6],  # +y
            [0, 2, 6], [0, 6, 4],  # -z
            [1, 5, 7], [1, 7, 3],  # +z
        ]
        super().__init__(np.array(vertices), np.array(faces))


class SphereGeometry(BufferGeometry):
    def __init__(self, radius: float = 1, width_segments: int = 16, height_segments: int = 12):
        self.parameters = {"radius": radius, "width_segments": width_segments,
                           "height_segments": height_segments}
        theta = np.linspace(0, math.pi, height_segments + 1)
        phi = np.linspace(0, 2 * math.pi, width_segments + 1)
        theta_grid, phi_grid = np.meshgrid(theta, phi, indexing="ij")
        vertices = np.stack([
            -radius * np.cos(phi_grid) * np.sin(theta_grid),
            radius * np.cos(theta_grid),
            radius * np.sin(phi_grid) * np.sin(theta_grid),
        ], axis=-1).reshape(-1, 3)
        row = width_segments + 1
        faces = []
        for iy in range(height_segments):
            for ix in range(width_segments):
                a = iy * row + ix + 1
                b = iy * row + ix
                c = (iy + 1) * row + ix
                d = (iy + 1) * row + ix + 1
                if iy != 0:
                    faces.append([a, b, d])
                if iy != height_segments - 1:
                    faces.append([b, c, d])
        super().__init__(vertices, np.array(faces))


class Material:
    def __init__(self, color=0xFFFFFF, opacity: float = 1.0, transparent: bool = False):
        self.color = color
        self.opacity = opacity
        self.transparent = transparent
        self.disposed = False

    def dispose(self) -> None:
        self.disposed = True


class MeshLambertMaterial(Material):
    """Diffuse material lit by the scene's lights."""
    lit = True


class MeshBasicMaterial(Material):
    """Flat colour ignoring lights."""
    lit = False


class Mesh(Object3D):
    def __init__(self, geometry: BufferGeometry, material: Material):
        super().__init__()
        self.geometry = geometry
        self.material = material


class AxesHelper(Object3D):
    """Three coloured axis lines of a given length (x red, y green, z blue)."""

    def __init__(self, size: float = 1):
        super().__init__()
        self.size = size


class OrbitControls:
    """Orbit the camera around its target; ``update`` applies damped rotation."""

    def __init__(self, camera: PerspectiveCamera, dom_element=None):
        self.camera = camera
        self.dom_element = dom_element
        self.enable_damping = False
        self.damping_factor = 0.05
        self.target = camera.target
        self.disposed = False
        self._azimuth_delta = 0.0
        self._polar_delta = 0.0

    def rotate(self, azimuth: float, polar: float = 0.0) -> None:
        """Queue a rotation in radians, applied by subsequent updates."""
        self._azimuth_delta += azimuth
        self._polar_delta += polar

    def update(self) -> bool:
        """Apply pending rotation; True if the camera moved."""
        if self.disposed or (abs(self._azimuth_delta) < 1e-6 and abs(self._polar_delta) < 1e-6):
            return False
        offset = self.camera.position.to_array() - self.target.to_array()
        radius = float(np.linalg.norm(offset)) or 1e-6
        azimuth = math.atan2(offset[0], offset[2])
        polar = math.acos(max(-1.0, min(1.0, offset[1] / radius)))
        factor = self.damping_factor if self.enable_damping else 1.0
        azimuth += self._azimuth_delta * factor
        polar = max(1e-6, min(math.pi - 1e-6, polar + self._polar_delta * factor))
        self.camera.position.set(
            self.target.x + radius * math.sin(polar) * math.sin(azimuth),
            self.target.y + radius * math.cos(polar),
            self.target.z + radius * math.sin(polar) * math.cos(azimuth),
        )
        if self.enable_damping:
            self._azimuth_delta *= 1 - self.damping_factor
            self._polar_delta *= 1 - self.damping_factor
        else:
            self._azimuth_delta = self._polar_delta = 0.0
        return True

    def dispose(self) -> None:
        self.disposed = True


class Renderer:
    """Renders a scene and camera into a plotly figure dict."""

    def __init__(self, width: int = 800, height: int = 400, antialias: bool = True,
                 alpha: bool = False):
        self.width = width
        self.height = height
        self.antialias = antialias
        self.alpha = alpha
        self.pixel_ratio = 1.0
        self.frames = 0
        self.frame: Optional[Dict[str, Any]] = None
        self.disposed = False
        self.dom_element = _FACTORY.new_tag("div", attrs={"class": "polyviz-scene"})
        self._sync_element()

    def _sync_element(self) -> None:
        self.dom_element["data-width"] = str(self.width)
        self.dom_element["data-height"] = str(self.height)
        self.dom_element["data-frames"] = str(self.frames)

    def set_size(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self._sync_element()

    def set_pixel_ratio(self, ratio: float) -> None:
        self.pixel_ratio = ratio

    def render(self, scene: Scene, camera: PerspectiveCamera) -> Dict[str, Any]:
        """Flatten the scene into a figure dict and store it as the current frame."""
        if self.disposed:
            raise RuntimeError("Renderer has been disposed")
        lights = {"ambient": 0.0, "diffuse": 0.0, "direction": None}
        traces: List[Dict[str, Any]] = []

        def collect(obj: Object3D) -> None:
            if not obj.visible:
                return
            if isinstance(obj, AmbientLight):
                lights["ambient"] += obj.intensity
            elif isinstance(obj, DirectionalLight):
                lights["diffuse"] += obj.intensity
                if lights["direction"] is None:
                    lights["direction"] = obj.position.to_array()
            elif isinstance(obj, Mesh):
                traces.append(self._mesh_trace(obj))
            elif isinstance(obj, AxesHelper):
                traces.extend(self._axes_traces(obj))

        scene.traverse(collect)
        lighting = {"ambient": min(1.0, lights["ambient"]), "diffuse": min(1.0, lights["diffuse"])}
        direction = lights["direction"] if lights["direction"] is not None else np.zeros(3)
        light_position = dict(zip("xyz", (float(v) * 1e4 for v in direction)))
        for trace in traces:
            if trace["type"] == "mesh3d" and trace.pop("_lit"):
                trace["lighting"] = lighting
                trace["lightposition"] = light_position
            else:
                trace.pop("_lit", None)

        offset = camera.position.to_array() - camera.target.to_array()
        distance = float(np.linalg.norm(offset)) or 1.0
        eye = offset / distance * 2.0
        background = to_hex(scene.background) if scene.background is not None else (
            "rgba(0,0,0,0)" if self.alpha else "#000000")
        self.frame = {
            "data": traces,
            "layout": {
                "width": int(self.width * self.pixel_ratio),
                "height": int(self.height * self.pixel_ratio),
                "paper_bgcolor": background,
                "showlegend": False,
                "margin": {"l": 0, "r": 0, "t": 0, "b": 0},
                "scene": {
                    "bgcolor": background,
                    "aspectmode": "data",
                    "camera": {
                        "eye": dict(zip("xyz", (float(v) for v in eye))),
                        "center": {"x": 0, "y": 0, "z": 0},
                        "projection": {"type": "perspective"},
                    },
                },
            },
        }
        self.frames += 1
        self._sync_element()
        return self.frame

    def _mesh_trace(self, mesh: Mesh) -> Dict[str, Any]:
        geometry = mesh.geometry
        if geometry.disposed:
            raise RuntimeError(f"Geometry of mesh '{mesh.name}' has been disposed")
        world = mesh.world_transform(geometry.vertices)
        return {
            "type": "mesh3d",
            "name": mesh.name,
            "x": world[:, 0].tolist(),
            "y": world[:, 1].tolist(),
            "z": world[:, 2].tolist(),
            "i": geometry.faces[:, 0].tolist(),
            "j": geometry.faces[:, 1].tolist(),
            "k": geometry.faces[:, 2].tolist(),
            "color": to_hex(mesh.material.color),
            "opacity": mesh.material.opacity,
            "flatshading": True,
            "_lit": getattr(mesh.material, "lit", False),
        }

    @staticmethod
    def _axes_traces(axes: AxesHelper) -> List[Dict[str, Any]]:
        traces = []
        for axis, color in zip(range(3), ("#ff0000", "#00ff00", "#0000ff")):
            end = np.zeros(3)
            end[axis] = axes.size
            line = axes.world_transform(np.array([np.zeros(3), end]))
            traces.append({
                "type": "scatter3d",
                "mode": "lines",
                "x": line[:, 0].tolist(),
                "y": line[:, 1].tolist(),
                "z": line[:, 2].tolist(),
                "line": {"color": color, "width": 4},
                "hoverinfo": "skip",
            })
        return traces

    def figure(self) -> go.Figure:
        """The current frame as a plotly Figure."""
        if self.frame is None:
            raise RuntimeError("Nothing has been rendered yet")
        return go.Figure(self.frame)

    def to_data_url(self, mime: str = "image/png", quality: Optional[float] = None) -> str:
        """Encode the current frame as a data URL (requires kaleido)."""
        # pylint: disable=unused-argument
        # kaleido picks its own jpeg quality
        image_format = mime.split("/")[-1]
        payload = self.figure().to_image(format=image_format, width=self.width,
                                         height=self.height, scale=self.pixel_ratio)
        return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"

    def dispose(self) -> None:
        self.frame = None
        self.disposed = True
