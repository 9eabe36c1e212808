"""Unit tests for the retained 3D scene graph."""
import math
from unittest.mock import patch

import numpy as np
import pytest

from polyviz.backends import scene3d


@pytest.fixture
def lit_scene():
    scene = scene3d.Scene()
    scene.background = 0x101010
    scene.add(scene3d.AmbientLight(0xFFFFFF, 0.5))
    light = scene3d.DirectionalLight(0xFFFFFF, 0.8)
    light.position.set(1, 1, 1)
    scene.add(light)
    return scene


def test_to_hex():
    assert scene3d.to_hex(0x888888) == "#888888"
    assert scene3d.to_hex(0x00FF00) == "#00ff00"
    assert scene3d.to_hex("#abc") == "#abc"


def test_scene_graph_add_remove_traverse():
    scene = scene3d.Scene()
    group, mesh = scene3d.Object3D(), scene3d.Object3D()
    group.add(mesh)
    scene.add(group)
    visited = []
    scene.traverse(visited.append)
    assert visited == [scene, group, mesh]

    # adding to another parent moves the object
    scene.add(mesh)
    assert mesh.parent is scene
    assert group.children == []
    scene.remove(mesh)
    assert mesh.parent is None


def test_world_transform_composes_parents():
    parent = scene3d.Object3D()
    parent.position.set(10, 0, 0)
    child = scene3d.Object3D()
    child.scale.set(1, 2, 1)
    child.position.set(0, 1, 0)
    parent.add(child)
    world = child.world_transform(np.array([[0.0, 1.0, 0.0]]))
    np.testing.assert_allclose(world, [[10.0, 3.0, 0.0]])

    child.rotation.set(0, 0, math.pi / 2)
    world = child.world_transform(np.array([[1.0, 0.0, 0.0]]))
    np.testing.assert_allclose(world, [[10.0, 2.0, 0.0]], atol=1e-9)


def test_geometries_and_dispose():
    box = scene3d.BoxGeometry(1, 2, 3)
    assert box.vertices.shape == (8, 3)
    assert box.faces.shape == (12, 3)
    assert box.vertices[:, 1].max() == 1.0

    sphere = scene3d.SphereGeometry(0.1, 16, 16)
    assert np.allclose(np.linalg.norm(sphere.vertices, axis=1), 0.1)
    assert sphere.faces.max() < len(sphere.vertices)

    box.dispose()
    assert box.disposed and box.vertices is None and box.faces is None
    material = scene3d.MeshLambertMaterial(0x888888)
    material.dispose()
    assert material.disposed


def test_camera_projection():
    camera = scene3d.PerspectiveCamera(75, 2.0, 0.1, 1000)
    before = camera.projection_matrix[0, 0]
    camera.aspect = 1.0
    camera.update_projection_matrix()
    assert camera.projection_matrix[0, 0] == pytest.approx(before * 2)
    camera.look_at(1, 2, 3)
    assert tuple(camera.target) == (1, 2, 3)


def test_orbit_controls_keep_radius():
    camera = scene3d.PerspectiveCamera()
    camera.position.set(0, 0, 5)
    controls = scene3d.OrbitControls(camera)
    assert controls.update() is False

    controls.rotate(math.pi / 2)
    assert controls.update() is True
    assert camera.position.x == pytest.approx(5)
    assert camera.position.z == pytest.approx(0, abs=1e-9)
    assert camera.position.length() == pytest.approx(5)

    controls.enable_damping = True
    controls.rotate(0.5)
    controls.update()
    # damping keeps a residual rotation for later frames
    assert controls.update() is True
    controls.dispose()
    assert controls.update() is False


def test_render_builds_lit_mesh_and_axes(lit_scene):
    mesh = scene3d.Mesh(scene3d.BoxGeometry(), scene3d.MeshLambertMaterial(0x4285F4, opacity=0.8))
    mesh.name = "bar-0"
    mesh.position.set(2, 0, 0)
    flat = scene3d.Mesh(scene3d.BoxGeometry(), scene3d.MeshBasicMaterial(0xFF0000))
    lit_scene.add(mesh, flat, scene3d.AxesHelper(5))
    camera = scene3d.PerspectiveCamera(75, 2, 0.1, 1000)
    camera.position.set(0, 0, 5)

    renderer = scene3d.Renderer(640, 320)
    frame = renderer.render(lit_scene, camera)

    mesh_trace, flat_trace = frame["data"][0], frame["data"][1]
    assert mesh_trace["type"] == "mesh3d"
    assert mesh_trace["name"] == "bar-0"
    assert min(mesh_trace["x"]) == pytest.approx(1.5)
    assert mesh_trace["color"] == "#4285f4"
    assert mesh_trace["opacity"] == 0.8
    assert mesh_trace["lighting"] == {"ambient": 0.5, "diffuse": 0.8}
    assert mesh_trace["lightposition"] == {"x": 1e4, "y": 1e4, "z": 1e4}
    assert "lighting" not in flat_trace
    assert "_lit" not in flat_trace

    axes = [trace for trace in frame["data"] if trace["type"] == "scatter3d"]
    assert [trace["line"]["color"] for trace in axes] == ["#ff0000", "#00ff00", "#0000ff"]
    assert axes[0]["x"] == [0.0, 5.0]

    layout = frame["layout"]
    assert layout["paper_bgcolor"] == "#101010"
    assert layout["scene"]["camera"]["eye"] == {"x": 0.0, "y": 0.0, "z": 2.0}
    assert renderer.frames == 1
    assert renderer.dom_element["data-frames"] == "1"
    assert renderer.figure().data[0].type == "mesh3d"


def test_render_rejects_disposed_resources(lit_scene):
    geometry = scene3d.BoxGeometry()
    lit_scene.add(scene3d.Mesh(geometry, scene3d.MeshBasicMaterial()))
    renderer = scene3d.Renderer()
    camera = scene3d.PerspectiveCamera()
    camera.position.set(0, 0, 5)
    geometry.dispose()
    with pytest.raises(RuntimeError, match="disposed"):
        renderer.render(lit_scene, camera)

    renderer.dispose()
    with pytest.raises(RuntimeError, match="disposed"):
        renderer.render(scene3d.Scene(), camera)


def test_renderer_size_and_export(lit_scene):
    renderer = scene3d.Renderer(800, 400, alpha=True)
    renderer.set_size(320, 160)
    assert renderer.dom_element["data-width"] == "320"
    with pytest.raises(RuntimeError, match="Nothing has been rendered"):
        renderer.figure()

    camera = scene3d.PerspectiveCamera()
    camera.position.set(0, 0, 5)
    frame = renderer.render(scene3d.Scene(), camera)
    assert frame["layout"]["paper_bgcolor"] == "rgba(0,0,0,0)"

    with patch("plotly.graph_objects.Figure.to_image", return_value=b"jpg") as mock_to_image:
        url = renderer.to_data_url("image/jpeg", 0.9)
    assert url == "data:image/jpeg;base64,anBn"
    mock_to_image.assert_called_once_with(format="jpeg", width=320, height=160, scale=1.0)
