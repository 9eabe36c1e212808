"""Unit tests for the LayoutEngine class."""
import asyncio
import base64
from io import BytesIO
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from polyviz import BackendUnavailableError, RenderError, VisualizationType
from polyviz.backends import DEFAULT_LAYOUT_BACKEND
from polyviz.engines import LayoutEngine

TREE = VisualizationType.TREE
FORCE = VisualizationType.FORCE


@pytest.fixture
def engine(page, theme_manager, scheduler):
    return LayoutEngine(page, DEFAULT_LAYOUT_BACKEND, theme_manager, scheduler=scheduler)


@pytest.fixture
def container(page):
    return page.query("#layout")


def test_tree_draws_links_and_nodes(engine, container, tree_data):
    state = engine.create_visualization(container, TREE, tree_data, {}, visualization_id="layout_1")

    svg = container.find("svg")
    assert svg is state.svg
    assert (svg["width"], svg["height"], svg["viewBox"]) == ("500", "400", "0 0 500 400")
    assert svg["xmlns"] == "http://www.w3.org/2000/svg"
    assert svg["style"] == "background-color: #ffffff"
    assert svg.find("g")["transform"] == "translate(90,20)"
    assert len(svg.select("path.link")) == 4
    nodes = svg.select("g.node")
    assert [node["data-node-id"] for node in nodes] == ["0", "1", "2", "3", "4"]
    assert [node.find("text").string for node in nodes] == ["root", "A", "B", "C", "D"]
    # parents label to the left, leaves to the right
    assert nodes[0].find("text")["text-anchor"] == "end"
    assert nodes[4].find("text")["text-anchor"] == "start"
    assert engine.states["layout_1"] is state


def test_toggle_node_collapses_and_redraws(engine, container, tree_data):
    state = engine.create_visualization(container, TREE, tree_data, {}, visualization_id="layout_2")
    assert engine.toggle_node(state, 1) is True
    nodes = state.svg.select("g.node")
    assert len(nodes) == 3
    assert nodes[1]["class"] == "node collapsed"
    assert len(state.svg.select("path.link")) == 2

    assert engine.toggle_node(state, 1) is False
    assert len(state.svg.select("g.node")) == 5
    with pytest.raises(KeyError):
        engine.toggle_node(state, 99)


def test_toggle_node_requires_a_tree(engine, container, network_data):
    state = engine.create_visualization(container, FORCE, network_data, {"animation": False},
                                        visualization_id="layout_3")
    with pytest.raises(ValueError, match="Cannot toggle nodes of a force layout"):
        engine.toggle_node(state, 0)


def test_update_with_new_data_rebuilds_the_tree(engine, container, tree_data):
    state = engine.create_visualization(container, TREE, tree_data, {}, visualization_id="layout_4")
    engine.toggle_node(state, 1)
    engine.update_visualization(state, {"name": "solo", "value": 1}, {"showLabels": False})
    assert len(state.arena) == 1
    assert len(state.svg.select("g.node")) == 1
    assert state.svg.find("text") is None

    # options-only updates keep the collapsed state
    engine.update_visualization(state, tree_data, {})
    engine.toggle_node(state, 1)
    engine.update_visualization(state, None, {})
    assert len(state.svg.select("g.node")) == 3


def test_static_force_layout(engine, container, network_data):
    state = engine.create_visualization(container, FORCE, network_data, {"animation": False},
                                        visualization_id="layout_5")
    assert state.loop is None
    assert state.simulation.stopped
    circles = state.svg.select("g.nodes circle")
    assert len(circles) == 3
    for circle in circles:
        assert 5 <= float(circle["cx"]) <= 495
        assert 5 <= float(circle["cy"]) <= 395
    assert len(state.svg.select("g.links line")) == 2
    assert [text.string for text in state.svg.select("g.labels text")] == ["a", "b", "c"]
    # the caller's data keeps its string endpoints
    assert network_data["links"][0]["source"] == "a"
    # nodes in the same group share a colour
    fills = [circle["fill"] for circle in circles]
    assert fills[0] == fills[1] != fills[2]


def test_animated_force_layout_runs_on_the_scheduler(engine, container, network_data, scheduler):
    state = engine.create_visualization(container, FORCE, network_data, {},
                                        visualization_id="layout_6")
    assert state.loop.running
    frames = scheduler.run_until_idle()
    assert 250 < frames < 350
    assert state.simulation.stopped
    assert not state.loop.running

    # dragging reheats and resumes the paused loop
    node = engine.drag_start(state, "a")
    assert state.loop.running
    engine.drag(state, "a", 100.0, 120.0)
    scheduler.tick()
    assert (node["x"], node["y"]) == (100.0, 120.0)
    engine.drag_end(state, "a")
    assert node["fx"] is None
    scheduler.run_until_idle()
    assert state.simulation.stopped

    with pytest.raises(KeyError, match="Unknown node"):
        engine.drag(state, "zzz", 0, 0)


def test_drag_end_keeps_pin_with_fixed_nodes(engine, container, network_data):
    state = engine.create_visualization(container, FORCE, network_data, {"fixedNodes": True},
                                        visualization_id="layout_7")
    engine.drag_start(state, "b")
    node = engine.drag_end(state, "b")
    assert node["fx"] is not None


def test_drag_requires_a_simulation(engine, container, tree_data):
    state = engine.create_visualization(container, TREE, tree_data, {}, visualization_id="layout_8")
    with pytest.raises(ValueError, match="no force simulation"):
        engine.drag_start(state, 0)


def test_destroy_stops_the_loop(engine, container, network_data, scheduler):
    state = engine.create_visualization(container, FORCE, network_data, {},
                                        visualization_id="layout_9")
    loop = state.loop
    assert engine.destroy_visualization(state) is True
    assert loop.cancelled
    assert scheduler.pending == 0
    assert container.find("svg") is None
    assert "layout_9" not in engine.states


def test_update_replaces_a_running_simulation(engine, container, network_data, scheduler):
    state = engine.create_visualization(container, FORCE, network_data, {},
                                        visualization_id="layout_10")
    first_loop = state.loop
    engine.update_visualization(state, None, {"chargeStrength": -100})
    assert first_loop.cancelled
    assert state.loop is not first_loop
    assert scheduler.pending == 1
    assert len(state.svg.select("g.nodes circle")) == 3


def test_treemap_and_pack(engine, container, tree_data):
    treemap = engine.create_visualization(container, VisualizationType.TREEMAP, tree_data, {},
                                          visualization_id="layout_11")
    cells = treemap.svg.select("g.cell")
    assert len(cells) == 3
    assert all(cell.find("rect") is not None for cell in cells)

    pack = engine.create_visualization(container, VisualizationType.PACK, tree_data, {},
                                       visualization_id="layout_12")
    assert len(pack.svg.select("g.node")) == 5
    assert len(pack.svg.select("g.leaf")) == 3
    # drawing a new layout replaces the container contents
    assert len(container.find_all("svg")) == 1


@pytest.mark.parametrize("visualization_type", [VisualizationType.SANKEY, VisualizationType.CHORD])
def test_placeholders(engine, container, visualization_type):
    state = engine.create_visualization(container, visualization_type, {"flows": []}, {},
                                        visualization_id="layout_13")
    assert state.placeholder["placeholder"] is True
    assert state.svg.select("text.placeholder")[0].string == (
        f"{visualization_type.value} visualization (placeholder)")


def test_export_svg_and_raster(engine, container, tree_data):
    state = engine.create_visualization(container, TREE, tree_data, {}, visualization_id="layout_14")
    url = engine.export_as_image(state, "svg")
    assert url.startswith("data:image/svg+xml;charset=utf-8,%3Csvg")

    url = asyncio.run(engine.export_as_image(state, "png"))
    prefix = "data:image/png;base64,"
    assert url.startswith(prefix)
    image = Image.open(BytesIO(base64.b64decode(url[len(prefix):])))
    assert image.size == (500, 400)

    url = asyncio.run(engine.export_as_image(state, "jpg", quality=0.7))
    assert url.startswith("data:image/jpeg;base64,")

    with pytest.raises(ValueError, match="Unsupported export format"):
        engine.export_as_image(state, "gif")


def test_raster_failure_is_wrapped(page, theme_manager, container, tree_data):
    backend = SimpleNamespace(**vars(DEFAULT_LAYOUT_BACKEND))
    backend.rasterize = MagicMock(side_effect=OSError("disk full"))
    engine = LayoutEngine(page, backend, theme_manager)
    state = engine.create_visualization(container, TREE, tree_data, {}, visualization_id="layout_15")
    with pytest.raises(RenderError, match="disk full"):
        asyncio.run(engine.export_as_image(state, "png"))


def test_missing_backend(page, theme_manager, container, tree_data):
    engine = LayoutEngine(page, None, theme_manager)
    with pytest.raises(BackendUnavailableError):
        engine.create_visualization(container, TREE, tree_data, {})


def test_failed_update_keeps_previous_state(engine, container, tree_data):
    state = engine.create_visualization(container, TREE, tree_data, {}, visualization_id="layout_16")
    arena = state.arena
    with patch.object(engine, "_draw", side_effect=RuntimeError("layout exploded")):
        with pytest.raises(RenderError, match="layout exploded"):
            engine.update_visualization(state, {"name": "solo", "value": 1}, {"padding": 9})
    assert state.data is tree_data
    assert state.options == {}
    assert state.arena is arena
    assert (state.width, state.height) == (500, 400)
