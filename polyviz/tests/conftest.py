"""Shared fixtures: a page with containers, a fake chart backend and an orchestrator."""
import pytest

from polyviz import FrameScheduler, MessageBus, Orchestrator, Page, ThemeManager

PAGE_HTML = """
<html><body>
  <div id="chart" data-width="600" data-height="300"></div>
  <div id="layout" data-width="500" data-height="400"></div>
  <div id="scene" data-width="640" data-height="320"></div>
  <div id="reuse"><canvas id="existing"></canvas></div>
  <div class="multi"></div>
  <div class="multi"></div>
</body></html>
"""


class FakeChart:
    """Records what the chart engine asks of a chart backend."""
    instances = []

    def __init__(self, surface, config):
        self.surface = surface
        self.config = config
        self.data = config["data"]
        self.options = config["options"]
        self.update_calls = 0
        self.destroyed = False
        self.exports = []
        FakeChart.instances.append(self)

    def update(self, animate=True):
        self.update_calls += 1

    def destroy(self):
        self.destroyed = True

    def to_data_url(self, mime="image/png", quality=None):
        self.exports.append((mime, quality))
        return f"data:{mime};base64,ZmFrZQ=="


class BrokenChart:
    """A backend that fails while drawing."""

    def __init__(self, surface, config):
        raise RuntimeError("canvas context lost")


@pytest.fixture(autouse=True)
def reset_fake_charts():
    FakeChart.instances = []
    yield


@pytest.fixture
def fake_chart():
    return FakeChart


@pytest.fixture
def broken_chart():
    return BrokenChart


@pytest.fixture
def page():
    return Page.from_html(PAGE_HTML)


@pytest.fixture
def scheduler():
    return FrameScheduler()


@pytest.fixture
def theme_manager():
    return ThemeManager()


@pytest.fixture
def bus():
    return MessageBus()


@pytest.fixture
def orchestrator(page, scheduler, theme_manager, bus):
    return Orchestrator(page, theme_manager=theme_manager, scheduler=scheduler, bus=bus,
                        chart_backend=FakeChart)


@pytest.fixture
def tree_data():
    return {
        "name": "root",
        "children": [
            {"name": "A", "children": [{"name": "B", "value": 1}, {"name": "C", "value": 2}]},
            {"name": "D", "value": 3},
        ],
    }


@pytest.fixture
def network_data():
    return {
        "nodes": [{"id": "a", "group": 1}, {"id": "b", "group": 1}, {"id": "c", "group": 2}],
        "links": [{"source": "a", "target": "b"}, {"source": "b", "target": "c", "value": 4}],
    }
