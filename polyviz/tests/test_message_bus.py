"""Unit tests for the MessageBus class."""
from unittest.mock import MagicMock

import pytest

from polyviz import EngineKind, MessageBus, VisualizationHandle, VisualizationType
from polyviz.message_bus import ERROR, VISUALIZATION_CREATED, VISUALIZATION_DESTROYED


@pytest.fixture
def handle():
    return VisualizationHandle("chart_123456789", VisualizationType.BAR, EngineKind.CHART)


def test_subscribe_and_publish(bus, handle):
    callback = MagicMock()
    bus.subscribe(VISUALIZATION_CREATED, callback)
    bus.publish_created(handle)
    callback.assert_called_once_with({"id": "chart_123456789", "type": "bar"})

    # other events do not reach the subscriber
    bus.publish_destroyed(handle)
    assert callback.call_count == 1


def test_unsubscribe(bus, handle):
    callback = MagicMock()
    bus.subscribe(VISUALIZATION_DESTROYED, callback)
    assert bus.unsubscribe(VISUALIZATION_DESTROYED, callback) is True
    assert bus.unsubscribe(VISUALIZATION_DESTROYED, callback) is False
    bus.publish_destroyed(handle)
    callback.assert_not_called()


def test_unknown_event_type(bus):
    with pytest.raises(ValueError, match="Unknown event type"):
        bus.subscribe("visualization_resized", print)


def test_publish_error(bus):
    callback = MagicMock()
    bus.subscribe(ERROR, callback)
    error = RuntimeError("boom")
    bus.publish_error("create", error, "chart_abc")
    callback.assert_called_once_with({
        "operation": "create", "id": "chart_abc", "error": error, "message": "boom"})


def test_subscriber_may_unsubscribe_while_publishing(bus, handle):
    calls = []

    def once(payload):
        calls.append(payload["id"])
        bus.unsubscribe(VISUALIZATION_CREATED, once)

    bus.subscribe(VISUALIZATION_CREATED, once)
    bus.publish_created(handle)
    bus.publish_created(handle)
    assert calls == ["chart_123456789"]
