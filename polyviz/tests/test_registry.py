"""Unit tests for handles and the visualization registry."""
import dataclasses

import pytest

from polyviz import EngineKind, UnknownHandleError, VisualizationType
from polyviz.registry import Registry, RegistryEntry, VisualizationHandle

HANDLE = VisualizationHandle("chart_abc123def", VisualizationType.BAR, EngineKind.CHART)


def make_entry(**changes):
    entry = RegistryEntry(type=VisualizationType.BAR, engine=EngineKind.CHART, resource=object(),
                          data=[1, 2], options={}, container="#chart", width=600, height=300)
    return entry.evolve(**changes)


def test_add_and_get_by_handle_or_id():
    registry = Registry()
    entry = make_entry()
    registry.add(HANDLE, entry)

    assert registry.get(HANDLE) is entry
    assert registry.get("chart_abc123def") is entry
    assert HANDLE in registry
    assert "chart_abc123def" in registry
    assert None not in registry
    assert len(registry) == 1
    assert registry.handle("chart_abc123def") == HANDLE
    assert registry.handles() == [HANDLE]


def test_duplicate_ids_are_rejected():
    registry = Registry()
    registry.add(HANDLE, make_entry())
    with pytest.raises(ValueError, match="already registered"):
        registry.add(HANDLE, make_entry())


def test_unknown_handles_raise():
    registry = Registry()
    with pytest.raises(UnknownHandleError, match="Visualization with ID nope not found"):
        registry.get("nope")
    with pytest.raises(KeyError):
        registry.remove(HANDLE)
    with pytest.raises(UnknownHandleError):
        registry.replace(HANDLE, make_entry())


def test_replace_and_remove():
    registry = Registry()
    registry.add(HANDLE, make_entry())
    updated = make_entry(data=[3], theme="dark")
    registry.replace(HANDLE, updated)
    assert registry.get(HANDLE).data == [3]
    assert registry.get(HANDLE).theme == "dark"

    assert registry.remove(HANDLE) is updated
    assert HANDLE not in registry
    assert len(registry) == 0


def test_iteration_is_safe_while_removing():
    registry = Registry()
    for index in range(3):
        handle = VisualizationHandle(f"chart_{index}", VisualizationType.BAR, EngineKind.CHART)
        registry.add(handle, make_entry())
    for key in registry:
        registry.remove(key)
    assert len(registry) == 0


def test_handles_and_entries_are_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        HANDLE.id = "other"
    entry = make_entry()
    evolved = entry.evolve(width=10)
    assert entry.width == 600
    assert evolved.width == 10
