"""Unit tests for the DataProcessor class."""
import logging

import numpy as np
import pandas as pd
import pytest

from polyviz.utils import DataProcessor
from polyviz.utils.data_processor import DEFAULT_BACKGROUND, DEFAULT_SCATTER_BACKGROUND


@pytest.fixture
def processor():
    return DataProcessor()


def test_bar_numbers_get_item_labels(processor):
    """A bare list of numbers becomes one dataset labelled Item 1..N."""
    result = processor.process([10, 20, 30], "bar")
    assert result["labels"] == ["Item 1", "Item 2", "Item 3"]
    assert len(result["datasets"]) == 1
    dataset = result["datasets"][0]
    assert dataset["label"] == "Dataset"
    assert dataset["data"] == [10, 20, 30]
    assert dataset["backgroundColor"] == DEFAULT_BACKGROUND
    assert dataset["borderWidth"] == 1


def test_label_value_items_and_dicts(processor):
    items = [{"label": "Cats", "value": 4}, {"label": "Dogs", "value": 7}]
    result = processor.process(items, "pie")
    assert result["labels"] == ["Cats", "Dogs"]
    assert result["datasets"][0]["data"] == [4, 7]

    result = processor.process({"Mon": 1, "Tue": 2}, "line")
    assert result["labels"] == ["Mon", "Tue"]
    assert result["datasets"][0]["data"] == [1, 2]


def test_dataset_style_and_label_options(processor):
    result = processor.process([1, 2], "bar", {
        "label": "Sales",
        "datasetStyle": {"backgroundColor": "#123456", "borderWidth": 3},
    })
    dataset = result["datasets"][0]
    assert dataset["label"] == "Sales"
    assert dataset["backgroundColor"] == "#123456"
    assert dataset["borderWidth"] == 3


def test_pandas_input(processor):
    frame = pd.DataFrame({"label": ["a", "b"], "value": [1.5, 2.5]})
    result = processor.process(frame, "bar")
    assert result["labels"] == ["a", "b"]
    assert result["datasets"][0]["data"] == [1.5, 2.5]
    assert result["datasets"][0]["label"] == "Dataset"

    frame = pd.DataFrame({"city": ["x", "y"], "north": [1, 2], "south": [3, 4]})
    result = processor.process(frame, "line")
    assert result["labels"] == ["x", "y"]
    assert [dataset["label"] for dataset in result["datasets"]] == ["north", "south"]

    series = pd.Series([3, 4], index=["p", "q"], name="counts")
    result = processor.process(series, "radar")
    assert result["labels"] == ["p", "q"]
    assert result["datasets"][0]["label"] == "counts"


def test_scatter_and_bubble_points(processor):
    result = processor.process([[1, 2], [3, 4]], "scatter")
    assert "labels" not in result
    assert result["datasets"][0]["data"] == [{"x": 1, "y": 2}, {"x": 3, "y": 4}]
    assert result["datasets"][0]["backgroundColor"] == DEFAULT_SCATTER_BACKGROUND

    result = processor.process([[1, 2, 5]], "bubble")
    assert result["datasets"][0]["data"] == [{"x": 1, "y": 2, "r": 5}]


def test_3d_data(processor):
    assert processor.process([{"x": 1, "y": 2}, [3, 4, 5]], "scatter3d") == [
        {"x": 1, "y": 2, "z": 0}, {"x": 3, "y": 4, "z": 5}]
    assert processor.process(np.array([[1, 2], [3, 4]]), "surface") == [[1, 2], [3, 4]]
    assert processor.process([5, 6], "bar3d")["labels"] == ["Item 1", "Item 2"]


@pytest.mark.parametrize("raw, visualization_type", [
    ([10, 20, 30], "bar"),
    ({"a": 1, "b": 2}, "doughnut"),
    ([[1, 2], [2, 3]], "bubble"),
    ([{"x": 1, "y": 1}], "scatter3d"),
    ([{"id": 1, "parentId": None}, {"id": 2, "parentId": 1}], "tree"),
    ([{"source": "a", "target": "b"}], "force"),
])
def test_process_is_idempotent(processor, raw, visualization_type):
    """Processing canonical output again changes nothing."""
    once = processor.process(raw, visualization_type)
    assert processor.process(once, visualization_type) == once


def test_unknown_family_and_missing_input_pass_through(processor):
    payload = {"flows": [1, 2]}
    assert processor.process(payload, "sankey") is payload
    assert processor.process(None, "bar") is None


def test_array_to_hierarchy_single_root(processor):
    rows = [
        {"id": 1, "parentId": None, "name": "top"},
        {"id": 2, "parentId": 1},
        {"id": 3, "parentId": 1},
        {"id": 4, "parentId": 3},
    ]
    tree = processor.array_to_hierarchy(rows)
    assert tree["name"] == "top"
    assert [child["name"] for child in tree["children"]] == ["2", "3"]
    assert tree["children"][1]["children"][0]["id"] == 4


def test_array_to_hierarchy_wraps_multiple_or_zero_roots(processor):
    tree = processor.array_to_hierarchy([{"id": "a", "parentId": ""}, {"id": "b", "parentId": None}])
    assert tree["name"] == "root"
    assert [child["id"] for child in tree["children"]] == ["a", "b"]

    cyclic = [{"id": 1, "parentId": 2}, {"id": 2, "parentId": 1}]
    assert processor.array_to_hierarchy(cyclic) == {"name": "root", "children": []}


def test_array_to_hierarchy_drops_orphans(processor, caplog):
    rows = [{"id": 1, "parentId": None}, {"id": 2, "parentId": 99}]
    with caplog.at_level(logging.WARNING, logger="PolyViz"):
        tree = processor.array_to_hierarchy(rows)
    assert tree["children"] == []
    assert "unknown parent 99" in caplog.text


def test_array_to_hierarchy_from_dataframe(processor):
    frame = pd.DataFrame({"id": [1, 2], "parentId": [np.nan, 1], "value": [0, 5]})
    tree = processor.process(frame, "treemap")
    assert tree["id"] == 1
    assert tree["children"][0]["value"] == 5


def test_edges_to_network_keeps_first_seen_order(processor):
    edges = [{"source": "x", "target": "y"}, {"source": "z", "target": "x"}]
    network = processor.process(edges, "force")
    assert [node["id"] for node in network["nodes"]] == ["x", "y", "z"]
    assert network["links"] == edges
    assert network["links"][0] is not edges[0]


def test_normalize():
    assert DataProcessor.normalize([5, 5, 5], 0, 1) == [0, 0, 0]
    assert DataProcessor.normalize([]) == []
    assert DataProcessor.normalize([0, 5, 10]) == pytest.approx([0, 0.5, 1])
    assert DataProcessor.normalize([1, 3], 10, 20) == pytest.approx([10, 20])


def test_aggregate(processor):
    rows = [
        {"team": "b", "score": 4},
        {"team": "a", "score": 1},
        {"team": "b", "score": 2},
    ]
    assert processor.aggregate(rows, "team", "score") == {"b": 6, "a": 1}
    assert list(processor.aggregate(rows, "team", "score")) == ["b", "a"]
    assert processor.aggregate(rows, "team", "score", "avg") == {"b": 3.0, "a": 1.0}
    assert processor.aggregate(rows, "team", "score", "min") == {"b": 2, "a": 1}
    assert processor.aggregate(rows, "team", "score", "max") == {"b": 4, "a": 1}
    assert processor.aggregate(rows, "team", "score", "count") == {"b": 2, "a": 1}
    assert processor.aggregate([], "team", "score") == {}


def test_aggregate_unknown_method_falls_back_to_sum(processor, caplog):
    rows = [{"k": 1, "v": 2}, {"k": 1, "v": 3}]
    with caplog.at_level(logging.WARNING, logger="PolyViz"):
        assert processor.aggregate(rows, "k", "v", "median") == {1: 5}
    assert "falling back to sum" in caplog.text
