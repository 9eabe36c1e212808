"""
Validation functions run before data normalization.

Each validator returns True or raises DataShapeError naming the structural
defect. Raw shapes that DataProcessor knows how to normalize validate as well
as the canonical shapes.
"""
import logging
import numbers
from collections.abc import Sequence
from typing import Any, Dict

import numpy as np
import pandas as pd

from ..chart_types import (CHART_FAMILY, LAYOUT_FAMILY, SCENE_FAMILY, VisualizationType)
from ..exceptions import DataShapeError
from .data_processor import is_edge_list, is_flat_table

logger = logging.getLogger("PolyViz.validators")

POINT_TYPES = {VisualizationType.SCATTER, VisualizationType.BUBBLE}


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (Sequence, np.ndarray)) and not isinstance(value, (str, bytes))


def validate_options(options: Any) -> Dict[str, Any]:
    """Sanitize facade construction options, warning about and repairing bad values."""
    if not isinstance(options, dict):
        return {}
    validated = dict(options)

    if "container" in validated and not isinstance(validated["container"], str):
        logger.warning("Container must be a string CSS selector. Using default.")
        del validated["container"]

    if "mode" in validated and validated["mode"] not in ("2d", "3d"):
        logger.warning('Mode must be "2d" or "3d". Using default "2d".')
        validated["mode"] = "2d"

    if "theme" in validated and not isinstance(validated["theme"], (str, dict)):
        logger.warning("Theme must be an object or string. Using default theme.")
        del validated["theme"]

    if "responsive" in validated and not isinstance(validated["responsive"], bool):
        logger.warning("Responsive must be a boolean. Using default true.")
        validated["responsive"] = True

    if "debug" in validated and not isinstance(validated["debug"], bool):
        logger.warning("Debug must be a boolean. Using default false.")
        validated["debug"] = False

    return validated


def validate(data: Any, visualization_type) -> bool:
    """Dispatch to the validator for the type's engine family."""
    visualization_type = VisualizationType.from_string(visualization_type)
    if visualization_type in CHART_FAMILY:
        return validate_chart_data(data, visualization_type)
    if visualization_type in LAYOUT_FAMILY:
        return validate_layout_data(data, visualization_type)
    if visualization_type in SCENE_FAMILY:
        return validate_3d_data(data, visualization_type)
    return True


def _validate_point(point: Any, index: int, label: str = "Point") -> None:
    if isinstance(point, dict):
        if point.get("x") is None or point.get("y") is None:
            raise DataShapeError(f"{label} at index {index} must have x and y coordinates")
        return
    if _is_sequence(point):
        if len(point) < 2:
            raise DataShapeError(f"{label} at index {index} must have at least 2 coordinates")
        return
    raise DataShapeError(f"{label} at index {index} must be an object or a coordinate sequence")


def validate_chart_data(data: Any, visualization_type=VisualizationType.BAR) -> bool:
    """Validate flat series, categorical and point data for chart types."""
    visualization_type = VisualizationType.from_string(visualization_type)
    points = visualization_type in POINT_TYPES

    if data is None:
        raise DataShapeError("Chart data is required")

    if isinstance(data, (pd.DataFrame, pd.Series)):
        if data.empty:
            raise DataShapeError("Chart data frame cannot be empty")
        return True

    if isinstance(data, dict) and "datasets" in data:
        datasets = data["datasets"]
        if not isinstance(datasets, list):
            raise DataShapeError("datasets must be an array")
        if not datasets:
            raise DataShapeError("datasets array cannot be empty")

        labels = data.get("labels")
        if labels is not None and not isinstance(labels, list):
            raise DataShapeError("labels must be an array")

        for index, dataset in enumerate(datasets):
            if not isinstance(dataset, dict) or "data" not in dataset:
                raise DataShapeError(f"dataset at index {index} is missing data property")
            if not isinstance(dataset["data"], list):
                raise DataShapeError(f"dataset.data at index {index} must be an array")
            if points:
                for point_index, point in enumerate(dataset["data"]):
                    _validate_point(point, point_index)
            elif labels is not None and len(dataset["data"]) != len(labels):
                raise DataShapeError(
                    f"dataset at index {index} has {len(dataset['data'])} values "
                    f"but there are {len(labels)} labels"
                )
        return True

    if isinstance(data, list):
        if not data:
            raise DataShapeError("Data array cannot be empty")
        for index, item in enumerate(data):
            if points:
                _validate_point(item, index)
            elif isinstance(item, dict):
                if "value" not in item:
                    raise DataShapeError(f"Item at index {index} is missing value property")
            elif item is not None and not _is_number(item):
                raise DataShapeError(
                    f"Item at index {index} must be a number, got {type(item).__name__}"
                )
        return True

    if isinstance(data, dict) and data:
        if points:
            raise DataShapeError("Point data must be an array of points or contain datasets")
        for key, value in data.items():
            if value is not None and not _is_number(value):
                raise DataShapeError(f"Value for \"{key}\" must be a number, got {type(value).__name__}")
        return True

    raise DataShapeError("Invalid chart data format")


def validate_3d_data(data: Any, visualization_type) -> bool:
    """Validate data for the 3D scene types."""
    visualization_type = VisualizationType.from_string(visualization_type)
    if data is None:
        raise DataShapeError("3D data is required")

    if visualization_type == VisualizationType.BAR_3D:
        return validate_chart_data(data, VisualizationType.BAR)

    if visualization_type == VisualizationType.SCATTER_3D:
        if isinstance(data, pd.DataFrame):
            missing = {"x", "y"} - set(data.columns)
            if missing:
                raise DataShapeError(f"Scatter3D data frame is missing columns: {sorted(missing)}")
            return True
        if not isinstance(data, list):
            raise DataShapeError("Scatter3D data must be an array")
        if not data:
            raise DataShapeError("Scatter3D data array cannot be empty")
        for index, point in enumerate(data):
            _validate_point(point, index)
        return True

    if visualization_type == VisualizationType.SURFACE:
        if isinstance(data, (pd.DataFrame, np.ndarray)):
            data = data.values.tolist() if isinstance(data, pd.DataFrame) else data.tolist()
        if not isinstance(data, list):
            raise DataShapeError("Surface data must be an array")
        if not data:
            raise DataShapeError("Surface data array cannot be empty")
        width = None
        for index, row in enumerate(data):
            if not isinstance(row, list):
                raise DataShapeError(f"Row at index {index} must be an array")
            if not row:
                raise DataShapeError(f"Row at index {index} cannot be empty")
            if width is not None and len(row) != width:
                raise DataShapeError("All rows must have the same length")
            width = len(row)
        return True

    return True


def _validate_hierarchy(data: Dict[str, Any]) -> None:
    stack = [(data, "root")]
    while stack:
        node, path = stack.pop()
        if not isinstance(node, dict):
            raise DataShapeError(f"Node at {path} must be an object")
        if not node.get("name"):
            raise DataShapeError(f"Hierarchical data must have a name property (at {path})")
        if "children" not in node and "value" not in node:
            raise DataShapeError(
                f"Hierarchical data must have children or value property (at {path})"
            )
        value = node.get("value")
        if value is not None and not _is_number(value):
            raise DataShapeError(f"Value at {path} must be a number")
        children = node.get("children")
        if children is None:
            continue
        if not isinstance(children, list):
            raise DataShapeError(f"Children at {path} must be an array")
        for index, child in enumerate(children):
            stack.append((child, f"{path}.children[{index}]"))


def _validate_flat_table(rows) -> None:
    seen = set()
    for index, row in enumerate(rows):
        row_id = row["id"]
        if row_id is None:
            raise DataShapeError(f"Row at index {index} has no id")
        if row_id in seen:
            raise DataShapeError(f"Duplicate id \"{row_id}\" at index {index}")
        seen.add(row_id)


def _validate_network(data: Dict[str, Any]) -> None:
    if "nodes" not in data:
        raise DataShapeError("Force-directed graph data must have nodes property")
    if "links" not in data:
        raise DataShapeError("Force-directed graph data must have links property")
    if not isinstance(data["nodes"], list):
        raise DataShapeError("Nodes must be an array")
    if not isinstance(data["links"], list):
        raise DataShapeError("Links must be an array")

    node_ids = set()
    for index, node in enumerate(data["nodes"]):
        if not isinstance(node, dict) or node.get("id") is None:
            raise DataShapeError(f"Node at index {index} is missing id property")
        if node["id"] in node_ids:
            raise DataShapeError(f"Duplicate node id \"{node['id']}\" at index {index}")
        node_ids.add(node["id"])

    for index, link in enumerate(data["links"]):
        if not isinstance(link, dict):
            raise DataShapeError(f"Link at index {index} must be an object")
        for end in ("source", "target"):
            endpoint = link.get(end)
            if endpoint is None:
                raise DataShapeError(f"Link at index {index} is missing {end} property")
            # resolved node references were already checked by whoever resolved them
            if isinstance(endpoint, dict):
                continue
            if endpoint not in node_ids:
                raise DataShapeError(
                    f"Link at index {index} references non-existent {end} node \"{endpoint}\""
                )


def validate_layout_data(data: Any, visualization_type) -> bool:
    """Validate hierarchical and network data for the layout types."""
    visualization_type = VisualizationType.from_string(visualization_type)
    if data is None:
        raise DataShapeError("Layout data is required")

    if visualization_type in (VisualizationType.TREE, VisualizationType.TREEMAP,
                              VisualizationType.PACK):
        if isinstance(data, pd.DataFrame):
            missing = {"id", "parentId"} - set(data.columns)
            if missing:
                raise DataShapeError(f"Hierarchy table is missing columns: {sorted(missing)}")
            data = data.to_dict(orient="records")
        if isinstance(data, list):
            if not is_flat_table(data):
                raise DataShapeError("Flat hierarchy rows must all have id and parentId properties")
            _validate_flat_table(data)
            return True
        _validate_hierarchy(data)
        return True

    if visualization_type == VisualizationType.FORCE:
        if isinstance(data, pd.DataFrame):
            data = data.to_dict(orient="records")
        if isinstance(data, list):
            if not is_edge_list(data):
                raise DataShapeError("Edge list rows must all have source and target properties")
            return True
        if not isinstance(data, dict):
            raise DataShapeError("Force-directed graph data must be an object or an edge list")
        _validate_network(data)
        return True

    return True
