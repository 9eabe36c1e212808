"""
Normalizes raw input data into the canonical shape each engine consumes.

Supported inputs per family:

* flat series (bar, line, radar, bar3d): list of numbers, list of
  ``{"label", "value"}`` dicts, plain ``{label: value}`` dicts, pandas
  Series/DataFrame
* categorical (pie, doughnut, polarArea): same as flat series
* coordinate pairs (scatter, bubble, scatter3d): ``{"x", "y"}`` dicts or
  ``[x, y(, z|r)]`` sequences
* hierarchy (tree, treemap, pack): nested ``{"name", "children"}`` dicts or a
  flat ``id``/``parentId`` table
* network (force): ``{"nodes", "links"}`` or a bare edge list
"""
import logging
from collections.abc import Sequence
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from ..chart_types import VisualizationType

DEFAULT_SERIES_LABEL = "Dataset"
DEFAULT_BACKGROUND = "rgba(75, 192, 192, 0.2)"
DEFAULT_SCATTER_BACKGROUND = "rgba(75, 192, 192, 0.5)"
DEFAULT_BORDER = "rgba(75, 192, 192, 1)"

FLAT_SERIES_TYPES = {VisualizationType.BAR, VisualizationType.LINE, VisualizationType.RADAR}
CATEGORICAL_TYPES = {VisualizationType.PIE, VisualizationType.DOUGHNUT, VisualizationType.POLAR_AREA}
COORDINATE_TYPES = {VisualizationType.SCATTER, VisualizationType.BUBBLE}
HIERARCHY_TYPES = {VisualizationType.TREE, VisualizationType.TREEMAP, VisualizationType.PACK}
NETWORK_TYPES = {VisualizationType.FORCE}
SCENE_DATA_TYPES = {VisualizationType.BAR_3D, VisualizationType.SCATTER_3D, VisualizationType.SURFACE}

AGGREGATIONS = {"sum": "sum", "avg": "mean", "min": "min", "max": "max", "count": "size"}


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (Sequence, np.ndarray)) and not isinstance(value, (str, bytes))


def _to_python(value: Any) -> Any:
    """Unwrap numpy scalars."""
    return value.item() if isinstance(value, np.generic) else value


def _is_missing(value: Any) -> bool:
    """None, empty string or NaN (pandas fills missing parents with NaN)."""
    return value is None or value == "" or (isinstance(value, float) and np.isnan(value))


def is_canonical_hierarchy(data: Any) -> bool:
    """True for a nested ``{"name", "children"|"value"}`` node."""
    return isinstance(data, dict) and bool(data.get("name")) and (
        "children" in data or "value" in data)


def is_canonical_network(data: Any) -> bool:
    """True for a ``{"nodes", "links"}`` mapping."""
    return isinstance(data, dict) and "nodes" in data and "links" in data


def is_flat_table(data: Any) -> bool:
    """True for a list of rows that all carry ``id`` and ``parentId``."""
    return (isinstance(data, list) and len(data) > 0 and all(
        isinstance(item, dict) and "id" in item and "parentId" in item for item in data))


def is_edge_list(data: Any) -> bool:
    """True for a list of ``{"source", "target"}`` rows."""
    return (isinstance(data, list) and len(data) > 0 and all(
        isinstance(item, dict) and item.get("source") is not None
        and item.get("target") is not None for item in data))


class DataProcessor:
    """Processes and transforms data for visualizations. All methods are side-effect free."""

    def __init__(self):
        self.logger = logging.getLogger("PolyViz." + self.__class__.__name__)

    def process(self, data: Any, visualization_type, options: Optional[Dict] = None) -> Any:
        """
        Normalize data for a visualization type.

        Already canonical input is returned unchanged, so processing twice is
        the same as processing once. Types without a normalizer pass through.
        """
        if data is None or visualization_type is None:
            return data
        visualization_type = VisualizationType.from_string(visualization_type)
        options = options or {}

        if visualization_type in FLAT_SERIES_TYPES:
            return self._process_chart_data(data, options)
        if visualization_type in CATEGORICAL_TYPES:
            return self._process_pie_data(data, options)
        if visualization_type in COORDINATE_TYPES:
            return self._process_scatter_data(data, visualization_type, options)
        if visualization_type in HIERARCHY_TYPES:
            return self._process_hierarchical_data(data)
        if visualization_type in NETWORK_TYPES:
            return self._process_network_data(data)
        if visualization_type in SCENE_DATA_TYPES:
            return self._process_3d_data(data, visualization_type, options)
        return data

    def _dataset(self, values: List, options: Dict, label: Optional[str] = None,
                 background: str = DEFAULT_BACKGROUND) -> Dict[str, Any]:
        style = options.get("datasetStyle") or {}
        return {
            "label": label or options.get("label") or DEFAULT_SERIES_LABEL,
            "data": values,
            "backgroundColor": style.get("backgroundColor", background),
            "borderColor": style.get("borderColor", DEFAULT_BORDER),
            "borderWidth": style.get("borderWidth", 1),
        }

    def _process_chart_data(self, data: Any, options: Dict) -> Any:
        """Convert flat series input to ``{"labels", "datasets"}``."""
        if isinstance(data, dict) and "datasets" in data:
            return data

        if isinstance(data, pd.Series):
            return {
                "labels": [str(label) for label in data.index],
                "datasets": [self._dataset(data.tolist(), options,
                                           label=str(data.name) if data.name is not None else None)],
            }

        if isinstance(data, pd.DataFrame):
            return self._dataframe_to_chart(data, options)

        if isinstance(data, list):
            labels = []
            values = []
            for index, item in enumerate(data):
                if isinstance(item, dict):
                    labels.append(str(item.get("label") or f"Item {index + 1}"))
                    values.append(item.get("value"))
                else:
                    labels.append(f"Item {index + 1}")
                    values.append(item)
            return {"labels": labels, "datasets": [self._dataset(values, options)]}

        if isinstance(data, dict):
            return {
                "labels": [str(key) for key in data.keys()],
                "datasets": [self._dataset(list(data.values()), options)],
            }

        return data

    def _dataframe_to_chart(self, frame: pd.DataFrame, options: Dict) -> Dict[str, Any]:
        numeric = frame.select_dtypes(include="number")
        if "label" in frame.columns:
            labels = frame["label"].astype(str).tolist()
            numeric = numeric.drop(columns=["label"], errors="ignore")
        else:
            text_columns = [col for col in frame.columns if col not in numeric.columns]
            if text_columns:
                labels = frame[text_columns[0]].astype(str).tolist()
            else:
                labels = [str(label) for label in frame.index]

        datasets = []
        for column in numeric.columns:
            label = None if column == "value" else str(column)
            datasets.append(self._dataset(numeric[column].tolist(), options, label=label))
        return {"labels": labels, "datasets": datasets}

    def _process_pie_data(self, data: Any, options: Dict) -> Any:
        """Pie-like charts share the flat series shape."""
        return self._process_chart_data(data, options)

    def _process_scatter_data(self, data: Any, visualization_type: VisualizationType,
                              options: Dict) -> Any:
        """Convert point lists to a single scatter dataset."""
        if isinstance(data, dict) and "datasets" in data:
            return data
        if isinstance(data, pd.DataFrame):
            data = data.to_dict(orient="records")
        if not isinstance(data, list):
            return data

        with_radius = visualization_type == VisualizationType.BUBBLE
        points = []
        for point in data:
            if isinstance(point, dict) and "x" in point and "y" in point:
                points.append(dict(point))
            elif _is_sequence(point) and len(point) >= 2:
                converted = {"x": point[0], "y": point[1]}
                if with_radius and len(point) > 2:
                    converted["r"] = point[2]
                points.append(converted)
            else:
                points.append(point)
        return {"datasets": [self._dataset(points, options, background=DEFAULT_SCATTER_BACKGROUND)]}

    def _process_hierarchical_data(self, data: Any) -> Any:
        """Return nested hierarchies as-is and build one from a flat id/parentId table."""
        if is_canonical_hierarchy(data):
            return data
        if isinstance(data, pd.DataFrame):
            data = data.to_dict(orient="records")
        if is_flat_table(data):
            return self.array_to_hierarchy(data)
        return data

    def _process_network_data(self, data: Any) -> Any:
        """Return ``{"nodes", "links"}`` as-is and derive nodes from a bare edge list."""
        if is_canonical_network(data):
            return data
        if isinstance(data, pd.DataFrame):
            data = data.to_dict(orient="records")
        if is_edge_list(data):
            return self.edges_to_network(data)
        return data

    def _process_3d_data(self, data: Any, visualization_type: VisualizationType,
                         options: Dict) -> Any:
        if visualization_type == VisualizationType.BAR_3D:
            return self._process_chart_data(data, options)

        if visualization_type == VisualizationType.SCATTER_3D:
            if isinstance(data, pd.DataFrame):
                data = data.to_dict(orient="records")
            if not isinstance(data, list):
                return data
            points = []
            for point in data:
                if isinstance(point, dict) and "x" in point and "y" in point:
                    z = point.get("z")
                    points.append({**point, "z": z if z is not None else 0})
                elif _is_sequence(point) and len(point) >= 2:
                    points.append({"x": point[0], "y": point[1],
                                   "z": point[2] if len(point) > 2 else 0})
                else:
                    points.append(point)
            return points

        # surface: a 2D grid of heights
        if isinstance(data, pd.DataFrame):
            return data.values.tolist()
        if isinstance(data, np.ndarray):
            return data.tolist()
        return data

    def array_to_hierarchy(self, items: List[Dict[str, Any]], id_field: str = "id",
                           parent_field: str = "parentId") -> Dict[str, Any]:
        """
        Convert a flat parent/child table into a nested tree.

        Every row without a parent is a root. A single root is returned
        directly; zero or several roots are wrapped in a synthetic node named
        "root". Rows whose parent id is unknown are dropped with a warning.
        """
        lookup: Dict[Any, Dict[str, Any]] = {}
        for item in items:
            node = {**item, "children": []}
            node.setdefault("name", str(item[id_field]))
            lookup[item[id_field]] = node

        root_ids = []
        for item in items:
            parent_id = item.get(parent_field)
            if _is_missing(parent_id):
                root_ids.append(item[id_field])
            elif parent_id in lookup:
                lookup[parent_id]["children"].append(lookup[item[id_field]])
            else:
                self.logger.warning("Dropping row %s: unknown parent %s", item[id_field], parent_id)

        if len(root_ids) == 1:
            return lookup[root_ids[0]]
        return {"name": "root", "children": [lookup[root_id] for root_id in root_ids]}

    @staticmethod
    def edges_to_network(edges: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Derive the node set from an edge list, in first-seen order."""
        seen = {}
        for link in edges:
            for endpoint in (link["source"], link["target"]):
                if endpoint not in seen:
                    seen[endpoint] = {"id": endpoint}
        return {"nodes": list(seen.values()), "links": [dict(link) for link in edges]}

    @staticmethod
    def normalize(data, min_value: float = 0, max_value: float = 1) -> List[float]:
        """Linearly rescale values to [min_value, max_value]; zero range collapses to min_value."""
        values = np.asarray(list(data), dtype=float)
        if values.size == 0:
            return []
        data_min = values.min()
        value_range = values.max() - data_min
        if value_range == 0:
            return [min_value] * values.size
        scaled = min_value + (values - data_min) / value_range * (max_value - min_value)
        return scaled.tolist()

    def aggregate(self, data: List[Dict[str, Any]], group_field: str, value_field: str,
                  aggregation: str = "sum") -> Dict[Any, Any]:
        """
        Aggregate rows by a key field.

        Args:
            data: Rows (dicts) to aggregate
            group_field: Field to group by
            value_field: Field to aggregate
            aggregation: One of sum, avg, min, max, count

        Returns:
            Dict of group key to aggregated value, in first-seen key order
        """
        if not data:
            return {}
        method = AGGREGATIONS.get(aggregation)
        if method is None:
            self.logger.warning("Unknown aggregation '%s', falling back to sum", aggregation)
            method = "sum"

        frame = pd.DataFrame(data)
        grouped = frame.groupby(group_field, sort=False, dropna=False)[value_field]
        result = grouped.agg(method)
        return {_to_python(key): _to_python(value) for key, value in result.items()}
