"""
Circle packing layout.

Leaves get radius ``sqrt(value)``. Siblings are packed bottom-up: each circle
is placed tangent to two already-placed circles at the free position closest
to the group's origin; the parent circle then encloses its children. A final
top-down pass scales everything to fit the drawing area.
"""
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np

EPSILON = 1e-6


@dataclass
class PackCircle:
    name: str
    depth: int
    value: float
    x: float
    y: float
    r: float
    parent: Optional[str] = None
    leaf: bool = True


class _Node:
    __slots__ = ("name", "depth", "value", "children", "parent", "x", "y", "r")

    def __init__(self, name: str, depth: int, parent: Optional[str]):
        self.name = name
        self.depth = depth
        self.parent = parent
        self.value = 0.0
        self.children: List["_Node"] = []
        self.x = self.y = self.r = 0.0


def place(b, a, radius: float):
    """Centre of a circle of ``radius`` tangent to circles a and b (each (x, y, r))."""
    ax, ay, ar = a
    bx, by, br = b
    dx, dy = bx - ax, by - ay
    d2 = dx * dx + dy * dy
    if not d2:
        return ax + radius, ay
    a2 = (ar + radius) ** 2
    b2 = (br + radius) ** 2
    if a2 > b2:
        x = (d2 + b2 - a2) / (2 * d2)
        y = math.sqrt(max(0.0, b2 / d2 - x * x))
        return bx - x * dx - y * dy, by - x * dy + y * dx
    x = (d2 + a2 - b2) / (2 * d2)
    y = math.sqrt(max(0.0, a2 / d2 - x * x))
    return ax + x * dx - y * dy, ay + x * dy + y * dx


def pack_siblings(radii: List[float]) -> np.ndarray:
    """Positions (N x 2) for circles of the given radii packed around the origin."""
    count = len(radii)
    centres = np.zeros((count, 2))
    if count < 2:
        return centres
    radii_array = np.asarray(radii, dtype=float)
    centres[0] = (-radii_array[1], 0.0)
    centres[1] = (radii_array[0], 0.0)
    for index in range(2, count):
        radius = radii_array[index]
        best, best_distance = None, math.inf
        placed = centres[:index]
        placed_radii = radii_array[:index]
        for first in range(index):
            for second in range(first + 1, index):
                gap = np.linalg.norm(placed[first] - placed[second])
                if gap > placed_radii[first] + placed_radii[second] + 2 * radius + EPSILON:
                    continue
                a = (placed[first][0], placed[first][1], placed_radii[first])
                b = (placed[second][0], placed[second][1], placed_radii[second])
                for candidate in (place(b, a, radius), place(a, b, radius)):
                    distance = math.hypot(*candidate)
                    if distance >= best_distance:
                        continue
                    clearance = (np.linalg.norm(placed - np.asarray(candidate), axis=1)
                                 - placed_radii - radius)
                    if np.all(clearance > -EPSILON * max(1.0, radius)):
                        best, best_distance = candidate, distance
        if best is None:
            # nothing fits between pairs: park outside the current extent
            best = (float(np.max(np.linalg.norm(placed, axis=1) + placed_radii)) + radius, 0.0)
        centres[index] = best
    return centres


def enclose(centres: np.ndarray, radii: List[float]):
    """A circle (x, y, r) containing every circle; centred on their bounding box."""
    radii_array = np.asarray(radii, dtype=float)
    low = (centres - radii_array[:, None]).min(axis=0)
    high = (centres + radii_array[:, None]).max(axis=0)
    centre = (low + high) / 2
    radius = float(np.max(np.linalg.norm(centres - centre, axis=1) + radii_array))
    return float(centre[0]), float(centre[1]), radius


def _build(root: Dict[str, Any]) -> List[_Node]:
    top = _Node(str(root.get("name", "")), 0, None)
    stack = [(root, top)]
    order = []
    while stack:
        item, node = stack.pop()
        order.append(node)
        children = item.get("children") or []
        if not children:
            node.value = max(0.0, float(item.get("value") or 0))
        for child in children:
            node.children.append(_Node(str(child.get("name", "")), node.depth + 1, node.name))
        stack.extend(reversed(list(zip(children, node.children))))
    for node in reversed(order):
        if node.children:
            node.value = sum(child.value for child in node.children)
    return order


def pack_layout(root: Dict[str, Any], width: float, height: float,
                padding: float = 3) -> List[PackCircle]:
    """Pack a hierarchy into a circle centred in ``width`` x ``height``; pre-order output."""
    order = _build(root)
    for node in reversed(order):
        if not node.children:
            node.r = math.sqrt(node.value)
            continue
        padded = [child.r + padding for child in node.children]
        centres = pack_siblings(padded)
        cx, cy, radius = enclose(centres, padded)
        for child, (x, y) in zip(node.children, centres):
            child.x, child.y = x - cx, y - cy
        node.r = radius

    top = order[0]
    scale = min(width, height) / 2 / top.r if top.r > 0 else 0.0
    top.x, top.y = width / 2, height / 2
    circles = []
    for node in order:
        for child in node.children:
            # children hold offsets from the parent until this pass
            child.x = node.x + child.x * scale
            child.y = node.y + child.y * scale
        circles.append(PackCircle(node.name, node.depth, node.value, node.x, node.y,
                                  node.r * scale, node.parent, not node.children))
    return circles
