"""Squarified treemap layout."""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import squarify


@dataclass
class TreemapCell:
    name: str
    depth: int
    value: float
    x0: float
    y0: float
    x1: float
    y1: float
    parent: Optional[str] = None
    leaf: bool = True

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0


class _Node:
    __slots__ = ("name", "depth", "value", "children", "parent", "x0", "y0", "x1", "y1")

    def __init__(self, name: str, depth: int, parent: Optional[str]):
        self.name = name
        self.depth = depth
        self.parent = parent
        self.value = 0.0
        self.children: List["_Node"] = []
        self.x0 = self.y0 = self.x1 = self.y1 = 0.0


def _build(root: Dict[str, Any]) -> _Node:
    """Convert a hierarchy into nodes with summed values, children sorted by value."""
    top = _Node(str(root.get("name", "")), 0, None)
    stack = [(root, top)]
    order = []
    while stack:
        item, node = stack.pop()
        order.append((item, node))
        for child in item.get("children") or []:
            child_node = _Node(str(child.get("name", "")), node.depth + 1, node.name)
            node.children.append(child_node)
            stack.append((child, child_node))
    for item, node in reversed(order):
        if node.children:
            node.value = sum(child.value for child in node.children)
            node.children.sort(key=lambda child: child.value, reverse=True)
        else:
            node.value = max(0.0, float(item.get("value") or 0))
    return top


def _tile(nodes: List[_Node], x0: float, y0: float, x1: float, y1: float) -> None:
    """Squarify the children (sorted by descending value) into the rectangle."""
    for node in nodes:
        node.x0 = node.x1 = x0
        node.y0 = node.y1 = y0
    sized = [node for node in nodes if node.value > 0]
    dx, dy = x1 - x0, y1 - y0
    if not sized or dx <= 0 or dy <= 0:
        # zero-area remainder: everything collapses onto the corner
        return
    sizes = squarify.normalize_sizes([node.value for node in sized], dx, dy)
    for node, rect in zip(sized, squarify.squarify(sizes, x0, y0, dx, dy)):
        node.x0, node.y0 = rect["x"], rect["y"]
        node.x1, node.y1 = rect["x"] + rect["dx"], rect["y"] + rect["dy"]


def treemap_layout(root: Dict[str, Any], width: float, height: float,
                   padding: float = 2, rounding: bool = True) -> List[TreemapCell]:
    """
    Lay out a hierarchy as nested rectangles filling ``width`` x ``height``.

    Each parent's children are squarified inside the parent inset by
    ``padding``; siblings are separated by ``padding``. Cells are returned in
    pre-order, root first.
    """
    top = _build(root)
    top.x0, top.y0, top.x1, top.y1 = 0.0, 0.0, float(width), float(height)
    cells: List[TreemapCell] = []
    stack = [top]
    while stack:
        node = stack.pop()
        if rounding:
            node.x0, node.y0 = round(node.x0), round(node.y0)
            node.x1, node.y1 = round(node.x1), round(node.y1)
        node.x1 = max(node.x1, node.x0)
        node.y1 = max(node.y1, node.y0)
        cells.append(TreemapCell(node.name, node.depth, node.value, node.x0, node.y0,
                                 node.x1, node.y1, node.parent, not node.children))
        if not node.children:
            continue
        inner = padding / 2
        x0, y0 = node.x0 + padding - inner, node.y0 + padding - inner
        x1, y1 = node.x1 - padding + inner, node.y1 - padding + inner
        if x1 < x0:
            x0 = x1 = (x0 + x1) / 2
        if y1 < y0:
            y0 = y1 = (y0 + y1) / 2
        _tile(node.children, x0, y0, x1, y1)
        for child in node.children:
            # sibling gap: each child gives up half the padding on every side
            child.x0 += inner
            child.y0 += inner
            child.x1 -= inner
            child.y1 -= inner
            if child.x1 < child.x0:
                child.x0 = child.x1 = (child.x0 + child.x1) / 2
            if child.y1 < child.y0:
                child.y0 = child.y1 = (child.y0 + child.y1) / 2
        stack.extend(reversed(node.children))
    return cells
