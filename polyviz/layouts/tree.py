"""
Tidy tree layout over an index-based node arena.

The hierarchy is flattened into ``TreeArena.nodes``; parent/child links are
indices, so expand/collapse is a flag flip on one node and the layout simply
skips the children of collapsed nodes.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_DEPTH_SPACING = 180.0


@dataclass
class TreeNode:
    id: int
    name: str
    depth: int
    parent: Optional[int]
    value: Optional[float] = None
    children: List[int] = field(default_factory=list)
    collapsed: bool = False
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_children(self) -> bool:
        return bool(self.children)


class TreeArena:
    """Flat storage for a hierarchy; node 0 is the root."""

    def __init__(self):
        self.nodes: List[TreeNode] = []

    @classmethod
    def from_hierarchy(cls, root: Dict[str, Any]) -> "TreeArena":
        """Flatten a ``{"name", "value"?, "children"?}`` hierarchy in pre-order."""
        arena = cls()
        stack: List[Tuple[Dict[str, Any], Optional[int], int]] = [(root, None, 0)]
        while stack:
            item, parent, depth = stack.pop()
            node = TreeNode(
                id=len(arena.nodes),
                name=str(item.get("name", "")),
                depth=depth,
                parent=parent,
                value=item.get("value"),
                data={key: value for key, value in item.items() if key != "children"},
            )
            arena.nodes.append(node)
            if parent is not None:
                arena.nodes[parent].children.append(node.id)
            for child in reversed(item.get("children") or []):
                stack.append((child, node.id, depth + 1))
        return arena

    def __len__(self):
        return len(self.nodes)

    def __getitem__(self, node_id: int) -> TreeNode:
        if not isinstance(node_id, int) or not 0 <= node_id < len(self.nodes):
            raise KeyError(f"Unknown tree node: {node_id}")
        return self.nodes[node_id]

    @property
    def root(self) -> TreeNode:
        return self.nodes[0]

    def find(self, name: str) -> Optional[TreeNode]:
        """First node (pre-order) with the given name."""
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    def toggle(self, node_id: int) -> bool:
        """Flip a node between expanded and collapsed; returns the new collapsed state."""
        node = self[node_id]
        if node.has_children:
            node.collapsed = not node.collapsed
        return node.collapsed

    def visible_children(self, node_id: int) -> List[int]:
        node = self.nodes[node_id]
        return [] if node.collapsed else node.children

    def visible(self) -> List[TreeNode]:
        """Nodes not hidden under a collapsed ancestor, in pre-order."""
        if not self.nodes:
            return []
        order = []
        stack = [0]
        while stack:
            node_id = stack.pop()
            order.append(self.nodes[node_id])
            stack.extend(reversed(self.visible_children(node_id)))
        return order


@dataclass
class TreeGeometry:
    """Positions keyed by node id; ``x`` runs across the height, ``y`` along depth."""
    positions: Dict[int, Tuple[float, float]]
    links: List[Tuple[int, int]]


def tree_layout(arena: TreeArena, height: float,
                depth_spacing: float = DEFAULT_DEPTH_SPACING) -> TreeGeometry:
    """
    Lay out the visible part of the tree.

    Leaves are spread evenly over ``height``; each parent sits midway between
    its first and last visible child; depth maps to ``depth * depth_spacing``.
    """
    visible = arena.visible()
    if not visible:
        return TreeGeometry({}, [])
    leaves = [node for node in visible if not arena.visible_children(node.id)]
    slot = height / len(leaves)
    x: Dict[int, float] = {node.id: (position + 0.5) * slot for position, node in enumerate(leaves)}

    for node in reversed(visible):
        children = arena.visible_children(node.id)
        if children:
            x[node.id] = (x[children[0]] + x[children[-1]]) / 2

    positions = {node.id: (x[node.id], node.depth * depth_spacing) for node in visible}
    links = [(node.parent, node.id) for node in visible if node.parent is not None]
    return TreeGeometry(positions, links)


def diagonal(source: Tuple[float, float], target: Tuple[float, float]) -> str:
    """Horizontal cubic link between two (x, y) tree positions."""
    sx, sy = source
    tx, ty = target
    mid = (sy + ty) / 2
    return f"M{sy:g},{sx:g}C{mid:g},{sx:g} {mid:g},{tx:g} {ty:g},{tx:g}"
