"""Pure layout functions used by the layout engine."""
from .force import build_simulation, clamp_nodes, force_layout
from .pack import PackCircle, pack_layout
from .placeholders import placeholder_layout
from .tree import TreeArena, TreeGeometry, diagonal, tree_layout
from .treemap import TreemapCell, treemap_layout

__all__ = [
    'PackCircle', 'TreeArena', 'TreeGeometry', 'TreemapCell', 'build_simulation',
    'clamp_nodes', 'diagonal', 'force_layout', 'pack_layout', 'placeholder_layout',
    'tree_layout', 'treemap_layout',
]
