"""Handles returned to callers and the registry of live visualizations."""
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, List, Optional, Union

from .chart_types import EngineKind, VisualizationType
from .exceptions import UnknownHandleError


@dataclass(frozen=True)
class VisualizationHandle:
    """Opaque reference to a live visualization."""
    id: str
    type: VisualizationType
    engine: EngineKind


@dataclass(frozen=True)
class RegistryEntry:
    """
    Everything the orchestrator knows about one visualization.

    ``options`` are the caller's options (merged across updates, never
    themed); ``theme`` is a per-visualization override set by apply_theme.
    ``resource`` is opaque outside the owning engine.
    """
    type: VisualizationType
    engine: EngineKind
    resource: Any
    data: Any
    options: Dict[str, Any]
    container: str
    width: int = 0
    height: int = 0
    theme: Any = None

    def evolve(self, **changes) -> "RegistryEntry":
        """A copy with some fields replaced."""
        return replace(self, **changes)


HandleLike = Union[VisualizationHandle, str]


class Registry:
    """Maps visualization ids to entries; the only record of what is alive."""

    def __init__(self):
        self._entries: Dict[str, RegistryEntry] = {}

    @staticmethod
    def key(handle: HandleLike) -> str:
        return handle.id if isinstance(handle, VisualizationHandle) else handle

    def add(self, handle: VisualizationHandle, entry: RegistryEntry) -> None:
        if handle.id in self._entries:
            raise ValueError(f"Visualization id already registered: {handle.id}")
        self._entries[handle.id] = entry

    def get(self, handle: HandleLike) -> RegistryEntry:
        key = self.key(handle)
        entry = self._entries.get(key)
        if entry is None:
            raise UnknownHandleError(f"Visualization with ID {key} not found")
        return entry

    def replace(self, handle: HandleLike, entry: RegistryEntry) -> None:
        """Swap in a new entry for a registered id."""
        self.get(handle)
        self._entries[self.key(handle)] = entry

    def remove(self, handle: HandleLike) -> RegistryEntry:
        entry = self.get(handle)
        del self._entries[self.key(handle)]
        return entry

    def handle(self, key: str) -> VisualizationHandle:
        entry = self.get(key)
        return VisualizationHandle(key, entry.type, entry.engine)

    def handles(self) -> List[VisualizationHandle]:
        return [VisualizationHandle(key, entry.type, entry.engine)
                for key, entry in self._entries.items()]

    def __contains__(self, handle: Optional[HandleLike]) -> bool:
        return handle is not None and self.key(handle) in self._entries

    def __len__(self):
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))
