"""
Velocity-Verlet force simulation over a list of node dicts.

Nodes are plain dicts; the simulation writes ``x``, ``y``, ``vx``, ``vy`` and
``index`` onto them and honours ``fx``/``fy`` pins. Forces are callables
taking ``alpha`` with an optional ``initialize(nodes)`` hook. The arithmetic
for each force is vectorised with numpy.
"""
import logging
import math
from typing import Any, Callable, Dict, List, Optional

import numpy as np

logger = logging.getLogger("PolyViz.forces")

INITIAL_RADIUS = 10
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


def _positions(nodes: List[Dict[str, Any]]) -> np.ndarray:
    return np.array([[node["x"], node["y"]] for node in nodes], dtype=float).reshape(-1, 2)


def _velocities(nodes: List[Dict[str, Any]]) -> np.ndarray:
    return np.array([[node["vx"], node["vy"]] for node in nodes], dtype=float).reshape(-1, 2)


def _store_velocities(nodes: List[Dict[str, Any]], velocities: np.ndarray) -> None:
    for node, (vx, vy) in zip(nodes, velocities):
        node["vx"] = float(vx)
        node["vy"] = float(vy)


def _jiggle(random: np.random.Generator) -> float:
    return (random.random() - 0.5) * 1e-6


class LinkForce:
    """Spring force pulling linked nodes towards ``distance`` apart."""

    def __init__(self, links: List[Dict[str, Any]], id_key: str = "id",
                 distance: float = 100, strength: Optional[float] = None, iterations: int = 1):
        self.links = links
        self.id_key = id_key
        self.distance = distance
        self.strength = strength
        self.iterations = iterations
        self.nodes: List[Dict[str, Any]] = []
        self._random = np.random.default_rng(0)

    def initialize(self, nodes: List[Dict[str, Any]]) -> None:
        """Resolve link endpoints into node references and precompute bias."""
        self.nodes = nodes
        by_id = {node.get(self.id_key): node for node in nodes}
        count = [0] * len(nodes)
        for link in self.links:
            for end in ("source", "target"):
                endpoint = link[end]
                if not isinstance(endpoint, dict):
                    if endpoint not in by_id:
                        raise KeyError(f"node not found: {endpoint}")
                    link[end] = by_id[endpoint]
            count[link["source"]["index"]] += 1
            count[link["target"]["index"]] += 1
        self._bias = []
        self._strengths = []
        for link in self.links:
            source, target = count[link["source"]["index"]], count[link["target"]["index"]]
            self._bias.append(source / (source + target))
            self._strengths.append(self.strength if self.strength is not None
                                   else 1 / min(source, target))

    def __call__(self, alpha: float) -> None:
        for _ in range(self.iterations):
            for link, bias, strength in zip(self.links, self._bias, self._strengths):
                source, target = link["source"], link["target"]
                dx = target["x"] + target["vx"] - source["x"] - source["vx"] or _jiggle(self._random)
                dy = target["y"] + target["vy"] - source["y"] - source["vy"] or _jiggle(self._random)
                length = math.hypot(dx, dy)
                scale = (length - self.distance) / length * alpha * strength
                dx, dy = dx * scale, dy * scale
                target["vx"] -= dx * bias
                target["vy"] -= dy * bias
                source["vx"] += dx * (1 - bias)
                source["vy"] += dy * (1 - bias)


class ManyBodyForce:
    """Pairwise charge between all nodes; negative strength repels."""

    def __init__(self, strength: float = -300, distance_min: float = 1,
                 distance_max: float = math.inf):
        self.strength = strength
        self.distance_min2 = distance_min ** 2
        self.distance_max2 = distance_max ** 2
        self.nodes: List[Dict[str, Any]] = []

    def initialize(self, nodes: List[Dict[str, Any]]) -> None:
        self.nodes = nodes

    def __call__(self, alpha: float) -> None:
        if len(self.nodes) < 2:
            return
        positions = _positions(self.nodes)
        delta = positions[None, :, :] - positions[:, None, :]
        dist2 = np.einsum("ijk,ijk->ij", delta, delta)
        np.fill_diagonal(dist2, np.inf)
        dist2 = np.maximum(dist2, self.distance_min2)
        weight = np.where(dist2 < self.distance_max2, self.strength * alpha / dist2, 0.0)
        np.fill_diagonal(weight, 0.0)
        velocities = _velocities(self.nodes) + np.einsum("ij,ijk->ik", weight, delta)
        _store_velocities(self.nodes, velocities)


class CenterForce:
    """Translate all nodes so their mean position is (x, y)."""

    def __init__(self, x: float = 0, y: float = 0, strength: float = 1):
        self.x = x
        self.y = y
        self.strength = strength
        self.nodes: List[Dict[str, Any]] = []

    def initialize(self, nodes: List[Dict[str, Any]]) -> None:
        self.nodes = nodes

    def __call__(self, alpha: float) -> None:
        if not self.nodes:
            return
        mean = _positions(self.nodes).mean(axis=0)
        shift_x = (mean[0] - self.x) * self.strength
        shift_y = (mean[1] - self.y) * self.strength
        for node in self.nodes:
            node["x"] -= shift_x
            node["y"] -= shift_y


class PositionForce:
    """Nudge nodes towards a coordinate along one axis."""

    def __init__(self, axis: str, target: float = 0, strength: float = 0.1):
        if axis not in ("x", "y"):
            raise ValueError(f"axis must be 'x' or 'y', got {axis!r}")
        self.axis = axis
        self.target = target
        self.strength = strength
        self.nodes: List[Dict[str, Any]] = []

    def initialize(self, nodes: List[Dict[str, Any]]) -> None:
        self.nodes = nodes

    def __call__(self, alpha: float) -> None:
        velocity = "v" + self.axis
        for node in self.nodes:
            node[velocity] += (self.target - node[self.axis]) * self.strength * alpha


class ForceSimulation:
    """
    Iterative layout driven by a cooling ``alpha``.

    Each ``tick`` moves alpha towards ``alpha_target`` by ``alpha_decay``,
    applies every force, then integrates velocities with ``velocity_decay``
    friction. ``step`` is one tick plus listener dispatch and reports whether
    the simulation is still hot; callers drive it from a frame loop.
    """

    def __init__(self, nodes: List[Dict[str, Any]], alpha: float = 1.0,
                 alpha_min: float = 0.001, alpha_decay: Optional[float] = None,
                 alpha_target: float = 0.0, velocity_decay: float = 0.4):
        self.nodes = nodes
        self.alpha = alpha
        self.alpha_min = alpha_min
        self.alpha_decay = (1 - alpha_min ** (1 / 300)) if alpha_decay is None else alpha_decay
        self.alpha_target = alpha_target
        self.velocity_decay = velocity_decay
        self.forces: Dict[str, Any] = {}
        self.listeners: Dict[str, List[Callable]] = {"tick": [], "end": []}
        self.stopped = False
        self.ticks = 0
        self._initialize_nodes()

    def _initialize_nodes(self) -> None:
        for index, node in enumerate(self.nodes):
            node["index"] = index
            if node.get("fx") is not None:
                node["x"] = node["fx"]
            if node.get("fy") is not None:
                node["y"] = node["fy"]
            if node.get("x") is None or node.get("y") is None:
                radius = INITIAL_RADIUS * math.sqrt(0.5 + index)
                angle = index * INITIAL_ANGLE
                node["x"] = radius * math.cos(angle)
                node["y"] = radius * math.sin(angle)
            node.setdefault("vx", 0.0)
            node.setdefault("vy", 0.0)
            if node["vx"] is None or node["vy"] is None:
                node["vx"] = node["vy"] = 0.0

    def force(self, name: str, force=None):
        """Register (or with no force, look up) a named force."""
        if force is None:
            return self.forces.get(name)
        initialize = getattr(force, "initialize", None)
        if initialize is not None:
            initialize(self.nodes)
        self.forces[name] = force
        return self

    def on(self, event: str, callback: Callable) -> "ForceSimulation":
        if event not in self.listeners:
            raise ValueError(f"Unknown simulation event: {event}")
        self.listeners[event].append(callback)
        return self

    def tick(self, iterations: int = 1) -> "ForceSimulation":
        """Advance the simulation without notifying listeners."""
        for _ in range(iterations):
            self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
            for force in self.forces.values():
                force(self.alpha)
            for node in self.nodes:
                for axis in ("x", "y"):
                    pin = node.get("f" + axis)
                    velocity = "v" + axis
                    if pin is None:
                        node[velocity] *= 1 - self.velocity_decay
                        node[axis] += node[velocity]
                    else:
                        node[axis] = pin
                        node[velocity] = 0.0
            self.ticks += 1
        return self

    def step(self) -> bool:
        """Run one tick and notify listeners; False once the simulation has cooled."""
        if self.stopped:
            return False
        self.tick()
        for callback in list(self.listeners["tick"]):
            callback(self)
        if self.alpha < self.alpha_min:
            self.stopped = True
            logger.debug("Simulation cooled after %d ticks", self.ticks)
            for callback in list(self.listeners["end"]):
                callback(self)
            return False
        return True

    def run(self, max_ticks: int = 10000) -> int:
        """Step until the simulation cools; returns ticks taken."""
        steps = 0
        while steps < max_ticks and self.step():
            steps += 1
        return steps

    def restart(self) -> "ForceSimulation":
        self.stopped = False
        return self

    def stop(self) -> "ForceSimulation":
        self.stopped = True
        return self

    def find(self, node_id: Any, id_key: str = "id") -> Optional[Dict[str, Any]]:
        """Node with the given id, or None."""
        for node in self.nodes:
            if node.get(id_key) == node_id:
                return node
        return None

    def drag_start(self, node: Dict[str, Any]) -> None:
        """Pin a node where it is and reheat."""
        self.alpha_target = 0.3
        self.restart()
        node["fx"] = node["x"]
        node["fy"] = node["y"]

    def drag(self, node: Dict[str, Any], x: float, y: float) -> None:
        node["fx"] = x
        node["fy"] = y

    def drag_end(self, node: Dict[str, Any], keep_fixed: bool = False) -> None:
        """Let the simulation cool again; release the pin unless keep_fixed."""
        self.alpha_target = 0.0
        if not keep_fixed:
            node["fx"] = None
            node["fy"] = None
