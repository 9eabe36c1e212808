"""Force-directed network layout."""
import copy
from typing import Any, Dict, Optional

from ..backends import forces

LINK_DISTANCE = 100
CHARGE_STRENGTH = -300
POSITION_STRENGTH = 0.1


def build_simulation(network: Dict[str, Any], width: float, height: float,
                     backend=forces, alpha_min: float = 0.001, alpha_decay: Optional[float] = None,
                     velocity_decay: float = 0.4, link_distance: float = LINK_DISTANCE,
                     charge: float = CHARGE_STRENGTH):
    """
    Create a simulation over ``network["nodes"]`` with link, charge, centre and
    x/y positioning forces. Nodes and links are mutated in place: link
    endpoints become node dicts.
    """
    simulation = backend.ForceSimulation(network["nodes"], alpha_min=alpha_min,
                                         alpha_decay=alpha_decay, velocity_decay=velocity_decay)
    simulation.force("link", backend.LinkForce(network["links"], distance=link_distance))
    simulation.force("charge", backend.ManyBodyForce(strength=charge))
    simulation.force("center", backend.CenterForce(width / 2, height / 2))
    simulation.force("x", backend.PositionForce("x", width / 2, POSITION_STRENGTH))
    simulation.force("y", backend.PositionForce("y", height / 2, POSITION_STRENGTH))
    return simulation


def clamp_nodes(nodes, width: float, height: float, margin: float = 0) -> None:
    """Keep node positions inside the drawing area."""
    for node in nodes:
        radius = margin + (node.get("size") or 0)
        node["x"] = max(radius, min(width - radius, node["x"]))
        node["y"] = max(radius, min(height - radius, node["y"]))


def force_layout(network: Dict[str, Any], width: float, height: float,
                 max_ticks: int = 10000, **options) -> Dict[str, Any]:
    """Run a simulation to convergence on a copy of the network and return the copy."""
    laid_out = copy.deepcopy(network)
    simulation = build_simulation(laid_out, width, height, **options)
    simulation.on("tick", lambda sim: clamp_nodes(sim.nodes, width, height))
    simulation.run(max_ticks)
    return laid_out
