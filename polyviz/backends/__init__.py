"""
Default rendering backends.

Engines receive their backend by injection. A chart backend is a callable
``(surface, config) -> chart``; the layout backend is a namespace exposing the
selection, force-simulation and rasteriser entry points; the scene backend is
a namespace exposing the scene-graph classes (``scene3d`` itself).
"""
from types import SimpleNamespace

from . import forces, scene3d, svg
from .plotly_chart import PlotlyChart
from .raster import rasterize_svg

DEFAULT_CHART_BACKEND = PlotlyChart

DEFAULT_LAYOUT_BACKEND = SimpleNamespace(
    select=svg.select,
    create=svg.create,
    ForceSimulation=forces.ForceSimulation,
    LinkForce=forces.LinkForce,
    ManyBodyForce=forces.ManyBodyForce,
    CenterForce=forces.CenterForce,
    PositionForce=forces.PositionForce,
    rasterize=rasterize_svg,
)

DEFAULT_SCENE_BACKEND = scene3d

__all__ = ['DEFAULT_CHART_BACKEND', 'DEFAULT_LAYOUT_BACKEND', 'DEFAULT_SCENE_BACKEND',
           'PlotlyChart', 'rasterize_svg']
