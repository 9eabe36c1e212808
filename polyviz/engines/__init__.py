"""Rendering engines, one per visualization family."""
from .base import BaseEngine, EngineResource
from .chart_engine import ChartEngine, ChartResource
from .factory import EngineFactory, EngineRegistry
from .layout_engine import LayoutEngine, LayoutState
from .scene_engine import SceneEngine, SceneState

__all__ = [
    'BaseEngine', 'ChartEngine', 'ChartResource', 'EngineFactory', 'EngineRegistry',
    'EngineResource', 'LayoutEngine', 'LayoutState', 'SceneEngine', 'SceneState',
]
