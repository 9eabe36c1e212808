"""
This module provides the registry of engine classes and a factory that builds
one engine per family.

Classes:
    EngineRegistry: Maps engine families to engine classes.
    EngineFactory: Creates the engines an orchestrator dispatches to.
"""
import logging
from typing import Any, Dict, Optional, Type

from ..chart_types import EngineKind, VisualizationType
from ..config import Settings
from ..page import Page
from ..scheduler import FrameScheduler
from ..utils.theme_manager import ThemeManager
from .base import BaseEngine
from .chart_engine import ChartEngine
from .layout_engine import LayoutEngine
from .scene_engine import SceneEngine

logger = logging.getLogger("PolyViz.engines")


class EngineRegistry:
    """
    Registry for engine classes.
    """
    _engines: Dict[EngineKind, Type[BaseEngine]] = {}

    @classmethod
    def register(cls, engine_class: Type[BaseEngine]) -> None:
        """Register an engine class under its family"""
        logger.debug("Registering engine %s for %s", engine_class.__name__, engine_class.kind)
        cls._engines[engine_class.kind] = engine_class

    @classmethod
    def get_engine(cls, kind) -> Type[BaseEngine]:
        """Get the engine class for a family or a visualization type"""
        if isinstance(kind, (str, VisualizationType)):
            kind = VisualizationType.from_string(kind).family
        if kind not in cls._engines:
            raise ValueError(f"No engine registered for {kind}")
        return cls._engines[kind]

    @classmethod
    def kinds(cls):
        return list(cls._engines)


EngineRegistry.register(ChartEngine)
EngineRegistry.register(LayoutEngine)
EngineRegistry.register(SceneEngine)


class EngineFactory:
    """
    Factory class for creating the engines of an orchestrator.
    """
    @staticmethod
    def create_engine(kind, page: Page, backend: Any, theme_manager: ThemeManager,
                      settings: Optional[Settings] = None,
                      scheduler: Optional[FrameScheduler] = None) -> BaseEngine:
        """Create the engine for a family (or for the family of a visualization type)"""
        engine_class = EngineRegistry.get_engine(kind)
        return engine_class(page, backend, theme_manager, settings, scheduler)

    @classmethod
    def create_engines(cls, page: Page, backends: Dict[EngineKind, Any],
                       theme_manager: ThemeManager, settings: Optional[Settings] = None,
                       scheduler: Optional[FrameScheduler] = None) -> Dict[EngineKind, BaseEngine]:
        """One engine per registered family; families missing from backends get none."""
        return {
            kind: cls.create_engine(kind, page, backends.get(kind), theme_manager, settings, scheduler)
            for kind in EngineRegistry.kinds()
        }
