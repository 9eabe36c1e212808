"""
polyviz: one facade over chart, layout and 3D scene visualizations.
"""
from .chart_types import ANIMATION_PRESETS, EngineKind, VisualizationType
from .config import Settings, load_settings
from .exceptions import (BackendUnavailableError, ContainerNotFoundError, DataShapeError,
                         InvalidTypeError, PolyVizError, RenderError, UnknownHandleError,
                         UnknownThemeError)
from .logging_config import setup_logging
from .message_bus import MessageBus
from .orchestrator import DEFAULT, Orchestrator
from .page import Page
from .registry import RegistryEntry, VisualizationHandle
from .scheduler import CancellationToken, FrameScheduler, RenderLoop
from .utils import DataProcessor, ThemeManager

__version__ = "0.1.0"

__all__ = [
    'ANIMATION_PRESETS', 'BackendUnavailableError', 'CancellationToken', 'ContainerNotFoundError',
    'DEFAULT', 'DataProcessor', 'DataShapeError', 'EngineKind', 'FrameScheduler',
    'InvalidTypeError', 'MessageBus', 'Orchestrator', 'Page', 'PolyVizError', 'RegistryEntry',
    'RenderError', 'RenderLoop', 'Settings', 'ThemeManager', 'UnknownHandleError',
    'UnknownThemeError', 'VisualizationHandle', 'VisualizationType', 'load_settings',
    'setup_logging',
]
