"""
This module provides the base class shared by the rendering engines.

Classes:
    EngineResource: Per-visualization state an engine hands back to the facade.
    BaseEngine: Abstract base class for engines.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from bs4 import Tag

from ..chart_types import EngineKind, VisualizationType
from ..config import Settings
from ..exceptions import BackendUnavailableError, PolyVizError, RenderError
from ..page import Page
from ..scheduler import FrameScheduler
from ..utils.merge import deep_merge
from ..utils.theme_manager import ThemeManager

RESOURCE_STATE_FIELDS = ("data", "options", "theme", "rendered_options", "width", "height")


@dataclass
class EngineResource:
    """
    State of one live visualization, owned by the engine that created it.

    ``options`` are the caller's options (before theming and defaults);
    ``rendered_options`` is what was actually drawn with.
    """
    id: str
    type: VisualizationType
    container: Tag
    data: Any
    options: Dict[str, Any]
    theme: Any = None
    rendered_options: Dict[str, Any] = field(default_factory=dict)
    width: int = 0
    height: int = 0


class BaseEngine(ABC):
    """
    Abstract base class for engines.
    """
    kind: EngineKind

    def __init__(self, page: Page, backend: Any, theme_manager: ThemeManager,
                 settings: Optional[Settings] = None, scheduler: Optional[FrameScheduler] = None):
        self.page = page
        self.backend = backend
        self.theme_manager = theme_manager
        self.settings = settings or Settings()
        self.scheduler = scheduler or FrameScheduler(self.settings.frame_rate)
        self.logger = logging.getLogger("PolyViz." + self.__class__.__name__)

    @property
    @abstractmethod
    def supported_types(self) -> frozenset:
        """Return the visualization types this engine renders"""

    @abstractmethod
    def default_options(self, visualization_type: VisualizationType) -> Dict[str, Any]:
        """Engine defaults, the lowest-precedence option layer"""

    @abstractmethod
    def create_visualization(self, container: Tag, visualization_type: VisualizationType,
                             data: Any, options: Dict[str, Any], theme=None,
                             visualization_id: Optional[str] = None) -> EngineResource:
        """Draw a new visualization into the container"""

    @abstractmethod
    def update_visualization(self, resource: EngineResource, data: Any,
                             options: Dict[str, Any], theme=None) -> EngineResource:
        """Redraw with new data (None keeps the current data) and options"""

    @abstractmethod
    def destroy_visualization(self, resource: EngineResource) -> bool:
        """Release everything the visualization holds"""

    @abstractmethod
    def export_as_image(self, resource: EngineResource, image_format: str = "png", **options):
        """Return a data URL, or an awaitable resolving to one"""

    def supports(self, visualization_type: VisualizationType) -> bool:
        return visualization_type in self.supported_types

    def apply_theme(self, resource: EngineResource, theme) -> EngineResource:
        """Re-render with a different theme, keeping data and caller options."""
        return self.update_visualization(resource, None, resource.options, theme)

    def require_backend(self, operation: str) -> Any:
        """The injected backend, or BackendUnavailableError."""
        if self.backend is None:
            raise BackendUnavailableError(
                f"{self.__class__.__name__} has no rendering backend; cannot {operation}"
            )
        return self.backend

    def build_options(self, visualization_type: VisualizationType, options: Optional[Dict[str, Any]],
                      theme=None) -> Dict[str, Any]:
        """Caller options over theme values over engine defaults."""
        themed = self.theme_manager.apply_theme(options or {}, visualization_type, theme)
        return deep_merge(self.default_options(visualization_type), themed)

    def dimensions(self, container: Tag, options: Dict[str, Any]) -> Tuple[int, int]:
        """Width and height from options, else the container, else settings."""
        width, height = Page.client_size(container, self.settings.default_width,
                                         self.settings.default_height)
        return int(options.get("width") or width), int(options.get("height") or height)

    @contextmanager
    def restoring(self, resource: EngineResource, *extra_fields: str):
        """Put the resource fields back as they were if the block raises."""
        names = RESOURCE_STATE_FIELDS + extra_fields
        saved = {name: getattr(resource, name) for name in names}
        try:
            yield
        except Exception:
            for name, value in saved.items():
                setattr(resource, name, value)
            raise

    @contextmanager
    def rendering(self, operation: str, visualization_id: Optional[str]):
        """Wrap backend failures in RenderError; library errors pass through."""
        try:
            yield
        except PolyVizError:
            raise
        except Exception as e:
            self.logger.error("Error during %s of %s: %s", operation, visualization_id, str(e),
                              exc_info=True)
            raise RenderError(operation, visualization_id, e) from e

    @staticmethod
    def check_export_format(image_format: str, allowed=("png", "jpeg")) -> str:
        """Normalise an export format name; ValueError if the engine cannot produce it."""
        normalized = (image_format or "").lower()
        if normalized == "jpg":
            normalized = "jpeg"
        if normalized not in allowed:
            raise ValueError(f"Unsupported export format: {image_format}")
        return normalized
