"""
Facade for creating, updating, theming, exporting and destroying
visualizations across the chart, layout and scene engines.
"""
import copy
import inspect
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

from .backends import DEFAULT_CHART_BACKEND, DEFAULT_LAYOUT_BACKEND, DEFAULT_SCENE_BACKEND
from .chart_types import EngineKind, VisualizationType
from .config import Settings
from .engines import BaseEngine, EngineFactory
from .message_bus import THEME_CHANGED, MessageBus
from .page import Page
from .registry import HandleLike, Registry, RegistryEntry, VisualizationHandle
from .scheduler import FrameScheduler
from .utils import DataProcessor, ThemeManager, validate, validate_options
from .utils.merge import deep_merge

DEFAULT = object()
"""Sentinel selecting an engine's built-in backend."""


class Orchestrator:
    """
    One API over every visualization family.

    Args:
        page: Document holding the containers; an empty page by default.
        theme_manager: Theme state shared by every engine.
        settings: Runtime settings (see ``polyviz.config.load_settings``).
        chart_backend, layout_backend, scene_backend: Rendering backends;
            ``None`` leaves that engine without one.
        scheduler: Frame scheduler driving render loops and simulations.
        bus: Message bus receiving lifecycle events.
        **options: Facade options (``container``, ``mode``, ``theme``,
            ``responsive``, ``debug``), sanitized by ``validate_options``.
    """

    def __init__(self, page: Optional[Page] = None, theme_manager: Optional[ThemeManager] = None,
                 settings: Optional[Settings] = None, chart_backend=DEFAULT,
                 layout_backend=DEFAULT, scene_backend=DEFAULT,
                 scheduler: Optional[FrameScheduler] = None, bus: Optional[MessageBus] = None,
                 **options):
        self.logger = logging.getLogger("PolyViz." + self.__class__.__name__)
        self.options = validate_options(options)
        if self.options.get("debug"):
            logging.getLogger("PolyViz").setLevel(logging.DEBUG)
        self.settings = settings or Settings()
        self.page = page if page is not None else Page()
        self.theme_manager = theme_manager or ThemeManager(self.settings.default_theme)
        if "theme" in self.options:
            self.theme_manager.set_theme(self.options["theme"])
        self.scheduler = scheduler or FrameScheduler(self.settings.frame_rate)
        self.bus = bus or MessageBus()
        self.data_processor = DataProcessor()
        self.registry = Registry()

        backends = {
            EngineKind.CHART: DEFAULT_CHART_BACKEND if chart_backend is DEFAULT else chart_backend,
            EngineKind.LAYOUT: DEFAULT_LAYOUT_BACKEND if layout_backend is DEFAULT else layout_backend,
            EngineKind.SCENE: DEFAULT_SCENE_BACKEND if scene_backend is DEFAULT else scene_backend,
        }
        self.engines: Dict[EngineKind, BaseEngine] = EngineFactory.create_engines(
            self.page, backends, self.theme_manager, self.settings, self.scheduler)
        self.logger.debug("Orchestrator ready with engines: %s",
                          ", ".join(kind.value for kind in self.engines))

    @contextmanager
    def _operation(self, operation: str, handle_id: Optional[str] = None):
        """Log failures and publish an error event before re-raising."""
        try:
            yield
        except Exception as e:
            self.logger.error("Error during %s of %s: %s", operation, handle_id or "visualization",
                              str(e), exc_info=True)
            self.bus.publish_error(operation, e, handle_id)
            raise

    def _prepare_data(self, data: Any, visualization_type: VisualizationType,
                      options: Dict[str, Any]) -> Any:
        validate(data, visualization_type)
        return self.data_processor.process(data, visualization_type, options)

    def create(self, container: Optional[str], visualization_type, data: Any,
               options: Optional[Dict[str, Any]] = None) -> VisualizationHandle:
        """
        Create a visualization inside the container matched by a CSS selector.

        Args:
            container: Selector matching exactly one element (falls back to
                the ``container`` facade option).
            visualization_type: A VisualizationType or its name.
            data: Raw data in any shape the data processor accepts.
            options: Caller options; they take precedence over the theme and
                the engine defaults.

        Returns:
            A handle for later update, theme, export and destroy calls.
        """
        handle_id = None
        with self._operation("create"):
            visualization_type = VisualizationType.from_string(visualization_type)
            selector = container if container is not None else self.options.get("container")
            element = self.page.query(selector)
            explicit = copy.deepcopy(options) if options else {}
            processed = self._prepare_data(data, visualization_type, explicit)
            self._release_container(element, selector)
            kind = visualization_type.family
            handle_id = f"{kind.value}_{uuid.uuid4().hex[:9]}"
            resource = self.engines[kind].create_visualization(
                element, visualization_type, processed, explicit, None, handle_id)
            handle = VisualizationHandle(handle_id, visualization_type, kind)
            self.registry.add(handle, RegistryEntry(
                type=visualization_type, engine=kind, resource=resource, data=processed,
                options=explicit, container=selector,
                width=getattr(resource, "width", 0), height=getattr(resource, "height", 0),
            ))
        self.logger.info("Created %s visualization %s in %s", visualization_type.value,
                         handle_id, selector)
        self.bus.publish_created(handle)
        return handle

    def _release_container(self, element, selector: str) -> None:
        """Destroy any live visualization already mounted in the element."""
        for key in self.registry:
            if getattr(self.registry.get(key).resource, "container", None) is element:
                self.logger.warning("Container %s already holds visualization %s; replacing it",
                                    selector, key)
                self.destroy(key)

    def update(self, handle: HandleLike, new_data: Any = None,
               new_options: Optional[Dict[str, Any]] = None) -> VisualizationHandle:
        """Redraw with new data and/or options merged over the stored options."""
        with self._operation("update", Registry.key(handle)):
            entry = self.registry.get(handle)
            return self._update(handle, entry, new_data, new_options, entry.theme)

    def _update(self, handle: HandleLike, entry: RegistryEntry, new_data: Any,
                new_options: Optional[Dict[str, Any]], theme) -> VisualizationHandle:
        self.page.query(entry.container)
        options = deep_merge(entry.options, new_options or {})
        data = entry.data
        processed = None
        if new_data is not None:
            processed = self._prepare_data(new_data, entry.type, options)
            data = processed
        resource = self.engines[entry.engine].update_visualization(
            entry.resource, processed, options, theme)
        self.registry.replace(handle, entry.evolve(
            resource=resource, data=data, options=options, theme=theme,
            width=getattr(resource, "width", entry.width),
            height=getattr(resource, "height", entry.height),
        ))
        updated = self.registry.handle(Registry.key(handle))
        self.logger.debug("Updated visualization %s", updated.id)
        self.bus.publish_updated(updated)
        return updated

    def apply_theme(self, handle: HandleLike, theme) -> VisualizationHandle:
        """Re-theme one visualization with a registered name or a theme dict."""
        with self._operation("apply_theme", Registry.key(handle)):
            entry = self.registry.get(handle)
            resolved = self.theme_manager.resolve(theme)
            updated = self._update(handle, entry, None, None, resolved)
        self.bus.publish(THEME_CHANGED, {"id": updated.id, "type": updated.type.value,
                                         "theme": theme if isinstance(theme, str) else None})
        return updated

    def destroy(self, handle: HandleLike) -> bool:
        """Release a visualization; destroying an unknown or destroyed handle raises."""
        with self._operation("destroy", Registry.key(handle)):
            entry = self.registry.get(handle)
            destroyed = self.registry.handle(Registry.key(handle))
            try:
                self.engines[entry.engine].destroy_visualization(entry.resource)
            finally:
                # a half-released resource must not be released twice
                self.registry.remove(handle)
        self.logger.info("Destroyed visualization %s", destroyed.id)
        self.bus.publish_destroyed(destroyed)
        return True

    async def export_image(self, handle: HandleLike, image_format: str = "png", **options) -> str:
        """
        Export a visualization as an image data URL.

        ``png`` and ``jpeg`` work for every engine, ``svg`` for layouts only.
        Options are passed to the engine (e.g. ``quality`` for jpeg).
        """
        with self._operation("export", Registry.key(handle)):
            entry = self.registry.get(handle)
            result = self.engines[entry.engine].export_as_image(entry.resource, image_format,
                                                                **options)
            if inspect.isawaitable(result):
                result = await result
        return result

    def toggle_node(self, handle: HandleLike, node_id: int) -> bool:
        """Collapse or expand a node of a tree visualization."""
        with self._operation("toggle", Registry.key(handle)):
            entry = self.registry.get(handle)
            if entry.engine is not EngineKind.LAYOUT:
                raise ValueError(f"Visualization {Registry.key(handle)} is not a layout")
            return self.engines[EngineKind.LAYOUT].toggle_node(entry.resource, node_id)

    def get(self, handle: HandleLike) -> RegistryEntry:
        return self.registry.get(handle)

    def handles(self) -> List[VisualizationHandle]:
        return self.registry.handles()

    def destroy_all(self) -> int:
        """Destroy every live visualization; returns how many were destroyed."""
        count = 0
        for key in self.registry:
            self.destroy(key)
            count += 1
        return count

    def register_theme(self, name: str, theme: Dict[str, Any]) -> None:
        self.theme_manager.register_theme(name, theme)

    def set_theme(self, theme) -> Dict[str, Any]:
        """Change the default theme for visualizations created from now on."""
        current = self.theme_manager.set_theme(theme)
        self.bus.publish(THEME_CHANGED, {"id": None, "type": None,
                                         "theme": theme if isinstance(theme, str) else None})
        return current

    def get_theme(self, name: str) -> Dict[str, Any]:
        return self.theme_manager.get_theme(name)

    @property
    def current_theme(self) -> Dict[str, Any]:
        return self.theme_manager.get_current_theme()

    @property
    def themes(self) -> Dict[str, Dict[str, Any]]:
        return self.theme_manager.get_all_themes()

    def on(self, event_type: str, callback: Callable) -> None:
        """Subscribe to a lifecycle event (see ``polyviz.message_bus.EVENTS``)."""
        self.bus.subscribe(event_type, callback)

    def off(self, event_type: str, callback: Callable) -> bool:
        return self.bus.unsubscribe(event_type, callback)
