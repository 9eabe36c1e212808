"""
Mount points for visualizations.

A Page wraps a BeautifulSoup HTML document. Containers are addressed with CSS
selectors and must resolve to exactly one element. The page also carries the
window-level event listeners (``resize``) that engines attach to.
"""
import logging
from typing import Callable, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from .exceptions import ContainerNotFoundError

EMPTY_PAGE = "<html><body></body></html>"


class Page:
    """An HTML document holding the containers visualizations mount into."""

    def __init__(self, html: str = EMPTY_PAGE):
        self.soup = BeautifulSoup(html, "html.parser")
        self.listeners: Dict[str, List[Callable]] = {}
        self.logger = logging.getLogger("PolyViz." + self.__class__.__name__)

    @classmethod
    def from_html(cls, html: str) -> "Page":
        """Create a page from existing markup."""
        return cls(html)

    @property
    def body(self) -> Tag:
        """The body element (created if the markup has none)."""
        body = self.soup.find("body")
        if body is None:
            body = self.soup.new_tag("body")
            self.soup.append(body)
        return body

    def add_container(self, container_id: str, width: Optional[int] = None,
                      height: Optional[int] = None, tag: str = "div") -> Tag:
        """Append a container element with an id and optional client size."""
        attrs = {"id": container_id}
        if width is not None:
            attrs["data-width"] = str(width)
        if height is not None:
            attrs["data-height"] = str(height)
        element = self.soup.new_tag(tag, attrs=attrs)
        self.body.append(element)
        return element

    def new_tag(self, name: str, **attrs) -> Tag:
        """Create a detached element owned by this page."""
        return self.soup.new_tag(name, attrs={key.replace("_", "-"): str(value)
                                              for key, value in attrs.items()})

    def query(self, selector: str) -> Tag:
        """Resolve a selector to exactly one element."""
        if not isinstance(selector, str) or not selector.strip():
            raise ContainerNotFoundError(f"Container \"{selector}\" not found")
        try:
            matches = self.soup.select(selector)
        except SelectorSyntaxError as exc:
            raise ContainerNotFoundError(f"Invalid container selector \"{selector}\"") from exc
        if not matches:
            raise ContainerNotFoundError(f"Container \"{selector}\" not found")
        if len(matches) > 1:
            raise ContainerNotFoundError(
                f"Container \"{selector}\" is ambiguous ({len(matches)} matches)"
            )
        return matches[0]

    @staticmethod
    def client_size(element: Tag, default_width: int, default_height: int) -> Tuple[int, int]:
        """Width and height of an element from its data-width/data-height (or width/height)."""
        def _read(*names, default):
            for name in names:
                value = element.get(name)
                if value:
                    try:
                        return int(float(value))
                    except ValueError:
                        continue
            return default
        return (_read("data-width", "width", default=default_width),
                _read("data-height", "height", default=default_height))

    def add_event_listener(self, event_type: str, callback: Callable) -> None:
        """Attach a window-level listener."""
        self.listeners.setdefault(event_type, []).append(callback)

    def remove_event_listener(self, event_type: str, callback: Callable) -> bool:
        """Detach a listener; False if it was not attached."""
        callbacks = self.listeners.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)
            return True
        return False

    def listener_count(self, event_type: str) -> int:
        """Number of listeners attached for an event type."""
        return len(self.listeners.get(event_type, []))

    def dispatch_event(self, event_type: str, event=None) -> int:
        """Invoke every listener for the event; returns how many ran."""
        callbacks = list(self.listeners.get(event_type, []))
        for callback in callbacks:
            callback(event)
        return len(callbacks)

    def resize(self, selector: str, width: int, height: int) -> None:
        """Change a container's client size and fire a resize event."""
        element = self.query(selector)
        element["data-width"] = str(width)
        element["data-height"] = str(height)
        self.dispatch_event("resize", {"target": selector, "width": width, "height": height})

    def __str__(self):
        return str(self.soup)
