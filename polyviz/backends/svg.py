"""
A small selection library over BeautifulSoup tags for building SVG.

Selections wrap a list of elements. Data is bound to elements (stored on the
element the way a browser DOM stores ``__data__``) and attribute values can be
constants or ``fn(datum, index)`` callables. ``data(...).join(name)`` performs
the enter/update/exit join.
"""
from typing import Any, Callable, Iterable, List, Optional

from bs4 import BeautifulSoup, Tag

_DATUM = "_polyviz_datum"
_FACTORY = BeautifulSoup("", "html.parser")


def create(name: str) -> Tag:
    """Create a detached element."""
    return _FACTORY.new_tag(name)


def select(node: Tag) -> "Selection":
    """Wrap an existing element in a selection."""
    return Selection([node])


def datum_of(node: Tag) -> Any:
    """Datum bound to an element, or None."""
    return node.__dict__.get(_DATUM)


def _bind(node: Tag, datum: Any) -> None:
    node.__dict__[_DATUM] = datum


def _format(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.6g}"
    return str(value)


def parse_style(style: Optional[str]) -> dict:
    """Parse an inline style attribute into a dict."""
    declarations = {}
    for declaration in (style or "").split(";"):
        if ":" in declaration:
            key, value = declaration.split(":", 1)
            declarations[key.strip()] = value.strip()
    return declarations


class Selection:
    """An ordered group of elements."""

    def __init__(self, nodes: Iterable[Tag]):
        self._nodes: List[Tag] = list(nodes)

    def _resolve(self, value: Any, node: Tag, index: int) -> Any:
        if callable(value):
            return value(datum_of(node), index)
        return value

    def node(self) -> Optional[Tag]:
        """First element, or None when empty."""
        return self._nodes[0] if self._nodes else None

    def nodes(self) -> List[Tag]:
        return list(self._nodes)

    def size(self) -> int:
        return len(self._nodes)

    def empty(self) -> bool:
        return not self._nodes

    def data(self) -> List[Any]:
        """Data bound to each element."""
        return [datum_of(node) for node in self._nodes]

    def append(self, name: str) -> "Selection":
        """Append a new child to every element; children inherit the parent's datum."""
        children = []
        for node in self._nodes:
            child = create(name)
            _bind(child, datum_of(node))
            node.append(child)
            children.append(child)
        return Selection(children)

    def attr(self, name: str, value: Any) -> "Selection":
        for index, node in enumerate(self._nodes):
            resolved = self._resolve(value, node, index)
            if resolved is None:
                if name in node.attrs:
                    del node[name]
            else:
                node[name] = _format(resolved)
        return self

    def style(self, name: str, value: Any) -> "Selection":
        for index, node in enumerate(self._nodes):
            declarations = parse_style(node.get("style"))
            resolved = self._resolve(value, node, index)
            if resolved is None:
                declarations.pop(name, None)
            else:
                declarations[name] = _format(resolved)
            if declarations:
                node["style"] = "; ".join(f"{key}: {val}" for key, val in declarations.items())
            elif "style" in node.attrs:
                del node["style"]
        return self

    def text(self, value: Any) -> "Selection":
        for index, node in enumerate(self._nodes):
            node.string = _format(self._resolve(value, node, index))
        return self

    def select_all(self, selector: str) -> "Selection":
        """Descendants of every element matching a CSS selector."""
        found = []
        for node in self._nodes:
            found.extend(node.select(selector))
        return Selection(found)

    def filter(self, predicate: Callable[[Any, int], bool]) -> "Selection":
        return Selection(node for index, node in enumerate(self._nodes)
                         if predicate(datum_of(node), index))

    def each(self, callback: Callable[[Tag, Any, int], None]) -> "Selection":
        for index, node in enumerate(self._nodes):
            callback(node, datum_of(node), index)
        return self

    def remove(self) -> "Selection":
        """Detach every element from its parent."""
        for node in self._nodes:
            node.extract()
        return self

    def clear(self) -> "Selection":
        """Remove every child of every element (``selectAll("*").remove()``)."""
        for node in self._nodes:
            node.clear()
        return self

    def bind(self, items: Iterable[Any], key: Optional[Callable[[Any, int], Any]] = None,
             parent: Optional[Tag] = None) -> "DataJoin":
        """Join data to this selection's elements; see DataJoin."""
        return DataJoin(self, list(items), key, parent)


class DataJoin:
    """
    Result of binding data to a selection.

    Elements are matched to items by key (index by default). ``enter`` holds
    items without an element, ``exit`` elements without an item.
    """

    def __init__(self, selection: Selection, items: List[Any],
                 key: Optional[Callable[[Any, int], Any]], parent: Optional[Tag]):
        key = key or (lambda _datum, index: index)
        existing = {}
        for index, node in enumerate(selection.nodes()):
            existing.setdefault(key(datum_of(node), index), node)

        self.parent = parent or (selection.node().parent if selection.node() else None)
        self.items = items
        self._update: List[Tag] = []
        self._enter: List[Any] = []
        matched = set()
        for index, item in enumerate(items):
            item_key = key(item, index)
            node = existing.get(item_key)
            if node is not None and id(node) not in matched:
                _bind(node, item)
                matched.add(id(node))
                self._update.append(node)
            else:
                self._enter.append(item)
        self._exit = [node for node in selection.nodes() if id(node) not in matched]

    def update(self) -> Selection:
        return Selection(self._update)

    def exit(self) -> Selection:
        return Selection(self._exit)

    def enter(self, name: str) -> Selection:
        """Create elements for unmatched items under the join's parent."""
        if self.parent is None:
            raise ValueError("Cannot enter elements without a parent")
        created = []
        for item in self._enter:
            child = create(name)
            _bind(child, item)
            self.parent.append(child)
            created.append(child)
        return Selection(created)

    def join(self, name: str) -> Selection:
        """Enter missing elements, remove exiting ones, return the merged selection."""
        self.exit().remove()
        entered = self.enter(name)
        return Selection(self._update + entered.nodes())
