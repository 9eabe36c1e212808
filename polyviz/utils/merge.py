"""Dictionary merge helpers shared by the theme cascade and the engines."""
import copy
from typing import Any, Dict


def is_mapping(item: Any) -> bool:
    """True for dict-like option blocks (lists are leaves)."""
    return isinstance(item, dict)


def deep_merge(target: Dict, source: Dict) -> Dict:
    """
    Merge ``source`` over ``target`` without mutating either.

    Nested dicts are merged key by key; every other value in ``source``
    (lists included) replaces the value in ``target``.
    """
    output = copy.deepcopy(target) if is_mapping(target) else {}
    if not is_mapping(source):
        return output
    for key, value in source.items():
        if is_mapping(value) and is_mapping(output.get(key)):
            output[key] = deep_merge(output[key], value)
        else:
            output[key] = copy.deepcopy(value)
    return output


def set_default_path(options: Dict, path, value) -> None:
    """Set ``options[path[0]][path[1]]...`` to value unless already present."""
    if value is None:
        return
    node = options
    for key in path[:-1]:
        child = node.get(key)
        if not is_mapping(child):
            if child is not None:
                # an explicit non-dict value blocks the path
                return
            child = {}
            node[key] = child
        node = child
    if node.get(path[-1]) is None:
        node[path[-1]] = value
