"""
Container Capability
====================

Uniform get/set/delete/keys access over the two raw container kinds the
engine observes: mappings (``dict``) and index collections (``list``).
Wrappers implement the same surface, so code walking a tree does not need
to know which one it holds.
"""

from typing import Any, Iterator, List, Set, Tuple

import numpy as np

MISSING = object()
"""Sentinel for an absent key (distinct from a stored ``None``)."""


def is_container(value: Any) -> bool:
    """True for values the engine wraps: dicts and lists (and subclasses)."""
    return isinstance(value, (dict, list))


def container_keys(container: Any) -> List[Any]:
    """Own keys of a container, in iteration order."""
    if isinstance(container, list):
        return list(range(len(container)))
    return list(container.keys())


def container_items(container: Any) -> Iterator[Tuple[Any, Any]]:
    if isinstance(container, list):
        return enumerate(list(container))
    return iter(list(container.items()))


def has_own(container: Any, key: Any) -> bool:
    """Whether ``key`` is an own key (dict key present / list index in range)."""
    if isinstance(container, list):
        return isinstance(key, int) and not isinstance(key, bool) and 0 <= key < len(container)
    try:
        return key in container
    except TypeError:
        return False


def read(container: Any, key: Any, default: Any = MISSING) -> Any:
    if has_own(container, key):
        return container[key]
    return default


def same_value(old: Any, new: Any) -> bool:
    """
    Decide whether writing ``new`` over ``old`` is a no-op.

    Containers compare by identity. ndarrays compare element-wise. Anything
    else must have the exact same type and compare equal, so ``1`` replacing
    ``True`` (or ``1.0``) still counts as a change.
    """
    if old is new:
        return True
    if old is MISSING or new is MISSING:
        return False
    if is_container(old) or is_container(new):
        return False
    if type(old) is not type(new):
        return False
    try:
        if isinstance(old, np.ndarray):
            return bool(np.array_equal(old, new))
        return bool(old == new)
    except (ValueError, TypeError):
        return False


def index_of(items: list, target: Any) -> int:
    """Position of ``target`` in ``items`` by identity, or -1."""
    for i, item in enumerate(items):
        if item is target:
            return i
    return -1


def walk(root: Any) -> Iterator[Any]:
    """
    Yield every container reachable from ``root`` (root included), once each.

    Cycle-safe: containers are tracked by ``id()`` while the walk holds
    references to them.
    """
    seen: Set[int] = set()
    stack = [root]
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        for _, value in container_items(current):
            value = unwrap(value)
            if is_container(value) and id(value) not in seen:
                stack.append(value)


def reachable_ids(root: Any) -> Set[int]:
    """Ids of all containers reachable from ``root``."""
    return {id(node) for node in walk(root)}


def is_wrapper(value: Any) -> bool:
    """True for treewatch wrappers (ObservedDict / ObservedList)."""
    return getattr(type(value), "_treewatch_wrapper", False)


def unwrap(value: Any) -> Any:
    """The raw container behind a wrapper; other values pass through."""
    return value.target if is_wrapper(value) else value
