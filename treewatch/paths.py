"""
Path Tracker
============

Every wrapper remembers how it was reached from its context root as a chain
of ``PathSegment(container, key)``; the root segment carries the key ``""``.
From that chain the tracker renders

- a dotted path: ``"hello.testing.1.bar"``
- a JSON pointer (RFC 6901): ``"/hello/testing/1/bar"``

Elements of a list may move (insert, sort, pop) after the wrapper was built,
so list indices are re-resolved by identity each time a path is rendered.

The module also carries the small dotted-path accessors ``get_path`` and
``set_path`` that work on raw containers and wrappers alike.
"""

from typing import Any, Iterable, List, NamedTuple, Sequence, Tuple, Union

from .util.containers import MISSING, has_own, index_of, is_container, unwrap


class PathSegment(NamedTuple):
    """One step of a path chain: the container reached and the key used."""

    container: Any
    key: Any


PathChain = Tuple[PathSegment, ...]


def root_chain(container: Any) -> PathChain:
    return (PathSegment(container, ""),)


def extend(chain: PathChain, container: Any, key: Any) -> PathChain:
    """Return a new chain one level deeper (chains are never shared mutably)."""
    return chain + (PathSegment(container, key),)


def resolve_keys(chain: PathChain) -> List[Any]:
    """
    Current keys along a chain, root segment excluded.

    A segment whose parent is a list is looked up again by identity; if the
    element is no longer in the list the last known index is kept.
    """
    keys = []
    previous = None
    for segment in chain:
        key = segment.key
        if isinstance(previous, list) and isinstance(key, int):
            position = index_of(previous, segment.container)
            if position >= 0:
                key = position
        keys.append(key)
        previous = segment.container
    return keys[1:]


def dotted(chain: PathChain, key: Any = MISSING) -> str:
    """Dotted path of ``key`` below the chain's last container (or of the container itself)."""
    keys = resolve_keys(chain)
    if key is not MISSING:
        keys.append(key)
    return ".".join(str(k) for k in keys)


def pointer(chain: PathChain, key: Any = MISSING) -> str:
    """JSON pointer of ``key`` below the chain's last container."""
    keys = resolve_keys(chain)
    if key is not MISSING:
        keys.append(key)
    return "".join("/" + _escape(str(k)) for k in keys)


def _escape(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


# Dotted-path accessors


def split_path(path: Union[str, Sequence[Any]]) -> List[Any]:
    """``"a.0.b"`` -> ``["a", "0", "b"]``; sequences pass through as lists."""
    if isinstance(path, str):
        return [part for part in path.split(".") if part != ""] if path else []
    return list(path)


def _step_key(container: Any, part: Any) -> Any:
    target = unwrap(container)
    if isinstance(target, list) and isinstance(part, str) and part.lstrip("-").isdigit():
        return int(part)
    return part


def get_path(obj: Any, path: Union[str, Iterable[Any]], default: Any = None) -> Any:
    """
    Value at ``path`` below ``obj``, or ``default`` if any step is missing.

    Works through wrappers, so nested containers come back wrapped.
    """
    current = obj
    for part in split_path(path):
        target = unwrap(current)
        if not is_container(target):
            return default
        key = _step_key(current, part)
        if not has_own(target, key):
            return default
        current = current[key]
    return current


def set_path(obj: Any, path: Union[str, Iterable[Any]], value: Any) -> Any:
    """
    Assign ``value`` at ``path`` below ``obj``, creating missing dicts on the way.

    When ``obj`` is a wrapper every intermediate creation and the final write
    go through the interception layer and are observed. Returns ``obj``.
    """
    parts = split_path(path)
    if not parts:
        raise ValueError("set_path() needs a non-empty path")
    current = obj
    for part in parts[:-1]:
        key = _step_key(current, part)
        target = unwrap(current)
        if not has_own(target, key) or not is_container(target[key]):
            current[key] = {}
        current = current[key]
    current[_step_key(current, parts[-1])] = value
    return obj
