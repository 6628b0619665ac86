"""
treewatch Wrappers - Interception Layer
=======================================

``ObservedDict`` and ``ObservedList`` stand in for one raw container inside
one observation context. They behave like the container they wrap
(``MutableMapping`` / ``MutableSequence``) while intercepting every read,
write and delete:

- Reading a nested container returns its wrapper for the same context,
  built lazily on first access and cached in the registry arena.
- Writing or deleting writes the raw container (unless changes are
  paused), then records a ChangeRecord, repeats it on every other context
  sharing the container, and hands the context to the scheduler.

List mutations are decomposed into per-index writes plus a ``"length"``
record, the same way a splice would touch an indexed collection::

    >>> w = registry.create({"list": [1, 2, 3]}, observer=print)
    >>> w["list"].append(4)
    [ChangeRecord(list.3: added = 4), ChangeRecord(list.length: 3 → 4)]

Reserved keys give the data-binding layer access to the wrapper metadata
without touching the container's own keys:

- ``"__target__"``: the raw container (also ``.target``)
- ``"__is_wrapper__"``: ``True``
- ``"__parent__"``: ``parent(depth=1)`` callable (also ``.parent()``)
- ``"__path__"``: dotted path from the context root (also ``.path``)
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import MutableMapping, MutableSequence
from typing import Any, Iterable, Iterator, List, Optional

from . import paths
from .changes import ChangeKind, make_record
from .util.containers import MISSING, is_container, is_wrapper, read, same_value, unwrap

TARGET_KEY = "__target__"
IS_WRAPPER_KEY = "__is_wrapper__"
PARENT_KEY = "__parent__"
PATH_KEY = "__path__"

RESERVED_KEYS = frozenset({TARGET_KEY, IS_WRAPPER_KEY, PARENT_KEY, PATH_KEY})

LENGTH = "length"


class ObservedContainer(ABC):
    """Behaviour shared by both wrapper kinds."""

    _treewatch_wrapper = True

    __slots__ = ("_target", "_context", "_registry", "_path")

    def __init__(self, target: Any, context: Any, registry: Any, path: paths.PathChain):
        self._target = target
        self._context = context
        self._registry = registry
        self._path = path

    # Introspection

    @property
    def target(self) -> Any:
        """The raw container behind this wrapper."""
        return self._target

    @property
    def context(self) -> Any:
        return self._context

    @property
    def path(self) -> str:
        """Dotted path of this container from the context root ("" for the root)."""
        return paths.dotted(self._path)

    @property
    def pointer(self) -> str:
        return paths.pointer(self._path)

    def parent(self, depth: int = 1) -> Optional["ObservedContainer"]:
        """
        Wrapper ``depth`` levels up the path this wrapper was reached by.

        Returns None when ``depth`` climbs past the context root.
        """
        if depth < 1:
            return self
        if depth >= len(self._path):
            return None
        ancestor = self._path[len(self._path) - 1 - depth]
        return self._registry._wrap(
            ancestor.container, self._context, self._path[: len(self._path) - depth]
        )

    def _reserved(self, key: Any) -> Any:
        if key == TARGET_KEY:
            return self._target
        if key == IS_WRAPPER_KEY:
            return True
        if key == PARENT_KEY:
            return self.parent
        return self.path

    def _child(self, key: Any, value: Any) -> Any:
        raw = unwrap(value)
        if not is_container(raw):
            return raw
        return self._registry._wrap(raw, self._context, paths.extend(self._path, raw, key))

    # Recording

    def _record(self, kind: ChangeKind, key: Any, value: Any, previous: Any) -> None:
        """Queue a record on this wrapper's context without touching storage."""
        record = make_record(
            kind,
            self._target,
            key,
            self,
            value,
            previous,
            paths.dotted(self._path, key),
            paths.pointer(self._path, key),
        )
        self._registry.scheduler.enqueue(self._context, record)
        self._registry._touch(self._context)

    def _apply(self, kind: ChangeKind, key: Any, value: Any, previous: Any) -> None:
        """
        One primitive mutation: write, record, fan out.

        Storage is written first; a container that rejects the write raises
        before any context has a record of it.

        ``previous`` is captured by the caller before anything changed and is
        reported unchanged to every sibling context, since storage already
        holds the new value by the time the siblings are visited.
        """
        context = self._context
        if not context.active:
            logging.debug(f"Ignoring write to {self.path}.{key} through removed context")
            return

        if not context.changes_paused:
            self._store(kind, key, value)
        self._record(kind, key, value, previous)

        arena = self._registry.arena
        handle = arena.handle_of(self._target)
        if handle is not None and not arena.is_propagating(handle):
            arena.begin_propagation(handle)
            try:
                for wrapper, sibling in arena.entries_for(self._target):
                    if wrapper is self or not sibling.active:
                        continue
                    wrapper._record(kind, key, value, previous)
            finally:
                arena.end_propagation(handle)

        if is_container(previous):
            self._registry._orphan_candidate(previous)

    def _assign(self, key: Any, value: Any) -> None:
        """Write one key through this wrapper, skipping no-op writes."""
        value = unwrap(value)
        previous = read(self._target, key, MISSING)
        if same_value(previous, value):
            return
        kind = ChangeKind.ADD if previous is MISSING else ChangeKind.UPDATE
        self._apply(kind, key, value, previous)

    @abstractmethod
    def _store(self, kind: ChangeKind, key: Any, value: Any) -> None:
        """Apply one primitive mutation to the raw container."""

    # Container surface

    def __len__(self) -> int:
        return len(self._target)

    def __eq__(self, other: Any) -> bool:
        return self._target == unwrap(other)

    __hash__ = None

    def __getattr__(self, name: str) -> Any:
        # Methods the wrapper does not intercept are bound to the raw container.
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._target, name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._target!r})"


class ObservedDict(ObservedContainer, MutableMapping):
    """Wrapper for mappings."""

    __slots__ = ()

    def __getitem__(self, key: Any) -> Any:
        if isinstance(key, str) and key in RESERVED_KEYS:
            return self._reserved(key)
        return self._child(key, self._target[key])

    def __setitem__(self, key: Any, value: Any) -> None:
        with self._registry.batch():
            self._assign(key, value)

    def __delitem__(self, key: Any) -> None:
        if key not in self._target:
            raise KeyError(key)
        with self._registry.batch():
            self._apply(ChangeKind.DELETE, key, MISSING, self._target[key])

    def __iter__(self) -> Iterator[Any]:
        return iter(self._target)

    def __contains__(self, key: Any) -> bool:
        return key in self._target

    def _store(self, kind: ChangeKind, key: Any, value: Any) -> None:
        if kind is ChangeKind.DELETE:
            del self._target[key]
        else:
            self._target[key] = value

    # Multi-key operations deliver one batch.

    def update(self, *args: Any, **kwargs: Any) -> None:
        with self._registry.batch():
            MutableMapping.update(self, *args, **kwargs)

    def clear(self) -> None:
        with self._registry.batch():
            for key in list(self._target):
                del self[key]

    def pop(self, key: Any, default: Any = MISSING) -> Any:
        if key not in self._target:
            if default is MISSING:
                raise KeyError(key)
            return default
        value = self._target[key]
        del self[key]
        return value

    def popitem(self) -> tuple:
        if not self._target:
            raise KeyError("popitem(): dictionary is empty")
        key = next(reversed(self._target))
        return key, self.pop(key)

    def setdefault(self, key: Any, default: Any = None) -> Any:
        if key not in self._target:
            self[key] = default
        return self[key]


class ObservedList(ObservedContainer, MutableSequence):
    """
    Wrapper for index collections.

    Every mutating method computes the resulting list first and then
    reconciles it index by index, so the records describe exactly what
    changed and the raw list is never left half-updated when the operation
    itself fails (bad slice, bad index).
    """

    __slots__ = ()

    def _index(self, index: int) -> int:
        size = len(self._target)
        position = index + size if index < 0 else index
        if not 0 <= position < size:
            raise IndexError("list index out of range")
        return position

    def __getitem__(self, index: Any) -> Any:
        if isinstance(index, str) and index in RESERVED_KEYS:
            return self._reserved(index)
        if isinstance(index, slice):
            positions = range(*index.indices(len(self._target)))
            return [self._child(i, self._target[i]) for i in positions]
        position = self._index(index)
        return self._child(position, self._target[position])

    def __setitem__(self, index: Any, value: Any) -> None:
        if isinstance(index, slice):
            after = list(self._target)
            after[index] = [unwrap(v) for v in value]
            self._reconcile(after)
            return
        size = len(self._target)
        if index == size:
            self.append(value)
            return
        position = self._index(index)
        with self._registry.batch():
            self._assign(position, value)

    def __delitem__(self, index: Any) -> None:
        after = list(self._target)
        if not isinstance(index, slice):
            index = self._index(index)
        del after[index]
        self._reconcile(after)

    def __iter__(self) -> Iterator[Any]:
        for i in range(len(self._target)):
            yield self._child(i, self._target[i])

    def __contains__(self, value: Any) -> bool:
        return unwrap(value) in self._target

    def insert(self, index: int, value: Any) -> None:
        after = list(self._target)
        after.insert(index, unwrap(value))
        self._reconcile(after)

    def append(self, value: Any) -> None:
        self._reconcile(list(self._target) + [unwrap(value)])

    def extend(self, values: Iterable[Any]) -> None:
        self._reconcile(list(self._target) + [unwrap(v) for v in values])

    def __iadd__(self, values: Iterable[Any]) -> "ObservedList":
        self.extend(values)
        return self

    def pop(self, index: int = -1) -> Any:
        position = self._index(index)
        value = self._target[position]
        del self[position]
        return value

    def remove(self, value: Any) -> None:
        raw = unwrap(value)
        for i, item in enumerate(self._target):
            if item is raw or item == raw:
                del self[i]
                return
        raise ValueError("list.remove(x): x not in list")

    def clear(self) -> None:
        self._reconcile([])

    def reverse(self) -> None:
        self._reconcile(list(reversed(self._target)))

    def sort(self, *, key: Any = None, reverse: bool = False) -> None:
        self._reconcile(sorted(self._target, key=key, reverse=reverse))

    def _reconcile(self, after: List[Any]) -> None:
        """
        Turn the list into ``after`` with one record per changed index.

        Order: changed indices ascending, then additions ascending, then
        deletions from the end, then the ``"length"`` record when the size
        changed. Every value is taken from the snapshot, so the records stay
        correct with changes paused (storage untouched).
        """
        before = list(self._target)
        old_size, new_size = len(before), len(after)
        with self._registry.batch():
            for i in range(min(old_size, new_size)):
                if not same_value(before[i], after[i]):
                    self._apply(ChangeKind.UPDATE, i, after[i], before[i])
            for i in range(old_size, new_size):
                self._apply(ChangeKind.ADD, i, after[i], MISSING)
            for i in range(old_size - 1, new_size - 1, -1):
                self._apply(ChangeKind.DELETE, i, MISSING, before[i])
            if old_size != new_size:
                self._apply(ChangeKind.UPDATE, LENGTH, new_size, old_size)

    def _store(self, kind: ChangeKind, key: Any, value: Any) -> None:
        if key == LENGTH:
            return
        if kind is ChangeKind.ADD:
            if key == len(self._target):
                self._target.append(value)
            else:
                self._target.insert(key, value)
        elif kind is ChangeKind.DELETE:
            del self._target[key]
        else:
            self._target[key] = value


def wrapper_class_for(container: Any) -> type:
    return ObservedList if isinstance(container, list) else ObservedDict


__all__ = [
    "ObservedContainer",
    "ObservedDict",
    "ObservedList",
    "RESERVED_KEYS",
    "TARGET_KEY",
    "IS_WRAPPER_KEY",
    "PARENT_KEY",
    "PATH_KEY",
    "wrapper_class_for",
    "is_wrapper",
]
