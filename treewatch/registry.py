"""
treewatch Observation Registry - Public API
===========================================

An ``ObservationRegistry`` owns everything one engine instance tracks: the
container arena, the observation contexts, the notification scheduler and
the task queue that runs deferred work.

Basic Usage
-----------

```python
from treewatch import ObservationRegistry

registry = ObservationRegistry()

state = {"user": {"name": "Ada"}, "tags": ["a"]}
root = registry.create(state, observer=lambda changes: print(changes))

root["user"]["name"] = "Grace"
# [ChangeRecord(user.name: 'Ada' → 'Grace')]

root["tags"].append("b")
# [ChangeRecord(tags.1: added = 'b'), ChangeRecord(tags.length: 1 → 2)]
```

Delivery Policy
---------------

- ``delay=None`` / ``False``: observers run synchronously after each
  mutating call.
- ``delay=True``: changes are coalesced for ``EngineConfig.default_delay``
  seconds; a positive number gives the delay in seconds.

Delayed flushes and orphan reclamation run on the registry's task queue.
The default ``TaskQueue`` is drained by the host (``registry.tasks.run_due()``
or ``advance()``); pass an ``AsyncioTaskQueue`` to run them on an event loop.

Several ``create()`` calls may observe the same containers. A write through
any of them is recorded once in every context sharing the container.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from .changes import Observer
from .config import DEFAULT_CONFIG, EngineConfig
from .context import ObservationContext
from .errors import ContextNotFound, InvalidContainer
from .paths import PathChain, root_chain
from .scheduler import NotificationScheduler, TaskQueue
from .util.arena import ContainerArena
from .util.containers import is_container, is_wrapper, reachable_ids, walk
from .wrappers import ObservedContainer, wrapper_class_for


class ObservationRegistry:
    """
    Creates observed wrappers and routes their changes to observers.

    Single-threaded: every mutation runs to completion before the next one
    starts, so the registry takes no locks.
    """

    def __init__(self, config: Optional[EngineConfig] = None, task_queue: Any = None):
        self.config = config or DEFAULT_CONFIG
        self.tasks = task_queue if task_queue is not None else TaskQueue()
        self.arena = ContainerArena()
        self.scheduler = NotificationScheduler(self.tasks)

        self._contexts: List[ObservationContext] = []

        # Mutation batching: contexts to notify and overwritten containers
        # to check once the outermost mutating call returns.
        self._batch_depth = 0
        self._touched: List[ObservationContext] = []
        self._candidates: List[Any] = []

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def create(
        self, container: Any, delay: Any = None, observer: Optional[Observer] = None
    ) -> ObservedContainer:
        """
        Start observing ``container`` and return its root wrapper.

        Args:
            container: A dict or list, or a wrapper created by this registry
                (its raw container is used).
            delay: None/False for synchronous delivery, True for the default
                delay, or a number of seconds.
            observer: Optional callback receiving a list of ChangeRecords.

        Raises:
            InvalidContainer: for non-containers and for wrappers owned by
                another registry.
        """
        if is_wrapper(container):
            if container._registry is not self:
                raise InvalidContainer("Cannot observe a wrapper owned by another registry")
            container = container.target
        if not is_container(container):
            raise InvalidContainer(
                f"Cannot observe {type(container).__name__}: expected a dict or a list"
            )

        context = ObservationContext(
            root=container,
            delay=self.config.resolve_delay(delay),
            path=root_chain(container),
        )
        root = self._wrap(container, context, context.path)
        context.root_wrapper = root
        self._contexts.append(context)

        if observer is not None:
            self.observe(root, observer)

        self._visit(root)
        logging.debug(f"Created {context!r}")
        return root

    def observe(self, root: Any, observer: Observer) -> None:
        """Add an observer to the context whose root wrapper is ``root``."""
        if not callable(observer):
            raise TypeError(f"observer must be callable, got {observer!r}")
        self._require(root, "observe").observers.append(observer)

    def unobserve(self, root: Any, observer: Observer) -> None:
        context = self._require(root, "unobserve")
        if observer in context.observers:
            context.observers.remove(observer)

    def pause(self, root: Any) -> None:
        """Stop invoking observers; storage is still written."""
        self._require(root, "pause").paused = True

    def resume(self, root: Any) -> None:
        self._require(root, "resume").paused = False

    def pause_changes(self, root: Any) -> None:
        """Stop writing storage through this context; changes are still recorded."""
        self._require(root, "pause changes on").changes_paused = True

    def resume_changes(self, root: Any) -> None:
        self._require(root, "resume changes on").changes_paused = False

    def remove(self, root: Any) -> None:
        """
        Stop observing. Wrappers of the removed context become inert:
        writes through them are neither recorded nor applied.
        """
        context = self._find(root)
        if context is None:
            return
        context.active = False
        context.pending = []
        dropped = self.arena.discard_context(context)
        self._contexts.remove(context)
        logging.debug(f"Removed {context!r}, dropped {dropped} arena entries")

    def is_observed(self, root: Any) -> bool:
        return self._find(root) is not None

    @contextmanager
    def batch(self) -> Iterator["ObservationRegistry"]:
        """
        Group several mutating calls into one delivery per context.

        Every wrapper mutation runs inside a batch; nesting is allowed and
        only the outermost exit notifies.
        """
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self._drain()

    def stats(self) -> Dict[str, Any]:
        stats = {"contexts": len(self._contexts), **self.arena.stats()}
        if hasattr(self.tasks, "__len__"):
            stats["scheduled_tasks"] = len(self.tasks)
        return stats

    @property
    def contexts(self) -> List[ObservationContext]:
        return list(self._contexts)

    # ========================================================================
    # INTERNAL IMPLEMENTATION
    # ========================================================================

    def _find(self, root: Any) -> Optional[ObservationContext]:
        for context in reversed(self._contexts):
            if context.root_wrapper is root:
                return context
        return None

    def _require(self, root: Any, action: str) -> ObservationContext:
        context = self._find(root)
        if context is None:
            raise ContextNotFound(f"Could not {action} observable: matching root wrapper not found")
        return context

    def _wrap(self, container: Any, context: ObservationContext, path: PathChain) -> ObservedContainer:
        """Cached wrapper for (container, context), built on first request."""
        wrapper = self.arena.lookup(container, context)
        if wrapper is not None:
            return wrapper

        wrapper = wrapper_class_for(container)(container, context, self, path)
        if context.active:
            self.arena.register(container, wrapper, context)
        return wrapper

    def _visit(self, root: ObservedContainer) -> None:
        """Build wrappers for every nested container up front."""
        seen = {id(root.target)}
        stack = [root]
        while stack:
            wrapper = stack.pop()
            target = wrapper.target
            keys = range(len(target)) if isinstance(target, list) else list(target)
            for key in keys:
                child = wrapper._child(key, target[key])
                if is_wrapper(child) and id(child.target) not in seen:
                    seen.add(id(child.target))
                    stack.append(child)

    def _touch(self, context: ObservationContext) -> None:
        if not any(c is context for c in self._touched):
            self._touched.append(context)

    def _orphan_candidate(self, container: Any) -> None:
        if not any(c is container for c in self._candidates):
            self._candidates.append(container)

    def _drain(self) -> None:
        candidates, self._candidates = self._candidates, []
        touched, self._touched = self._touched, []
        for container in candidates:
            self._check_orphan(container)
        for context in touched:
            self.scheduler.notify(context)

    # ========================================================================
    # ORPHAN RECLAMATION
    # ========================================================================

    def _check_orphan(self, container: Any) -> None:
        """
        Schedule reclamation of an overwritten or deleted container.

        Contexts whose root still reaches the container (it was moved rather
        than dropped) keep tracking it and are not scheduled.
        """
        holders = []
        for _, context in self.arena.entries_for(container):
            if context.active and not any(c is context for c in holders):
                holders.append(context)
        orphaned = [c for c in holders if id(container) not in reachable_ids(c.root)]
        if not orphaned:
            return

        logging.debug(
            f"Scheduling reclamation of {type(container).__name__} "
            f"for {len(orphaned)} context(s) in {self.config.grace_window}s"
        )
        self.tasks.call_later(
            self.config.grace_window, lambda: self._reclaim(container, orphaned)
        )

    def _reclaim(self, container: Any, contexts: List[ObservationContext]) -> None:
        """Drop arena entries for a subtree no longer reachable from each context's root."""
        for context in contexts:
            if not context.active:
                continue
            live = reachable_ids(context.root)
            if id(container) in live:
                continue
            dropped = 0
            for node in walk(container):
                if id(node) not in live and self.arena.discard(node, context):
                    dropped += 1
            logging.debug(f"Reclaimed {dropped} orphaned container(s) from {context!r}")
