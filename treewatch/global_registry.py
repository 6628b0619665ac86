"""
Default Registry - module-level singleton.

Provides ``create()``, ``observe()``, ``pause()`` ... functions bound to one
lazily created ObservationRegistry, for applications that need a single
engine instance.

Implementation:
    - get_default_registry(): lazy singleton pattern
    - _reset_default_registry(): fresh state for tests
    - create_observable(): the framework-helper shortcut, batching by default
"""

from typing import Any, Optional

from .changes import Observer
from .registry import ObservationRegistry

_default_registry: Optional[ObservationRegistry] = None


def get_default_registry() -> ObservationRegistry:
    """
    Get or create the default registry instance.

    Lazy singleton pattern: creates on first access, reuses thereafter.
    Testing can reset via _reset_default_registry().
    """
    global _default_registry
    if _default_registry is None:
        _default_registry = ObservationRegistry()
    return _default_registry


def _reset_default_registry() -> None:
    """
    Reset the default registry for testing purposes.

    Clears the singleton so each test starts without contexts. Not for
    production use.
    """
    global _default_registry
    _default_registry = None


def create(container: Any, delay: Any = None, observer: Optional[Observer] = None):
    return get_default_registry().create(container, delay, observer)


def observe(root: Any, observer: Observer) -> None:
    get_default_registry().observe(root, observer)


def unobserve(root: Any, observer: Observer) -> None:
    get_default_registry().unobserve(root, observer)


def pause(root: Any) -> None:
    get_default_registry().pause(root)


def resume(root: Any) -> None:
    get_default_registry().resume(root)


def pause_changes(root: Any) -> None:
    get_default_registry().pause_changes(root)


def resume_changes(root: Any) -> None:
    get_default_registry().resume_changes(root)


def remove(root: Any) -> None:
    get_default_registry().remove(root)


def batch():
    """Group mutations on the default registry into one delivery per context."""
    return get_default_registry().batch()


def create_observable(
    on_change: Optional[Observer] = None, container: Any = None, batch_up: Any = True
):
    """
    Create an observed container on the default registry.

    Args:
        on_change: Callback receiving each batch of ChangeRecords.
        container: Container to observe. Default is a new empty dict.
        batch_up: Delay setting; True batches changes for the default delay.
    """
    if container is None:
        container = {}
    return get_default_registry().create(container, batch_up, on_change)
