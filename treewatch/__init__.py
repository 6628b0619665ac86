"""
treewatch - Reactive Change Observation for Container Trees

Wraps a tree of plain dicts and lists so every mutation anywhere in it is
detected and delivered, as structured change records, to independently
registered observers.
"""

# Core engine
from .changes import ChangeKind, ChangeRecord, Observer
from .config import DEFAULT_CONFIG, EngineConfig
from .context import ObservationContext
from .errors import ContextNotFound, InvalidContainer, TreewatchError

# Module-level API bound to the default registry
from .global_registry import (
    _reset_default_registry,
    batch,
    create,
    create_observable,
    get_default_registry,
    observe,
    pause,
    pause_changes,
    remove,
    resume,
    resume_changes,
    unobserve,
)
from .paths import PathSegment, get_path, set_path
from .registry import ObservationRegistry
from .scheduler import AsyncioTaskQueue, NotificationScheduler, TaskQueue
from .util.containers import is_wrapper, unwrap
from .wrappers import (
    IS_WRAPPER_KEY,
    PARENT_KEY,
    PATH_KEY,
    TARGET_KEY,
    ObservedContainer,
    ObservedDict,
    ObservedList,
)

__all__ = [
    # Registry and wrappers
    "ObservationRegistry",
    "ObservationContext",
    "ObservedContainer",
    "ObservedDict",
    "ObservedList",
    # Change records
    "ChangeKind",
    "ChangeRecord",
    "Observer",
    # Scheduling
    "TaskQueue",
    "AsyncioTaskQueue",
    "NotificationScheduler",
    # Configuration
    "EngineConfig",
    "DEFAULT_CONFIG",
    # Default registry API
    "get_default_registry",
    "create",
    "create_observable",
    "observe",
    "unobserve",
    "pause",
    "resume",
    "pause_changes",
    "resume_changes",
    "remove",
    "batch",
    # Paths and introspection
    "PathSegment",
    "get_path",
    "set_path",
    "is_wrapper",
    "unwrap",
    "TARGET_KEY",
    "IS_WRAPPER_KEY",
    "PARENT_KEY",
    "PATH_KEY",
    # Exceptions
    "TreewatchError",
    "ContextNotFound",
    "InvalidContainer",
    # Testing utilities (internal use)
    "_reset_default_registry",
]
