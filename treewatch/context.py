"""
Observation contexts: one independent subscription scope each.
"""

from dataclasses import dataclass, field
from typing import Any, List, Tuple

from .changes import ChangeRecord, Observer
from .paths import PathChain


@dataclass(eq=False)
class ObservationContext:
    """
    State of one create() call.

    A context owns its wrappers (through the registry arena), its observers
    and its pending-change queue. ``eq=False`` keeps identity semantics, so
    contexts can be compared with ``is`` and used as dict keys.
    """

    root: Any
    delay: float = 0.0
    root_wrapper: Any = None
    path: PathChain = ()
    observers: List[Observer] = field(default_factory=list)
    paused: bool = False
    changes_paused: bool = False
    active: bool = True
    flush_scheduled: bool = False
    pending: List[Tuple[ChangeRecord, bool]] = field(default_factory=list)

    def __repr__(self) -> str:
        flags = []
        if self.paused:
            flags.append("paused")
        if self.changes_paused:
            flags.append("changes_paused")
        if not self.active:
            flags.append("removed")
        state = f" [{', '.join(flags)}]" if flags else ""
        return (
            f"ObservationContext(root={type(self.root).__name__}, "
            f"observers={len(self.observers)}, delay={self.delay}){state}"
        )
