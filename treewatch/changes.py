"""
Change records delivered to observers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List

from .util.containers import MISSING


class ChangeKind(str, Enum):
    """Kind of mutation that occurred."""

    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class ChangeRecord:
    """
    Immutable description of one detected mutation.

    ``container`` is the raw container that was (or, with changes paused,
    would have been) mutated, ``wrapper`` the wrapper of the context that
    produced the record. ``previous_value`` is ``None`` for additions.
    """

    kind: ChangeKind
    container: Any
    property: Any
    wrapper: Any
    new_value: Any
    previous_value: Any
    dotted_path: str
    pointer_path: str

    @property
    def is_addition(self) -> bool:
        return self.kind is ChangeKind.ADD

    @property
    def is_deletion(self) -> bool:
        return self.kind is ChangeKind.DELETE

    @property
    def is_update(self) -> bool:
        return self.kind is ChangeKind.UPDATE

    def to_patch(self) -> Dict[str, Any]:
        """Render as a JSON-Patch operation (``add`` / ``replace`` / ``remove``)."""
        if self.kind is ChangeKind.DELETE:
            return {"op": "remove", "path": self.pointer_path}
        op = "add" if self.kind is ChangeKind.ADD else "replace"
        return {"op": op, "path": self.pointer_path, "value": self.new_value}

    def __repr__(self) -> str:
        if self.kind is ChangeKind.ADD:
            return f"ChangeRecord({self.dotted_path}: added = {self.new_value!r})"
        elif self.kind is ChangeKind.DELETE:
            return f"ChangeRecord({self.dotted_path}: deleted, was {self.previous_value!r})"
        else:
            return (
                f"ChangeRecord({self.dotted_path}: "
                f"{self.previous_value!r} → {self.new_value!r})"
            )


Observer = Callable[[List[ChangeRecord]], None]


def make_record(
    kind: ChangeKind,
    container: Any,
    key: Any,
    wrapper: Any,
    new_value: Any,
    previous_value: Any,
    dotted_path: str,
    pointer_path: str,
) -> ChangeRecord:
    """Build a record, mapping the internal MISSING sentinel to None."""
    return ChangeRecord(
        kind=kind,
        container=container,
        property=key,
        wrapper=wrapper,
        new_value=None if new_value is MISSING else new_value,
        previous_value=None if previous_value is MISSING else previous_value,
        dotted_path=dotted_path,
        pointer_path=pointer_path,
    )
