"""
treewatch Container Arena - Identity Registry
=============================================

Registry-scoped arena holding the bookkeeping for every container that has
been wrapped at least once.

Key Features:
- Integer handles assigned once per container (never recycled)
- Parallel arrays indexed by handle (container ref, entry list)
- Bitset-based active tracking (64 containers per word)
- Bitset-based "currently propagating" marker for fan-out
- Lookup keyed by ``id()`` of the raw container

Plain ``dict`` and ``list`` objects are not weak-referenceable, so the arena
holds strong references and forgets them explicitly on eviction. Once a slot
is evicted its ``id()`` mapping is dropped too: the interpreter may recycle
that id for an unrelated object, which must then get a fresh handle.
"""

import array
from typing import Any, Dict, List, Optional, Tuple

Entry = Tuple[Any, Any]  # (wrapper, context)


class ContainerArena:
    """
    Arena of tracked containers.

    All slots live in parallel lists:
    - targets[handle]: the raw container (None once evicted)
    - entries[handle]: list of (wrapper, context), in registration order
    - active_bits / propagating_bits: one bit per handle
    """

    def __init__(self, initial_capacity: int = 64):
        self.count = 0
        self.targets: List[Any] = []
        self.entries: List[List[Entry]] = []

        self.active_bits = array.array("Q", [0] * ((initial_capacity + 63) // 64))
        self.propagating_bits = array.array("Q", [0] * ((initial_capacity + 63) // 64))

        # id(container) -> handle, only for live slots
        self._index: Dict[int, int] = {}

    # Identity

    def assign(self, container: Any) -> int:
        """
        Return the container's handle, allocating the next one on first sight.

        O(1), idempotent.
        """
        handle = self._index.get(id(container))
        if handle is not None and self.targets[handle] is container:
            return handle

        handle = self.count
        self.count += 1
        self.targets.append(container)
        self.entries.append([])
        self._ensure_bits(handle)
        self._index[id(container)] = handle
        return handle

    def handle_of(self, container: Any) -> Optional[int]:
        """Handle of a tracked container, or None."""
        handle = self._index.get(id(container))
        if handle is None or self.targets[handle] is not container:
            return None
        return handle

    # Entries

    def register(self, container: Any, wrapper: Any, context: Any) -> int:
        """Append a (wrapper, context) entry for the container."""
        handle = self.assign(container)
        self.entries[handle].append((wrapper, context))
        self._set_bit(self.active_bits, handle)
        return handle

    def lookup(self, container: Any, context: Any) -> Optional[Any]:
        """Cached wrapper for (container, context), or None."""
        handle = self.handle_of(container)
        if handle is None or not self.is_active(handle):
            return None
        for wrapper, ctx in self.entries[handle]:
            if ctx is context:
                return wrapper
        return None

    def entries_for(self, container: Any) -> List[Entry]:
        """Copy of the entry list for a container (empty if untracked)."""
        handle = self.handle_of(container)
        if handle is None:
            return []
        return list(self.entries[handle])

    def discard(self, container: Any, context: Any) -> bool:
        """Drop the context's entry for a container; evict when none remain."""
        handle = self.handle_of(container)
        if handle is None:
            return False
        slot = self.entries[handle]
        for i in range(len(slot) - 1, -1, -1):
            if slot[i][1] is context:
                del slot[i]
                if not slot:
                    self._evict_handle(handle)
                return True
        return False

    def discard_context(self, context: Any) -> int:
        """Drop every entry belonging to a context. Returns the number dropped."""
        dropped = 0
        for handle in range(self.count):
            slot = self.entries[handle]
            if not slot:
                continue
            kept = [entry for entry in slot if entry[1] is not context]
            if len(kept) != len(slot):
                dropped += len(slot) - len(kept)
                self.entries[handle] = kept
                if not kept:
                    self._evict_handle(handle)
        return dropped

    def evict(self, container: Any) -> None:
        """Mark the container's slot inactive and release it."""
        handle = self.handle_of(container)
        if handle is not None:
            self._evict_handle(handle)

    def _evict_handle(self, handle: int) -> None:
        target = self.targets[handle]
        if target is not None and self._index.get(id(target)) == handle:
            del self._index[id(target)]
        self.targets[handle] = None
        self.entries[handle] = []
        self._clear_bit(self.active_bits, handle)
        self._clear_bit(self.propagating_bits, handle)

    # Fan-out marker

    def begin_propagation(self, handle: int) -> None:
        self._set_bit(self.propagating_bits, handle)

    def end_propagation(self, handle: int) -> None:
        self._clear_bit(self.propagating_bits, handle)

    def is_propagating(self, handle: int) -> bool:
        return self._test_bit(self.propagating_bits, handle)

    def is_active(self, handle: int) -> bool:
        return self._test_bit(self.active_bits, handle)

    def stats(self) -> Dict[str, int]:
        return {
            "handles": self.count,
            "active": sum(1 for h in range(self.count) if self.is_active(h)),
            "entries": sum(len(slot) for slot in self.entries),
        }

    # Bitset operations - O(1)

    def _ensure_bits(self, handle: int) -> None:
        words = (handle >> 6) + 1
        for bits in (self.active_bits, self.propagating_bits):
            if len(bits) < words:
                bits.extend([0] * (max(words, len(bits) * 2) - len(bits)))

    @staticmethod
    def _set_bit(bits: array.array, handle: int) -> None:
        bits[handle >> 6] |= 1 << (handle & 63)

    @staticmethod
    def _clear_bit(bits: array.array, handle: int) -> None:
        bits[handle >> 6] &= ~(1 << (handle & 63)) & 0xFFFFFFFFFFFFFFFF

    @staticmethod
    def _test_bit(bits: array.array, handle: int) -> bool:
        word = handle >> 6
        if word >= len(bits):
            return False
        return bool(bits[word] & (1 << (handle & 63)))

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, container: Any) -> bool:
        return self.handle_of(container) is not None
