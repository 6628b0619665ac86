"""
treewatch Utils - Bookkeeping Building Blocks
=============================================

Classes and helpers:
- ContainerArena: registry-scoped identity table for tracked containers
- containers: uniform get/set/delete/keys access over dicts and lists
"""

from .arena import ContainerArena
from .containers import MISSING, is_container, is_wrapper, reachable_ids, same_value, unwrap, walk

__all__ = [
    "ContainerArena",
    "MISSING",
    "is_container",
    "is_wrapper",
    "reachable_ids",
    "same_value",
    "unwrap",
    "walk",
]
