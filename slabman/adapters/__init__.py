"""
Slabman Adapters.

Implementations of protocols for persistence backends.
"""

from slabman.adapters.loader import (
    get_slab_store,
    get_transition_log,
    reset_adapters,
)
from slabman.adapters.memory import MemorySlabStore, MemoryTransitionLog

__all__ = [
    "get_slab_store",
    "get_transition_log",
    "reset_adapters",
    "MemorySlabStore",
    "MemoryTransitionLog",
]
