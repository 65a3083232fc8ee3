"""
Memory Slab Store — In-process adapter for development and testing.

Implements the SlabStore and TransitionLog protocols with plain dicts
guarded by a lock. Nothing survives the process.

Usage in settings.py:
    SLABMAN = {
        "SLAB_STORE": "slabman.adapters.memory.MemorySlabStore",
        "TRANSITION_LOG": "slabman.adapters.memory.MemoryTransitionLog",
    }

WARNING: Do NOT use in production. Each process gets its own copy of the data.
"""

from __future__ import annotations

import threading
from collections import defaultdict

from slabman.protocols.store import SlabRecord, TransitionRecord


class MemorySlabStore:
    """
    Dict-backed slab store.

    Suitable for:

    - Unit tests of the lifecycle and batch code without a database
    - Local experiments from the Django shell
    """

    def __init__(self, records: list[SlabRecord] | None = None):
        self._lock = threading.Lock()
        self._records: dict[str, SlabRecord] = {}
        self.writes: list[str] = []  # slab ids, in upsert order
        for record in records or ():
            self._records[record.id] = record

    def get_by_id(self, slab_id: str) -> SlabRecord | None:
        with self._lock:
            return self._records.get(slab_id)

    def get_all(self) -> list[SlabRecord]:
        with self._lock:
            return list(self._records.values())

    def upsert(self, record: SlabRecord) -> None:
        with self._lock:
            self._records[record.id] = record
            self.writes.append(record.id)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class MemoryTransitionLog:
    """Dict-backed transition history."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: dict[str, list[tuple[TransitionRecord, str]]] = defaultdict(list)

    def append(self, slab_id: str, transition: TransitionRecord, batch_id: str = "") -> None:
        with self._lock:
            self._entries[slab_id].append((transition, batch_id))

    def history(self, slab_id: str) -> list[TransitionRecord]:
        with self._lock:
            return [t for t, _ in self._entries.get(slab_id, ())]

    def batch_ids(self, slab_id: str) -> list[str]:
        with self._lock:
            return [b for _, b in self._entries.get(slab_id, ())]
