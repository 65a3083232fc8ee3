"""
Slab Store Protocol — Interface for the record store behind lifecycle and batch operations.

Slabman defines this protocol; the ORM adapter (or any other backend) implements it.
The store owns read-modify-write consistency for a single record; callers do no locking.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import datetime
from decimal import Decimal
from typing import Protocol, runtime_checkable

from slabman.exceptions import SlabError
from slabman.models.enums import SlabStatus, SlabType


@dataclass(frozen=True)
class SlabRecord:
    """
    A slab as seen by the lifecycle engine and the batch orchestrator.

    Immutable: every change produces a new record via merge().
    """

    id: str
    serial_number: str = ""
    material: str = ""
    color: str = ""
    thickness: int = 0  # mm
    length: int = 0  # mm
    width: int = 0  # mm
    supplier: str = ""
    status: SlabStatus = SlabStatus.WANTED
    slab_type: SlabType = SlabType.FULL
    job_id: str | None = None
    received_date: datetime | None = None
    consumed_date: datetime | None = None
    notes: str | None = None
    cost: Decimal | None = None
    location: str | None = None

    def __post_init__(self):
        try:
            object.__setattr__(self, 'status', SlabStatus(self.status))
            object.__setattr__(self, 'slab_type', SlabType(self.slab_type))
        except ValueError as e:
            raise SlabError('INVALID_FIELD', str(e), slab_id=self.id) from None

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    def merge(self, **changes) -> SlabRecord:
        """
        Shallow-merge changes onto a copy of this record.

        Raises:
            SlabError('INVALID_FIELD'): unknown field, or an attempt to change id
        """
        unknown = sorted(set(changes) - self.field_names())
        if unknown:
            raise SlabError(
                'INVALID_FIELD',
                f"unknown field: {', '.join(unknown)}",
                slab_id=self.id,
                fields=unknown,
            )
        if 'id' in changes and changes['id'] != self.id:
            raise SlabError('INVALID_FIELD', 'id cannot be changed', slab_id=self.id)
        return replace(self, **changes)


@dataclass(frozen=True)
class TransitionRecord:
    """One accepted status change. Never mutated once created."""

    from_status: SlabStatus
    to_status: SlabStatus
    timestamp: datetime
    reason: str | None = None
    actor: str | None = None


@runtime_checkable
class SlabStore(Protocol):
    """
    Protocol for slab persistence.

    Implementations must serialize concurrent writes to the same record.
    """

    def get_by_id(self, slab_id: str) -> SlabRecord | None:
        """Return the record, or None if it does not exist."""
        ...

    def get_all(self) -> list[SlabRecord]:
        """Return every record."""
        ...

    def upsert(self, record: SlabRecord) -> None:
        """Insert or replace the record with record.id."""
        ...

    def clear(self) -> None:
        """Remove every record (reset flows only)."""
        ...


@runtime_checkable
class TransitionLog(Protocol):
    """Protocol for the per-slab transition history."""

    def append(self, slab_id: str, transition: TransitionRecord, batch_id: str = "") -> None:
        ...

    def history(self, slab_id: str) -> list[TransitionRecord]:
        """Transitions for the slab, oldest first."""
        ...
