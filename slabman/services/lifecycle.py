"""
Slab lifecycle — legal transitions, entry rules and automatic date stamping.

Pure decision logic: nothing here reads or writes the store.

    WANTED ─► ORDERED ─► RECEIVED ─► STOCK ◄─► ALLOCATED ─► CONSUMED
       ▲         │           │         │           ▲            │
       └─────────┘           └─────────┼───────────┘            │
                                       ▼                        ▼
                                    REMNANT ◄───────────────────┘

Usage:
    result = Lifecycle.validate_transition(slab, SlabStatus.RECEIVED, {'received_date': now})
    if result.valid:
        outcome = Lifecycle.execute_transition(slab, SlabStatus.RECEIVED, {'received_date': now})
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from django.utils import timezone

from slabman.exceptions import SlabError
from slabman.models.enums import SlabStatus, SlabType
from slabman.protocols.store import SlabRecord, TransitionRecord

logger = logging.getLogger('slabman')


TRANSITIONS: dict[SlabStatus, tuple[SlabStatus, ...]] = {
    SlabStatus.WANTED: (SlabStatus.ORDERED,),
    SlabStatus.ORDERED: (SlabStatus.RECEIVED, SlabStatus.WANTED),  # order cancelled
    SlabStatus.RECEIVED: (SlabStatus.STOCK, SlabStatus.ALLOCATED),
    SlabStatus.STOCK: (SlabStatus.ALLOCATED, SlabStatus.REMNANT),
    SlabStatus.ALLOCATED: (SlabStatus.CONSUMED, SlabStatus.STOCK),  # deallocated
    SlabStatus.CONSUMED: (SlabStatus.REMNANT,),  # leftover material
    SlabStatus.REMNANT: (),
}

PROGRESS = {
    SlabStatus.WANTED: 0,
    SlabStatus.ORDERED: 20,
    SlabStatus.RECEIVED: 40,
    SlabStatus.STOCK: 60,
    SlabStatus.ALLOCATED: 80,
    SlabStatus.CONSUMED: 100,
    SlabStatus.REMNANT: 100,
}

# CONSUMED and REMNANT are both ends of the "used" branch
STEP_INDEX = {
    SlabStatus.WANTED: 0,
    SlabStatus.ORDERED: 1,
    SlabStatus.RECEIVED: 2,
    SlabStatus.STOCK: 3,
    SlabStatus.ALLOCATED: 4,
    SlabStatus.CONSUMED: 5,
    SlabStatus.REMNANT: 5,
}

STATUS_GROUPS = {
    'pending': (SlabStatus.WANTED, SlabStatus.ORDERED),
    'active': (SlabStatus.RECEIVED, SlabStatus.STOCK, SlabStatus.ALLOCATED),
    'inactive': (SlabStatus.CONSUMED, SlabStatus.REMNANT),
}

JOB_WARNING = "job reference recommended"
REMNANT_WARNING = "already remnant type"


@dataclass(frozen=True)
class StatusInfo:
    """Static display metadata for a status."""

    label: str
    description: str
    is_destructive: bool = False
    requires_confirmation: bool = False


STATUS_METADATA = {
    SlabStatus.WANTED: StatusInfo('Wanted', 'Slab is needed but not yet ordered'),
    SlabStatus.ORDERED: StatusInfo('Ordered', 'Slab has been ordered from supplier'),
    SlabStatus.RECEIVED: StatusInfo('Received', 'Slab has arrived and been inspected'),
    SlabStatus.STOCK: StatusInfo('In Stock', 'Slab is available for allocation'),
    SlabStatus.ALLOCATED: StatusInfo('Allocated', 'Slab is reserved for a specific job'),
    SlabStatus.CONSUMED: StatusInfo(
        'Consumed', 'Slab has been used in production',
        is_destructive=True, requires_confirmation=True,
    ),
    SlabStatus.REMNANT: StatusInfo('Remnant', 'Leftover material from consumed slab'),
}

WORKFLOW_STEPS = (
    (SlabStatus.WANTED, 'Wanted', 'Identified need'),
    (SlabStatus.ORDERED, 'Ordered', 'Purchase order sent'),
    (SlabStatus.RECEIVED, 'Received', 'Delivered and inspected'),
    (SlabStatus.STOCK, 'In Stock', 'Available for use'),
    (SlabStatus.ALLOCATED, 'Allocated', 'Reserved for job'),
    (SlabStatus.CONSUMED, 'Consumed', 'Used in production'),
)


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of a pre-flight check.

    Invalid results carry the SlabError code and message; warnings never
    make a result invalid.
    """

    valid: bool
    error: str | None = None
    code: str | None = None
    warnings: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True)
class TransitionOutcome:
    """The updated slab plus the transition that produced it."""

    slab: SlabRecord
    transition: TransitionRecord
    warnings: tuple[str, ...] = field(default=())


def _has(slab: SlabRecord, context: dict, attr: str) -> bool:
    return bool(context.get(attr) or getattr(slab, attr))


class Lifecycle:
    """Slab lifecycle rules."""

    @classmethod
    def is_transition_allowed(cls, from_status, to_status) -> bool:
        return SlabStatus(to_status) in TRANSITIONS.get(SlabStatus(from_status), ())

    @classmethod
    def valid_transitions(cls, from_status) -> list[SlabStatus]:
        return list(TRANSITIONS.get(SlabStatus(from_status), ()))

    @classmethod
    def validate_transition(cls, slab: SlabRecord, to_status,
                            context: dict[str, Any] | None = None) -> ValidationResult:
        """
        Check whether slab may move to to_status.

        Entry rules:
        - RECEIVED: received_date on the slab or in context (required)
        - ALLOCATED: job_id (recommended)
        - CONSUMED: consumed_date (required), job_id (recommended)
        - REMNANT: warns when the slab is already of remnant type

        Never raises for business failures; callers render the result.
        """
        context = context or {}
        to_status = SlabStatus(to_status)

        if not cls.is_transition_allowed(slab.status, to_status):
            return ValidationResult(
                valid=False,
                code='INVALID_TRANSITION',
                error=f"cannot transition from {slab.status.value} to {to_status.value}",
            )

        warnings = []

        if to_status == SlabStatus.RECEIVED:
            if not _has(slab, context, 'received_date'):
                return ValidationResult(
                    valid=False,
                    code='RECEIVED_DATE_REQUIRED',
                    error=SlabError._default_messages['RECEIVED_DATE_REQUIRED'],
                )

        elif to_status == SlabStatus.ALLOCATED:
            if not _has(slab, context, 'job_id'):
                warnings.append(JOB_WARNING)

        elif to_status == SlabStatus.CONSUMED:
            if not _has(slab, context, 'consumed_date'):
                return ValidationResult(
                    valid=False,
                    code='CONSUMED_DATE_REQUIRED',
                    error=SlabError._default_messages['CONSUMED_DATE_REQUIRED'],
                )
            if not _has(slab, context, 'job_id'):
                warnings.append(JOB_WARNING)

        elif to_status == SlabStatus.REMNANT:
            if slab.slab_type == SlabType.REMNANT:
                warnings.append(REMNANT_WARNING)

        return ValidationResult(valid=True, warnings=tuple(warnings))

    @classmethod
    def execute_transition(cls, slab: SlabRecord, to_status,
                           context: dict[str, Any] | None = None,
                           reason: str | None = None,
                           actor: str | None = None) -> TransitionOutcome:
        """
        Apply a validated transition to a copy of slab.

        Context fields are merged onto the copy, then received_date or
        consumed_date is stamped with the current time when entering that
        status without one. Dates already present are kept.

        Raises:
            SlabError: with the validation code, when the transition is invalid
        """
        context = context or {}
        to_status = SlabStatus(to_status)

        result = cls.validate_transition(slab, to_status, context)
        if not result:
            raise SlabError(
                result.code,
                result.error,
                slab_id=slab.id,
                current=slab.status,
                requested=to_status,
            )

        now = timezone.now()
        updated = stamp_dates(slab.merge(**{**context, 'status': to_status}), now)

        transition = TransitionRecord(
            from_status=slab.status,
            to_status=to_status,
            timestamp=now,
            reason=reason,
            actor=actor,
        )
        logger.info(
            "slab.transition.executed",
            extra={
                "slab_id": slab.id,
                "from": slab.status.value,
                "to": to_status.value,
                "warnings": list(result.warnings),
            },
        )
        return TransitionOutcome(slab=updated, transition=transition, warnings=result.warnings)

    @classmethod
    def progress_percent(cls, status) -> int:
        return PROGRESS.get(SlabStatus(status), 0)

    @classmethod
    def step_index(cls, status) -> int:
        return STEP_INDEX.get(SlabStatus(status), 0)

    @classmethod
    def status_info(cls, status) -> StatusInfo:
        return STATUS_METADATA[SlabStatus(status)]

    @classmethod
    def workflow_steps(cls) -> list[tuple[SlabStatus, str, str]]:
        """Steps for progress displays, WANTED through CONSUMED."""
        return list(WORKFLOW_STEPS)

    @classmethod
    def group_of(cls, status) -> str:
        status = SlabStatus(status)
        return next(name for name, members in STATUS_GROUPS.items() if status in members)


def stamp_dates(slab: SlabRecord, now) -> SlabRecord:
    """Set received/consumed date when the slab sits in that status without one."""
    if slab.status == SlabStatus.RECEIVED and not slab.received_date:
        return slab.merge(received_date=now)
    if slab.status == SlabStatus.CONSUMED and not slab.consumed_date:
        return slab.merge(consumed_date=now)
    return slab
