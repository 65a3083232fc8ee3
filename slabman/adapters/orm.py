"""
ORM Slab Store — SlabStore and TransitionLog on top of the Django models.

Default backend (see slabman.conf). Each upsert runs in its own
transaction and locks the row, so concurrent writers to one slab are
serialized by the database.
"""

import logging

from django.db import transaction

from slabman.models.slab import Slab
from slabman.models.transition import SlabTransition
from slabman.protocols.store import SlabRecord, TransitionRecord

logger = logging.getLogger(__name__)


class OrmSlabStore:
    """SlabStore backed by slabman.Slab."""

    def get_by_id(self, slab_id: str) -> SlabRecord | None:
        slab = Slab.objects.filter(pk=slab_id).first()
        return slab.as_record() if slab else None

    def get_all(self) -> list[SlabRecord]:
        return [slab.as_record() for slab in Slab.objects.all()]

    def upsert(self, record: SlabRecord) -> None:
        values = {f: getattr(record, f) for f in Slab.RECORD_FIELDS}
        with transaction.atomic():
            slab = Slab.objects.select_for_update().filter(pk=record.id).first()
            if slab is None:
                Slab.objects.create(pk=record.id, **values)
                return
            for name, value in values.items():
                setattr(slab, name, value)
            slab.save(update_fields=[*values, 'updated_at'])

    def clear(self) -> None:
        deleted, _ = Slab.objects.all().delete()
        logger.info("Cleared slab store (%d rows)", deleted)


class OrmTransitionLog:
    """TransitionLog backed by slabman.SlabTransition."""

    def append(self, slab_id: str, transition: TransitionRecord, batch_id: str = "") -> None:
        SlabTransition.objects.create(
            slab_id=slab_id,
            from_status=transition.from_status,
            to_status=transition.to_status,
            timestamp=transition.timestamp,
            reason=transition.reason or '',
            actor=transition.actor or '',
            batch_id=batch_id,
        )

    def history(self, slab_id: str) -> list[TransitionRecord]:
        return [t.as_record() for t in SlabTransition.objects.filter(slab_id=slab_id)]
