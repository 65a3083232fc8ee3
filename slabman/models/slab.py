"""
Slab model — ORM backing for SlabRecord.
"""

import uuid

from django.db import models
from django.utils.translation import gettext_lazy as _

from slabman.models.enums import SlabStatus, SlabType


def new_slab_id() -> str:
    return f"slab-{uuid.uuid4().hex[:12]}"


class SlabQuerySet(models.QuerySet):
    """Custom QuerySet for Slab with convenience filters."""

    def in_status(self, *statuses):
        return self.filter(status__in=statuses)

    def for_job(self, job_id: str):
        return self.filter(job_id=job_id)

    def available(self):
        """Slabs that can still be allocated."""
        return self.filter(status__in=[SlabStatus.RECEIVED, SlabStatus.STOCK])


class Slab(models.Model):
    """
    A physical stone slab tracked through the lifecycle.

    Status only changes through the lifecycle engine (interactive) or
    the batch orchestrator (bulk). Editing status directly in the admin
    skips the transition rules and the history ledger.
    """

    id = models.CharField(
        primary_key=True,
        max_length=64,
        default=new_slab_id,
        editable=False,
        verbose_name=_('ID'),
    )
    serial_number = models.CharField(
        max_length=100,
        db_index=True,
        verbose_name=_('Serial Number'),
    )
    material = models.CharField(max_length=100, verbose_name=_('Material'))
    color = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Color'))

    # Dimensions in mm
    thickness = models.PositiveIntegerField(default=20, verbose_name=_('Thickness'))
    length = models.PositiveIntegerField(default=3200, verbose_name=_('Length'))
    width = models.PositiveIntegerField(default=1600, verbose_name=_('Width'))

    supplier = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Supplier'))

    status = models.CharField(
        max_length=20,
        choices=SlabStatus.choices,
        default=SlabStatus.WANTED,
        db_index=True,
        verbose_name=_('Status'),
    )
    slab_type = models.CharField(
        max_length=20,
        choices=SlabType.choices,
        default=SlabType.FULL,
        verbose_name=_('Slab Type'),
    )

    job_id = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Job'),
    )
    received_date = models.DateTimeField(null=True, blank=True, verbose_name=_('Received Date'))
    consumed_date = models.DateTimeField(null=True, blank=True, verbose_name=_('Consumed Date'))
    notes = models.TextField(null=True, blank=True, verbose_name=_('Notes'))
    cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Cost'),
    )
    location = models.CharField(max_length=100, null=True, blank=True, verbose_name=_('Location'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SlabQuerySet.as_manager()

    class Meta:
        verbose_name = _('Slab')
        verbose_name_plural = _('Slabs')
        ordering = ['serial_number']
        indexes = [
            models.Index(fields=['status', 'material'], name='slabman_sla_status_5c1e0a_idx'),
        ]

    # Fields shared with SlabRecord
    RECORD_FIELDS = (
        'serial_number', 'material', 'color', 'thickness', 'length', 'width',
        'supplier', 'status', 'slab_type', 'job_id', 'received_date',
        'consumed_date', 'notes', 'cost', 'location',
    )

    def as_record(self):
        """Snapshot this row as an immutable SlabRecord."""
        from slabman.protocols.store import SlabRecord

        return SlabRecord(id=self.pk, **{f: getattr(self, f) for f in self.RECORD_FIELDS})

    @property
    def is_terminal(self) -> bool:
        return self.status == SlabStatus.REMNANT

    def __str__(self) -> str:
        return f"{self.serial_number} {self.material} {self.color}".strip()
