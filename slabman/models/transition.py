"""
SlabTransition model — Immutable ledger of status changes.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from slabman.models.enums import SlabStatus


class SlabTransition(models.Model):
    """
    Immutable record of a status change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new transitions
    - Rows go away only with their slab (reset flows)
    """

    slab = models.ForeignKey(
        'slabman.Slab',
        on_delete=models.CASCADE,
        related_name='transitions',
        verbose_name=_('Slab'),
    )
    from_status = models.CharField(
        max_length=20,
        choices=SlabStatus.choices,
        verbose_name=_('From'),
    )
    to_status = models.CharField(
        max_length=20,
        choices=SlabStatus.choices,
        verbose_name=_('To'),
    )
    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Timestamp'))
    reason = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Reason'))
    actor = models.CharField(max_length=150, blank=True, default='', verbose_name=_('Actor'))

    # Set when the change came from a batch run
    batch_id = models.CharField(max_length=64, blank=True, default='', db_index=True, verbose_name=_('Batch'))

    class Meta:
        verbose_name = _('Transition')
        verbose_name_plural = _('Transitions')
        ordering = ['timestamp', 'pk']
        indexes = [
            models.Index(fields=['slab', 'timestamp'], name='slabman_sla_slab_id_8d2f4b_idx'),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError(
                "Transitions are immutable. "
                "Record a new transition instead."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Transitions are immutable.")

    def as_record(self):
        from slabman.protocols.store import TransitionRecord

        return TransitionRecord(
            from_status=SlabStatus(self.from_status),
            to_status=SlabStatus(self.to_status),
            timestamp=self.timestamp,
            reason=self.reason or None,
            actor=self.actor or None,
        )

    def __str__(self) -> str:
        return f"{self.from_status} → {self.to_status} | {self.reason}"
