"""
Enums for Slabman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class SlabStatus(models.TextChoices):
    """
    Lifecycle stage of a slab.

    WANTED → ORDERED → RECEIVED → STOCK → ALLOCATED → CONSUMED → REMNANT

    Declaration order is the lifecycle order. REMNANT is terminal.
    """
    WANTED = 'WANTED', _('Wanted')           # Needed, not yet ordered
    ORDERED = 'ORDERED', _('Ordered')        # Purchase order sent
    RECEIVED = 'RECEIVED', _('Received')     # Delivered and inspected
    STOCK = 'STOCK', _('In Stock')           # Available for allocation
    ALLOCATED = 'ALLOCATED', _('Allocated')  # Reserved for a job
    CONSUMED = 'CONSUMED', _('Consumed')     # Used in production
    REMNANT = 'REMNANT', _('Remnant')        # Leftover material


class SlabType(models.TextChoices):
    """Physical shape of a slab."""
    FULL = 'FULL', _('Full')
    REMNANT = 'REMNANT', _('Remnant')


class BatchKind(models.TextChoices):
    """What a batch operation does to each target slab."""
    STATUS_UPDATE = 'status_update', _('Status update')
    BULK_EDIT = 'bulk_edit', _('Bulk edit')
    ALLOCATION = 'allocation', _('Allocation')
    EXPORT = 'export', _('Export')
    IMPORT = 'import', _('Import')


class BatchStatus(models.TextChoices):
    """Run status of a batch operation. Everything but RUNNING is terminal."""
    RUNNING = 'running', _('Running')
    COMPLETED = 'completed', _('Completed')
    FAILED = 'failed', _('Failed')
    CANCELLED = 'cancelled', _('Cancelled')


class ExportFormat(models.TextChoices):
    CSV = 'csv', _('CSV')
    JSON = 'json', _('JSON')
    LABELS = 'labels', _('Labels')
