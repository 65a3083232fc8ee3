"""
Slabman Models.

Core models for slab tracking:
- Slab: A physical slab and its lifecycle status
- SlabTransition: Immutable ledger of status changes
"""

from slabman.models.enums import BatchKind, BatchStatus, ExportFormat, SlabStatus, SlabType
from slabman.models.slab import Slab
from slabman.models.transition import SlabTransition

__all__ = [
    'SlabStatus',
    'SlabType',
    'BatchKind',
    'BatchStatus',
    'ExportFormat',
    'Slab',
    'SlabTransition',
]
