"""
Slab services — modular organization of slab operations.

    from slabman.services import Lifecycle, BatchOrchestrator, StatusUpdate
"""

from slabman.services.batch import (
    Allocation,
    BatchOperation,
    BatchOrchestrator,
    BatchRequest,
    BatchResult,
    BatchRun,
    BulkEdit,
    Export,
    Import,
    StatusUpdate,
)
from slabman.services.exports import export_filename, export_slab, render_export
from slabman.services.lifecycle import Lifecycle, TransitionOutcome, ValidationResult

__all__ = [
    'Lifecycle',
    'ValidationResult',
    'TransitionOutcome',
    'BatchOrchestrator',
    'BatchOperation',
    'BatchRequest',
    'BatchResult',
    'BatchRun',
    'StatusUpdate',
    'BulkEdit',
    'Allocation',
    'Export',
    'Import',
    'export_slab',
    'render_export',
    'export_filename',
]
