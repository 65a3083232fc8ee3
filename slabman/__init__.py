"""
Django Slabman — Stone slab lifecycle and batch operations.

Usage:
    from slabman import Lifecycle, BatchOrchestrator, SlabStatus, get_slab_store
    from slabman.services.batch import Allocation

    Lifecycle.valid_transitions(SlabStatus.STOCK)  # [ALLOCATED, REMNANT]

    with BatchOrchestrator(get_slab_store()) as orchestrator:
        result = orchestrator.run(Allocation("Job 42", ids, job_id="42"))
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'SlabError':
        from slabman.exceptions import SlabError
        return SlabError
    elif name == 'Lifecycle':
        from slabman.services.lifecycle import Lifecycle
        return Lifecycle
    elif name == 'BatchOrchestrator':
        from slabman.services.batch import BatchOrchestrator
        return BatchOrchestrator
    elif name == 'SlabWorkflow':
        from slabman.service import SlabWorkflow
        return SlabWorkflow
    elif name == 'SlabRecord':
        from slabman.protocols.store import SlabRecord
        return SlabRecord
    elif name == 'SlabStatus':
        from slabman.models.enums import SlabStatus
        return SlabStatus
    elif name == 'SlabType':
        from slabman.models.enums import SlabType
        return SlabType
    elif name == 'Slab':
        from slabman.models.slab import Slab
        return Slab
    elif name == 'SlabTransition':
        from slabman.models.transition import SlabTransition
        return SlabTransition
    elif name == 'get_slab_store':
        from slabman.adapters.loader import get_slab_store
        return get_slab_store
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'SlabError',
    'Lifecycle',
    'BatchOrchestrator',
    'SlabWorkflow',
    'SlabRecord',
    'SlabStatus',
    'SlabType',
    'Slab',
    'SlabTransition',
    'get_slab_store',
]

__version__ = '0.1.0'
