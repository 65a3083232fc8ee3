"""
Pytest fixtures for Slabman tests.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from slabman.adapters import MemorySlabStore, MemoryTransitionLog, reset_adapters
from slabman.models import Slab, SlabStatus, SlabType
from slabman.protocols.store import SlabRecord
from slabman.services.batch import BatchOrchestrator


@pytest.fixture(autouse=True)
def _fresh_adapters():
    """Adapters are cached per process; rebuild them from settings per test."""
    reset_adapters()
    yield
    reset_adapters()


@pytest.fixture
def now():
    return timezone.now()


@pytest.fixture
def last_week(now):
    return now - timedelta(days=7)


@pytest.fixture
def make_slab():
    """Build a SlabRecord with sensible defaults."""
    counter = iter(range(1, 10_000))

    def factory(status=SlabStatus.WANTED, **overrides):
        n = next(counter)
        values = {
            'id': f'slab-{n}',
            'serial_number': f'SN-{n:04d}',
            'material': 'Granite',
            'color': 'Black Galaxy',
            'thickness': 30,
            'length': 3200,
            'width': 1600,
            'supplier': 'Stone Co',
            'status': status,
            'slab_type': SlabType.FULL,
            'cost': Decimal('850.00'),
            'location': 'Rack A',
        }
        values.update(overrides)
        return SlabRecord(**values)

    return factory


@pytest.fixture
def store():
    return MemorySlabStore()


@pytest.fixture
def transition_log():
    return MemoryTransitionLog()


@pytest.fixture
def orchestrator(store, transition_log):
    """Orchestrator on the memory store, no delay between items."""
    orchestrator = BatchOrchestrator(store, transition_log=transition_log, item_delay=0)
    yield orchestrator
    orchestrator.shutdown()


@pytest.fixture
def received_slabs(store, make_slab, last_week):
    """Three slabs sitting in RECEIVED, stored."""
    slabs = [make_slab(SlabStatus.RECEIVED, received_date=last_week) for _ in range(3)]
    for slab in slabs:
        store.upsert(slab)
    store.writes.clear()
    return slabs


@pytest.fixture
def db_slab(db):
    """A persisted slab in STOCK."""
    return Slab.objects.create(
        id='slab-db-1',
        serial_number='SN-DB-1',
        material='Quartz',
        color='Calacatta',
        status=SlabStatus.STOCK,
        received_date=timezone.now() - timedelta(days=3),
        cost=Decimal('1200.00'),
    )
