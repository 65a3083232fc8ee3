"""
Tests for the ORM-backed store, transition log and models.
"""

from decimal import Decimal

import pytest
from django.utils import timezone

from slabman.adapters import get_slab_store, get_transition_log
from slabman.adapters.orm import OrmSlabStore, OrmTransitionLog
from slabman.models import BatchStatus, Slab, SlabStatus, SlabTransition
from slabman.protocols.store import SlabStore, TransitionLog, TransitionRecord
from slabman.services.batch import Allocation, BatchOrchestrator, StatusUpdate


pytestmark = pytest.mark.django_db


class TestOrmSlabStore:
    """Tests for OrmSlabStore."""

    def test_satisfies_protocol(self):
        """ORM adapters implement the protocols."""
        assert isinstance(OrmSlabStore(), SlabStore)
        assert isinstance(OrmTransitionLog(), TransitionLog)

    def test_loader_builds_configured_backends(self):
        """The loader builds and caches the configured backends."""
        assert isinstance(get_slab_store(), OrmSlabStore)
        assert isinstance(get_transition_log(), OrmTransitionLog)
        assert get_slab_store() is get_slab_store()

    def test_get_missing(self):
        """Unknown ids return None."""
        assert OrmSlabStore().get_by_id('slab-nope') is None

    def test_round_trip(self, db_slab):
        """Rows come back as SlabRecords with typed values."""
        record = OrmSlabStore().get_by_id(db_slab.pk)

        assert record.id == 'slab-db-1'
        assert record.status == SlabStatus.STOCK
        assert record.cost == Decimal('1200.00')
        assert record.received_date == db_slab.received_date

    def test_upsert_creates(self, make_slab):
        """Upserting a new id creates the row."""
        store = OrmSlabStore()
        record = make_slab(SlabStatus.ORDERED, id='slab-new')
        store.upsert(record)

        slab = Slab.objects.get(pk='slab-new')
        assert slab.status == SlabStatus.ORDERED
        assert slab.material == 'Granite'
        assert store.get_by_id('slab-new') == record

    def test_upsert_updates(self, db_slab):
        """Upserting an existing id updates the row in place."""
        store = OrmSlabStore()
        record = store.get_by_id(db_slab.pk)
        store.upsert(record.merge(location='Yard', job_id='JOB-8'))

        db_slab.refresh_from_db()
        assert db_slab.location == 'Yard'
        assert db_slab.job_id == 'JOB-8'
        assert Slab.objects.count() == 1

    def test_get_all_and_clear(self, db_slab, make_slab):
        """get_all() lists every slab; clear() removes them."""
        store = OrmSlabStore()
        store.upsert(make_slab())

        assert {r.id for r in store.get_all()} == {'slab-db-1', 'slab-1'}
        store.clear()
        assert store.get_all() == []


class TestQuerySet:
    """Tests for SlabQuerySet filters."""

    def test_filters(self, db_slab):
        """QuerySet shortcuts filter by status and job."""
        Slab.objects.create(id='slab-w', serial_number='W', material='Marble')
        Slab.objects.create(id='slab-a', serial_number='A', material='Marble',
                            status=SlabStatus.ALLOCATED, job_id='JOB-1')

        assert list(Slab.objects.available()) == [db_slab]
        assert [s.pk for s in Slab.objects.for_job('JOB-1')] == ['slab-a']
        assert Slab.objects.in_status(SlabStatus.WANTED).count() == 1

    def test_generated_id(self):
        """Slabs get a slab- prefixed id by default."""
        slab = Slab.objects.create(serial_number='G-1', material='Onyx')
        assert slab.pk.startswith('slab-')
        assert not slab.is_terminal


class TestSlabTransition:
    """Tests for the transition ledger."""

    def test_append_and_history(self, db_slab):
        """History is returned oldest first."""
        log = OrmTransitionLog()
        first = TransitionRecord(SlabStatus.STOCK, SlabStatus.ALLOCATED, timezone.now(), reason='Job')
        second = TransitionRecord(SlabStatus.ALLOCATED, SlabStatus.STOCK, timezone.now(), actor='ana')

        log.append(db_slab.pk, first, batch_id='batch-1')
        log.append(db_slab.pk, second)

        assert log.history(db_slab.pk) == [first, second]
        assert list(SlabTransition.objects.values_list('batch_id', flat=True)) == ['batch-1', '']

    def test_cannot_update(self, db_slab):
        """Saved transitions cannot be changed."""
        row = SlabTransition.objects.create(
            slab=db_slab, from_status=SlabStatus.STOCK, to_status=SlabStatus.ALLOCATED,
        )
        row.reason = 'rewritten'
        with pytest.raises(ValueError, match='immutable'):
            row.save()

    def test_cannot_delete(self, db_slab):
        """Transitions cannot be deleted one by one."""
        row = SlabTransition.objects.create(
            slab=db_slab, from_status=SlabStatus.STOCK, to_status=SlabStatus.ALLOCATED,
        )
        with pytest.raises(ValueError):
            row.delete()

    def test_removed_with_slab(self, db_slab):
        """Clearing the store removes the ledger with it."""
        SlabTransition.objects.create(
            slab=db_slab, from_status=SlabStatus.STOCK, to_status=SlabStatus.ALLOCATED,
        )
        OrmSlabStore().clear()
        assert SlabTransition.objects.count() == 0


class TestBatchOnOrm:
    """Batch runs against the database (in the calling thread)."""

    def test_allocation(self, db_slab):
        """Allocation updates rows and logs with the run id."""
        with BatchOrchestrator(OrmSlabStore(), OrmTransitionLog()) as orchestrator:
            result = orchestrator.run(
                Allocation('Allocate', [db_slab.pk, 'slab-missing'], job_id='JOB-42'),
            )

        assert result.status == BatchStatus.FAILED
        assert (result.completed, result.failed) == (1, 1)

        db_slab.refresh_from_db()
        assert db_slab.status == SlabStatus.ALLOCATED
        assert db_slab.job_id == 'JOB-42'

        transition = db_slab.transitions.get()
        assert transition.batch_id == result.operation_id
        assert transition.to_status == SlabStatus.ALLOCATED

    def test_status_update_validates(self, db_slab):
        """Illegal moves leave the row untouched."""
        with BatchOrchestrator(OrmSlabStore()) as orchestrator:
            result = orchestrator.run(StatusUpdate('Back', [db_slab.pk], SlabStatus.ORDERED))

        assert result.errors == ['Item slab-db-1: cannot transition from STOCK to ORDERED']
        db_slab.refresh_from_db()
        assert db_slab.status == SlabStatus.STOCK
