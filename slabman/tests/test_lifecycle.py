"""
Tests for the slab lifecycle rules.
"""

import itertools

import pytest

from slabman.exceptions import SlabError
from slabman.models import SlabStatus, SlabType
from slabman.services.lifecycle import (
    JOB_WARNING,
    REMNANT_WARNING,
    TRANSITIONS,
    Lifecycle,
    stamp_dates,
)


ALLOWED = {
    (SlabStatus.WANTED, SlabStatus.ORDERED),
    (SlabStatus.ORDERED, SlabStatus.RECEIVED),
    (SlabStatus.ORDERED, SlabStatus.WANTED),
    (SlabStatus.RECEIVED, SlabStatus.STOCK),
    (SlabStatus.RECEIVED, SlabStatus.ALLOCATED),
    (SlabStatus.STOCK, SlabStatus.ALLOCATED),
    (SlabStatus.STOCK, SlabStatus.REMNANT),
    (SlabStatus.ALLOCATED, SlabStatus.CONSUMED),
    (SlabStatus.ALLOCATED, SlabStatus.STOCK),
    (SlabStatus.CONSUMED, SlabStatus.REMNANT),
}


class TestTransitionGraph:
    """Tests for is_transition_allowed() and valid_transitions()."""

    def test_graph_matches_adjacency(self):
        """The transition table holds exactly the allowed pairs."""
        pairs = {(src, dst) for src, targets in TRANSITIONS.items() for dst in targets}
        assert pairs == ALLOWED

    @pytest.mark.parametrize('src,dst', sorted(ALLOWED))
    def test_allowed_pairs(self, src, dst):
        """Every pair in the table is allowed."""
        assert Lifecycle.is_transition_allowed(src, dst)

    def test_every_other_pair_is_rejected(self, make_slab):
        """Pairs outside the table are refused, including self-transitions."""
        for src, dst in itertools.product(SlabStatus, repeat=2):
            if (src, dst) in ALLOWED:
                continue
            assert not Lifecycle.is_transition_allowed(src, dst)
            result = Lifecycle.validate_transition(make_slab(src), dst)
            assert not result.valid
            assert result.code == 'INVALID_TRANSITION'
            assert result.error == f"cannot transition from {src.value} to {dst.value}"

    def test_remnant_is_terminal(self):
        """REMNANT has no way out."""
        assert Lifecycle.valid_transitions(SlabStatus.REMNANT) == []

    def test_valid_transitions_keeps_order(self):
        """Targets are listed in table order."""
        assert Lifecycle.valid_transitions(SlabStatus.ORDERED) == [
            SlabStatus.RECEIVED, SlabStatus.WANTED,
        ]

    def test_accepts_plain_strings(self):
        """Status values work as well as members."""
        assert Lifecycle.is_transition_allowed('STOCK', 'ALLOCATED')
        assert Lifecycle.valid_transitions('WANTED') == [SlabStatus.ORDERED]


class TestValidateTransition:
    """Tests for the entry rules of validate_transition()."""

    def test_received_requires_date(self, make_slab):
        """Entering RECEIVED needs a received date."""
        result = Lifecycle.validate_transition(make_slab(SlabStatus.ORDERED), SlabStatus.RECEIVED)

        assert not result.valid
        assert result.code == 'RECEIVED_DATE_REQUIRED'
        assert result.error == 'received date is required'

    def test_received_date_from_context(self, make_slab, now):
        """A date in the context satisfies the rule."""
        result = Lifecycle.validate_transition(
            make_slab(SlabStatus.ORDERED), SlabStatus.RECEIVED, {'received_date': now},
        )
        assert result.valid
        assert result.warnings == ()

    def test_received_date_from_slab(self, make_slab, now):
        """A date already on the slab satisfies the rule."""
        slab = make_slab(SlabStatus.ORDERED, received_date=now)
        assert Lifecycle.validate_transition(slab, SlabStatus.RECEIVED).valid

    def test_empty_context_value_counts_as_missing(self, make_slab):
        """None in the context is the same as no value."""
        result = Lifecycle.validate_transition(
            make_slab(SlabStatus.ORDERED), SlabStatus.RECEIVED, {'received_date': None},
        )
        assert not result.valid

    def test_allocated_without_job_warns(self, make_slab):
        """Allocating without a job is allowed with a warning."""
        result = Lifecycle.validate_transition(make_slab(SlabStatus.STOCK), SlabStatus.ALLOCATED)

        assert result.valid
        assert result.warnings == (JOB_WARNING,)

    def test_allocated_with_job_has_no_warning(self, make_slab):
        """A job reference silences the warning."""
        result = Lifecycle.validate_transition(
            make_slab(SlabStatus.STOCK), SlabStatus.ALLOCATED, {'job_id': 'JOB-1'},
        )
        assert result.valid
        assert result.warnings == ()

    def test_consumed_requires_date_even_with_job(self, make_slab):
        """Entering CONSUMED needs a consumed date."""
        slab = make_slab(SlabStatus.ALLOCATED, job_id='JOB-1')
        result = Lifecycle.validate_transition(slab, SlabStatus.CONSUMED)

        assert not result.valid
        assert result.code == 'CONSUMED_DATE_REQUIRED'
        assert result.error == 'consumed date is required'

    def test_consumed_without_job_has_one_warning(self, make_slab, now):
        """Consuming without a job warns exactly once."""
        result = Lifecycle.validate_transition(
            make_slab(SlabStatus.ALLOCATED), SlabStatus.CONSUMED, {'consumed_date': now},
        )
        assert result.valid
        assert result.warnings == (JOB_WARNING,)

    def test_remnant_type_warns(self, make_slab):
        """Remnant-type slabs warn when moved to REMNANT."""
        slab = make_slab(SlabStatus.STOCK, slab_type=SlabType.REMNANT)
        result = Lifecycle.validate_transition(slab, SlabStatus.REMNANT)

        assert result.valid
        assert result.warnings == (REMNANT_WARNING,)

    def test_illegal_transition_skips_gates(self, make_slab):
        """An illegal move reports the graph error, not a missing date."""
        result = Lifecycle.validate_transition(make_slab(SlabStatus.WANTED), SlabStatus.CONSUMED)
        assert result.code == 'INVALID_TRANSITION'


class TestExecuteTransition:
    """Tests for execute_transition()."""

    def test_other_targets_leave_dates_alone(self, make_slab):
        """Dates are only stamped when entering their status."""
        slab = make_slab(SlabStatus.RECEIVED)
        outcome = Lifecycle.execute_transition(slab, SlabStatus.STOCK)

        assert outcome.slab.status == SlabStatus.STOCK
        assert outcome.slab.received_date is None
        assert outcome.slab.consumed_date is None

    def test_keeps_explicit_received_date(self, make_slab, last_week):
        """The context date is used as given."""
        slab = make_slab(SlabStatus.ORDERED)
        outcome = Lifecycle.execute_transition(
            slab, SlabStatus.RECEIVED, {'received_date': last_week},
        )
        assert outcome.slab.status == SlabStatus.RECEIVED
        assert outcome.slab.received_date == last_week

    def test_never_overwrites_existing_date(self, make_slab, last_week):
        """An existing received date is kept."""
        slab = make_slab(SlabStatus.ORDERED, received_date=last_week)
        outcome = Lifecycle.execute_transition(slab, SlabStatus.RECEIVED)
        assert outcome.slab.received_date == last_week

    def test_keeps_consumed_date(self, make_slab, last_week):
        """The context consumed date is used as given."""
        slab = make_slab(SlabStatus.ALLOCATED, job_id='JOB-7')
        outcome = Lifecycle.execute_transition(
            slab, SlabStatus.CONSUMED, {'consumed_date': last_week},
        )
        assert outcome.slab.consumed_date == last_week
        assert outcome.warnings == ()

    def test_merges_context_onto_copy(self, make_slab):
        """Context fields land on a new record; the input is unchanged."""
        slab = make_slab(SlabStatus.STOCK)
        outcome = Lifecycle.execute_transition(
            slab, SlabStatus.ALLOCATED, {'job_id': 'JOB-9', 'notes': 'Island top'},
        )

        assert outcome.slab.job_id == 'JOB-9'
        assert outcome.slab.notes == 'Island top'
        assert outcome.slab.id == slab.id
        # Original untouched
        assert slab.status == SlabStatus.STOCK
        assert slab.job_id is None

    def test_transition_record(self, make_slab):
        """The transition carries both statuses, reason and actor."""
        slab = make_slab(SlabStatus.STOCK)
        outcome = Lifecycle.execute_transition(
            slab, SlabStatus.REMNANT, reason='Offcut', actor='ana',
        )

        transition = outcome.transition
        assert transition.from_status == SlabStatus.STOCK
        assert transition.to_status == SlabStatus.REMNANT
        assert transition.reason == 'Offcut'
        assert transition.actor == 'ana'
        assert transition.timestamp is not None

    def test_invalid_raises_with_code(self, make_slab):
        """Executing an invalid transition raises the validation code."""
        with pytest.raises(SlabError) as exc:
            Lifecycle.execute_transition(make_slab(SlabStatus.ORDERED), SlabStatus.RECEIVED)

        assert exc.value.code == 'RECEIVED_DATE_REQUIRED'
        assert exc.value.data['slab_id'] == 'slab-1'

    def test_illegal_raises(self, make_slab):
        """Illegal moves raise INVALID_TRANSITION."""
        with pytest.raises(SlabError) as exc:
            Lifecycle.execute_transition(make_slab(SlabStatus.REMNANT), SlabStatus.STOCK)

        assert exc.value.code == 'INVALID_TRANSITION'
        assert exc.value.message == 'cannot transition from REMNANT to STOCK'

    def test_unknown_context_field_rejected(self, make_slab):
        """Context keys must be slab fields."""
        with pytest.raises(SlabError) as exc:
            Lifecycle.execute_transition(
                make_slab(SlabStatus.STOCK), SlabStatus.ALLOCATED, {'colour': 'red'},
            )
        assert exc.value.code == 'INVALID_FIELD'


class TestStampDates:
    """Tests for stamp_dates()."""

    def test_stamps_missing_received_date(self, make_slab, now):
        """RECEIVED without a date gets now."""
        slab = stamp_dates(make_slab(SlabStatus.RECEIVED), now)
        assert slab.received_date == now

    def test_stamps_missing_consumed_date(self, make_slab, now):
        """CONSUMED without a date gets now."""
        slab = stamp_dates(make_slab(SlabStatus.CONSUMED), now)
        assert slab.consumed_date == now
        assert slab.received_date is None

    def test_keeps_existing_dates(self, make_slab, now, last_week):
        """Existing dates are never replaced."""
        slab = make_slab(SlabStatus.CONSUMED, consumed_date=last_week)
        assert stamp_dates(slab, now) is slab

    def test_ignores_other_statuses(self, make_slab, now):
        """Other statuses come back unchanged."""
        slab = make_slab(SlabStatus.STOCK)
        assert stamp_dates(slab, now) is slab


class TestDisplayTables:
    """Tests for progress_percent(), step_index() and metadata."""

    def test_progress(self):
        """Progress climbs in steps of 20."""
        assert [Lifecycle.progress_percent(s) for s in SlabStatus] == [0, 20, 40, 60, 80, 100, 100]

    def test_step_index(self):
        """Step index follows lifecycle order."""
        assert [Lifecycle.step_index(s) for s in SlabStatus] == [0, 1, 2, 3, 4, 5, 5]

    def test_consumed_and_remnant_share_terminal_step(self):
        """Both ends of the used branch display as done."""
        assert Lifecycle.step_index(SlabStatus.CONSUMED) == Lifecycle.step_index(SlabStatus.REMNANT)
        assert Lifecycle.progress_percent(SlabStatus.REMNANT) == 100

    def test_only_consumed_is_destructive(self):
        """Only CONSUMED needs confirmation."""
        destructive = [s for s in SlabStatus if Lifecycle.status_info(s).is_destructive]
        confirm = [s for s in SlabStatus if Lifecycle.status_info(s).requires_confirmation]
        assert destructive == [SlabStatus.CONSUMED]
        assert confirm == [SlabStatus.CONSUMED]

    def test_workflow_steps(self):
        """Workflow steps run WANTED through CONSUMED."""
        steps = Lifecycle.workflow_steps()
        assert [s for s, _, _ in steps] == list(SlabStatus)[:6]
        assert steps[3][1] == 'In Stock'

    def test_groups(self):
        """Every status belongs to one group."""
        assert Lifecycle.group_of(SlabStatus.ORDERED) == 'pending'
        assert Lifecycle.group_of(SlabStatus.ALLOCATED) == 'active'
        assert Lifecycle.group_of(SlabStatus.REMNANT) == 'inactive'
