"""
Slab Workflow Service — single-slab status changes for interactive callers.

Usage:
    from slabman import SlabWorkflow, SlabError

    workflow = SlabWorkflow()
    check = workflow.preflight(slab_id, SlabStatus.CONSUMED)
    if not check.valid:
        show(check.error)
    outcome = workflow.transition(slab_id, SlabStatus.CONSUMED,
                                  consumed_date=now, reason="Kitchen job 42")

Bulk changes go through slabman.services.batch.BatchOrchestrator instead.
"""

import logging

from slabman.adapters.loader import get_slab_store, get_transition_log
from slabman.exceptions import SlabError
from slabman.models.enums import SlabStatus
from slabman.protocols.store import SlabRecord, SlabStore, TransitionLog, TransitionRecord
from slabman.services.lifecycle import Lifecycle, TransitionOutcome, ValidationResult

logger = logging.getLogger('slabman')


class SlabWorkflow:
    """
    Store-aware wrapper around Lifecycle for one slab at a time.

    Parameter convention: (slab_id, to_status, ..., **context)
    where context holds the fields that come with the change
    (received_date, consumed_date, job_id, notes, ...).
    """

    def __init__(self, store: SlabStore | None = None,
                 transition_log: TransitionLog | None = None):
        self.store = store if store is not None else get_slab_store()
        self.transition_log = transition_log if transition_log is not None else get_transition_log()

    def get(self, slab_id: str) -> SlabRecord:
        """
        Raises:
            SlabError('SLAB_NOT_FOUND')
        """
        slab = self.store.get_by_id(slab_id)
        if slab is None:
            raise SlabError('SLAB_NOT_FOUND', f"slab not found: {slab_id}", slab_id=slab_id)
        return slab

    def next_statuses(self, slab_id: str) -> list[SlabStatus]:
        return Lifecycle.valid_transitions(self.get(slab_id).status)

    def preflight(self, slab_id: str, to_status, **context) -> ValidationResult:
        """Check a change before applying it. Never raises for rule failures."""
        return Lifecycle.validate_transition(self.get(slab_id), to_status, context)

    def transition(self, slab_id: str, to_status, reason: str | None = None,
                   actor: str | None = None, **context) -> TransitionOutcome:
        """
        Apply a status change and persist it.

        1. Loads the slab from the store
        2. Validates and applies the change (dates stamped when missing)
        3. Writes the slab back and records the transition

        Raises:
            SlabError('SLAB_NOT_FOUND'): unknown slab
            SlabError: validation code when the change is not allowed
        """
        slab = self.get(slab_id)
        outcome = Lifecycle.execute_transition(slab, to_status, context, reason=reason, actor=actor)

        self.store.upsert(outcome.slab)
        if self.transition_log is not None:
            self.transition_log.append(slab_id, outcome.transition)

        logger.info(
            "slab.transition.saved",
            extra={
                "slab_id": slab_id,
                "to": outcome.slab.status.value,
                "actor": actor,
            },
        )
        return outcome

    def history(self, slab_id: str) -> list[TransitionRecord]:
        """Transitions for the slab, oldest first (empty when history is disabled)."""
        if self.transition_log is None:
            return []
        return self.transition_log.history(slab_id)
