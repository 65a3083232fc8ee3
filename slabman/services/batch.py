"""
Batch operations — apply one change to many slabs with live progress.

Usage:
    from slabman.services.batch import BatchOrchestrator, StatusUpdate

    orchestrator = BatchOrchestrator(store)
    unsubscribe = orchestrator.subscribe(lambda ops: print(ops[-1].completed))

    run = orchestrator.execute(StatusUpdate("Move to stock", ids, SlabStatus.STOCK))
    result = run.result()

RUN LIFECYCLE:

    ┌─────────┐  all items attempted, failed == 0   ┌───────────┐
    │ RUNNING │ ──────────────────────────────────► │ COMPLETED │
    └─────────┘                                     └───────────┘
       │   │     all items attempted, failed > 0    ┌───────────┐
       │   └──────────────────────────────────────► │  FAILED   │
       │         (or orchestration error)           └───────────┘
       │  cancel()                                  ┌───────────┐
       └──────────────────────────────────────────► │ CANCELLED │
                                                    └───────────┘

Items run one at a time, in input order. A failing item is recorded and
counted; it never stops the run. Between items the run waits
BATCH_ITEM_DELAY_MS on its cancellation event: that is the only point where
cancel() is observed.
"""

import itertools
import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, ClassVar

from django.db import connections
from django.utils import timezone

from slabman.conf import slabman_settings
from slabman.exceptions import SlabError
from slabman.models.enums import BatchKind, BatchStatus, ExportFormat, SlabStatus
from slabman.protocols.store import SlabRecord, SlabStore, TransitionLog, TransitionRecord
from slabman.services.exports import export_slab, parse_format
from slabman.services.lifecycle import Lifecycle, stamp_dates

logger = logging.getLogger('slabman')


# ══════════════════════════════════════════════════════════════
# REQUESTS (one class per kind)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BatchRequest:
    """Common part of every batch request."""

    title: str
    target_ids: tuple[str, ...]

    kind: ClassVar[BatchKind]

    def __post_init__(self):
        object.__setattr__(self, 'target_ids', tuple(self.target_ids))


def _check_fields(fields: dict, forbidden: tuple[str, ...]) -> None:
    unknown = sorted(set(fields) - SlabRecord.field_names())
    if unknown:
        raise SlabError('INVALID_FIELD', f"unknown field: {', '.join(unknown)}", fields=unknown)
    blocked = sorted(set(fields) & set(forbidden))
    if blocked:
        raise SlabError(
            'INVALID_FIELD',
            f"field cannot be set by this operation: {', '.join(blocked)}",
            fields=blocked,
        )


@dataclass(frozen=True)
class StatusUpdate(BatchRequest):
    """
    Move every target to status.

    fields are merged onto each slab with the status (e.g. received_date).
    force=None follows BULK_VALIDATE_TRANSITIONS; force=True skips the
    lifecycle rules but still stamps received/consumed dates.
    """

    status: SlabStatus
    fields: dict[str, Any] = field(default_factory=dict)
    force: bool | None = None

    kind: ClassVar[BatchKind] = BatchKind.STATUS_UPDATE

    def __post_init__(self):
        super().__post_init__()
        try:
            object.__setattr__(self, 'status', SlabStatus(self.status))
        except ValueError:
            raise SlabError('INVALID_FIELD', f"unknown status: {self.status}") from None
        _check_fields(self.fields, ('id', 'status'))


@dataclass(frozen=True)
class BulkEdit(BatchRequest):
    """Shallow-merge fields onto every target. Status changes go through StatusUpdate."""

    fields: dict[str, Any]

    kind: ClassVar[BatchKind] = BatchKind.BULK_EDIT

    def __post_init__(self):
        super().__post_init__()
        _check_fields(self.fields, ('id', 'status'))


@dataclass(frozen=True)
class Allocation(BatchRequest):
    """Allocate every target to job_id."""

    job_id: str
    force: bool | None = None

    kind: ClassVar[BatchKind] = BatchKind.ALLOCATION


@dataclass(frozen=True)
class Export(BatchRequest):
    """Serialize every target; the store is not written."""

    format: ExportFormat
    include_images: bool = False
    include_history: bool = False

    kind: ClassVar[BatchKind] = BatchKind.EXPORT

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, 'format', parse_format(self.format))


@dataclass(frozen=True)
class Import(BatchRequest):
    """Not implemented: every item fails."""

    raw: str = ""

    kind: ClassVar[BatchKind] = BatchKind.IMPORT


# ══════════════════════════════════════════════════════════════
# TRACKING
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BatchOperation:
    """
    Snapshot of one batch run.

    The orchestrator replaces the snapshot on every change; holders of an
    older snapshot keep seeing the old values.
    """

    id: str
    kind: BatchKind
    title: str
    target_ids: tuple[str, ...]
    started_at: datetime
    status: BatchStatus = BatchStatus.RUNNING
    completed: int = 0
    failed: int = 0
    ended_at: datetime | None = None
    errors: tuple[str, ...] = ()

    @property
    def total(self) -> int:
        return len(self.target_ids)

    @property
    def is_running(self) -> bool:
        return self.status == BatchStatus.RUNNING

    @property
    def progress(self) -> float:
        """Completed share of the run, 0-100."""
        return self.completed / self.total * 100 if self.total else 0.0

    @property
    def duration_sec(self) -> float:
        end = self.ended_at or timezone.now()
        return round((end - self.started_at).total_seconds(), 2)


@dataclass
class BatchResult:
    """
    What execute()/run() hand back when a run ends.

    success is failed == 0, also for cancelled runs (status tells them
    apart); an aborted run is never successful.
    """

    operation_id: str
    status: BatchStatus
    success: bool
    completed: int
    failed: int
    errors: list[str] = field(default_factory=list)
    results: list[Any] = field(default_factory=list)


@dataclass
class BatchRun:
    """Handle to a run started with execute()."""

    operation_id: str
    future: Future
    orchestrator: 'BatchOrchestrator'

    def result(self, timeout: float | None = None) -> BatchResult:
        return self.future.result(timeout)

    def done(self) -> bool:
        return self.future.done()

    def cancel(self) -> bool:
        return self.orchestrator.cancel(self.operation_id)


def _error_message(exc: Exception) -> str:
    if isinstance(exc, SlabError):
        return exc.message
    return str(exc) or type(exc).__name__


# ══════════════════════════════════════════════════════════════
# ORCHESTRATOR
# ══════════════════════════════════════════════════════════════

class BatchOrchestrator:
    """
    Runs batch requests against a slab store and tracks their progress.

    One instance per owner (request cycle, command, app); there is no
    module-level instance. Every tracked operation stays listed until
    dismiss() so callers can show the final summary.

    Concurrency:
        - execute() runs each request on a worker thread (BATCH_MAX_WORKERS)
        - run() executes in the calling thread
        - tracking state is guarded by one lock; subscribers are called
          outside it, each with its own copy of the snapshot list
    """

    # Request class → handler. Every BatchKind must have exactly one entry.
    HANDLERS: ClassVar[dict[type, str]] = {
        StatusUpdate: '_apply_status_update',
        BulkEdit: '_apply_bulk_edit',
        Allocation: '_apply_allocation',
        Export: '_apply_export',
        Import: '_apply_import',
    }

    def __init__(self, store: SlabStore, transition_log: TransitionLog | None = None,
                 item_delay: float | None = None, max_workers: int | None = None,
                 validate_transitions: bool | None = None):
        """
        Args:
            store: Record store read and written per item
            transition_log: Where status changes are recorded (None = nowhere)
            item_delay: Seconds between items (None = BATCH_ITEM_DELAY_MS)
            max_workers: Concurrent runs for execute() (None = BATCH_MAX_WORKERS)
            validate_transitions: Bulk status rule checks (None = BULK_VALIDATE_TRANSITIONS)
        """
        self.store = store
        self.transition_log = transition_log
        self.item_delay = (
            slabman_settings.BATCH_ITEM_DELAY_MS / 1000 if item_delay is None else item_delay
        )
        self.validate_transitions = (
            slabman_settings.BULK_VALIDATE_TRANSITIONS
            if validate_transitions is None else validate_transitions
        )
        self._max_workers = max_workers or slabman_settings.BATCH_MAX_WORKERS
        self._executor: ThreadPoolExecutor | None = None

        self._lock = threading.RLock()
        self._operations: dict[str, BatchOperation] = {}
        self._cancel_events: dict[str, threading.Event] = {}
        self._subscribers: dict[int, Callable[[list[BatchOperation]], Any]] = {}
        self._tokens = itertools.count()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.shutdown()

    # ── subscribers ──────────────────────────────────────────────

    def subscribe(self, callback: Callable[[list[BatchOperation]], Any]) -> Callable[[], None]:
        """
        Call callback with every tracked operation whenever one changes.

        Returns:
            Function that removes the subscription (safe to call twice)
        """
        with self._lock:
            token = next(self._tokens)
            self._subscribers[token] = callback

        def unsubscribe():
            with self._lock:
                self._subscribers.pop(token, None)

        return unsubscribe

    def _notify(self) -> None:
        with self._lock:
            snapshot = list(self._operations.values())
            subscribers = list(self._subscribers.values())

        for callback in subscribers:
            try:
                callback(list(snapshot))
            except Exception:
                logger.exception(
                    "slab.batch.subscriber_failed",
                    extra={"subscriber": repr(callback)},
                )

    # ── queries ──────────────────────────────────────────────────

    def list(self) -> list[BatchOperation]:
        with self._lock:
            return list(self._operations.values())

    def get(self, operation_id: str) -> BatchOperation:
        with self._lock:
            try:
                return self._operations[operation_id]
            except KeyError:
                raise SlabError('OPERATION_NOT_FOUND', operation_id=operation_id) from None

    # ── control ──────────────────────────────────────────────────

    def execute(self, request: BatchRequest) -> BatchRun:
        """
        Start request on a worker thread.

        The operation is tracked (and subscribers notified) before this
        returns, so the handle's operation_id can be cancelled right away.
        """
        operation = self._open(request)
        future = self._pool().submit(self._process_in_worker, operation, request)
        return BatchRun(operation_id=operation.id, future=future, orchestrator=self)

    def run(self, request: BatchRequest) -> BatchResult:
        """Execute request in the calling thread and return its result."""
        operation = self._open(request)
        return self._process(operation, request)

    def cancel(self, operation_id: str) -> bool:
        """
        Stop a running operation at its next yield point.

        Returns:
            True if the operation was running, False if it had already ended

        Raises:
            SlabError('OPERATION_NOT_FOUND'): unknown id
        """
        with self._lock:
            operation = self.get(operation_id)
            if not operation.is_running:
                return False
            self._operations[operation_id] = replace(
                operation,
                status=BatchStatus.CANCELLED,
                ended_at=timezone.now(),
            )
            event = self._cancel_events.get(operation_id)

        if event is not None:
            event.set()
        logger.info(
            "slab.batch.cancelled",
            extra={
                "operation_id": operation_id,
                "completed": operation.completed,
                "failed": operation.failed,
            },
        )
        self._notify()
        return True

    def dismiss(self, operation_id: str) -> None:
        """
        Stop tracking a finished operation.

        Raises:
            SlabError('OPERATION_RUNNING'): operation has not ended
            SlabError('OPERATION_NOT_FOUND'): unknown id
        """
        with self._lock:
            operation = self.get(operation_id)
            if operation.is_running:
                raise SlabError('OPERATION_RUNNING', operation_id=operation_id)
            del self._operations[operation_id]

        logger.info("slab.batch.dismissed", extra={"operation_id": operation_id})
        self._notify()

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    # ── run loop ─────────────────────────────────────────────────

    def _pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix='slabman-batch',
                )
            return self._executor

    def _open(self, request: BatchRequest) -> BatchOperation:
        if type(request) not in self.HANDLERS:
            raise SlabError(
                'UNKNOWN_OPERATION',
                f"Unknown operation type: {type(request).__name__}",
            )

        operation = BatchOperation(
            id=f"batch-{uuid.uuid4().hex[:12]}",
            kind=request.kind,
            title=request.title,
            target_ids=request.target_ids,
            started_at=timezone.now(),
        )
        with self._lock:
            self._operations[operation.id] = operation
            self._cancel_events[operation.id] = threading.Event()

        logger.info(
            "slab.batch.started",
            extra={
                "operation_id": operation.id,
                "kind": operation.kind.value,
                "total": operation.total,
            },
        )
        self._notify()
        return operation

    def _process_in_worker(self, operation: BatchOperation, request: BatchRequest) -> BatchResult:
        try:
            return self._process(operation, request)
        finally:
            connections.close_all()

    def _process(self, operation: BatchOperation, request: BatchRequest) -> BatchResult:
        """
        Run every item of request.

        last holds the newest snapshot this run wrote, so the result can
        still be built after the operation was dismissed.
        """
        operation_id = operation.id
        handler = getattr(self, self.HANDLERS[type(request)])
        cancelled = self._cancel_events[operation_id]
        last = operation
        results = []

        try:
            for slab_id in request.target_ids:
                if cancelled.is_set():
                    break

                try:
                    result = handler(operation_id, slab_id, request)
                except Exception as e:
                    message = f"Item {slab_id}: {_error_message(e)}"
                    logger.warning(
                        "slab.batch.item_failed",
                        extra={"operation_id": operation_id, "slab_id": slab_id, "error": message},
                    )
                    last = self._advance(operation_id, error=message) or last
                else:
                    counted = self._advance(operation_id)
                    if counted is not None:
                        last = counted
                        results.append(result)

                # Yield point: delay between items, wakes early on cancel()
                if cancelled.wait(self.item_delay):
                    break
        except Exception as e:
            return self._abort(last, e, results)
        finally:
            with self._lock:
                self._cancel_events.pop(operation_id, None)

        return self._finish(last, results)

    def _advance(self, operation_id: str, error: str | None = None) -> BatchOperation | None:
        """
        Count one attempted item.

        Returns:
            The new snapshot, or None if the operation already ended
            (cancelled while the item was in flight); the item is then
            not counted.
        """
        with self._lock:
            operation = self._operations.get(operation_id)
            if operation is None or not operation.is_running:
                logger.info(
                    "slab.batch.item_discarded",
                    extra={"operation_id": operation_id},
                )
                return None
            if error is None:
                operation = replace(operation, completed=operation.completed + 1)
            else:
                operation = replace(
                    operation,
                    failed=operation.failed + 1,
                    errors=(*operation.errors, error),
                )
            self._operations[operation_id] = operation

        self._notify()
        return operation

    def _close(self, last: BatchOperation, **changes) -> BatchOperation:
        """
        Apply the end-of-run changes to a still-running operation.

        A dismissed operation is never tracked again. Dismissal needs an
        ended operation and only cancel() ends a run from outside, so a
        missing entry that this run last saw running was cancelled.
        """
        with self._lock:
            operation = self._operations.get(last.id)
            if operation is None:
                if last.is_running:
                    return replace(last, status=BatchStatus.CANCELLED, ended_at=timezone.now())
                return last
            if operation.is_running:
                operation = replace(operation, ended_at=timezone.now(), **changes)
                self._operations[last.id] = operation
            return operation

    def _finish(self, last: BatchOperation, results: list) -> BatchResult:
        with self._lock:
            current = self._operations.get(last.id, last)
            status = BatchStatus.FAILED if current.failed else BatchStatus.COMPLETED
            operation = self._close(last, status=status)

        logger.info(
            "slab.batch.finished",
            extra={
                "operation_id": operation.id,
                "status": operation.status.value,
                "completed": operation.completed,
                "failed": operation.failed,
                "total": operation.total,
            },
        )
        self._notify()
        return BatchResult(
            operation_id=operation.id,
            status=operation.status,
            success=operation.failed == 0,
            completed=operation.completed,
            failed=operation.failed,
            errors=list(operation.errors),
            results=results,
        )

    def _abort(self, last: BatchOperation, exc: Exception, results: list) -> BatchResult:
        """Orchestration failure: mark FAILED, keep counters, replace errors."""
        logger.exception("slab.batch.aborted", extra={"operation_id": last.id})
        message = f"Batch aborted: {_error_message(exc)}"

        operation = self._close(last, status=BatchStatus.FAILED, errors=(message,))

        self._notify()
        return BatchResult(
            operation_id=operation.id,
            status=operation.status,
            success=False,
            completed=operation.completed,
            failed=operation.failed,
            errors=list(operation.errors),
            results=results,
        )

    # ── per-item handlers ────────────────────────────────────────

    def _load(self, slab_id: str) -> SlabRecord:
        slab = self.store.get_by_id(slab_id)
        if slab is None:
            raise SlabError('SLAB_NOT_FOUND', f"slab not found: {slab_id}", slab_id=slab_id)
        return slab

    def _change_status(self, operation_id: str, slab: SlabRecord, to_status: SlabStatus,
                       changes: dict, force: bool | None, reason: str) -> SlabRecord:
        if force is None:
            force = not self.validate_transitions

        if force:
            now = timezone.now()
            updated = stamp_dates(slab.merge(**{**changes, 'status': to_status}), now)
            transition = TransitionRecord(
                from_status=slab.status,
                to_status=to_status,
                timestamp=now,
                reason=reason,
            )
        else:
            outcome = Lifecycle.execute_transition(slab, to_status, changes, reason=reason)
            updated, transition = outcome.slab, outcome.transition

        self.store.upsert(updated)
        if self.transition_log is not None:
            self.transition_log.append(slab.id, transition, batch_id=operation_id)
        return updated

    def _apply_status_update(self, operation_id: str, slab_id: str,
                             request: StatusUpdate) -> SlabRecord:
        slab = self._load(slab_id)
        return self._change_status(
            operation_id, slab, request.status, dict(request.fields), request.force, request.title,
        )

    def _apply_bulk_edit(self, operation_id: str, slab_id: str, request: BulkEdit) -> SlabRecord:
        updated = self._load(slab_id).merge(**request.fields)
        self.store.upsert(updated)
        return updated

    def _apply_allocation(self, operation_id: str, slab_id: str, request: Allocation) -> SlabRecord:
        slab = self._load(slab_id)
        return self._change_status(
            operation_id, slab, SlabStatus.ALLOCATED, {'job_id': request.job_id},
            request.force, request.title,
        )

    def _apply_export(self, operation_id: str, slab_id: str, request: Export) -> str:
        return export_slab(self._load(slab_id), request.format)

    def _apply_import(self, operation_id: str, slab_id: str, request: Import):
        raise SlabError('NOT_IMPLEMENTED', 'import not implemented')
