"""
Management command to run a batch operation against slabs.

Usage:
    python manage.py slab_batch status slab-1 slab-2 --status STOCK
    python manage.py slab_batch allocate slab-1 slab-2 --job JOB-42
    python manage.py slab_batch edit --all --set location=Rack-3 --set supplier=Acme
    python manage.py slab_batch export --all --format json --output slabs.json
"""

from decimal import Decimal, InvalidOperation

from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_datetime

from slabman.adapters.loader import get_slab_store, get_transition_log
from slabman.exceptions import SlabError
from slabman.models.enums import ExportFormat, SlabStatus
from slabman.services.batch import Allocation, BatchOrchestrator, BulkEdit, Export, Import, StatusUpdate
from slabman.services.exports import render_export

INT_FIELDS = {'thickness', 'length', 'width'}
DATE_FIELDS = {'received_date', 'consumed_date'}


def parse_assignment(text: str) -> tuple[str, object]:
    """Parse a --set argument ("field=value") into a typed pair."""
    name, sep, raw = text.partition('=')
    name = name.strip()
    if not sep or not name:
        raise CommandError(f"Invalid --set value '{text}' (expected field=value)")

    if raw == '':
        return name, None
    if name in INT_FIELDS:
        try:
            return name, int(raw)
        except ValueError:
            raise CommandError(f"{name} must be an integer, got '{raw}'") from None
    if name in DATE_FIELDS:
        value = parse_datetime(raw)
        if value is None:
            raise CommandError(f"{name} must be an ISO datetime, got '{raw}'")
        return name, value
    if name == 'cost':
        try:
            return name, Decimal(raw)
        except InvalidOperation:
            raise CommandError(f"cost must be a number, got '{raw}'") from None
    return name, raw


class Command(BaseCommand):
    """Run a slab batch operation."""

    help = 'Applies a status change, allocation, edit or export to many slabs'

    def add_arguments(self, parser):
        parser.add_argument(
            'kind',
            choices=['status', 'allocate', 'edit', 'export', 'import'],
            help='Operation to apply to every slab',
        )
        parser.add_argument('ids', nargs='*', help='Slab ids, processed in order')
        parser.add_argument('--all', action='store_true', help='Target every slab in the store')
        parser.add_argument('--title', default='', help='Title shown in progress and history')
        parser.add_argument('--status', choices=SlabStatus.values, help='Target status (status)')
        parser.add_argument('--job', help='Job reference (allocate)')
        parser.add_argument(
            '--set',
            action='append',
            default=[],
            metavar='FIELD=VALUE',
            help='Field to change (edit, status); repeatable',
        )
        parser.add_argument(
            '--format',
            choices=ExportFormat.values,
            default=ExportFormat.CSV,
            help='Export format (export)',
        )
        parser.add_argument('--include-images', action='store_true')
        parser.add_argument('--include-history', action='store_true')
        parser.add_argument('--output', help='Write the export here instead of stdout')
        parser.add_argument(
            '--force',
            action='store_true',
            help='Skip lifecycle rules for status changes and allocations',
        )

    def handle(self, *args, **options):
        store = get_slab_store()
        ids = options['ids']
        if options['all']:
            ids = [slab.id for slab in store.get_all()]
        if not ids:
            raise CommandError('No slabs given (pass ids or --all)')

        request = self._build_request(options, ids)
        orchestrator = BatchOrchestrator(store, transition_log=get_transition_log())
        if options['verbosity'] >= 2:
            orchestrator.subscribe(self._progress)

        with orchestrator:
            result = orchestrator.run(request)

        if isinstance(request, Export) and result.results:
            document = render_export(
                request.format,
                result.results,
                include_images=request.include_images,
                include_history=request.include_history,
            )
            if options['output']:
                with open(options['output'], 'w', encoding='utf-8') as fh:
                    fh.write(document)
            else:
                self.stdout.write(document)

        summary = f'{result.completed} of {len(ids)} slab(s) processed, {result.failed} failed ({result.status.value})'
        for error in result.errors:
            self.stderr.write(error)
        if not result.success:
            raise CommandError(summary)
        self.stdout.write(self.style.SUCCESS(summary))

    def _build_request(self, options, ids):
        kind = options['kind']
        title = options['title'] or f'{kind} {len(ids)} slab(s)'
        force = True if options['force'] else None
        fields = dict(parse_assignment(text) for text in options['set'])

        try:
            if kind == 'status':
                if not options['status']:
                    raise CommandError('--status is required for status')
                return StatusUpdate(title, ids, options['status'], fields=fields, force=force)
            if kind == 'allocate':
                if not options['job']:
                    raise CommandError('--job is required for allocate')
                return Allocation(title, ids, job_id=options['job'], force=force)
            if kind == 'edit':
                if not fields:
                    raise CommandError('--set is required for edit')
                return BulkEdit(title, ids, fields=fields)
            if kind == 'export':
                return Export(
                    title,
                    ids,
                    format=options['format'],
                    include_images=options['include_images'],
                    include_history=options['include_history'],
                )
            return Import(title, ids)
        except SlabError as e:
            raise CommandError(e.message) from e

    def _progress(self, operations):
        for op in operations:
            if op.is_running:
                self.stdout.write(f'[{op.id}] {op.completed + op.failed}/{op.total} {op.title}')
