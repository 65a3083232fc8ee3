"""
Slabman Admin.

Provides:
- Slab: list + edit, with batch actions (move to stock, export CSV/JSON/labels)
- SlabTransition: read-only audit trail

Batch actions run through BatchOrchestrator in the request thread, so the
lifecycle rules apply exactly as they do for the management command.
"""

from django.contrib import admin, messages
from django.http import HttpResponse
from django.utils.translation import gettext_lazy as _

from slabman.adapters.loader import get_transition_log
from slabman.adapters.orm import OrmSlabStore
from slabman.models import ExportFormat, Slab, SlabStatus, SlabTransition
from slabman.services.batch import BatchOrchestrator, Export, StatusUpdate
from slabman.services.exports import export_filename, render_export

EXPORT_CONTENT_TYPES = {
    ExportFormat.CSV: 'text/csv',
    ExportFormat.JSON: 'application/json',
    ExportFormat.LABELS: 'text/plain',
}


def _orchestrator() -> BatchOrchestrator:
    return BatchOrchestrator(OrmSlabStore(), transition_log=get_transition_log(), item_delay=0)


def _report(modeladmin, request, result) -> None:
    if result.success:
        modeladmin.message_user(
            request,
            _('%(n)d slab(s) processed.') % {'n': result.completed},
            messages.SUCCESS,
        )
        return
    modeladmin.message_user(
        request,
        _('%(ok)d processed, %(bad)d failed: %(errors)s') % {
            'ok': result.completed,
            'bad': result.failed,
            'errors': '; '.join(result.errors[:5]),
        },
        messages.WARNING,
    )


def _export_action(fmt):
    def action(modeladmin, request, queryset):
        ids = list(queryset.values_list('pk', flat=True))
        with _orchestrator() as orchestrator:
            result = orchestrator.run(Export(f"Export {len(ids)} slabs as {fmt.label}", ids, fmt))
        if not result.success:
            _report(modeladmin, request, result)
            return None
        response = HttpResponse(
            render_export(fmt, result.results),
            content_type=EXPORT_CONTENT_TYPES[fmt],
        )
        response['Content-Disposition'] = f'attachment; filename="{export_filename(fmt)}"'
        return response

    action.__name__ = f"export_{fmt.value}"
    action.short_description = _('Export selected as %(fmt)s') % {'fmt': fmt.label}
    return action


@admin.register(Slab)
class SlabAdmin(admin.ModelAdmin):
    """Slab admin — editable. Status changes should use the actions."""

    list_display = ['serial_number', 'material', 'color', 'status', 'slab_type',
                    'job_id', 'location', 'received_date']
    list_filter = ['status', 'slab_type', 'material', 'supplier']
    search_fields = ['id', 'serial_number', 'material', 'color', 'job_id']
    readonly_fields = ['id', 'created_at', 'updated_at']
    actions = ['move_to_stock', *(_export_action(fmt) for fmt in ExportFormat)]

    @admin.action(description=_('Move selected to stock'))
    def move_to_stock(self, request, queryset):
        ids = list(queryset.values_list('pk', flat=True))
        with _orchestrator() as orchestrator:
            result = orchestrator.run(StatusUpdate("Admin: move to stock", ids, SlabStatus.STOCK))
        _report(self, request, result)


@admin.register(SlabTransition)
class SlabTransitionAdmin(admin.ModelAdmin):
    """Transition admin — read-only audit trail."""

    list_display = ['timestamp', 'slab', 'from_status', 'to_status', 'reason', 'actor', 'batch_id']
    list_filter = ['to_status', 'from_status']
    search_fields = ['slab__serial_number', 'reason', 'batch_id']
    date_hierarchy = 'timestamp'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
