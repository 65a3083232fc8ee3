"""
Slab exports — per-slab serialization and whole-document assembly.

The batch orchestrator serializes one slab per item with export_slab();
render_export() joins the per-item results into the downloadable document.

Formats:
    csv     header row + one row per slab (fixed column order)
    json    {exportDate, totalUnits, units[], includeImages, includeHistory}
    labels  "Label for {serial} - {material} {color}", one per line
"""

import csv
import io
import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from slabman.exceptions import SlabError
from slabman.models.enums import ExportFormat
from slabman.protocols.store import SlabRecord


CSV_HEADERS = (
    'Serial Number',
    'Material',
    'Color',
    'Length',
    'Width',
    'Thickness',
    'Status',
    'Supplier',
    'Location',
    'Cost',
    'Received Date',
    'Slab Type',
)

# SlabRecord field → wire key (camelCase, shared with the web client)
WIRE_KEYS = {
    'id': 'id',
    'serial_number': 'serialNumber',
    'material': 'material',
    'color': 'color',
    'thickness': 'thickness',
    'length': 'length',
    'width': 'width',
    'supplier': 'supplier',
    'status': 'status',
    'slab_type': 'slabType',
    'job_id': 'jobId',
    'received_date': 'receivedDate',
    'consumed_date': 'consumedDate',
    'notes': 'notes',
    'cost': 'cost',
    'location': 'location',
}


def parse_format(value) -> ExportFormat:
    try:
        return ExportFormat(value)
    except ValueError:
        raise SlabError('UNKNOWN_FORMAT', f"Unknown export format: {value}", format=value) from None


def _wire_value(value):
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


def slab_to_wire(slab: SlabRecord) -> dict:
    """Slab as a JSON-ready dict with wire keys."""
    return {key: _wire_value(getattr(slab, attr)) for attr, key in WIRE_KEYS.items()}


def slab_from_wire(data: dict) -> SlabRecord:
    """
    Parse a wire dict (as produced by slab_to_wire) back into a SlabRecord.

    Unknown keys are ignored; missing keys take the record defaults.
    """
    values = {}
    for attr, key in WIRE_KEYS.items():
        if key in data and data[key] is not None:
            values[attr] = data[key]

    for attr in ('received_date', 'consumed_date'):
        if attr in values:
            parsed = parse_datetime(values[attr])
            if parsed is None:
                raise SlabError('INVALID_FIELD', f"invalid {attr}: {values[attr]}")
            values[attr] = parsed
    if 'cost' in values:
        try:
            values['cost'] = Decimal(str(values['cost']))
        except InvalidOperation:
            raise SlabError('INVALID_FIELD', f"invalid cost: {values['cost']}") from None

    if 'id' not in values:
        raise SlabError('INVALID_FIELD', 'id is required')
    return SlabRecord(**values)


def slab_from_json(text: str) -> SlabRecord:
    return slab_from_wire(json.loads(text))


def _csv_row(slab: SlabRecord) -> str:
    received = slab.received_date.date().isoformat() if slab.received_date else ''
    row = [
        slab.serial_number,
        slab.material,
        slab.color,
        slab.length,
        slab.width,
        slab.thickness,
        slab.status.value,
        slab.supplier,
        slab.location or '',
        '' if slab.cost is None else str(slab.cost),
        received,
        slab.slab_type.value,
    ]
    buf = io.StringIO()
    csv.writer(buf, lineterminator='').writerow(row)
    return buf.getvalue()


def export_slab(slab: SlabRecord, fmt) -> str:
    """
    Serialize one slab.

    Raises:
        SlabError('UNKNOWN_FORMAT'): unsupported format
    """
    fmt = parse_format(fmt)
    if fmt == ExportFormat.CSV:
        return _csv_row(slab)
    if fmt == ExportFormat.JSON:
        return json.dumps(slab_to_wire(slab))
    return f"Label for {slab.serial_number} - {slab.material} {slab.color}"


def render_export(fmt, results: list[str], include_images: bool = False,
                  include_history: bool = False, exported_at: datetime | None = None) -> str:
    """Assemble per-slab export results into the final document."""
    fmt = parse_format(fmt)
    if fmt == ExportFormat.CSV:
        header = io.StringIO()
        csv.writer(header, lineterminator='').writerow(CSV_HEADERS)
        return "\n".join([header.getvalue(), *results])
    if fmt == ExportFormat.JSON:
        document = {
            'exportDate': (exported_at or timezone.now()).isoformat(),
            'totalUnits': len(results),
            'units': [json.loads(r) for r in results],
            'includeImages': include_images,
            'includeHistory': include_history,
        }
        return json.dumps(document, indent=2)
    return "\n".join(results)


def export_filename(fmt, today: date | None = None) -> str:
    fmt = parse_format(fmt)
    day = (today or timezone.localdate()).isoformat()
    if fmt == ExportFormat.LABELS:
        return f"slab-labels-{day}.txt"
    return f"slabs-export-{day}.{fmt.value}"
