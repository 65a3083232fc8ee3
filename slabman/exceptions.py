"""
Exceptions for Slabman.

All errors are SlabError with a structured code for programmatic handling.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any


class SlabError(Exception):
    """
    Structured exception for slab operations.

    Usage:
        try:
            Lifecycle.execute_transition(slab, SlabStatus.CONSUMED)
        except SlabError as e:
            if e.code == 'CONSUMED_DATE_REQUIRED':
                print(e.message)

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'INVALID_TRANSITION': 'Transition not allowed',
        'RECEIVED_DATE_REQUIRED': 'received date is required',
        'CONSUMED_DATE_REQUIRED': 'consumed date is required',
        'SLAB_NOT_FOUND': 'Slab not found',
        'INVALID_FIELD': 'Field cannot be changed by this operation',
        'NOT_IMPLEMENTED': 'Operation not implemented',
        'UNKNOWN_FORMAT': 'Unknown export format',
        'UNKNOWN_OPERATION': 'Unknown batch operation',
        'OPERATION_NOT_FOUND': 'Batch operation not found',
        'OPERATION_RUNNING': 'Batch operation is still running',
    }

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"SlabError({self.code!r}, {self.message!r})"

    @property
    def slab_id(self) -> str | None:
        """Shortcut for data['slab_id']."""
        return self.data.get('slab_id')

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: _plain(v) for k, v in self.data.items()
            }
        }


def _plain(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value
