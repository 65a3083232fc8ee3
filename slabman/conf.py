"""
Slabman configuration.

Usage in settings.py:
    SLABMAN = {
        "SLAB_STORE": "slabman.adapters.orm.OrmSlabStore",
        "TRANSITION_LOG": "slabman.adapters.orm.OrmTransitionLog",
        "BATCH_ITEM_DELAY_MS": 10,
        "BATCH_MAX_WORKERS": 4,
        "BULK_VALIDATE_TRANSITIONS": True,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class SlabmanSettings:
    """Slabman configuration settings."""

    # Record store backend (dotted path)
    SLAB_STORE: str = "slabman.adapters.orm.OrmSlabStore"

    # Transition history backend (dotted path, "" = no history)
    TRANSITION_LOG: str = "slabman.adapters.orm.OrmTransitionLog"

    # Pause between batch items; cancellation is observed here
    BATCH_ITEM_DELAY_MS: int = 10

    # Batch runs that may execute at the same time
    BATCH_MAX_WORKERS: int = 4

    # Route bulk status changes through the lifecycle rules (False = force)
    BULK_VALIDATE_TRANSITIONS: bool = True


def get_slabman_settings() -> SlabmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "SLABMAN", {})
    return SlabmanSettings(**{
        k: v for k, v in user_settings.items()
        if k in SlabmanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_slabman_settings(), name)


slabman_settings = _LazySettings()
