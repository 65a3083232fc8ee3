"""
Slabman adapter loader — builds the configured store and transition log.

Usage:
    from slabman.adapters import get_slab_store

    store = get_slab_store()
    slab = store.get_by_id("slab-1a2b3c")

Settings:
    SLABMAN = {
        "SLAB_STORE": "slabman.adapters.orm.OrmSlabStore",
        "TRANSITION_LOG": "slabman.adapters.orm.OrmTransitionLog",
    }

If a backend cannot be imported, the getters raise ImproperlyConfigured.
"""

from __future__ import annotations

import logging
import threading

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from slabman.conf import slabman_settings
from slabman.protocols.store import SlabStore, TransitionLog

logger = logging.getLogger(__name__)


# Cached adapter instances
_lock = threading.Lock()
_slab_store: SlabStore | None = None
_transition_log: TransitionLog | None = None
_transition_log_loaded = False


def _build(setting_name: str, path: str):
    try:
        backend_class = import_string(path)
    except ImportError as e:
        raise ImproperlyConfigured(
            f"Failed to import SLABMAN['{setting_name}'] backend '{path}': {e}"
        ) from e
    logger.debug("Loaded %s backend: %s", setting_name, path)
    return backend_class()


def get_slab_store() -> SlabStore:
    """
    Return the configured slab store.

    Raises:
        ImproperlyConfigured: If SLAB_STORE is empty or import fails
    """
    global _slab_store

    if _slab_store is None:
        with _lock:
            if _slab_store is None:  # double-checked
                path = slabman_settings.SLAB_STORE
                if not path:
                    raise ImproperlyConfigured(
                        "SLABMAN['SLAB_STORE'] must be configured. "
                        "Example: 'slabman.adapters.orm.OrmSlabStore'"
                    )
                _slab_store = _build("SLAB_STORE", path)

    return _slab_store


def get_transition_log() -> TransitionLog | None:
    """Return the configured transition log, or None when history is disabled."""
    global _transition_log, _transition_log_loaded

    if not _transition_log_loaded:
        with _lock:
            if not _transition_log_loaded:
                path = slabman_settings.TRANSITION_LOG
                _transition_log = _build("TRANSITION_LOG", path) if path else None
                _transition_log_loaded = True

    return _transition_log


def reset_adapters() -> None:
    """Reset the cached adapters. Useful for testing."""
    global _slab_store, _transition_log, _transition_log_loaded
    with _lock:
        _slab_store = None
        _transition_log = None
        _transition_log_loaded = False
