"""
Slabman Protocols.

Defines interfaces for external system integration.
"""

from slabman.protocols.store import (
    SlabRecord,
    SlabStore,
    TransitionLog,
    TransitionRecord,
)

__all__ = [
    "SlabRecord",
    "SlabStore",
    "TransitionLog",
    "TransitionRecord",
]
