"""Persistence primitives for triage state.

The core only needs an eventually-consistent key-value store. Two backends
ship with the package:

- :class:`MemoryStore` - process-local, used by tests and ephemeral runs
- :class:`SqliteStore` - survives restarts

:class:`DebouncedWriter` coalesces bursts of per-key updates into single
writes of a persisted map.
"""

from .base import (
    CLASSIFIED_SERVICES_KEY,
    EXPLANATION_CACHE_KEY,
    MEMORY_RECORDS_KEY,
    PROVIDER_DIRECTORY_KEY,
    SEEN_HOSTS_KEY,
    SIGNAL_BUCKETS_KEY,
    KeyValueStore,
    MemoryStore,
)
from .debounce import DebouncedWriter
from .sqlite import SqliteStore

__all__ = [
    "CLASSIFIED_SERVICES_KEY",
    "EXPLANATION_CACHE_KEY",
    "MEMORY_RECORDS_KEY",
    "PROVIDER_DIRECTORY_KEY",
    "SEEN_HOSTS_KEY",
    "SIGNAL_BUCKETS_KEY",
    "DebouncedWriter",
    "KeyValueStore",
    "MemoryStore",
    "SqliteStore",
]
