"""Short-lived memory of what was sent to and received from AI services.

Each sanitized prompt and inspected response can leave a record holding
only a clamped excerpt of the already-sanitized text, the risk summary
and PII counts. Records are capped in number, expire after a retention
period and are persisted through the shared key-value store.

Components:

- :class:`MemoryRecord` - One remembered prompt or response
- :class:`MemoryLog` - Capped, retention-pruned record log
"""

from aitriage.memory.records import (
    DEFAULT_CAPACITY,
    DEFAULT_RETENTION_DAYS,
    EXCERPT_CHARS,
    MemoryLog,
    clamp_excerpt,
)
from aitriage.memory.schema import MemoryRecord

__all__ = [
    "DEFAULT_CAPACITY",
    "DEFAULT_RETENTION_DAYS",
    "EXCERPT_CHARS",
    "MemoryLog",
    "MemoryRecord",
    "clamp_excerpt",
]
