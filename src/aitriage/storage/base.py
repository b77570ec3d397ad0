"""Key-value store protocol and the in-memory implementation."""

import copy
import json
from typing import Any, Protocol

# Stable store keys shared by the core components
SIGNAL_BUCKETS_KEY = "signal-buckets"
PROVIDER_DIRECTORY_KEY = "provider-directory"
EXPLANATION_CACHE_KEY = "explanation-cache"
SEEN_HOSTS_KEY = "seen-hosts"
CLASSIFIED_SERVICES_KEY = "classified-services"
MEMORY_RECORDS_KEY = "memory-records"


class KeyValueStore(Protocol):
    """Protocol for eventually-consistent local key-value stores."""

    async def get(self, keys: list[str]) -> dict[str, Any]:
        """Read values for the given keys.

        Args:
            keys: Keys to read

        Returns:
            Mapping of found keys to their values (missing keys are omitted)
        """
        ...

    async def set(self, items: dict[str, Any]) -> None:
        """Write values for the given keys.

        Args:
            items: Mapping of keys to JSON-serializable values
        """
        ...


class MemoryStore:
    """Dict-backed store.

    Values are round-tripped through JSON so callers never share mutable
    state with the store, mirroring what a real persistent backend does.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, str] = {}
        if initial:
            for key, value in initial.items():
                self._data[key] = json.dumps(value)

    async def get(self, keys: list[str]) -> dict[str, Any]:
        return {key: json.loads(self._data[key]) for key in keys if key in self._data}

    async def set(self, items: dict[str, Any]) -> None:
        for key, value in items.items():
            self._data[key] = json.dumps(value)

    def snapshot(self) -> dict[str, Any]:
        """Return a deep copy of everything stored (for inspection and tests)."""
        return copy.deepcopy({key: json.loads(raw) for key, raw in self._data.items()})
