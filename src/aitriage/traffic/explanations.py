"""Memoized plain-English explanations for classified services."""

import json
import logging
import time
from collections import OrderedDict
from collections.abc import Callable, Iterable
from typing import Any

from aitriage.llm.paraphraser import Paraphraser
from aitriage.storage.base import EXPLANATION_CACHE_KEY, KeyValueStore

logger = logging.getLogger(__name__)

MAX_EXPLANATION_CHARS = 160

_RISK_SENTENCES = {
    "High": "This site may be sending sensitive data to an AI service.",
    "Medium": "This site may be sending your data to an AI service.",
    "Low": "Limited data may be used with AI on-device or minimally.",
}


def explanation_signature(risk: str, provider: str | None, data_types: Iterable[str]) -> str:
    """Deterministic cache key for (risk, provider, distinct data types)."""
    return json.dumps(
        {"risk": str(risk), "provider": provider, "data_types": sorted(set(data_types))},
        sort_keys=True,
        separators=(",", ":"),
    )


def template_explanation(risk: str, provider: str | None, data_types: Iterable[str]) -> str:
    """Templated explanation built only from the classification."""
    text = _RISK_SENTENCES.get(str(risk), _RISK_SENTENCES["Low"])
    if provider:
        text += f" Service: {provider}."
    types = sorted(set(data_types))
    if types:
        text += f" Data types: {', '.join(types)}."
    return text


class ExplanationCache:
    """LRU cache of explanation text keyed by a content signature.

    Entries are persisted as ``{signature: {"text", "timestamp"}}``. The
    least recently used entry is evicted once ``capacity`` is reached.
    """

    def __init__(
        self,
        store: KeyValueStore,
        paraphraser: Paraphraser | None = None,
        capacity: int = 256,
        timeout: float = 2.0,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the cache.

        Args:
            store: Backing key-value store
            paraphraser: Optional paraphrase capability
            capacity: Maximum number of cached explanations
            timeout: Maximum seconds to wait for the paraphraser
            clock: Time source (epoch seconds)
        """
        self.store = store
        self.paraphraser = paraphraser
        self.capacity = capacity
        self.timeout = timeout
        self.clock = clock
        self._entries: OrderedDict[str, dict[str, Any]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    async def load(self) -> None:
        """Load persisted entries, oldest first, trimmed to capacity."""
        try:
            current = await self.store.get([EXPLANATION_CACHE_KEY])
        except Exception as e:
            logger.warning("Could not load explanation cache: %s", e)
            return
        stored = current.get(EXPLANATION_CACHE_KEY) or {}
        entries = sorted(
            (
                (sig, entry)
                for sig, entry in stored.items()
                if isinstance(entry, dict) and entry.get("text")
            ),
            key=lambda item: item[1].get("timestamp", 0),
        )
        self._entries = OrderedDict(entries[-self.capacity :])

    async def get_or_create(
        self, risk: str, provider: str | None, data_types: Iterable[str]
    ) -> str:
        """Return the cached explanation, building and caching it on a miss.

        Args:
            risk: Service risk ("Low", "Medium", "High")
            provider: Known provider name, if any
            data_types: Data types observed on the request

        Returns:
            Explanation text of at most 160 characters
        """
        data_types = list(data_types)
        signature = explanation_signature(risk, provider, data_types)
        entry = self._entries.get(signature)
        if entry is not None:
            self._entries.move_to_end(signature)
            self.hits += 1
            return entry["text"]

        self.misses += 1
        text = template_explanation(risk, provider, data_types)
        if self.paraphraser is not None:
            prompt = (
                "Rephrase this risk explanation in clear, simple English "
                f"under 24 words: {text}"
            )
            try:
                paraphrased = await self.paraphraser.try_paraphrase(prompt, self.timeout)
            except Exception as e:
                logger.warning("Explanation paraphrase failed: %s", e)
                paraphrased = None
            if paraphrased and paraphrased.strip():
                text = paraphrased.strip()
        text = text[:MAX_EXPLANATION_CHARS]

        self._entries[signature] = {"text": text, "timestamp": self.clock()}
        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted explanation %s", evicted)
        await self._persist()
        return text

    async def _persist(self) -> None:
        try:
            await self.store.set({EXPLANATION_CACHE_KEY: dict(self._entries)})
        except Exception as e:
            logger.warning("Failed to persist explanation cache: %s", e)
