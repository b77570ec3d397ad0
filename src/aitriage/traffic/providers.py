"""Known AI provider hostnames."""

import logging

from aitriage.storage.base import PROVIDER_DIRECTORY_KEY, KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_PROVIDERS: dict[str, str] = {
    "api.openai.com": "OpenAI",
    "chat.openai.com": "OpenAI Chat",
    "api.anthropic.com": "Anthropic",
    "generativelanguage.googleapis.com": "Google AI",
    "aiplatform.googleapis.com": "Vertex AI",
    "gemini.google.com": "Google Gemini",
    "ai.google.dev": "Google AI",
    "content-vision.googleapis.com": "Google Vision",
    "openai.azure.com": "Azure OpenAI",
    "cognitiveservices.azure.com": "Azure Cognitive Services",
    "api.cohere.ai": "Cohere",
    "api-inference.huggingface.co": "Hugging Face Inference",
    "api.replicate.com": "Replicate",
    "api.stability.ai": "Stability AI",
}


class ProviderDirectory:
    """Read-mostly map of hostname to provider name.

    The seed is written to the store once; later runs read whatever the
    store holds. Lookups are served from memory, so a failing store only
    means the built-in seed is used.
    """

    def __init__(self, store: KeyValueStore, extra_providers: dict[str, str] | None = None):
        """Initialize the directory.

        Args:
            store: Backing key-value store
            extra_providers: Additional hostnames from configuration
        """
        self.store = store
        self.extra_providers = {k.lower(): v for k, v in (extra_providers or {}).items()}
        self._providers: dict[str, dict[str, str]] = self._seed()

    def _seed(self) -> dict[str, dict[str, str]]:
        seed = {host: {"name": name} for host, name in DEFAULT_PROVIDERS.items()}
        seed.update({host: {"name": name} for host, name in self.extra_providers.items()})
        return seed

    async def ensure_seeded(self) -> None:
        """Write the default seed if the store has no directory yet."""
        try:
            current = await self.store.get([PROVIDER_DIRECTORY_KEY])
            stored = current.get(PROVIDER_DIRECTORY_KEY)
            if stored:
                providers = {str(k).lower(): v for k, v in stored.items() if isinstance(v, dict)}
                providers.update({h: {"name": n} for h, n in self.extra_providers.items()})
                self._providers = providers
                return
            self._providers = self._seed()
            await self.store.set({PROVIDER_DIRECTORY_KEY: self._providers})
            logger.info("Seeded provider directory with %d hosts", len(self._providers))
        except Exception as e:
            logger.warning("Provider directory store unavailable, using built-in seed: %s", e)
            self._providers = self._seed()

    def lookup(self, hostname: str) -> str | None:
        """Return the provider name for an exact hostname match."""
        entry = self._providers.get((hostname or "").lower())
        return entry.get("name") if entry else None

    def all(self) -> dict[str, str]:
        return {host: entry.get("name", "") for host, entry in self._providers.items()}
