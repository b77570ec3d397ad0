"""Factory function for creating the paraphraser from configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aitriage.llm.ollama import OllamaClient
from aitriage.llm.paraphraser import LLMParaphraser

if TYPE_CHECKING:
    from aitriage.config.schema import TriageConfig
    from aitriage.llm.paraphraser import Paraphraser

logger = logging.getLogger(__name__)


def create_paraphraser(config: TriageConfig) -> Paraphraser | None:
    """Create the paraphraser configured in ``config.paraphraser``.

    Args:
        config: aitriage configuration.

    Returns:
        A paraphraser, or None when paraphrasing is disabled.

    Raises:
        ValueError: If the backend is not recognised.
    """
    settings = config.paraphraser
    if not settings.enabled:
        return None

    if settings.backend == "ollama":
        client = OllamaClient.from_host(settings.host, settings.model, timeout=settings.timeout)
        logger.info("Paraphraser enabled: ollama model %s", settings.model)
        return LLMParaphraser(client)
    raise ValueError(f"Unknown paraphraser backend: {settings.backend}")
