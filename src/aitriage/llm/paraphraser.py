"""Optional paraphraser capability for human-readable explanations.

A paraphraser rewrites an already-computed explanation in plainer words.
It may be absent, slow or wrong, so every call is bounded and callers
always hold a deterministic fallback.
"""

import asyncio
import logging
from typing import Protocol

from aitriage.llm.client import LLMClient, Message

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You rephrase risk summaries. Do not infer new facts."


class Paraphraser(Protocol):
    """Protocol for paraphrase providers."""

    async def try_paraphrase(self, prompt: str, timeout: float) -> str | None:
        """Paraphrase text within a bounded wait.

        Args:
            prompt: Prompt containing the text to paraphrase
            timeout: Maximum seconds to wait

        Returns:
            Paraphrased text, or None when unavailable
        """
        ...


class NullParaphraser:
    """Paraphraser used when no capability is configured."""

    async def try_paraphrase(self, prompt: str, timeout: float) -> str | None:
        return None


class LLMParaphraser:
    """Paraphraser backed by an LLM client (typically a local Ollama model)."""

    def __init__(self, client: LLMClient, temperature: float = 0.1, max_tokens: int = 120):
        """Initialize the paraphraser.

        Args:
            client: LLM client used for completions
            temperature: Sampling temperature (kept low to avoid embellishment)
            max_tokens: Maximum tokens to generate
        """
        self.client = client
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def try_paraphrase(self, prompt: str, timeout: float) -> str | None:
        messages = [Message.system(SYSTEM_PROMPT), Message.user(prompt)]
        try:
            response = await asyncio.wait_for(
                self.client.complete(
                    messages, temperature=self.temperature, max_tokens=self.max_tokens
                ),
                timeout=timeout,
            )
        except TimeoutError:
            logger.debug("Paraphraser timed out after %.2fs", timeout)
            return None
        except Exception as e:
            logger.warning("Paraphraser failed: %s", e)
            return None

        if response.truncated:
            logger.debug("Paraphrase hit the token limit, discarding")
            return None
        return response.text or None
