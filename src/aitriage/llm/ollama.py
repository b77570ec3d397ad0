"""Local Ollama backend, spoken to through its OpenAI-compatible endpoint."""

import logging
from typing import Any
from urllib.parse import urlparse

from openai import AsyncOpenAI

from aitriage.llm.client import CompletionResponse, Message

logger = logging.getLogger(__name__)

DEFAULT_HOST = "http://localhost:11434"
LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


class OllamaClient:
    """Chat completions against an Ollama server.

    Explanations are built from page metadata, so a non-local host is
    allowed but logged.
    """

    def __init__(
        self,
        model: str,
        base_url: str = DEFAULT_HOST + "/v1",
        timeout: float = 30,
        temperature: float = 0.1,
    ):
        self.model = model
        self.temperature = temperature
        self.base_url = base_url
        # Ollama ignores the key; the SDK insists on one
        self.client = AsyncOpenAI(base_url=base_url, api_key="ollama", timeout=timeout)
        if not self.is_local:
            logger.warning("Ollama endpoint %s is not on this machine", base_url)

    @classmethod
    def from_host(cls, host: str, model: str, timeout: float = 30) -> "OllamaClient":
        """Build a client from a server address such as ``http://localhost:11434``."""
        host = host.rstrip("/")
        if not host.endswith("/v1"):
            host += "/v1"
        return cls(model=model, base_url=host, timeout=timeout)

    @property
    def is_local(self) -> bool:
        return (urlparse(self.base_url).hostname or "") in LOCAL_HOSTS

    def _payload(
        self, messages: list[Message], temperature: float | None, max_tokens: int | None
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": self.temperature if temperature is None else temperature,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens
        return payload

    async def complete(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> CompletionResponse:
        response = await self.client.chat.completions.create(
            **self._payload(messages, temperature, max_tokens)
        )
        choice = response.choices[0]
        return CompletionResponse(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason or "stop",
        )
