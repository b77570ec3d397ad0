"""LLM helpers: client protocol, local Ollama client and the paraphraser capability."""

from aitriage.llm.client import CompletionResponse, LLMClient, Message
from aitriage.llm.factory import create_paraphraser
from aitriage.llm.paraphraser import LLMParaphraser, NullParaphraser, Paraphraser

__all__ = [
    "CompletionResponse",
    "LLMClient",
    "LLMParaphraser",
    "Message",
    "NullParaphraser",
    "Paraphraser",
    "create_paraphraser",
]
