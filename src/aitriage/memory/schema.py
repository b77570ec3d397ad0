"""Pydantic models for the triage memory log."""

import uuid
from typing import Any, Literal

from pydantic import BaseModel, Field


class MemoryRecord(BaseModel):
    """One sanitized prompt or inspected response remembered for review."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    origin: str
    context_id: int | None = None
    ts: float  # Epoch seconds
    direction: Literal["prompt", "response"]
    session_id: str | None = None
    risk: dict[str, Any] | None = None
    pii: dict[str, int] | None = None  # Counts per PII type
    excerpt: str = ""
