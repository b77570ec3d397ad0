"""Data models for traffic classification."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Literal
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, field_validator

MUTATING_METHODS: frozenset[str] = frozenset({"POST", "PUT", "PATCH"})


class Classification(StrEnum):
    """How an AI decision was reached."""

    KNOWN = "known"  # Hostname is a known AI provider
    HEURISTIC = "heuristic"  # Path/payload/response heuristics fired
    UNKNOWN = "unknown"  # No AI evidence


class ServiceRisk(StrEnum):
    """Risk of one classified service."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


def url_origin(url: str) -> str | None:
    """Return ``scheme://host[:port]`` for HTTP(S) URLs, else None."""
    try:
        parts = urlsplit(url or "")
        port = parts.port
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return None
    host = parts.hostname
    return f"{parts.scheme}://{host}:{port}" if port else f"{parts.scheme}://{host}"


def url_hostname(url: str) -> str:
    try:
        return (urlsplit(url or "").hostname or "").lower()
    except ValueError:
        return ""


def bucket_key(url: str) -> str:
    """Coarse key for a URL: origin plus first path segment.

    Example:
        >>> bucket_key("https://api.openai.com/v1/chat/completions")
        'https://api.openai.com/v1'
    """
    origin = url_origin(url) or ""
    try:
        path = urlsplit(url or "").path
    except ValueError:
        path = ""
    first = next((segment for segment in path.split("/") if segment), "")
    return f"{origin}/{first}"


def _normalize_headers(value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if isinstance(value, dict):
        items = value.items()
    else:
        # Browser-style [{"name": ..., "value": ...}] arrays
        items = ((h.get("name"), h.get("value")) for h in value if isinstance(h, dict))
    return {str(k).lower(): "" if v is None else str(v) for k, v in items if k}


class NetworkEvent(BaseModel):
    """One observed network request, validated at the boundary."""

    method: str = "GET"
    url: str
    context_id: int | None = None
    initiator: str | None = None
    document_url: str | None = None
    resource_type: str = "other"
    request_headers: dict[str, str] = Field(default_factory=dict)
    response_headers: dict[str, str] = Field(default_factory=dict)
    request_body_size: int | None = Field(default=None, ge=0)
    phase: Literal["request", "headers_sent", "headers_received"] = "request"

    @field_validator("method")
    @classmethod
    def _upper_method(cls, v: str) -> str:
        return (v or "GET").strip().upper()

    @field_validator("resource_type")
    @classmethod
    def _lower_resource_type(cls, v: str) -> str:
        return (v or "other").strip().lower()

    @field_validator("request_headers", "response_headers", mode="before")
    @classmethod
    def _headers(cls, v: Any) -> dict[str, str]:
        return _normalize_headers(v)

    @property
    def is_mutating(self) -> bool:
        return self.method in MUTATING_METHODS

    @property
    def body_size(self) -> int | None:
        """Request body size from the event or its content-length header."""
        if self.request_body_size is not None:
            return self.request_body_size
        raw = self.request_headers.get("content-length", "").strip()
        return int(raw) if raw.isdigit() else None


class ClassifiedServiceRecord(BaseModel):
    """Latest classification for one bucket key."""

    origin: str
    url: str
    known_provider: str | None = None
    is_ai: bool = False
    reason: str = ""
    classification: Classification = Classification.UNKNOWN
    risk: ServiceRisk = ServiceRisk.LOW
    data_types: list[str] = Field(default_factory=list)
    explanation: str = ""
    last_seen: float = 0.0


@dataclass
class EscalationNotice:
    """One-way hint that the UI may want to escalate for an origin."""

    origin: str
    risk_level: ServiceRisk
    repeat: bool = False  # origin already had recent activity


Notifier = Callable[[EscalationNotice], Any]
