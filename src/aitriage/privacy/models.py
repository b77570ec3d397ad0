"""Data models for PII detection and sanitization."""

from dataclasses import dataclass, field
from typing import Any

# Redaction token delimiters. Tokens look like ⟦EMAIL:example.com⟧.
TOKEN_PREFIX = "⟦"
TOKEN_SUFFIX = "⟧"


def make_token(label: str) -> str:
    """Wrap a label in redaction delimiters."""
    return f"{TOKEN_PREFIX}{label}{TOKEN_SUFFIX}"


@dataclass
class Redaction:
    """A detected PII span with location information."""

    type: str  # e.g. "email", "card", "api_key"
    value: str
    start: int
    end: int
    confidence: float

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass
class PIISummary:
    """Per-type counts of detected PII."""

    counts: dict[str, int] = field(default_factory=dict)

    def add(self, pii_type: str, count: int = 1) -> None:
        self.counts[pii_type] = self.counts.get(pii_type, 0) + count

    def merge(self, other: "PIISummary") -> None:
        for pii_type, count in other.counts.items():
            self.add(pii_type, count)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def kinds(self) -> set[str]:
        """Types with a positive count."""
        return {k for k, v in self.counts.items() if v > 0}

    def __bool__(self) -> bool:
        return self.total > 0


@dataclass
class DetectionResult:
    """Result of a detection pass."""

    redactions: list[Redaction] = field(default_factory=list)
    summary: PIISummary = field(default_factory=PIISummary)


@dataclass
class SanitizationResult:
    """Result of sanitizing one text blob."""

    original: str
    sanitized: str
    redactions: list[Redaction] = field(default_factory=list)
    summary: PIISummary = field(default_factory=PIISummary)


@dataclass
class ValueSanitization:
    """Result of sanitizing a JSON-shaped value."""

    value: Any
    redactions: list[Redaction] = field(default_factory=list)
    summary: PIISummary = field(default_factory=PIISummary)
