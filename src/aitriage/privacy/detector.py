"""PII pattern detector.

Scans a text blob with independent regex matchers and returns typed,
non-overlapping spans plus per-type counts. Card numbers must pass the
Luhn check and IBANs the mod-97 check before they are accepted.
"""

import logging
import re
from collections.abc import Callable
from typing import ClassVar

from .models import DetectionResult, PIISummary, Redaction
from .validators import iban_valid, luhn_valid

logger = logging.getLogger(__name__)

# Tie-break order when two overlapping spans have the same length
TYPE_PRIORITY: list[str] = [
    "card",
    "iban",
    "api_key",
    "jwt",
    "password",
    "ssn",
    "email",
    "crypto_addr",
    "address_full",
    "phone",
    "dob",
]


class PIIDetector:
    """Detects PII spans in free text."""

    PII_PATTERNS: ClassVar[dict[str, re.Pattern[str]]] = {
        "email": re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE),
        "phone": re.compile(r"\b(?:\+?\d{1,3}[\s-]?)?(?:\(?\d{3}\)?[\s-]?)?\d{3}[\s-]?\d{4}\b"),
        "ssn": re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
        "iban": re.compile(r"\b[A-Z]{2}\d{2}[A-Z0-9]{10,30}\b"),
        "card": re.compile(r"\b(?:\d[ -]*?){13,19}\b"),
        "jwt": re.compile(r"\beyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\b"),
        "api_key": re.compile(
            r"(?:AKIA[0-9A-Z]{16}"  # AWS access key id
            r"|AIza[0-9A-Za-z_-]{35}"  # Google API key
            r"|sk-ant-[A-Za-z0-9_-]{20,}"  # Anthropic
            r"|sk-[A-Za-z0-9]{20,}"  # OpenAI and generic sk- keys
            r"|gh[pousr]_[A-Za-z0-9]{36})"  # GitHub tokens
        ),
        "password": re.compile(
            r"\b(?:pass(?:word)?|pwd|secret|token)\s*[:=]\s*[^\s,;]{6,}\b", re.IGNORECASE
        ),
        "crypto_addr": re.compile(r"\b(?:0x[a-fA-F0-9]{40}|bc1[ac-hj-np-z02-9]{11,71})\b"),
        "dob": re.compile(r"\b(?:\d{1,2}[/.-]){2}\d{2,4}\b"),
        "address_full": re.compile(
            r"\b\d+\s+(?:[A-Za-z0-9._'-]+\s){1,5}"
            r"(?:Street|Road|Avenue|Boulevard|Lane|Drive|St|Rd|Ave|Blvd|Ln|Dr)\b\.?",
            re.IGNORECASE,
        ),
    }

    # Candidates of these types are kept only when the checksum passes
    VALIDATORS: ClassVar[dict[str, Callable[[str], bool]]] = {
        "card": luhn_valid,
        "iban": iban_valid,
    }

    def __init__(self, custom_patterns: dict[str, str] | None = None):
        """Initialize the detector.

        Args:
            custom_patterns: Additional regex patterns {type: pattern_str}
        """
        self._patterns = dict(self.PII_PATTERNS)
        if custom_patterns:
            for name, pattern_str in custom_patterns.items():
                self._patterns[name] = re.compile(pattern_str)

    def detect(self, text: str) -> DetectionResult:
        """Detect PII in text.

        Args:
            text: Text to scan

        Returns:
            Sorted, non-overlapping redactions and per-type counts
        """
        if not text or not isinstance(text, str):
            return DetectionResult()

        try:
            candidates = self._scan(text)
            merged = _merge_overlaps(text, candidates)
        except Exception:
            logger.exception("PII detection failed; returning empty result")
            return DetectionResult()

        return DetectionResult(redactions=merged, summary=self._count(candidates))

    def _count(self, candidates: list[Redaction]) -> PIISummary:
        """Count accepted candidates per type, before merging.

        A card swallowed by a longer password or address span still counts.
        Regex-only hits lying inside a checksum-validated span (the digit
        groups of a card number look like a phone) do not.
        """
        validated = [c for c in candidates if c.type in self.VALIDATORS]
        summary = PIISummary()
        for c in candidates:
            if c.type not in self.VALIDATORS and any(
                v.start <= c.start and c.end <= v.end for v in validated
            ):
                continue
            summary.add(c.type)
        return summary

    def _scan(self, text: str) -> list[Redaction]:
        candidates: list[Redaction] = []
        for pii_type, pattern in self._patterns.items():
            validator = self.VALIDATORS.get(pii_type)
            for match in pattern.finditer(text):
                value = match.group(0)
                if validator is not None and not validator(value):
                    continue
                candidates.append(
                    Redaction(
                        type=pii_type,
                        value=value,
                        start=match.start(),
                        end=match.end(),
                        confidence=0.99 if validator is not None else 0.9,
                    )
                )
        return candidates


def _rank(redaction: Redaction) -> tuple[int, int]:
    """Sort key: longer spans first, then by type priority."""
    priority = (
        TYPE_PRIORITY.index(redaction.type)
        if redaction.type in TYPE_PRIORITY
        else len(TYPE_PRIORITY)
    )
    return (-redaction.length, priority)


def _merge_overlaps(text: str, candidates: list[Redaction]) -> list[Redaction]:
    """Merge overlapping spans; the merged span keeps the larger span's type."""
    ordered = sorted(candidates, key=lambda r: (r.start, *_rank(r)))
    merged: list[Redaction] = []
    for r in ordered:
        if not merged or r.start >= merged[-1].end:
            merged.append(Redaction(r.type, r.value, r.start, r.end, r.confidence))
            continue
        last = merged[-1]
        winner = min((last, r), key=_rank)
        start, end = last.start, max(last.end, r.end)
        merged[-1] = Redaction(winner.type, text[start:end], start, end, winner.confidence)
    return merged


_default_detector = PIIDetector()


def detect_pii(text: str) -> DetectionResult:
    """Detect PII with the default pattern set."""
    return _default_detector.detect(text)
