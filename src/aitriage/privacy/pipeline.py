"""Sanitizer pipeline over text blobs and JSON-shaped payloads."""

import logging
from collections.abc import Mapping
from typing import Any

from .context_rules import apply_context_rules
from .detector import PIIDetector
from .granularity import DEFAULT_GRANULARITY, apply_granularity
from .html import sanitize_html
from .masker import mask_pii
from .models import PIISummary, Redaction, SanitizationResult, ValueSanitization
from .validators import chunk_by_paragraph

logger = logging.getLogger(__name__)


class SanitizerPipeline:
    """Sanitizes outbound text and JSON-shaped payloads.

    Each text blob runs html -> detect -> mask -> granularity -> context
    rules. Redaction offsets refer to the text after HTML stripping.
    Inputs longer than ``max_input_chars`` are split on paragraph
    boundaries and each chunk runs the whole pipeline; redaction offsets
    are then relative to their chunk.
    """

    def __init__(
        self,
        granularity: Mapping[str, str] | None = None,
        max_input_chars: int = 512 * 1024,
        chunk_chars: int = 4000,
        detector: PIIDetector | None = None,
        strip_html: bool = True,
    ):
        """Initialize the pipeline.

        Args:
            granularity: Per-type disclosure policy
            max_input_chars: Inputs above this size are chunked
            chunk_chars: Maximum chunk size for oversized inputs
            detector: PII detector (default pattern set if None)
            strip_html: Remove scripts and non-formatting tags first
        """
        self.granularity = dict(DEFAULT_GRANULARITY if granularity is None else granularity)
        self.max_input_chars = max_input_chars
        self.chunk_chars = chunk_chars
        self.detector = detector or PIIDetector()
        self.strip_html = strip_html

    def sanitize_input(self, text: str, category: str = "general") -> SanitizationResult:
        """Sanitize one text blob.

        Args:
            text: Outbound text
            category: Site category used for context rules

        Returns:
            Sanitized text with redactions and per-type counts
        """
        if not text or not isinstance(text, str):
            return SanitizationResult(original=text or "", sanitized=text or "")

        if len(text) <= self.max_input_chars:
            sanitized, redactions, summary = self._run(text, category)
            return SanitizationResult(text, sanitized, redactions, summary)

        chunks = chunk_by_paragraph(text, self.chunk_chars)
        logger.debug("Sanitizing %d chars in %d chunks", len(text), len(chunks))
        parts: list[str] = []
        redactions: list[Redaction] = []
        summary = PIISummary()
        for chunk in chunks:
            sanitized, chunk_redactions, chunk_summary = self._run(chunk, category)
            parts.append(sanitized)
            redactions.extend(chunk_redactions)
            summary.merge(chunk_summary)
        return SanitizationResult(text, "\n\n".join(parts), redactions, summary)

    def sanitize_value(self, value: Any, category: str = "general") -> ValueSanitization:
        """Sanitize every string leaf of a JSON-shaped value.

        Dict keys and non-string scalars are left alone and the input is
        not mutated.

        Args:
            value: str, dict, list or scalar
            category: Site category used for context rules

        Returns:
            Sanitized copy of the value with collected redactions and counts
        """
        redactions: list[Redaction] = []
        summary = PIISummary()

        def walk(node: Any) -> Any:
            if isinstance(node, str):
                result = self.sanitize_input(node, category)
                redactions.extend(result.redactions)
                summary.merge(result.summary)
                return result.sanitized
            if isinstance(node, dict):
                return {k: walk(v) for k, v in node.items()}
            if isinstance(node, list | tuple):
                return [walk(item) for item in node]
            return node

        return ValueSanitization(value=walk(value), redactions=redactions, summary=summary)

    def _run(self, text: str, category: str) -> tuple[str, list[Redaction], PIISummary]:
        if self.strip_html:
            text = sanitize_html(text)
        detection = self.detector.detect(text)
        masked = mask_pii(text, detection.redactions)
        masked = apply_granularity(masked, self.granularity)
        masked = apply_context_rules(masked, category)
        return masked, detection.redactions, detection.summary


_default_pipeline = SanitizerPipeline()


def sanitize_input(text: str, category: str = "general") -> SanitizationResult:
    """Sanitize text with the default pipeline."""
    return _default_pipeline.sanitize_input(text, category)
