"""PII detection and redaction.

Pipeline for one text blob::

    sanitize_html -> detect_pii -> mask_pii -> apply_granularity -> apply_context_rules

``SanitizerPipeline`` composes the steps, chunks oversized input and
walks JSON-shaped payloads. Redaction tokens use the ``⟦TYPE:payload⟧``
wire format.

Responses coming back are checked by ``inspect_response_body`` and
``decide_inbound``.
"""

from aitriage.privacy.context_rules import SENSITIVE_CATEGORIES, apply_context_rules
from aitriage.privacy.decisions import (
    CRITICAL_TYPES,
    SessionAction,
    SessionDecision,
    decide_inbound,
    decide_outbound,
    has_critical_secrets,
)
from aitriage.privacy.detector import PIIDetector, detect_pii
from aitriage.privacy.granularity import (
    DEFAULT_GRANULARITY,
    GRANULARITY_OPTIONS,
    apply_granularity,
)
from aitriage.privacy.html import ALLOWED_TAGS, sanitize_html
from aitriage.privacy.inbound import (
    InboundInspection,
    has_inline_scripts,
    has_javascript_urls,
    has_tracking_params,
    inspect_response_body,
    strip_tracking_params,
)
from aitriage.privacy.masker import mask_pii
from aitriage.privacy.models import (
    DetectionResult,
    PIISummary,
    Redaction,
    SanitizationResult,
    ValueSanitization,
)
from aitriage.privacy.pipeline import SanitizerPipeline, sanitize_input

__all__ = [
    "ALLOWED_TAGS",
    "CRITICAL_TYPES",
    "DEFAULT_GRANULARITY",
    "GRANULARITY_OPTIONS",
    "SENSITIVE_CATEGORIES",
    "DetectionResult",
    "InboundInspection",
    "SessionAction",
    "SessionDecision",
    "PIIDetector",
    "PIISummary",
    "Redaction",
    "SanitizationResult",
    "SanitizerPipeline",
    "ValueSanitization",
    "apply_context_rules",
    "apply_granularity",
    "decide_inbound",
    "decide_outbound",
    "detect_pii",
    "has_critical_secrets",
    "has_inline_scripts",
    "has_javascript_urls",
    "has_tracking_params",
    "inspect_response_body",
    "mask_pii",
    "sanitize_html",
    "sanitize_input",
    "strip_tracking_params",
]
