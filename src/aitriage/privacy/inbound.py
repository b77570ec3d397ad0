"""Inspection of responses coming back from AI services.

A response body is scanned for active content (inline scripts, event
handlers, ``javascript:`` links) and, for text and JSON bodies, for
tracking parameters in embedded URLs. Anything found is stripped from the
sanitized copy. ``decisions.decide_inbound`` turns the result into advice.
"""

import logging
import re
from dataclasses import dataclass

from aitriage.privacy.html import sanitize_html

logger = logging.getLogger(__name__)

# Bodies above this are not scanned
SCAN_BODY_CHAR_LIMIT = 512 * 1024

_SCANNABLE_TYPE = re.compile(r"text|json|html", re.IGNORECASE)
_HTML_TYPE = re.compile(r"html", re.IGNORECASE)

_INLINE_SCRIPT = re.compile(r"<script[\s\S]*?>[\s\S]*?</script>", re.IGNORECASE)
_INLINE_HANDLER = re.compile(r" on[a-z]+=", re.IGNORECASE)
_JAVASCRIPT_URL = re.compile(
    r"""href\s*=\s*(?:"javascript:[^"]*"|'javascript:[^']*')""", re.IGNORECASE
)
_TRACKING_PARAM = re.compile(r"(utm_[a-z]+|gclid|fbclid|msclkid)=", re.IGNORECASE)
_TRACKING_PAIR = re.compile(r"([?&])(utm_[a-z]+|gclid|fbclid|msclkid)=[^&\s]+", re.IGNORECASE)


def has_inline_scripts(html: str) -> bool:
    """Whether the markup carries a script block or an inline event handler."""
    return bool(_INLINE_SCRIPT.search(html) or _INLINE_HANDLER.search(html))


def has_javascript_urls(html: str) -> bool:
    return bool(_JAVASCRIPT_URL.search(html))


def has_tracking_params(text: str) -> bool:
    return bool(_TRACKING_PARAM.search(text))


def strip_tracking_params(text: str) -> str:
    """Drop ``utm_*``, ``gclid``, ``fbclid`` and ``msclkid`` pairs from URLs in text."""
    return _TRACKING_PAIR.sub(r"\1", text)


@dataclass
class InboundInspection:
    """Outcome of scanning one response body.

    ``scanned`` is False when the body was too large to inspect; in that
    case ``malicious`` is False and ``sanitized`` is None.
    """

    malicious: bool
    sanitized: str | None = None
    scanned: bool = True

    def to_dict(self) -> dict[str, object]:
        return {"malicious": self.malicious, "sanitized": self.sanitized, "scanned": self.scanned}


def inspect_response_body(
    body: str, content_type: str, max_chars: int = SCAN_BODY_CHAR_LIMIT
) -> InboundInspection | None:
    """Scan a response body for active content and tracking parameters.

    Args:
        body: Response body text
        content_type: Response Content-Type header value
        max_chars: Bodies longer than this are reported as unscanned

    Returns:
        InboundInspection, or None when the body is empty or not text-like
    """
    if not body or not _SCANNABLE_TYPE.search(content_type or ""):
        return None
    if len(body) > max_chars:
        logger.debug("Response body of %d chars exceeds scan limit", len(body))
        return InboundInspection(malicious=False, scanned=False)

    if _HTML_TYPE.search(content_type):
        malicious = has_inline_scripts(body) or has_javascript_urls(body)
        return InboundInspection(malicious=malicious, sanitized=sanitize_html(body))

    if has_tracking_params(body):
        return InboundInspection(malicious=True, sanitized=strip_tracking_params(body))
    return InboundInspection(malicious=False, sanitized=body)
