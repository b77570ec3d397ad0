"""Session decisions for outbound payloads and inbound responses."""

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from .models import PIISummary

if TYPE_CHECKING:
    from aitriage.risk.models import RiskAssessment

# Secrets that should never leave the device, masked or not
CRITICAL_TYPES: frozenset[str] = frozenset({"api_key", "password", "jwt"})


class SessionAction(StrEnum):
    """What the caller should do with a payload or response."""

    ALLOW = "allow"  # Pass through as-is
    REWRITE = "rewrite"  # Pass the sanitized version
    BLOCK = "block"  # Drop it


@dataclass
class SessionDecision:
    """Advice for one payload or response."""

    action: SessionAction
    reason: str | None = None


def has_critical_secrets(summary: PIISummary) -> bool:
    """Whether the summary includes any critical secret type."""
    return bool(summary.kinds & CRITICAL_TYPES)


def decide_outbound(
    assessment: "RiskAssessment", has_critical_secrets: bool, strict: bool = False
) -> SessionDecision:
    """Decide whether an outbound payload may be sent.

    Args:
        assessment: Risk assessment of the destination context
        has_critical_secrets: Whether the payload carried a critical secret
        strict: Block instead of rewrite on high risk

    Returns:
        SessionDecision with action and reason
    """
    if has_critical_secrets:
        return SessionDecision(SessionAction.BLOCK, "Critical secret detected")
    if assessment.level == "high" and strict:
        return SessionDecision(SessionAction.BLOCK, "High risk (strict mode)")
    if assessment.level == "high":
        return SessionDecision(SessionAction.REWRITE, "High risk: sanitized")
    return SessionDecision(SessionAction.ALLOW)


def decide_inbound(
    has_malicious: bool, assessment: "RiskAssessment", strict: bool = False
) -> SessionDecision:
    """Decide what to do with a response coming back from an AI service.

    Args:
        has_malicious: Whether inspection found scripts, javascript: links or trackers
        assessment: Risk assessment of the page context
        strict: Block malicious responses and rewrite high-risk ones

    Returns:
        SessionDecision with action and reason
    """
    if has_malicious and strict:
        return SessionDecision(SessionAction.BLOCK, "Malicious content (strict mode)")
    if has_malicious:
        return SessionDecision(SessionAction.REWRITE, "Sanitized response")
    if assessment.level == "high" and strict:
        return SessionDecision(SessionAction.REWRITE, "High risk (strict)")
    return SessionDecision(SessionAction.ALLOW)
