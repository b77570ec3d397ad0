"""Data models for risk scoring."""

from dataclasses import dataclass, field
from enum import StrEnum

from aitriage.privacy.models import PIISummary


class SiteCategory(StrEnum):
    """Coarse site category used for the base score."""

    BANKING = "banking"
    HEALTHCARE = "healthcare"
    GOVERNMENT = "government"
    WORK = "work"
    DEVELOPER = "developer"
    ECOMMERCE = "ecommerce"
    EDUCATION = "education"
    SOCIAL = "social"
    NEWS = "news"
    GENERAL = "general"


class Processing(StrEnum):
    """Where the AI processing happens."""

    CLOUD = "cloud"
    ON_DEVICE = "on_device"
    UNKNOWN = "unknown"


class RiskLevel(StrEnum):
    """Three-level risk classification."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class RiskContext:
    """Inputs to a risk assessment."""

    origin: str = ""
    processing: Processing = Processing.UNKNOWN
    trackers_present: bool = False
    site_category: SiteCategory = SiteCategory.GENERAL
    pii_summary: PIISummary = field(default_factory=PIISummary)


@dataclass
class RiskAssessment:
    """Computed risk for one context."""

    level: RiskLevel
    score: int  # 0-100
    red_flags: list[str] = field(default_factory=list)
    factors: dict[str, float] = field(default_factory=dict)
    ai_detected: bool = False

    def to_dict(self) -> dict:
        return {
            "level": str(self.level),
            "score": self.score,
            "red_flags": list(self.red_flags),
            "factors": dict(self.factors),
            "ai_detected": self.ai_detected,
        }
