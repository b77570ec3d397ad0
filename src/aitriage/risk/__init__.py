"""Risk scoring: weights, site-category inference and the assessment engine."""

from aitriage.risk.categories import infer_site_category
from aitriage.risk.engine import assess_risk, explain_risk
from aitriage.risk.models import Processing, RiskAssessment, RiskContext, RiskLevel, SiteCategory
from aitriage.risk.weights import to_level

__all__ = [
    "Processing",
    "RiskAssessment",
    "RiskContext",
    "RiskLevel",
    "SiteCategory",
    "assess_risk",
    "explain_risk",
    "infer_site_category",
    "to_level",
]
