"""Risk model weights and level thresholds.

Values are tunable but must keep their rank order: sensitive categories
above work-like ones above general browsing, and cloud processing
strictly above unknown above on-device.
"""

from .models import Processing, RiskLevel, SiteCategory

CATEGORY_BASE: dict[SiteCategory, int] = {
    SiteCategory.BANKING: 45,
    SiteCategory.HEALTHCARE: 40,
    SiteCategory.GOVERNMENT: 40,
    SiteCategory.WORK: 25,
    SiteCategory.DEVELOPER: 20,
    SiteCategory.ECOMMERCE: 20,
    SiteCategory.EDUCATION: 20,
    SiteCategory.SOCIAL: 15,
    SiteCategory.NEWS: 10,
    SiteCategory.GENERAL: 10,
}

DATA_WEIGHTS: dict[str, int] = {
    "biometric": 40,
    "ssn": 35,
    "card": 35,
    "api_key": 30,
    "password": 30,
    "iban": 25,
    "address_full": 20,
    "dob": 20,
    "phone": 15,
    "crypto_addr": 15,
    "email": 10,
    "name": 5,
}

PROCESSING_WEIGHTS: dict[Processing, int] = {
    Processing.CLOUD: 25,
    Processing.UNKNOWN: 10,
    Processing.ON_DEVICE: 5,
}

TRACKER_WEIGHTS: dict[bool, int] = {True: 10, False: 0}

# A repeated field contributes at most this many times its weight
DATA_CAP_MULTIPLIER = 3

# Weight at or above which a detected type becomes a red flag
RED_FLAG_WEIGHT = 20

HIGH_THRESHOLD = 65
MEDIUM_THRESHOLD = 35

SENSITIVE_SITE_CATEGORIES: frozenset[SiteCategory] = frozenset(
    {SiteCategory.BANKING, SiteCategory.HEALTHCARE, SiteCategory.GOVERNMENT}
)


def to_level(score: float) -> RiskLevel:
    """Map a 0-100 score to a risk level."""
    if score >= HIGH_THRESHOLD:
        return RiskLevel.HIGH
    if score >= MEDIUM_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW
