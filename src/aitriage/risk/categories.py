"""Infer a site category from hostname, URL and page title."""

import re

from .models import SiteCategory

# Checked in order; first match wins
CATEGORY_PATTERNS: list[tuple[SiteCategory, re.Pattern[str]]] = [
    (SiteCategory.GOVERNMENT, re.compile(r"\.gov$|\bgov\b")),
    (
        SiteCategory.BANKING,
        re.compile(
            r"bank|finance|pay|paypal|chase|boa|hsbc|citibank|stripe|square|visa|mastercard"
        ),
    ),
    (SiteCategory.HEALTHCARE, re.compile(r"clinic|health|medical|patient|pharma|hospital|hipaa")),
    (SiteCategory.EDUCATION, re.compile(r"\.edu$|university|college|campus|edu\b")),
    (SiteCategory.DEVELOPER, re.compile(r"github|gitlab|bitbucket|npm|pypi|developer|dev\b")),
    (SiteCategory.ECOMMERCE, re.compile(r"shop|cart|checkout|product|ecommerce|store\b")),
    (
        SiteCategory.SOCIAL,
        re.compile(r"twitter|x\.com|facebook|instagram|linkedin|tiktok|social\b"),
    ),
    (SiteCategory.NEWS, re.compile(r"news|cnn|bbc|nytimes|guardian|reuters|apnews")),
    (
        SiteCategory.WORK,
        re.compile(r"work|intranet|jira|confluence|notion|slack|microsoft|google\s*workspace"),
    ),
]


def infer_site_category(hostname: str, url: str = "", title: str = "") -> SiteCategory:
    """Guess the category of a site.

    Args:
        hostname: Page hostname
        url: Full page URL
        title: Page title

    Returns:
        First matching category, or GENERAL
    """
    haystack = " ".join(part for part in (hostname, url, title) if part).lower()
    for category, pattern in CATEGORY_PATTERNS:
        if pattern.search(haystack):
            return category
    return SiteCategory.GENERAL
