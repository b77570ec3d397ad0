"""Extra masking for sensitive site categories."""

import re

SENSITIVE_CATEGORIES: frozenset[str] = frozenset({"banking", "healthcare", "government", "work"})

# (pattern, replacement) applied in order
CONTEXT_RULES: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(r"\b([A-Z][a-z]+\s+[A-Z][a-z]+)\b\s*\(?(ID|MRN|Invoice)[:#]\s*\w+\)?"),
        r"⟦NAME⟧ (\2: ⟦ID⟧)",
    ),
    (re.compile(r"\b(?:INV|CLAIM|TKT)-\d{4}-\d{3,5}\b"), "⟦DOC_ID⟧"),
    (
        re.compile(
            r"\b\d+\s+(?:[A-Za-z0-9._'-]+\s){1,5}"
            r"(?:Street|Road|Avenue|Boulevard|Lane|Drive|St|Rd|Ave|Blvd|Ln|Dr)\b\.?",
            re.IGNORECASE,
        ),
        "⟦ADDRESS⟧",
    ),
]


def apply_context_rules(text: str, category: str) -> str:
    """Mask name/ID pairs, document ids and addresses on sensitive sites.

    Args:
        text: Text, usually already masked
        category: Site category value (e.g. "banking")

    Returns:
        Text with category rules applied; unchanged for other categories
    """
    if not text or str(category) not in SENSITIVE_CATEGORIES:
        return text
    out = text
    for pattern, replacement in CONTEXT_RULES:
        out = pattern.sub(replacement, out)
    return out
