"""Risk scoring engine.

Scores a browsing context from its site category, processing location,
tracker presence and detected PII, and restates the result in plain
English. The optional paraphraser is only ever given computed facts and
its output is bounded in time and length.
"""

import logging

from aitriage.llm.paraphraser import Paraphraser

from .models import Processing, RiskAssessment, RiskContext, SiteCategory
from .weights import (
    CATEGORY_BASE,
    DATA_CAP_MULTIPLIER,
    DATA_WEIGHTS,
    PROCESSING_WEIGHTS,
    RED_FLAG_WEIGHT,
    SENSITIVE_SITE_CATEGORIES,
    TRACKER_WEIGHTS,
    to_level,
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_BASE = 10
MAX_EXPLANATION_CHARS = 240


def _coerce_category(value: str) -> SiteCategory | None:
    try:
        return SiteCategory(value)
    except ValueError:
        return None


def _coerce_processing(value: str) -> Processing:
    try:
        return Processing(value)
    except ValueError:
        return Processing.UNKNOWN


def assess_risk(context: RiskContext) -> RiskAssessment:
    """Compute a 0-100 risk score with level, red flags and factors.

    Args:
        context: Category, processing, trackers and PII summary

    Returns:
        RiskAssessment for the context
    """
    category = _coerce_category(context.site_category)
    processing = _coerce_processing(context.processing)
    counts = {k: v for k, v in context.pii_summary.counts.items() if v > 0}

    factors: dict[str, float] = {}
    base = CATEGORY_BASE.get(category, DEFAULT_CATEGORY_BASE)
    factors["category"] = base

    data_score = 0
    for kind, count in counts.items():
        weight = DATA_WEIGHTS.get(kind, 0)
        contribution = min(weight * count, weight * DATA_CAP_MULTIPLIER)
        factors[f"data:{kind}"] = contribution
        data_score += contribution

    proc_score = PROCESSING_WEIGHTS[processing]
    factors["processing"] = proc_score
    track_score = TRACKER_WEIGHTS[bool(context.trackers_present)]
    factors["trackers"] = track_score

    score = max(0, min(100, round(base + data_score + proc_score + track_score)))

    ai_detected = (
        processing == Processing.CLOUD
        or (processing == Processing.ON_DEVICE and bool(counts))
        or bool(context.trackers_present)
    )

    red_flags: list[str] = []
    if processing == Processing.CLOUD:
        red_flags.append("Cloud processing")
    if context.trackers_present:
        red_flags.append("Trackers detected")
    for kind in counts:
        if DATA_WEIGHTS.get(kind, 0) >= RED_FLAG_WEIGHT:
            red_flags.append(f"{kind} detected")
    if category in SENSITIVE_SITE_CATEGORIES:
        red_flags.append(f"{category} site")

    assessment = RiskAssessment(
        level=to_level(score),
        score=score,
        red_flags=red_flags,
        factors=factors,
        ai_detected=ai_detected,
    )
    logger.debug(
        "Assessed %s: score=%d level=%s flags=%d",
        context.origin or "<no origin>",
        score,
        assessment.level,
        len(red_flags),
    )
    return assessment


def risk_facts(assessment: RiskAssessment, context: RiskContext) -> list[str]:
    """List the computed facts a risk explanation may restate."""
    counts = {k: v for k, v in context.pii_summary.counts.items() if v > 0}
    detected = ", ".join(f"{k}({v})" for k, v in counts.items()) or "none"
    return [
        f"Site category: {context.site_category}",
        f"Processing: {context.processing}",
        f"Trackers present: {'yes' if context.trackers_present else 'no'}",
        f"Data detected: {detected}",
        f"Risk score: {assessment.score} ({assessment.level})",
    ]


def fallback_explanation(assessment: RiskAssessment) -> str:
    """Deterministic explanation built only from the assessment."""
    text = f"Based on site type and detected data, risk is {assessment.level}."
    if assessment.red_flags:
        text = f"{text} {'; '.join(assessment.red_flags)}"
    return text


def build_explanation_prompt(facts: list[str]) -> str:
    fact_lines = "\n".join(f"- {fact}" for fact in facts)
    return (
        f"Facts:\n{fact_lines}\n\n"
        "Rules:\n"
        "- Rephrase clearly in <= 2 sentences.\n"
        "- No advice beyond these facts.\n"
        "- No guessing or inventions.\n"
        "Output only plain English text."
    )


async def explain_risk(
    assessment: RiskAssessment,
    context: RiskContext,
    paraphraser: Paraphraser | None = None,
    timeout: float = 2.0,
) -> str:
    """Explain an assessment in at most two sentences.

    Args:
        assessment: Computed assessment
        context: Context the assessment was computed from
        paraphraser: Optional paraphrase capability
        timeout: Maximum seconds to wait for the paraphraser

    Returns:
        Paraphrased text, or the deterministic fallback
    """
    fallback = fallback_explanation(assessment)
    if paraphraser is None:
        return fallback

    prompt = build_explanation_prompt(risk_facts(assessment, context))
    try:
        text = await paraphraser.try_paraphrase(prompt, timeout)
    except Exception as e:
        logger.warning("Risk explanation paraphrase failed: %s", e)
        return fallback

    text = (text or "").strip()
    if not text:
        return fallback
    return text[:MAX_EXPLANATION_CHARS]
