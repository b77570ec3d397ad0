"""Replace detected PII spans with typed redaction tokens."""

import logging
import re

from .models import TOKEN_PREFIX, Redaction, make_token
from .validators import fnv1a_hex

logger = logging.getLogger(__name__)

_NON_DIGIT = re.compile(r"\D")


def token_for(redaction: Redaction) -> str:
    """Build the redaction token for one span.

    Args:
        redaction: Detected span

    Returns:
        Token such as ``⟦EMAIL:example.com⟧`` or ``⟦SSN⟧``
    """
    value = redaction.value
    if redaction.type == "email":
        domain = value.rsplit("@", 1)[-1].lower()
        return make_token(f"EMAIL:{domain}")
    if redaction.type == "card":
        last4 = _NON_DIGIT.sub("", value)[-4:]
        return make_token(f"CARD:**** **** **** {last4}")
    if redaction.type == "phone":
        last4 = _NON_DIGIT.sub("", value)[-4:]
        return make_token(f"PHONE:{last4}")
    if redaction.type == "api_key":
        return make_token(f"APIKEY:{fnv1a_hex(value)[:8]}")
    if redaction.type == "address_full":
        return make_token("ADDRESS")
    return make_token(redaction.type.upper())


def mask_pii(text: str, redactions: list[Redaction]) -> str:
    """Mask PII spans in text.

    Text that already carries a redaction token is returned unchanged, so
    masking is safe to repeat on reprocessed payloads.

    Args:
        text: Original text
        redactions: Spans from the detector

    Returns:
        Text with every in-range span replaced by its token
    """
    if not text or TOKEN_PREFIX in text:
        return text

    masked = text
    # Back to front so earlier offsets stay valid
    for redaction in sorted(redactions, key=lambda r: r.start, reverse=True):
        if redaction.start < 0 or redaction.end > len(text) or redaction.start >= redaction.end:
            logger.debug("Skipping out-of-range %s redaction", redaction.type)
            continue
        masked = masked[: redaction.start] + token_for(redaction) + masked[redaction.end :]
    return masked
