"""Collapse masked tokens to a configured disclosure level.

The transformer only rewrites tokens already produced by the masker (plus
raw ISO dates for the ``age_range`` date policy). Unknown types and
unknown options leave the text unchanged.
"""

import re
from collections.abc import Callable, Mapping

GRANULARITY_OPTIONS: dict[str, list[str]] = {
    "email": ["domain_only", "full_mask"],
    "phone": ["last_4", "full_mask"],
    "address": ["city_only", "full_mask"],
    "dob": ["age_range", "full_mask"],
    "card": ["last_4", "full_mask"],
}

DEFAULT_GRANULARITY: dict[str, str] = {
    "email": "domain_only",
    "phone": "last_4",
    "address": "city_only",
    "dob": "age_range",
    "card": "last_4",
}

_EMAIL_TOKEN = re.compile(r"⟦EMAIL:[^⟧]*⟧")
_PHONE_TOKEN = re.compile(r"⟦PHONE:[^⟧]*⟧")
_CARD_TOKEN = re.compile(r"⟦CARD:[^⟧]*?(\d{4})⟧")
_CARD_ANY = re.compile(r"⟦CARD:[^⟧]*⟧")
_ISO_DATE = re.compile(r"\b(?:19|20)\d{2}[/.-]\d{1,2}[/.-]\d{1,2}\b")
_DOB_TOKEN = re.compile(r"⟦DOB:[^⟧]*⟧")
_ADDRESS_TOKEN = re.compile(r"⟦ADDRESS\b[^⟧]*⟧")


def _email(text: str, option: str) -> str:
    if option == "full_mask":
        return _EMAIL_TOKEN.sub("⟦EMAIL⟧", text)
    return text


def _phone(text: str, option: str) -> str:
    if option == "full_mask":
        return _PHONE_TOKEN.sub("⟦PHONE⟧", text)
    return text


def _card(text: str, option: str) -> str:
    if option == "last_4":
        return _CARD_TOKEN.sub(r"⟦CARD:\1⟧", text)
    if option == "full_mask":
        return _CARD_ANY.sub("⟦CARD⟧", text)
    return text


def _dob(text: str, option: str) -> str:
    if option == "age_range":
        return _ISO_DATE.sub("⟦DOB:AGE_RANGE⟧", text)
    if option == "full_mask":
        return _DOB_TOKEN.sub("⟦DOB⟧", text)
    return text


def _address(text: str, option: str) -> str:
    if option == "full_mask":
        return _ADDRESS_TOKEN.sub("⟦ADDRESS⟧", text)
    # city_only: the masker already collapses the full address
    return text


_TRANSFORMERS: dict[str, Callable[[str, str], str]] = {
    "email": _email,
    "phone": _phone,
    "card": _card,
    "dob": _dob,
    "address": _address,
}


def apply_granularity(text: str, settings: Mapping[str, str] | None = None) -> str:
    """Apply per-type disclosure policies to masked text.

    Args:
        text: Masked text
        settings: Mapping of data type to option (defaults to DEFAULT_GRANULARITY)

    Returns:
        Text with tokens collapsed to the configured level
    """
    if not text:
        return text
    policy = DEFAULT_GRANULARITY if settings is None else settings
    out = text
    for data_type, option in policy.items():
        transform = _TRANSFORMERS.get(data_type)
        if transform is not None:
            out = transform(out, option)
    return out
