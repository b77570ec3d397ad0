"""Checksum and hashing helpers used by the PII layer.

All functions here are pure. ``fnv1a_hex`` produces short labels for
masked values; it is not reversible and not a security control.
"""

import re

_IBAN_SHAPE = re.compile(r"^[A-Z]{2}\d{2}[A-Z0-9]{10,30}$")
_PARAGRAPH_BREAK = re.compile(r"\n{2,}")

_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193


def luhn_valid(number: str) -> bool:
    """Check a 13-19 digit number against the Luhn checksum.

    Non-digit characters (spaces, dashes) are ignored.
    """
    digits = [ord(c) - 48 for c in number or "" if "0" <= c <= "9"]
    if not 13 <= len(digits) <= 19:
        return False
    total = 0
    for i, d in enumerate(reversed(digits)):
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return total % 10 == 0


def iban_valid(iban: str) -> bool:
    """Validate an IBAN with the ISO 13616 mod-97 check."""
    clean = re.sub(r"\s+", "", iban or "").upper()
    if not _IBAN_SHAPE.match(clean):
        return False
    rearranged = clean[4:] + clean[:4]
    remainder = 0
    for ch in rearranged:
        # Letters expand to two digits (A=10 .. Z=35)
        if ch.isdigit():
            remainder = (remainder * 10 + int(ch)) % 97
        else:
            remainder = (remainder * 100 + ord(ch) - 55) % 97
    return remainder == 1


def fnv1a_hex(text: str) -> str:
    """32-bit FNV-1a hash of ``text`` as 8 lowercase hex characters."""
    h = _FNV_OFFSET
    for ch in text or "":
        h ^= ord(ch)
        h = (h * _FNV_PRIME) & 0xFFFFFFFF
    return f"{h:08x}"


def chunk_by_paragraph(text: str, max_chars: int = 4000) -> list[str]:
    """Split text on blank lines, slicing paragraphs longer than ``max_chars``.

    Args:
        text: Input text
        max_chars: Maximum chunk length

    Returns:
        Ordered list of chunks
    """
    chunks: list[str] = []
    for paragraph in _PARAGRAPH_BREAK.split(text or ""):
        if len(paragraph) <= max_chars:
            chunks.append(paragraph)
        else:
            chunks.extend(paragraph[i : i + max_chars] for i in range(0, len(paragraph), max_chars))
    return chunks
