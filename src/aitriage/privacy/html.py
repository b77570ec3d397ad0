"""Strip active content from HTML before it is scanned or passed on.

Only a small set of formatting tags survives. Scripts, styles, inline
event handlers and ``javascript:`` links are removed. Text that merely
contains angle brackets (``a < b``, ``<user@example.com>``) is not treated
as markup.
"""

import re

ALLOWED_TAGS: frozenset[str] = frozenset(
    {"b", "strong", "i", "em", "u", "span", "p", "br", "ul", "ol", "li", "code", "pre"}
)

_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_STYLE_BLOCK = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
_EVENT_HANDLER = re.compile(r"""\s+on[a-z]+\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]+)""", re.IGNORECASE)
_JS_HREF = re.compile(r"""href\s*=\s*(["'])\s*javascript:[^"']*\1""", re.IGNORECASE)
_TAG = re.compile(r"</?([A-Za-z][A-Za-z0-9-]*)(?:\s[^<>]*)?/?>")


def _clean_tag(match: re.Match[str]) -> str:
    if match.group(1).lower() not in ALLOWED_TAGS:
        return ""
    tag = _EVENT_HANDLER.sub("", match.group(0))
    return _JS_HREF.sub(lambda m: f"href={m.group(1)}#{m.group(1)}", tag)


def sanitize_html(text: str) -> str:
    """Remove scripts, handlers, javascript: links and non-formatting tags.

    Args:
        text: HTML or plain text

    Returns:
        Text with only whitelisted formatting tags left
    """
    if not text or not isinstance(text, str):
        return ""
    out = _SCRIPT_BLOCK.sub("", text)
    out = _STYLE_BLOCK.sub("", out)
    return _TAG.sub(_clean_tag, out)
