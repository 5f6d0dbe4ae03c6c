"""Plain-text helpers shared by thread flattening and CTA routing.

- ``strip_tags``: regex tag removal (no entity decoding, no HTML parsing)
- ``fold``: accent-insensitive form of a string for keyword matching
- ``clamp``: hard character cap with a truncation marker
"""

from __future__ import annotations

import re
import unicodedata

TRUNCATION_MARKER = "\n[...truncated for length...]"

_SCRIPT_STYLE_RE = re.compile(r"<(style|script)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_BLOCK_TAG_RE = re.compile(
    r"</?(?:br|p|div|li|ul|ol|table|tr|td|th|hr|h[1-6]|blockquote)\b[^>]*>",
    re.IGNORECASE,
)
_TAG_RE = re.compile(r"<[^>]+>")


def strip_tags(html: str) -> str:
    """Remove markup from *html*, leaving its text content.

    Block-level tags become newlines so paragraphs stay on separate lines;
    every other ``<...>`` sequence is dropped.  Entities are left as-is and
    malformed markup gets no special treatment.  Text without tags is
    returned unchanged.

    Args:
        html: An HTML (or plain text) string.

    Returns:
        The text content of *html*.
    """
    if "<" not in html:
        return html
    text = _SCRIPT_STYLE_RE.sub("", html)
    text = _BLOCK_TAG_RE.sub("\n", text)
    return _TAG_RE.sub("", text)


def fold(text: str) -> str:
    """Return *text* with diacritics removed (``"Integração"`` -> ``"Integracao"``)."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def clamp(text: str, max_chars: int) -> str:
    """Cap *text* at *max_chars* characters.

    Over-long text is cut and suffixed with ``TRUNCATION_MARKER``; the marker
    counts against the limit, so clamping an already clamped string at the
    same limit is a no-op.

    Args:
        text: The text to cap.
        max_chars: Maximum length of the result.

    Returns:
        *text* unchanged when short enough, otherwise the truncated text.
    """
    if len(text) <= max_chars:
        return text
    keep = max_chars - len(TRUNCATION_MARKER)
    if keep <= 0:
        return text[:max_chars]
    return text[:keep] + TRUNCATION_MARKER
