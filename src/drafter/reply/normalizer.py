"""Deterministic HTML post-processing of generated reply drafts.

The model output is turned into the final draft body by a fixed sequence of
regex-based passes:

1. plain text is wrapped into a paragraph
2. bullet lines become a list and a single long paragraph is split
   (only when ``ReplyPolicy.enforce_structure`` is on)
3. a personalized greeting is added or fixed up, duplicates collapsed
4. the call-to-action sentence is appended unless the organization's
   domain is already linked
5. the signature is appended unless already present
6. exactly one spacer paragraph is placed between adjacent paragraphs

Every pass is idempotent, and so is ``normalize_reply``.  The passes work
on the markup as text; they do not parse, validate, or sanitize HTML.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict

from drafter.missive.models import Contact
from drafter.text import strip_tags

SPACER = "<p><br></p>"

_TAG_LIKE_RE = re.compile(r"</?[a-z][\s\S]*>", re.IGNORECASE)
_PARAGRAPH_RE = re.compile(r"<p\b[^>]*>(.*?)</p>", re.IGNORECASE | re.DOTALL)
_LIST_RE = re.compile(r"<(?:ul|ol)\b", re.IGNORECASE)
_LINE_BREAK_RE = re.compile(r"<br\s*/?>|\n", re.IGNORECASE)
_BULLET_LINE_RE = re.compile(r"^[-*•–]\s+(.+)$")
_SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?])(?:\s|<br\s*/?>)+", re.IGNORECASE)
_SPACER_PATTERN = r"<p\b[^>]*>\s*(?:<br\s*/?>|&nbsp;)?\s*</p>"
_SPACER_AFTER_PARAGRAPH_RE = re.compile(rf"(</p>)\s*(?:{_SPACER_PATTERN}\s*)+", re.IGNORECASE)
_ADJACENT_PARAGRAPHS_RE = re.compile(r"</p>\s*<p(?=[\s>])", re.IGNORECASE)
_NAME_SEPARATORS_RE = re.compile(r"[._+\-]+")


class ReplyPolicy(BaseModel):
    """Organization-specific wording and rules for the post-processing passes."""

    model_config = ConfigDict(frozen=True)

    organization_domain: str = "tab.travel"
    greeting_words: tuple[str, ...] = ("hi", "hello", "dear")
    greeting: str = "Hi"
    fallback_name: str = "there"
    operator_name: str = "Alex"
    support_label: str = "Tab Support"
    signature_html: str = ""
    cta_sentence: str = 'You can learn more and get started <a href="{url}">here</a>.'
    enforce_structure: bool = True

    @property
    def signature(self) -> str:
        """The signature block, built from the operator name unless overridden."""
        if self.signature_html:
            return self.signature_html
        return f"<p>Best regards,</p><p>{self.operator_name}<br>{self.support_label}</p>"


DEFAULT_REPLY_POLICY = ReplyPolicy()


def ensure_html(raw: str) -> str:
    """Wrap *raw* in a paragraph (newlines as ``<br/>``) if it has no markup."""
    if _TAG_LIKE_RE.search(raw):
        return raw
    text = raw.strip().replace("\r\n", "\n")
    return "<p>" + text.replace("\n", "<br/>") + "</p>"


def first_name(contact: Contact | None) -> str | None:
    """Derive a capitalized first name for *contact*.

    Uses the first word of the display name, or failing that the first word
    of the address local part with ``.``, ``_``, ``-`` and ``+`` treated as
    spaces (``maria.gomez@x.com`` -> ``Maria``).

    Returns:
        The name, or ``None`` when nothing name-like is available.
    """
    if contact is None:
        return None
    candidate = contact.name.strip()
    if not candidate or "@" in candidate:
        local = contact.address.partition("@")[0]
        candidate = _NAME_SEPARATORS_RE.sub(" ", local)
    for word in candidate.split():
        word = word.strip("\"'(),;:")
        if any(ch.isalpha() for ch in word):
            return word[:1].upper() + word[1:]
    return None


def convert_bullets(html: str) -> str:
    """Turn runs of two or more ``-``/``*``/``•`` lines inside a paragraph into a list.

    Bodies that already contain list markup are left alone.
    """
    if _LIST_RE.search(html):
        return html
    return _PARAGRAPH_RE.sub(_convert_paragraph_bullets, html)


def _convert_paragraph_bullets(match: re.Match[str]) -> str:
    lines = [line.strip() for line in _LINE_BREAK_RE.split(match.group(1))]
    segments: list[tuple[str, list[str]]] = []
    for line in lines:
        if not line:
            continue
        bullet = _BULLET_LINE_RE.match(line)
        kind = "list" if bullet else "text"
        value = bullet.group(1).strip() if bullet else line
        if segments and segments[-1][0] == kind:
            segments[-1][1].append(value)
        else:
            segments.append((kind, [value]))

    if not any(kind == "list" and len(items) >= 2 for kind, items in segments):
        return match.group(0)

    parts: list[str] = []
    pending_text: list[str] = []
    for kind, items in segments:
        if kind == "list" and len(items) >= 2:
            if pending_text:
                parts.append("<p>" + "<br/>".join(pending_text) + "</p>")
                pending_text = []
            parts.append("<ul>" + "".join(f"<li>{item}</li>" for item in items) + "</ul>")
        elif kind == "list":
            # A lone bullet stays as a text line
            pending_text.extend(f"- {item}" for item in items)
        else:
            pending_text.extend(items)
    if pending_text:
        parts.append("<p>" + "<br/>".join(pending_text) + "</p>")
    return "".join(parts)


def split_long_paragraph(html: str) -> str:
    """Split a body made of one paragraph into paragraphs of two sentences."""
    if _LIST_RE.search(html):
        return html
    matches = list(_PARAGRAPH_RE.finditer(html))
    if len(matches) != 1:
        return html
    match = matches[0]
    sentences = [s.strip() for s in _SENTENCE_BREAK_RE.split(match.group(1)) if s.strip()]
    if len(sentences) <= 2:
        return html
    chunks = [
        "<p>" + " ".join(sentences[i : i + 2]) + "</p>" for i in range(0, len(sentences), 2)
    ]
    return html[: match.start()] + "".join(chunks) + html[match.end() :]


def _greeting_alternation(policy: ReplyPolicy) -> str:
    return "|".join(re.escape(word) for word in policy.greeting_words)


def starts_with_greeting(html: str, policy: ReplyPolicy = DEFAULT_REPLY_POLICY) -> bool:
    """Whether the text of *html* opens with one of the policy's greeting words."""
    text = strip_tags(html).lstrip()
    return re.match(rf"(?:{_greeting_alternation(policy)})\b", text, re.IGNORECASE) is not None


def collapse_greetings(html: str, policy: ReplyPolicy = DEFAULT_REPLY_POLICY) -> str:
    """Drop the second of two adjacent greeting paragraphs, keeping the first.

    A greeting paragraph is a greeting word, at most two name tokens, and a
    closing comma or exclamation mark.
    """
    greeting_paragraph = (
        rf"<p\b[^>]*>\s*(?:{_greeting_alternation(policy)})\b"
        r"(?:\s+[^\s<,.!?]+){0,2}\s*[,!]\s*</p>"
    )
    pattern = re.compile(
        rf"({greeting_paragraph})\s*(?:{_SPACER_PATTERN}\s*)*{greeting_paragraph}",
        re.IGNORECASE,
    )
    previous = None
    while previous != html:
        previous = html
        html = pattern.sub(r"\1", html, count=1)
    return html


def enforce_greeting(
    html: str,
    recipient_name: str | None,
    policy: ReplyPolicy = DEFAULT_REPLY_POLICY,
) -> str:
    """Make sure the body opens with exactly one greeting.

    A body without a greeting gets ``<p>Hi {name},</p>`` prepended (the
    fallback name when the recipient is unknown).  A body opening with the
    generic "Hi there" is personalized in place when the name is known.
    """
    if starts_with_greeting(html, policy):
        if recipient_name:
            generic = re.compile(
                rf"^(\s*(?:<[^>]+>\s*)*)({_greeting_alternation(policy)})(\s+)"
                rf"{re.escape(policy.fallback_name)}\b",
                re.IGNORECASE,
            )
            html = generic.sub(
                lambda m: f"{m.group(1)}{m.group(2)}{m.group(3)}{recipient_name}", html
            )
    else:
        name = recipient_name or policy.fallback_name
        html = f"<p>{policy.greeting} {name},</p>{html}"
    return collapse_greetings(html, policy)


def append_cta(html: str, cta_url: str, policy: ReplyPolicy = DEFAULT_REPLY_POLICY) -> str:
    """Append the call-to-action sentence unless the body already links the organization."""
    lowered = html.lower()
    markers = [m.lower() for m in (policy.organization_domain, cta_url) if m]
    if any(marker in lowered for marker in markers):
        return html
    return html + "<p>" + policy.cta_sentence.format(url=cta_url) + "</p>"


def append_signature(html: str, policy: ReplyPolicy = DEFAULT_REPLY_POLICY) -> str:
    """Append the signature unless both the operator name and support label are present."""
    if policy.operator_name in html and policy.support_label in html:
        return html
    return html + policy.signature


def space_paragraphs(html: str) -> str:
    """Put exactly one ``<p><br></p>`` spacer between adjacent paragraphs.

    Existing spacers following a paragraph are removed first, so repeated
    application never stacks spacers.
    """
    collapsed = _SPACER_AFTER_PARAGRAPH_RE.sub(r"\1", html)
    return _ADJACENT_PARAGRAPHS_RE.sub("</p>" + SPACER + "<p", collapsed)


def normalize_reply(
    raw: str,
    *,
    cta_url: str,
    recipient_name: str | None,
    policy: ReplyPolicy = DEFAULT_REPLY_POLICY,
) -> str:
    """Turn raw generated text into the final draft HTML.

    Args:
        raw: The generated reply, HTML or plain text.
        cta_url: The fully qualified call-to-action URL for this thread.
        recipient_name: First name of the reply target, if known.
        policy: Organization wording and structure rules.

    Returns:
        The post-processed HTML body.
    """
    html = ensure_html(raw)
    if policy.enforce_structure:
        html = convert_bullets(html)
        html = split_long_paragraph(html)
    html = enforce_greeting(html, recipient_name, policy)
    html = append_cta(html, cta_url, policy)
    html = append_signature(html, policy)
    return space_paragraphs(html)
