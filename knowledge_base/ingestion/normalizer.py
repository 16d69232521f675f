# =============================================================================
# TEXT NORMALIZER
# =============================================================================
# Converts Markdown/HTML-bearing text into clean prose for the knowledge base
# =============================================================================

"""
Markdown to plain-text normalization.

The normalizer is an ordered sequence of small passes. Later passes assume the
artifacts handled by earlier ones are already gone (links are resolved before
images so ``![alt](src)`` is never mistaken for a link, headings and emphasis
are stripped before bullet markers are rewritten, and so on), so the order in
``NORMALIZATION_PASSES`` is significant.

Every pass only removes characters or rewrites a bullet marker in place, so
re-running the sequence until the output stops changing always terminates;
``normalize`` does exactly that, which makes it idempotent.
"""

import re
from typing import Callable, Tuple

_FENCED_CODE = re.compile(r"(```|~~~)[\s\S]*?\1")
_INLINE_CODE = re.compile(r"`[^`\n]+`")
_LINK = re.compile(r"(?<!!)\[([^\]\n]+)\]\([^)\n]*\)")
_IMAGE = re.compile(r"!\[[^\]\n]*\]\([^)\n]*\)")
_HEADING = re.compile(r"^[ \t]{0,3}#{1,6}[ \t]+", re.MULTILINE)
_STRONG_STAR = re.compile(r"\*\*(?=\S)([^*\n]+?)(?<=\S)\*\*")
_STRONG_UNDERSCORE = re.compile(r"(?<!\w)__(?=\S)([^_\n]+?)(?<=\S)__(?!\w)")
_EM_STAR = re.compile(r"\*(?=\S)([^*\n]+?)(?<=\S)\*")
_EM_UNDERSCORE = re.compile(r"(?<!\w)_(?=\S)([^_\n]+?)(?<=\S)_(?!\w)")
_HORIZONTAL_RULE = re.compile(r"^[ \t]*([-*_])(?:[ \t]*\1){2,}[ \t]*$", re.MULTILINE)
_HTML_COMMENT = re.compile(r"<!--[\s\S]*?-->")
_HTML_TAG = re.compile(r"</?[A-Za-z][A-Za-z0-9-]*(?:\s[^<>]*)?/?>")
_BULLET = re.compile(r"^([ \t]*)[*+-][ \t]+", re.MULTILINE)
_BLANK_LINES = re.compile(r"\n(?:[ \t]*\n){2,}")


def strip_code(text: str) -> str:
    """Remove fenced code blocks and inline code spans."""
    text = _FENCED_CODE.sub("", text)
    return _INLINE_CODE.sub("", text)


def unwrap_links(text: str) -> str:
    """``[label](target)`` -> ``label``."""
    return _LINK.sub(r"\1", text)


def remove_images(text: str) -> str:
    return _IMAGE.sub("", text)


def strip_headings(text: str) -> str:
    return _HEADING.sub("", text)


def strip_emphasis(text: str) -> str:
    """Drop bold/italic markers; underscores inside words are left alone."""
    text = _STRONG_STAR.sub(r"\1", text)
    text = _STRONG_UNDERSCORE.sub(r"\1", text)
    text = _EM_STAR.sub(r"\1", text)
    return _EM_UNDERSCORE.sub(r"\1", text)


def remove_horizontal_rules(text: str) -> str:
    return _HORIZONTAL_RULE.sub("", text)


def strip_html(text: str) -> str:
    text = _HTML_COMMENT.sub("", text)
    return _HTML_TAG.sub("", text)


def normalize_bullets(text: str) -> str:
    return _BULLET.sub(r"\1- ", text)


def collapse_blank_lines(text: str) -> str:
    return _BLANK_LINES.sub("\n\n", text)


def trim(text: str) -> str:
    return text.strip()


NORMALIZATION_PASSES: Tuple[Tuple[str, Callable[[str], str]], ...] = (
    ("code", strip_code),
    ("links", unwrap_links),
    ("images", remove_images),
    ("headings", strip_headings),
    ("emphasis", strip_emphasis),
    ("horizontal_rules", remove_horizontal_rules),
    ("html", strip_html),
    ("bullets", normalize_bullets),
    ("blank_lines", collapse_blank_lines),
    ("trim", trim),
)


def apply_passes(text: str) -> str:
    """Run every pass once, in order."""
    for _, normalization_pass in NORMALIZATION_PASSES:
        text = normalization_pass(text)
    return text


def normalize(markdown: str) -> str:
    """
    Convert Markdown to clean plain text suitable for an LLM context window.

    Args:
        markdown: Raw Markdown (may contain inline HTML)

    Returns:
        Normalized text; empty when nothing but markup was present
    """
    if not markdown:
        return ""

    text = markdown.replace("\r\n", "\n").replace("\r", "\n")
    while True:
        normalized = apply_passes(text)
        if normalized == text:
            return text
        text = normalized
