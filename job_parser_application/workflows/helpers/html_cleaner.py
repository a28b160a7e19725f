from __future__ import annotations

import html as html_lib
import json
from typing import Any

from .regex_patterns import (
    HORIZONTAL_WHITESPACE_RE,
    HTML_ATTR_NOISE_RE,
    HTML_BLOCK_CLOSE_RE,
    HTML_COMMENT_RE,
    HTML_LINE_BREAK_RE,
    HTML_LIST_ITEM_OPEN_RE,
    HTML_SCRIPT_OR_STYLE_BLOCK_RE,
    HTML_TAG_RE,
    LINE_WRAPPED_WHITESPACE_RE,
    MULTI_NEWLINE_RE,
)

_JOB_HINTS = ("job", "career", "position", "opening", "role", "vacanc")


def clean_html(raw: str | None) -> str:
    """Convert an HTML fragment (job description) into readable plain text."""

    if not raw:
        return ""
    text = html_lib.unescape(raw)
    # Some vendors double-encode their description markup.
    if "&lt;" in text or "&gt;" in text:
        text = html_lib.unescape(text)
    text = HTML_SCRIPT_OR_STYLE_BLOCK_RE.sub(" ", text)
    text = HTML_LINE_BREAK_RE.sub("\n", text)
    text = HTML_BLOCK_CLOSE_RE.sub("\n", text)
    text = HTML_LIST_ITEM_OPEN_RE.sub("- ", text)
    text = HTML_TAG_RE.sub(" ", text)
    text = HORIZONTAL_WHITESPACE_RE.sub(" ", text)
    text = LINE_WRAPPED_WHITESPACE_RE.sub("\n", text)
    text = MULTI_NEWLINE_RE.sub("\n\n", text)
    return text.strip()


def strip_for_llm(raw: str | None) -> str:
    """Drop scripts, styles, comments and noisy attributes but keep the tag skeleton."""

    if not raw:
        return ""
    text = HTML_COMMENT_RE.sub("", raw)
    text = HTML_SCRIPT_OR_STYLE_BLOCK_RE.sub("", text)
    text = HTML_ATTR_NOISE_RE.sub("", text)
    text = HORIZONTAL_WHITESPACE_RE.sub(" ", text)
    text = LINE_WRAPPED_WHITESPACE_RE.sub("\n", text)
    return MULTI_NEWLINE_RE.sub("\n\n", text).strip()


def truncate_html_sample(raw: str | None, limit: int = 3500) -> str:
    """Keep the region around the first job-ish keyword, capped at ``limit`` chars."""

    text = strip_for_llm(raw)
    if len(text) <= limit:
        return text
    lower = text.lower()
    positions = [lower.find(hint) for hint in _JOB_HINTS if lower.find(hint) >= 0]
    start = max(min(positions) - limit // 5, 0) if positions else 0
    return text[start : start + limit]


def truncate_json_sample(document: Any, limit: int = 3500) -> str:
    """Serialize a JSON document for a prompt; long arrays keep only a few elements."""

    def _shrink(node: Any, depth: int = 0) -> Any:
        if depth > 6:
            return "..."
        if isinstance(node, list):
            return [_shrink(child, depth + 1) for child in node[:2]]
        if isinstance(node, dict):
            return {key: _shrink(value, depth + 1) for key, value in node.items()}
        if isinstance(node, str) and len(node) > 200:
            return node[:200] + "..."
        return node

    text = json.dumps(_shrink(document), ensure_ascii=False, default=str)
    if len(text) <= limit:
        return text
    return text[:limit]
