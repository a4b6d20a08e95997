from __future__ import annotations

import html
import re


def clean_query(text: str | None) -> str:
    """Clean a free-text search query.

    - Decode HTML entities (e.g. &amp; -> &)
    - Drop control characters
    - Normalize whitespace and newlines

    Returns an empty string for missing or whitespace-only input.
    """

    if not text:
        return ""

    text = html.unescape(text)
    text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)
    text = text.replace("\r\n", " ").replace("\n", " ")
    text = re.sub(r"\s+", " ", text)

    return text.strip()
