"""Collapse per-page text into the single string the field heuristics scan."""

import re
from collections.abc import Sequence

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Collapse every whitespace run (newlines included) to one space and trim."""
    return _WHITESPACE.sub(" ", text).strip()


def normalize_pages(pages: Sequence[str]) -> str:
    """Join pages in order and normalize the result.

    Page order matters: several heuristics pick candidates by their position
    in the concatenated text.
    """
    return normalize_text("\n".join(page or "" for page in pages))
