"""Sentence and token helpers for the originality checker."""

from __future__ import annotations

import re

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


def tokenize(text: str) -> list[str]:
    """Lowercase whitespace tokens."""
    return text.lower().split()


def split_sentences(text: str, min_chars: int = 10) -> list[str]:
    """Split on terminal punctuation, keeping fragments longer than ``min_chars``.

    Fragments are returned unstripped; callers strip when they need to.
    """
    return [s for s in _SENTENCE_SPLIT_RE.split(text) if len(s.strip()) > min_chars]


def excerpt(text: str, limit: int = 80) -> str:
    """Truncate ``text`` to ``limit`` characters, adding an ellipsis when cut."""
    trimmed = text.strip()[:limit]
    if len(text) > limit:
        return trimmed + "..."
    return trimmed


def population_variance(values: list[int | float]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)
