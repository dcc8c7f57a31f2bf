"""Normalized edit-distance similarity between entity names."""

from rapidfuzz.distance import Levenshtein


def similarity(a: str, b: str) -> float:
    """Case-insensitive Levenshtein similarity in [0, 1].

    ``1 - distance / max(len(a), len(b))``; two empty strings are identical.
    """
    a, b = a.lower(), b.lower()
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    distance = Levenshtein.distance(a, b)
    return (longest - distance) / longest
