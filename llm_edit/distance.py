"""Bounded Levenshtein distance and line similarity."""

from __future__ import annotations


def levenshtein_distance(a: str, b: str, max_distance: int | None = None) -> int:
    """Edit distance between two strings.

    Args:
        a: First string
        b: Second string
        max_distance: Optional bound. Once the distance is known to exceed it,
            `max_distance + 1` is returned without finishing the table.

    Returns:
        Number of single-character insertions, deletions or substitutions.
    """
    if a == b:
        return 0
    if max_distance is not None and abs(len(a) - len(b)) > max_distance:
        return max_distance + 1
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Keep the row short
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            )
        if max_distance is not None and min(current) > max_distance:
            return max_distance + 1
        previous = current

    return previous[-1]


def lines_similar(
    a: str,
    b: str,
    max_ratio: float = 0.15,
    min_length: int = 8,
) -> bool:
    """Whether two lines are close enough for the fuzzy matcher.

    Lines are compared after trimming. Short lines (longest under
    `min_length`) must be equal; longer ones may differ by at most
    `max_ratio` of the longer length.
    """
    a = a.strip()
    b = b.strip()
    if a == b:
        return True
    longest = max(len(a), len(b))
    if longest < min_length:
        return False
    budget = int(longest * max_ratio) + 1
    distance = levenshtein_distance(a, b, max_distance=budget)
    # Integer compare avoids float rounding at the boundary
    return distance * 1_000_000 <= round(max_ratio * 1_000_000) * longest


__all__ = ["levenshtein_distance", "lines_similar"]
