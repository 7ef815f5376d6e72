"""
Fuzzy name matching for duplicate detection.

Used by the catalog services to warn when a new material, packaging or
label name is suspiciously close to an existing one. Matching never blocks
an operation; callers decide how to surface the warning.
"""

import re
from typing import Any, List, Optional, Sequence

from .constants import DEFAULT_SIMILARITY_THRESHOLD

_SEPARATORS = re.compile(r"[-_\s]+")


def normalize_text(text: str) -> str:
    """Trim and lower-case text for comparison."""
    return text.strip().lower()


def strip_separators(text: str) -> str:
    """Normalize text and remove spaces, dashes and underscores."""
    return _SEPARATORS.sub("", normalize_text(text))


def levenshtein_distance(a: str, b: str) -> int:
    """
    Calculate the Levenshtein (edit) distance between two strings.

    Both strings are normalized (trimmed, lower-cased) first.

    Args:
        a: First string
        b: Second string

    Returns:
        Minimum number of single-character insertions, deletions or
        substitutions turning a into b

    Example:
        >>> levenshtein_distance("Citric Acid", "citric acd")
        1
    """
    s1 = normalize_text(a)
    s2 = normalize_text(b)

    if s1 == s2:
        return 0
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)

    # Keep the shorter string in the inner loop
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            cost = 0 if c1 == c2 else 1
            current_row.append(
                min(
                    previous_row[j + 1] + 1,  # deletion
                    current_row[j] + 1,  # insertion
                    previous_row[j] + cost,  # substitution
                )
            )
        previous_row = current_row

    return previous_row[-1]


def are_strings_similar(str1: str, str2: str) -> bool:
    """
    Check if two strings match once spacing and separators are ignored.

    "Sodium-Chloride", "sodium chloride" and "SODIUM_CHLORIDE" are all
    considered the same name.
    """
    if normalize_text(str1) == normalize_text(str2):
        return True
    return strip_separators(str1) == strip_separators(str2)


def is_similar_name(
    candidate: str, existing: str, threshold: int = DEFAULT_SIMILARITY_THRESHOLD
) -> bool:
    """
    Check if two names are near-duplicates.

    Names are similar when their edit distance is within threshold, or when
    they are identical after stripping separators.
    """
    if levenshtein_distance(candidate, existing) <= threshold:
        return True
    return are_strings_similar(candidate, existing)


def _item_attr(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def find_similar_items(
    search_term: str,
    items: Sequence[Any],
    current_id: Optional[str] = None,
    threshold: int = DEFAULT_SIMILARITY_THRESHOLD,
) -> List[Any]:
    """
    Find items whose name is a near-duplicate of search_term.

    Args:
        search_term: Name being entered
        items: Records (objects or dicts) with ``id`` and ``name``
        current_id: Id of the record being edited; excluded from results
        threshold: Maximum edit distance counted as similar

    Returns:
        Matching items in their original order
    """
    if not search_term or not search_term.strip():
        return []

    matches = []
    for item in items:
        if current_id is not None and _item_attr(item, "id") == current_id:
            continue
        name = _item_attr(item, "name")
        if name is None:
            continue
        if is_similar_name(search_term, name, threshold):
            matches.append(item)
    return matches
