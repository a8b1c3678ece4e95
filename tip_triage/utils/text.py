"""Text normalisation helpers: tokens, Jaccard similarity, descriptor pairs."""

import re
from typing import Dict, Iterable, Set

from tip_triage.config.patterns import DESCRIPTOR_COLORS, DESCRIPTOR_ITEMS

_TOKEN_RE = re.compile(r"\w+")
_COLOR_ALIASES = {"grey": "gray", "blond": "blonde"}
_DESCRIPTOR_RE = re.compile(
    r"\b(" + "|".join(re.escape(c) for c in DESCRIPTOR_COLORS) + r")\s+("
    + "|".join(re.escape(i) for i in sorted(DESCRIPTOR_ITEMS, key=len, reverse=True))
    + r")\b",
    re.IGNORECASE,
)


def tokenize(text: str) -> Set[str]:
    """Lowercase word tokens of a text."""
    return set(_TOKEN_RE.findall(text.lower()))


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Jaccard similarity of two token collections (0.0 when both empty)."""
    set_a, set_b = set(a), set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def text_similarity(a: str, b: str) -> float:
    """Jaccard similarity over lowercase word tokens."""
    return jaccard(tokenize(a), tokenize(b))


def extract_descriptors(text: str) -> Dict[str, str]:
    """Map described item -> colour, e.g. {"jacket": "red", "hair": "brown"}.

    The first colour mentioned for an item wins.
    """
    descriptors: Dict[str, str] = {}
    for color, item in _DESCRIPTOR_RE.findall(text or ""):
        color = _COLOR_ALIASES.get(color.lower(), color.lower())
        descriptors.setdefault(item.lower(), color)
    return descriptors


def compare_descriptors(left: Dict[str, str], right: Dict[str, str]) -> tuple[int, int]:
    """Count (matches, conflicts) between two descriptor maps on shared items."""
    matches = conflicts = 0
    for item, color in left.items():
        if item not in right:
            continue
        if right[item] == color:
            matches += 1
        else:
            conflicts += 1
    return matches, conflicts


__all__ = [
    "tokenize",
    "jaccard",
    "text_similarity",
    "extract_descriptors",
    "compare_descriptors",
]
