"""
Minimal English singularization for resource names.

Only the shapes common in REST resource names are handled.
"""

from __future__ import annotations

import re

UNCOUNTABLE = frozenset(
    {"data", "equipment", "information", "media", "metadata", "news", "series", "species"}
)

IRREGULAR = {
    "children": "child",
    "feet": "foot",
    "geese": "goose",
    "men": "man",
    "mice": "mouse",
    "people": "person",
    "teeth": "tooth",
    "women": "woman",
}

RULES: tuple[tuple[str, str], ...] = (
    (r"(quiz)zes$", r"\1"),
    (r"(matr|vert|ind)ices$", r"\1ix"),
    (r"(alias|status|bus|campus)es$", r"\1"),
    (r"(x|ch|ss|sh)es$", r"\1"),
    (r"(m)ovies$", r"\1ovie"),
    (r"([^aeiouy]|qu)ies$", r"\1y"),
    (r"([lr])ves$", r"\1f"),
    (r"(analy|ba|diagno|parenthe|progno|synop|the)ses$", r"\1sis"),
    (r"ss$", "ss"),
    (r"us$", "us"),
    (r"s$", ""),
)


def singularize(word: str) -> str:
    """
    Returns the singular form of `word`, keeping the separators of
    compound names such as `blog_posts` or `order-items`.
    """
    head, sep, last = _split_last(word)
    lower = last.lower()

    if lower in UNCOUNTABLE:
        return word
    if lower in IRREGULAR:
        return head + sep + _match_case(last, IRREGULAR[lower])

    for pattern, replacement in RULES:
        if re.search(pattern, last, flags=re.IGNORECASE):
            return head + sep + re.sub(pattern, replacement, last, flags=re.IGNORECASE)
    return word


def _split_last(word: str) -> tuple[str, str, str]:
    for separator in ("_", "-", "."):
        if separator in word:
            head, _, last = word.rpartition(separator)
            return head, separator, last
    return "", "", word


def _match_case(source: str, target: str) -> str:
    if source.isupper():
        return target.upper()
    if source[:1].isupper():
        return target.capitalize()
    return target
