"""
Common utilities.
"""

import hashlib
import re
from functools import cache
from typing import Any, Mapping

__all__ = [
    "NAMESPACE_SEPARATOR",
    "DECK_SEPARATOR",
    "ANKI_CLOZE_REGEXP",
    "MD_PROPERTIES_REGEXP",
    "base_n_hash",
    "split_namespace",
    "get_prop",
    "as_list",
    "strip_properties",
    "strip_clozes",
]

NAMESPACE_SEPARATOR = "/"
"""
Separator between namespace segments of a page name.
"""

DECK_SEPARATOR = "::"
"""
Separator between levels of Anki deck and tag hierarchies.
"""

ANKI_CLOZE_REGEXP = re.compile(r"\{\{c(\d+)::(.*?)(?:::(?:.*?))?\}\}", re.DOTALL)
"""
Anki cloze, e.g. `{{c1::answer::hint}}`. Group 2 is the answer.
"""

MD_PROPERTIES_REGEXP = re.compile(r"^\s*[\w\-.]+::.*$\n?", re.MULTILINE)
"""
Property line in block content, e.g. `deck:: Spanish`.
"""

BASE62_CHARS = (
    "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
)


def base_n_hash(data: bytes, chars: str = BASE62_CHARS) -> str:
    """
    Hash data using SHAKE-128 and encode as a base-N string, where N is
    len(chars).
    """
    assert len(chars)

    # get hash value as a large integer
    digest = hashlib.shake_128(data).digest(16)
    int_digest = int.from_bytes(digest)

    # consume hash value and generate result
    result = ""
    while int_digest:
        int_digest, index = divmod(int_digest, len(chars))
        result += chars[index]

    # get max possible length of result for this base
    max_len = _get_max_len(128, len(chars))

    # pad result to max length
    return result.ljust(max_len, "0")


def split_namespace(name: str) -> list[str]:
    """
    Split a namespaced page name into its non-empty segments, e.g.
    `"Lang/ Spanish /Verbs"` -> `["Lang", "Spanish", "Verbs"]`.
    """
    return [
        s.strip() for s in name.split(NAMESPACE_SEPARATOR) if s.strip()
    ]


def get_prop(
    properties: Mapping[str, Any] | None, name: str, default: Any = None
) -> Any:
    """
    Lookup a property by name, ignoring case.
    """
    if not properties:
        return default

    if name in properties:
        return properties[name]

    name_lower = name.lower()
    for key, value in properties.items():
        if key.lower() == name_lower:
            return value

    return default


def as_list(value: Any) -> list[Any]:
    """
    Coerce a property value to a list. Comma-separated strings are split.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [value]


def strip_properties(content: str) -> str:
    """
    Remove property lines from block content.
    """
    return MD_PROPERTIES_REGEXP.sub("", content)


def strip_clozes(content: str) -> str:
    """
    Replace each cloze by its answer text.
    """
    return ANKI_CLOZE_REGEXP.sub(r"\2", content)


@cache
def _get_max_len(bit_count: int, char_count: int) -> int:
    """
    Get max length of the resulting hash for the given # bits and # characters
    used to represent it.
    """
    max_digest = (1 << bit_count) - 1
    max_len = 0
    while max_digest:
        max_digest = max_digest // char_count
        max_len += 1
    return max_len
