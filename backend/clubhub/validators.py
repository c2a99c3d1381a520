from __future__ import annotations

import re
from collections.abc import Iterable

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_label(value: object) -> str:
    """Collapse internal whitespace and strip; non-strings become empty."""
    if not isinstance(value, str):
        return ""
    return _WHITESPACE_RE.sub(" ", value).strip()


def tag_key(value: str) -> str:
    """Identity used when comparing tags: whitespace-normalized and casefolded."""
    return normalize_label(value).casefold()


def title_case(value: object) -> str:
    # Only the first letter of each word is touched so acronyms like "STEM" survive.
    label = normalize_label(value)
    return " ".join(word[:1].upper() + word[1:] for word in label.split(" ") if word)


def normalize_tags(values: Iterable[object] | None) -> list[str]:
    """Trim, drop blanks and de-duplicate case-insensitively, keeping the first spelling."""
    if values is None or isinstance(values, str):
        return []
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        label = normalize_label(value)
        if not label:
            continue
        key = label.casefold()
        if key in seen:
            continue
        seen.add(key)
        result.append(label)
    return result


def tag_keys(values: Iterable[object] | None) -> set[str]:
    return {tag.casefold() for tag in normalize_tags(values)}
