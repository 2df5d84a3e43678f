"""
Skills normalization (``hiring_kernel.domain.skills``).

Skills arrive as a list or set, as a comma-delimited string, as a JSON array
string (sometimes with single quotes), or as a PostgreSQL array literal
such as ``{python,sql}``.  Everything is folded into one canonical form at
the Request Store boundary: an ordered tuple of stripped, non-empty
strings with duplicates removed (first occurrence wins).  Nothing
downstream ever branches on the original shape.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from hiring_kernel.exceptions import InvalidFieldValueError


def _strip_token(token: str) -> str:
    return token.strip().strip("'\"").strip()


def _split_delimited(text: str) -> list[str]:
    return [_strip_token(part) for part in text.split(",")]


def _parse_string(text: str, field: str) -> list[Any]:
    text = text.strip()
    if not text:
        return []
    if text[0] == "[" and text[-1] == "]":
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            try:
                decoded = json.loads(text.replace("'", '"'))
            except json.JSONDecodeError:
                return _split_delimited(text[1:-1])
        if not isinstance(decoded, list):
            raise InvalidFieldValueError(field, text, "expected a list of skills")
        return decoded
    if text[0] == "{" and text[-1] == "}":
        return _split_delimited(text[1:-1])
    return _split_delimited(text)


def normalize_skills(value: Any, field: str = "candidate_skills") -> tuple[str, ...]:
    """
    Return the canonical ordered skills tuple for any accepted input shape.

    Lists and tuples keep their order.  Sets and frozensets are sorted.
    JSON array text is decoded as-is first; single-quoted arrays are only
    rewritten when plain decoding fails.

    Raises:
        InvalidFieldValueError: for shapes that are not a skills list
            (numbers, mappings, nested lists).
    """
    if value is None:
        return ()
    if isinstance(value, str):
        items: Iterable[Any] = _parse_string(value, field)
    elif isinstance(value, (list, tuple)):
        items = value
    elif isinstance(value, (set, frozenset)):
        # Sets carry no order.
        items = sorted(value, key=str)
    else:
        raise InvalidFieldValueError(
            field, value, "expected a list or a comma-separated string"
        )

    skills: list[str] = []
    seen: set[str] = set()
    for item in items:
        if item is None:
            continue
        if isinstance(item, (list, tuple, dict, set, frozenset)) or isinstance(item, bool):
            raise InvalidFieldValueError(field, value, "skills must be plain strings")
        skill = _strip_token(str(item))
        if skill and skill not in seen:
            seen.add(skill)
            skills.append(skill)
    return tuple(skills)
