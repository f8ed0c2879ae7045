"""Pure parsers for phase lists and comma-separated lists.

Phase lists come in three shapes::

    "[1,2,3]"   bracketed
    "1, 2, 3"   comma-separated
    "2-5"       inclusive range  -> [2, 3, 4, 5]

Nothing here touches a DataFrame or reports findings; callers decide what a
bad token means.
"""

from __future__ import annotations

import re
from typing import Any, Iterable

import pandas as pd

_INT_RE = re.compile(r"^[+-]?\d+$")


def is_blank(value: Any) -> bool:
    """True for None, NaN and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _text(value: Any) -> str:
    return "" if is_blank(value) else str(value).strip()


def _strip_brackets(text: str) -> str:
    if text.startswith("[") and text.endswith("]"):
        return text[1:-1].strip()
    return text


def _as_int(token: str) -> int | None:
    token = token.strip()
    return int(token) if _INT_RE.match(token) else None


def split_phase_list(raw: Any) -> tuple[list[int], list[str]]:
    """Parse a phase list and return ``(phases, bad_tokens)``.

    The range form applies only when the text holds a ``-`` but no ``,`` and
    both endpoints are integers with start <= end; anything else falls through
    to comma-splitting. Tokens that are not integers are dropped from the
    phases and returned in *bad_tokens*. Empty tokens are skipped.
    """
    text = _strip_brackets(_text(raw))
    if not text:
        return [], []

    if "-" in text and "," not in text:
        parts = text.split("-")
        if len(parts) == 2:
            start, end = _as_int(parts[0]), _as_int(parts[1])
            if start is not None and end is not None and start <= end:
                return list(range(start, end + 1)), []

    phases: list[int] = []
    bad_tokens: list[str] = []
    for token in text.split(","):
        token = token.strip()
        if not token:
            continue
        num = _as_int(token)
        if num is None:
            bad_tokens.append(token)
        else:
            phases.append(num)
    return phases, bad_tokens


def parse_phase_list(raw: Any) -> list[int]:
    """Parse a phase list, silently dropping unparseable tokens."""
    return split_phase_list(raw)[0]


def join_phase_list(phases: Iterable[int]) -> str:
    return ",".join(str(p) for p in phases)


def format_phase_list(phases: Iterable[int]) -> str:
    """Canonical bracketed form, e.g. ``"[1,2,3]"``."""
    return f"[{join_phase_list(phases)}]"


def strip_list_text(raw: Any) -> str:
    """Whitespace/bracket-normalized original: ``" [1, 2 ,3] "`` -> ``"1,2,3"``."""
    text = _strip_brackets(_text(raw))
    return ",".join(t.strip() for t in text.split(",") if t.strip())


def parse_comma_list(raw: Any) -> list[str]:
    """Split a comma list into trimmed, non-empty tokens."""
    text = _text(raw)
    if not text:
        return []
    return [item.strip() for item in text.split(",") if item.strip()]


def as_number(value: Any) -> float | int | None:
    """Return *value* if it is a real number, else None.

    Numeric strings are not coerced: the loader converts columns before
    validation, so a string here is a data defect the range checks skip.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)) and not pd.isna(value):
        return value
    try:
        # numpy scalars
        if pd.api.types.is_number(value) and not pd.isna(value):
            return value.item() if hasattr(value, "item") else value
    except (TypeError, ValueError):
        return None
    return None
