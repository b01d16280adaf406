"""Raw cell normalization shared by structure detection and aggregation.

Source tables arrive as strings, numbers, or empty cells depending on the
container format. Amount parsing is lenient: currency symbols, thousands
separators, and accounting-style parentheses are accepted, anything else that
does not parse is reported as ``None`` (callers decide whether that means 0).
"""

from __future__ import annotations

import math
from typing import Any


def is_empty_cell(value: Any) -> bool:
    """True for ``None`` and the empty string; whitespace is data."""

    return value is None or (isinstance(value, str) and value == "")


def parse_amount(value: Any) -> float | None:
    """Parse a raw cell into a float, or ``None`` when it is not numeric.

    Accepted string shapes include ``"1200"``, ``"-35.5"``, ``"$1,234.56"``,
    ``"(450)"`` and ``"-($1,234.56)"``. Booleans are not treated as numbers.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        f = float(value)
        return None if math.isnan(f) else f
    if not isinstance(value, str):
        return None

    s = value.strip()
    if not s:
        return None

    negative = False
    # Strip leading sign, currency symbol and surrounding parentheses in any
    # order until stable. A minus sign and a pair of parentheses each flip the
    # sign, so "-(5)" and "(-5)" both read as 5.
    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:].lstrip()
            changed = True
        elif s.startswith("-"):
            negative = not negative
            s = s[1:].lstrip()
            changed = True
        if s.startswith("$"):
            s = s[1:].lstrip()
            changed = True
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = not negative
            s = s[1:-1].strip()
            changed = True
        if not changed:
            break

    s = s.replace(",", "").strip()
    if not s:
        return None
    try:
        f = float(s)
    except ValueError:
        return None
    if math.isnan(f) or math.isinf(f):
        return None
    return -f if negative else f


def amount_or_zero(value: Any) -> float:
    """``parse_amount`` with non-numeric cells counted as ``0.0``."""

    parsed = parse_amount(value)
    return 0.0 if parsed is None else parsed


__all__ = ["is_empty_cell", "parse_amount", "amount_or_zero"]
