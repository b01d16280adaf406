"""Render standardized results for download.

CSV holds the assembled statement (``Label, <periods...>, Total``) with
amounts rounded for presentation; JSON keeps full precision.
"""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Sequence

from .models import AggregatedCategory, StatementRow


def _fixed(value: float, decimals: int) -> str:
    out = f"{value:.{decimals}f}"
    # Avoid "-0" for amounts that round to zero.
    if float(out) == 0:
        out = f"{0:.{decimals}f}"
    return out


def statement_to_csv(
    rows: Sequence[StatementRow],
    period_labels: Sequence[str],
    decimals: int = 0,
) -> str:
    """Return the statement as CSV text, one line per row.

    ``period_labels`` names the period columns (usually the structure's
    amount columns). Rows with fewer period values than labels are padded
    with zeros.
    """

    if decimals < 0:
        raise ValueError("decimals must be non-negative")

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["Label", *period_labels, "Total"])
    n = len(period_labels)
    for row in rows:
        monthly = list(row.monthly_amounts[:n]) + [0.0] * max(0, n - len(row.monthly_amounts))
        writer.writerow(
            [row.label, *(_fixed(v, decimals) for v in monthly), _fixed(row.amount, decimals)]
        )
    return buf.getvalue()


def categories_to_json(categories: Sequence[AggregatedCategory]) -> str:
    """Pre-assembly categories as a pretty JSON array."""

    return json.dumps([c.to_dict() for c in categories], indent=2, ensure_ascii=False)


def statement_to_json(rows: Sequence[StatementRow]) -> str:
    """Assembled statement rows as a pretty JSON array."""

    return json.dumps([r.to_dict() for r in rows], indent=2, ensure_ascii=False)


__all__ = ["statement_to_csv", "categories_to_json", "statement_to_json"]
