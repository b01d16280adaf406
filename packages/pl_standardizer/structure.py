"""Structure detection: which column holds labels, which hold period amounts.

Heuristics
----------
- Label column: the first column whose name contains one of ``label``,
  ``description``, ``account``, ``item`` or ``name`` (case-insensitive);
  otherwise the first column.
- Amount columns: every other column whose name carries an amount/period token
  (``amount``, ``value``, ``balance``, ``total``, a month abbreviation, or
  ``q1``..``q4``), or whose first few sampled cells are mostly numeric. When no
  column qualifies, every non-label column is used.

Detection is deterministic: column order is the order in which columns are
first seen across the table's rows.
"""

from __future__ import annotations

from collections.abc import Sequence

from .errors import EmptyTableError, InsufficientColumnsError, InvalidInputError
from .logging_setup import get_logger
from .models import Row, Structure, Table
from .normalizers import parse_amount

LABEL_TOKENS: tuple[str, ...] = ("label", "description", "account", "item", "name")

MONTH_TOKENS: tuple[str, ...] = (
    "jan", "feb", "mar", "apr", "may", "jun",
    "jul", "aug", "sep", "oct", "nov", "dec",
)
AMOUNT_TOKENS: tuple[str, ...] = (
    ("amount", "value", "balance", "total") + MONTH_TOKENS + ("q1", "q2", "q3", "q4")
)

_SAMPLE_SIZE = 5
_NUMERIC_RATIO = 0.6


_logger = get_logger("pl_standardizer.structure")


def table_columns(table: Table) -> tuple[str, ...]:
    """Union of column names across rows, in first-seen order."""

    seen: dict[str, None] = {}
    for row in table:
        for col in row.keys():
            seen.setdefault(str(col), None)
    return tuple(seen)


def _pick_label_column(columns: Sequence[str]) -> str:
    for col in columns:
        lowered = col.lower()
        if any(tok in lowered for tok in LABEL_TOKENS):
            return col
    return columns[0]


def _is_numeric_sample(rows: Sequence[Row], col: str) -> bool:
    sample = [row.get(col) for row in rows[:_SAMPLE_SIZE]]
    if not sample:
        return False
    numeric = sum(1 for v in sample if parse_amount(v) is not None)
    return numeric >= len(sample) * _NUMERIC_RATIO


def _looks_like_amount_column(table: Table, col: str) -> bool:
    lowered = col.lower()
    if any(tok in lowered for tok in AMOUNT_TOKENS):
        return True
    return _is_numeric_sample(table, col)


def detect_structure(table: Table) -> Structure:
    """Infer the label column and ordered amount columns of ``table``.

    Raises
    ------
    EmptyTableError
        When ``table`` has no rows.
    InsufficientColumnsError
        When the table has fewer than two columns.
    """

    if table is None:
        raise InvalidInputError("detect_structure requires a table")
    rows = list(table)
    if not rows:
        raise EmptyTableError("Cannot detect structure of an empty table")

    columns = table_columns(rows)
    if len(columns) < 2:
        raise InsufficientColumnsError(
            f"Need a label column and at least one amount column; got columns {list(columns)}"
        )

    label_column = _pick_label_column(columns)
    others = [c for c in columns if c != label_column]
    amount_columns = [c for c in others if _looks_like_amount_column(rows, c)]
    if not amount_columns:
        _logger.info(
            "detect:fallback_all_columns label_column=%s columns=%d",
            label_column,
            len(others),
        )
        amount_columns = others

    structure = Structure(
        label_column=label_column,
        amount_columns=tuple(amount_columns),
        all_columns=columns,
    )
    _logger.debug(
        "detect:done label_column=%s amount_columns=%s",
        structure.label_column,
        ",".join(structure.amount_columns),
    )
    return structure


__all__ = ["LABEL_TOKENS", "AMOUNT_TOKENS", "table_columns", "detect_structure"]
