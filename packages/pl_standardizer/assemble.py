"""Assemble aggregated categories into the final ordered statement.

Derived rows are computed once, up front, from the complete aggregates, then
merged into a single ordered pass:

- ``Gross Profit`` directly after ``Cost of Goods Sold`` (when present):
  total revenue minus COGS.
- ``Operating Income`` directly after the first of ``Operating Expenses`` /
  ``Selling, General & Administrative`` reached in taxonomy order, at most
  once: total revenue minus total expenses.
- ``Net Income`` always last, same formula as Operating Income.

Only ``revenue`` and ``expense`` categories feed the subtotals; categories of
type ``calculated`` that were mapped directly are shown but not summed.
"""

from __future__ import annotations

from collections.abc import Sequence

from .errors import InvalidInputError
from .logging_setup import get_logger
from .models import AggregatedCategory, StatementRow
from .taxonomy import (
    COST_OF_GOODS_SOLD,
    GROSS_PROFIT,
    NET_INCOME,
    OPERATING_INCOME,
    OPERATING_INCOME_TRIGGERS,
)

_logger = get_logger("pl_standardizer.assemble")


def _period_vector(cat: AggregatedCategory, period_count: int) -> tuple[float, ...]:
    # Callers may pass categories built by hand with short or long vectors.
    vec = tuple(cat.monthly_amounts[:period_count])
    if len(vec) < period_count:
        vec = vec + (0.0,) * (period_count - len(vec))
    return vec


def _sum_by_type(
    categories: Sequence[AggregatedCategory], type_: str, period_count: int
) -> tuple[float, list[float]]:
    total = 0.0
    monthly = [0.0] * period_count
    for cat in categories:
        if cat.type != type_:
            continue
        total += cat.amount
        for i, v in enumerate(_period_vector(cat, period_count)):
            monthly[i] += v
    return total, monthly


def _difference(a: Sequence[float], b: Sequence[float]) -> tuple[float, ...]:
    return tuple(x - y for x, y in zip(a, b, strict=True))


def assemble(
    categories: Sequence[AggregatedCategory] | None, period_count: int | None
) -> list[StatementRow]:
    """Return the presentation-ordered statement for ``categories``.

    ``categories`` is expected in taxonomy order (as returned by
    :func:`~pl_standardizer.aggregate.aggregate`); it is read, never mutated.
    An empty input yields a single all-zero ``Net Income`` row.

    Raises
    ------
    InvalidInputError
        When ``categories`` is missing or ``period_count`` is not a
        non-negative integer.
    """

    if categories is None:
        raise InvalidInputError("assemble requires aggregated categories")
    if isinstance(period_count, bool) or not isinstance(period_count, int) or period_count < 0:
        raise InvalidInputError(
            f"period_count must be a non-negative integer, got {period_count!r}"
        )

    total_revenue, monthly_revenue = _sum_by_type(categories, "revenue", period_count)
    total_expenses, monthly_expenses = _sum_by_type(categories, "expense", period_count)

    operating = StatementRow(
        label=OPERATING_INCOME,
        kind="calculated",
        amount=total_revenue - total_expenses,
        monthly_amounts=_difference(monthly_revenue, monthly_expenses),
    )

    # Derived rows keyed by the category they follow.
    follow_ups: dict[str, StatementRow] = {}
    cogs = next((c for c in categories if c.label == COST_OF_GOODS_SOLD), None)
    if cogs is not None:
        follow_ups[COST_OF_GOODS_SOLD] = StatementRow(
            label=GROSS_PROFIT,
            kind="calculated",
            amount=total_revenue - cogs.amount,
            monthly_amounts=_difference(monthly_revenue, _period_vector(cogs, period_count)),
        )
    trigger = next((c.label for c in categories if c.label in OPERATING_INCOME_TRIGGERS), None)
    if trigger is not None:
        follow_ups[trigger] = operating

    rows: list[StatementRow] = []
    for cat in categories:
        rows.append(
            StatementRow(
                label=cat.label,
                kind="category",
                amount=cat.amount,
                monthly_amounts=_period_vector(cat, period_count),
            )
        )
        derived = follow_ups.pop(cat.label, None)
        if derived is not None:
            rows.append(derived)

    rows.append(
        StatementRow(
            label=NET_INCOME,
            kind="calculated",
            amount=operating.amount,
            monthly_amounts=operating.monthly_amounts,
        )
    )

    _logger.debug(
        "assemble:done rows=%d revenue=%.2f expenses=%.2f",
        len(rows),
        total_revenue,
        total_expenses,
    )
    return rows


__all__ = ["assemble"]
