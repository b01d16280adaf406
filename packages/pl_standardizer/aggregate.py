"""Fold raw table rows through mapping rules into per-category totals.

``aggregate`` is a pure function of ``(table, structure, rules)``: it keeps no
state between calls and never mutates its inputs, so it can be re-run on every
rule edit.

Per-row anomalies are not errors. Entirely empty rows, rows without a string
label, and rows whose label has no rule are skipped; skipped rows contribute
nothing to any category.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .errors import InvalidInputError
from .logging_setup import get_logger
from .models import AggregatedCategory, MappingRule, MappingRules, Structure, Table
from .normalizers import is_empty_cell
from .rules import distribute_evenly, has_period_data, raw_vector
from .taxonomy import category_order, category_type

_logger = get_logger("pl_standardizer.aggregate")


def is_empty_row(row: Mapping[str, Any]) -> bool:
    return all(is_empty_cell(v) for v in row.values())


def resolve_vector(
    rule: MappingRule, row: Mapping[str, Any], structure: Structure
) -> tuple[float, ...]:
    """Pick the authoritative per-period vector for one matched row.

    Order of precedence:
    1. the rule's own ``monthly_amounts`` when sized to the amount columns;
    2. the row's raw amount cells (non-numeric cells count as 0);
    3. the rule's ``amount`` spread evenly, only when the row has no period
       data at all.
    """

    expected = structure.period_count
    vec = rule.monthly_amounts
    if vec is not None and len(vec) == expected:
        return tuple(float(v) for v in vec)
    if vec is not None:
        _logger.debug(
            "aggregate:vector_size_mismatch label=%r got=%d expected=%d",
            rule.original_label,
            len(vec),
            expected,
        )
    if not has_period_data(row, structure) and rule.amount:
        return distribute_evenly(float(rule.amount), expected)
    return raw_vector(row, structure)


def aggregate(
    table: Table | None,
    structure: Structure | None,
    rules: MappingRules | None,
) -> list[AggregatedCategory]:
    """Sum mapped rows into one :class:`AggregatedCategory` per standard label.

    Returns categories sorted by taxonomy order; categories sharing an order
    keep first-encounter order. Labels outside the taxonomy aggregate as
    ``expense`` with order 999.

    Raises
    ------
    InvalidInputError
        When ``table`` or ``structure`` is missing.
    """

    if table is None:
        raise InvalidInputError("aggregate requires a table")
    if structure is None:
        raise InvalidInputError("aggregate requires a structure")
    if rules is None:
        rules = {}

    period_count = structure.period_count
    totals: dict[str, float] = {}
    vectors: dict[str, list[float]] = {}

    skipped_empty = skipped_label = skipped_unmapped = matched = 0
    for row in table:
        if not isinstance(row, Mapping) or is_empty_row(row):
            skipped_empty += 1
            continue

        label = row.get(structure.label_column)
        if not isinstance(label, str) or not label:
            skipped_label += 1
            continue

        rule = rules.get(label)
        if rule is None:
            skipped_unmapped += 1
            _logger.debug("aggregate:unmapped label=%r", label)
            continue

        vector = resolve_vector(rule, row, structure)
        total = rule.resolved_total(vector)

        key = rule.standard_label
        if key not in totals:
            totals[key] = 0.0
            vectors[key] = [0.0] * period_count
        totals[key] += total
        acc = vectors[key]
        for i, v in enumerate(vector):
            acc[i] += v
        matched += 1

    categories = [
        AggregatedCategory(
            label=label,
            type=category_type(label),
            order=category_order(label),
            amount=totals[label],
            monthly_amounts=tuple(vectors[label]),
        )
        for label in totals
    ]
    # sorted() is stable: equal orders keep first-encounter order.
    categories = sorted(categories, key=lambda c: c.order)

    _logger.info(
        "aggregate:done rows_matched=%d categories=%d skipped_empty=%d "
        "skipped_no_label=%d skipped_unmapped=%d",
        matched,
        len(categories),
        skipped_empty,
        skipped_label,
        skipped_unmapped,
    )
    return categories


__all__ = ["aggregate", "resolve_vector", "is_empty_row"]
