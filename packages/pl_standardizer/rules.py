"""Mapping rule store and rule seeding helpers.

The store is an explicit, caller-owned key-value structure keyed by original
label. It is single-writer (one interactive session): every write replaces the
rule for its label (last write wins) and no locking is involved. The engine
never holds on to it; ``aggregate`` receives :meth:`MappingRuleStore.snapshot`
and reads it once.

Suggestion results are merged as seeds only. A rule the user has touched
(``provenance == "manual"``) is never overwritten by a later suggestion, so a
slow or failed suggestion request cannot clobber manual work.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from types import MappingProxyType
from typing import Any

from .logging_setup import get_logger
from .models import MappingRule, MappingRules, Structure, Table
from .normalizers import amount_or_zero, is_empty_cell
from .taxonomy import OTHER

_FALLBACK_CONFIDENCE = 0.1

_logger = get_logger("pl_standardizer.rules")


class MappingRuleStore:
    """In-memory rules keyed by original label, in insertion order."""

    def __init__(self, rules: Iterable[MappingRule] = ()) -> None:
        self._rules: dict[str, MappingRule] = {}
        for rule in rules:
            self.set(rule)

    # ---- Reads ---------------------------------------------------------------

    def get(self, original_label: str) -> MappingRule | None:
        return self._rules.get(original_label)

    def __contains__(self, original_label: object) -> bool:
        return original_label in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[MappingRule]:
        return iter(list(self._rules.values()))

    def labels(self) -> tuple[str, ...]:
        return tuple(self._rules)

    def snapshot(self) -> MappingRules:
        """Read-only copy of the current rules for a pure ``aggregate`` call."""

        return MappingProxyType(dict(self._rules))

    # ---- Writes --------------------------------------------------------------

    def set(self, rule: MappingRule) -> None:
        self._rules[rule.original_label] = rule

    def remove(self, original_label: str) -> MappingRule | None:
        return self._rules.pop(original_label, None)

    def update(self, original_label: str, **changes: Any) -> MappingRule:
        """Apply a user edit to one field set and mark the rule ``manual``.

        A label with no rule yet gets one created from ``changes`` (which must
        then include ``standard_label``).
        """

        current = self._rules.get(original_label)
        base: dict[str, Any] = current.model_dump() if current is not None else {}
        base.update(changes)
        base["original_label"] = original_label
        base["provenance"] = "manual"
        rule = MappingRule.model_validate(base)
        self._rules[original_label] = rule
        return rule

    def set_monthly_amounts(self, original_label: str, amounts: Sequence[float]) -> MappingRule:
        """Replace a rule's period vector and set its total to the new sum."""

        vector = tuple(float(a) for a in amounts)
        return self.update(original_label, monthly_amounts=vector, amount=sum(vector))

    def merge_suggestions(self, suggested: Mapping[str, MappingRule]) -> list[str]:
        """Seed rules from suggestions without touching manual rules.

        Returns the labels whose rule was written.
        """

        applied: list[str] = []
        for label, rule in suggested.items():
            existing = self._rules.get(label)
            if existing is not None and existing.provenance == "manual":
                continue
            self._rules[label] = rule
            applied.append(label)
        _logger.info(
            "rules:merge_suggestions offered=%d applied=%d kept_manual=%d",
            len(suggested),
            len(applied),
            len(suggested) - len(applied),
        )
        return applied

    # ---- Serialization -------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> MappingRuleStore:
        """Build a store from ``{original_label: {field: value, ...}}``.

        Keys in the inner mappings may use the snake_case field names or the
        camelCase names (``standardLabel``, ``monthlyAmounts``) used by
        exported rule files.
        """

        store = cls()
        for label, raw in data.items():
            if not isinstance(raw, Mapping):
                raise ValueError(f"Rule for {label!r} must be an object")
            fields = {_FIELD_ALIASES.get(k, k): v for k, v in raw.items()}
            # Editor-only keys (matchType and similar) are not part of a rule.
            fields = {k: v for k, v in fields.items() if k in MappingRule.model_fields}
            fields["original_label"] = label
            store.set(MappingRule.model_validate(fields))
        return store

    def to_dict(self) -> dict[str, dict[str, Any]]:
        out: dict[str, dict[str, Any]] = {}
        for label, rule in self._rules.items():
            d = rule.model_dump(exclude={"original_label"})
            if d.get("monthly_amounts") is not None:
                d["monthly_amounts"] = list(d["monthly_amounts"])
            d["alternative_categories"] = list(d.get("alternative_categories") or ())
            out[label] = d
        return out


_FIELD_ALIASES: dict[str, str] = {
    "originalLabel": "original_label",
    "standardLabel": "standard_label",
    "monthlyAmounts": "monthly_amounts",
    "alternativeCategories": "alternative_categories",
}


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------


def raw_vector(row: Mapping[str, Any], structure: Structure) -> tuple[float, ...]:
    """Per-period amounts read straight from a row's amount cells."""

    return tuple(amount_or_zero(row.get(col)) for col in structure.amount_columns)


def has_period_data(row: Mapping[str, Any], structure: Structure) -> bool:
    return any(not is_empty_cell(row.get(col)) for col in structure.amount_columns)


def distribute_evenly(total: float, period_count: int) -> tuple[float, ...]:
    """Split ``total`` evenly over ``period_count`` periods.

    Legacy policy for rows that carry a total but no period data. The per-period
    figures are an approximation and can misstate individual periods.
    """

    if period_count <= 0:
        return ()
    _logger.warning(
        "rules:distribute_evenly total=%.2f periods=%d (period figures are estimated)",
        total,
        period_count,
    )
    share = total / period_count
    return tuple(share for _ in range(period_count))


def first_rows_by_label(table: Table, structure: Structure) -> dict[str, Mapping[str, Any]]:
    """Map each distinct string label to the first row carrying it."""

    out: dict[str, Mapping[str, Any]] = {}
    for row in table:
        if not isinstance(row, Mapping):
            continue
        label = row.get(structure.label_column)
        if isinstance(label, str) and label and label not in out:
            out[label] = row
    return out


def fallback_rules(table: Table, structure: Structure) -> dict[str, MappingRule]:
    """One low-confidence ``Other`` rule per distinct label.

    Used when no suggestions are available so every line still shows up in the
    statement until a user maps it properly.
    """

    out: dict[str, MappingRule] = {}
    for label, row in first_rows_by_label(table, structure).items():
        vector = raw_vector(row, structure)
        out[label] = MappingRule(
            original_label=label,
            standard_label=OTHER,
            amount=sum(vector),
            monthly_amounts=vector,
            confidence=_FALLBACK_CONFIDENCE,
            provenance="fallback",
        )
    return out


def ensure_monthly_amounts(
    rules: Mapping[str, MappingRule], table: Table, structure: Structure
) -> dict[str, MappingRule]:
    """Return rules whose missing or mis-sized vectors are re-read from the table.

    Rules whose label has no row in ``table`` are returned unchanged.
    """

    rows = first_rows_by_label(table, structure)
    expected = structure.period_count
    out: dict[str, MappingRule] = {}
    for label, rule in rules.items():
        vec = rule.monthly_amounts
        row = rows.get(label)
        if (vec is None or len(vec) != expected) and row is not None:
            out[label] = rule.model_copy(update={"monthly_amounts": raw_vector(row, structure)})
        else:
            out[label] = rule
    return out


__all__ = [
    "MappingRuleStore",
    "raw_vector",
    "has_period_data",
    "distribute_evenly",
    "first_rows_by_label",
    "fallback_rules",
    "ensure_monthly_amounts",
]
