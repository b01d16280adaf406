"""Data models and type aliases for ``pl_standardizer``.

Tables are kept opaque: a row is any mapping from column name to a raw cell
value as produced by the ingestion adapters. Engine outputs
(:class:`AggregatedCategory`, :class:`StatementRow`) are frozen dataclasses so
repeated ``aggregate``/``assemble`` runs over the same rules compare equal.
Records that cross the suggestion boundary or are edited by users
(:class:`MappingRule`, :class:`LabelSuggestion`) are Pydantic models so their
shape is validated where they enter the system.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

type Row = Mapping[str, Any]
"""A single source row: column name -> raw cell (``str``, number, or empty)."""

type Table = Sequence[Row]
"""Ordered rows of one uploaded statement. Ragged rows are read as empty."""


CategoryType = Literal["revenue", "expense", "calculated"]
RowKind = Literal["category", "calculated"]
Provenance = Literal["ai", "fallback", "manual"]


@dataclass(frozen=True, slots=True)
class Structure:
    """Which column carries row labels and which carry period amounts.

    ``amount_columns`` follows the table's original column order and never
    contains ``label_column``.
    """

    label_column: str
    amount_columns: tuple[str, ...]
    all_columns: tuple[str, ...]

    @property
    def period_count(self) -> int:
        return len(self.amount_columns)


@dataclass(frozen=True, slots=True)
class Category:
    """A standard P&L line in the fixed taxonomy."""

    name: str
    type: CategoryType
    order: float
    keywords: frozenset[str]


# ---------------------------------------------------------------------------
# Mapping rules
# ---------------------------------------------------------------------------


class MappingRule(BaseModel):
    """Association from one raw source label to a standard category.

    ``amount`` and ``monthly_amounts`` are optional: a rule created by hand
    may name only the target category, in which case the aggregator reads the
    raw row cells. When both are present they may disagree while a user is
    mid-edit; the aggregator resolves each from its own source and never
    reconciles them.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    original_label: str
    standard_label: str
    amount: float | None = None
    monthly_amounts: tuple[float, ...] | None = None
    confidence: float = 1.0
    provenance: Provenance = "manual"
    explanation: str | None = None
    alternative_categories: tuple[str, ...] = ()

    @field_validator("original_label")
    @classmethod
    def _original_label_non_blank(cls, v: str) -> str:
        # Kept verbatim: rules are matched against raw label cells exactly.
        if not v.strip():
            raise ValueError("original_label must be a non-empty string")
        return v

    @field_validator("standard_label")
    @classmethod
    def _standard_label_non_blank(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("standard_label must be a non-empty string")
        return s

    @field_validator("confidence")
    @classmethod
    def _confidence_in_unit_interval(cls, v: float) -> float:
        fv = float(v)
        if 0.0 <= fv <= 1.0:
            return fv
        raise ValueError("confidence must be within [0,1]")

    def resolved_total(self, vector: Sequence[float]) -> float:
        """Return ``amount`` when set and non-zero, else the vector sum."""

        if self.amount:
            return float(self.amount)
        return float(sum(vector))


class LabelSuggestion(BaseModel):
    """One item returned by the label-matching collaborator."""

    model_config = ConfigDict(extra="ignore")

    original_label: str
    standard_category: str | None = None
    confidence: float = 0.0
    explanation: str = ""
    alternative_categories: tuple[str, ...] = Field(default_factory=tuple)

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        # Models occasionally drift a hair outside [0,1]; clamp rather than reject.
        return min(1.0, max(0.0, float(v)))

    @field_validator("standard_category")
    @classmethod
    def _blank_category_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


# ---------------------------------------------------------------------------
# Engine outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AggregatedCategory:
    """Sum of every raw row mapped to one standard label."""

    label: str
    type: CategoryType
    order: float
    amount: float
    monthly_amounts: tuple[float, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "amount": self.amount,
            "monthlyAmounts": list(self.monthly_amounts),
            "type": self.type,
        }


@dataclass(frozen=True, slots=True)
class StatementRow:
    """A single presentation line of the final statement."""

    label: str
    kind: RowKind
    amount: float
    monthly_amounts: tuple[float, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "kind": self.kind,
            "amount": self.amount,
            "monthlyAmounts": list(self.monthly_amounts),
        }


@dataclass(frozen=True, slots=True)
class StandardizedStatement:
    """Everything one ``standardize`` run produced."""

    structure: Structure
    categories: tuple[AggregatedCategory, ...]
    rows: tuple[StatementRow, ...]


type MappingRules = Mapping[str, MappingRule]
"""Snapshot of rules keyed by original label, as read by ``aggregate``."""


__all__ = [
    "Row",
    "Table",
    "CategoryType",
    "RowKind",
    "Provenance",
    "Structure",
    "Category",
    "MappingRule",
    "LabelSuggestion",
    "AggregatedCategory",
    "StatementRow",
    "StandardizedStatement",
    "MappingRules",
]
