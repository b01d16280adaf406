"""Standard P&L category taxonomy.

The registry is static and ordered: ``order`` fixes the presentation sequence
of aggregated categories, ``type`` decides whether a category feeds revenue or
expense subtotals, and ``keywords`` are hints for label matchers (the offline
keyword matcher below and the prompt sent to the suggestion model).

Labels outside the registry (including the ``"Other"`` sentinel) aggregate as
``expense`` with order ``999`` so they still display, sorted last.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Literal

from .models import Category, CategoryType

OTHER = "Other"
DEFAULT_TYPE: CategoryType = "expense"
DEFAULT_ORDER: float = 999

GROSS_PROFIT = "Gross Profit"
OPERATING_INCOME = "Operating Income"
NET_INCOME = "Net Income"
COST_OF_GOODS_SOLD = "Cost of Goods Sold"
# Operating Income follows whichever of these appears first in taxonomy order.
OPERATING_INCOME_TRIGGERS: tuple[str, ...] = (
    "Operating Expenses",
    "Selling, General & Administrative",
)


# Declaration order of keywords per category; frozensets do not keep it and
# find_best_match breaks ties by first keyword seen.
_KEYWORD_ORDER: dict[str, tuple[str, ...]] = {}


def _cat(name: str, type_: CategoryType, order: float, *keywords: str) -> Category:
    _KEYWORD_ORDER[name] = keywords
    return Category(name=name, type=type_, order=order, keywords=frozenset(keywords))


_REGISTRY: tuple[Category, ...] = (
    # Revenue
    _cat(
        "Total Revenue",
        "revenue",
        1,
        "revenue", "sales", "income", "turnover", "gross sales", "total sales",
    ),
    _cat(
        "Service Revenue",
        "revenue",
        1.5,
        "service revenue", "service income", "service sales", "professional services",
        "consulting revenue", "service fees", "recurring revenue", "subscription revenue",
    ),
    _cat(
        "Cost of Goods Sold",
        "expense",
        2,
        "cogs", "cost of goods", "cost of sales", "direct costs", "material costs",
    ),
    _cat("Gross Profit", "calculated", 3, "gross profit", "gross margin", "gross income"),
    # Operating expenses
    _cat("Operating Expenses", "expense", 4, "operating expenses", "opex", "operating costs"),
    _cat(
        "Selling, General & Administrative",
        "expense",
        5,
        "sga", "sg&a", "selling general administrative", "administrative expenses",
    ),
    _cat(
        "Marketing Expenses",
        "expense",
        6,
        "marketing", "advertising", "promotion", "brand", "marketing costs", "media",
        "ad tech", "tools",
    ),
    _cat(
        "Research & Development",
        "expense",
        7,
        "r&d", "research development", "research and development", "innovation",
    ),
    _cat(
        "Rent & Utilities",
        "expense",
        8,
        "rent", "utilities", "office rent", "facility costs", "building costs",
    ),
    _cat(
        "Salaries & Benefits",
        "expense",
        9,
        "salaries", "wages", "payroll", "benefits", "compensation", "employee costs",
        "freelancers", "contractors",
    ),
    _cat(
        "Professional Services",
        "expense",
        10,
        "legal", "accounting", "consulting", "professional services", "advisory",
    ),
    _cat("Insurance", "expense", 11, "insurance", "liability", "coverage", "premiums"),
    _cat(
        "Depreciation & Amortization",
        "expense",
        12,
        "depreciation", "amortization", "d&a", "asset depreciation",
    ),
    _cat(
        "Operating Income",
        "calculated",
        13,
        "operating income", "operating profit", "ebit", "operating earnings",
    ),
    # Other income / expenses
    _cat(
        "Interest Income",
        "revenue",
        14,
        "interest income", "interest earned", "investment income",
    ),
    _cat(
        "Interest Expense",
        "expense",
        15,
        "interest expense", "interest paid", "debt interest", "loan interest",
    ),
    _cat(
        "Other Income",
        "revenue",
        16,
        "other income", "miscellaneous income", "non-operating income",
    ),
    _cat(
        "Other Expenses",
        "expense",
        17,
        "other expenses", "miscellaneous expenses", "non-operating expenses",
    ),
    # Taxes and bottom line
    _cat(
        "Income Tax Expense",
        "expense",
        18,
        "tax", "income tax", "tax expense", "provision for taxes",
    ),
    _cat(
        "Net Income",
        "calculated",
        19,
        "net income", "net profit", "bottom line", "earnings", "profit after tax",
    ),
)

STANDARD_CATEGORIES: Mapping[str, Category] = MappingProxyType({c.name: c for c in _REGISTRY})


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_category(label: str) -> Category | None:
    return STANDARD_CATEGORIES.get(label)


def is_known_category(label: str) -> bool:
    """True for registry names and the ``"Other"`` sentinel."""

    return label == OTHER or label in STANDARD_CATEGORIES


def category_type(label: str) -> CategoryType:
    cat = STANDARD_CATEGORIES.get(label)
    return cat.type if cat is not None else DEFAULT_TYPE


def category_order(label: str) -> float:
    cat = STANDARD_CATEGORIES.get(label)
    return cat.order if cat is not None else DEFAULT_ORDER


def category_keywords(label: str) -> frozenset[str]:
    cat = STANDARD_CATEGORIES.get(label)
    return cat.keywords if cat is not None else frozenset()


def category_names() -> tuple[str, ...]:
    """Registry names in taxonomy order."""

    return tuple(c.name for c in sorted(_REGISTRY, key=lambda c: c.order))


def taxonomy_for_prompt() -> list[dict[str, Any]]:
    """Deterministic view of the registry for prompts and response schemas."""

    return [
        {"name": c.name, "type": c.type, "keywords": list(_KEYWORD_ORDER[c.name])}
        for c in sorted(_REGISTRY, key=lambda c: c.order)
    ]


# ---------------------------------------------------------------------------
# Keyword matcher
# ---------------------------------------------------------------------------

MatchType = Literal["exact", "keyword_exact", "keyword_partial", "keyword_reverse"]


@dataclass(frozen=True, slots=True)
class KeywordMatch:
    category: str
    confidence: float
    match_type: MatchType


def find_best_match(label: Any) -> KeywordMatch | None:
    """Match a raw label to a category using the registry keyword hints.

    Scoring:
    - label equals a category name (case-insensitive): confidence ``1.0``
    - label equals a keyword: ``0.95``
    - label contains a keyword: ``0.8 * len(keyword) / len(label)``
    - keyword contains the label (labels longer than 3 chars only):
      ``0.7 * len(label) / len(keyword)``

    Partial matches keep the highest raw ratio seen; ties go to the earlier
    category in taxonomy order.
    """

    if not isinstance(label, str):
        return None
    normalized = label.strip().lower()
    if not normalized:
        return None

    ordered = sorted(_REGISTRY, key=lambda c: c.order)

    for cat in ordered:
        if normalized == cat.name.lower():
            return KeywordMatch(cat.name, 1.0, "exact")

    best: KeywordMatch | None = None
    best_score = 0.0
    for cat in ordered:
        for keyword in _KEYWORD_ORDER[cat.name]:
            kw = keyword.lower()
            if normalized == kw:
                return KeywordMatch(cat.name, 0.95, "keyword_exact")
            if kw in normalized:
                score = len(kw) / len(normalized)
                if score > best_score:
                    best_score = score
                    best = KeywordMatch(cat.name, score * 0.8, "keyword_partial")
            if len(normalized) > 3 and normalized in kw:
                score = len(normalized) / len(kw)
                if score > best_score:
                    best_score = score
                    best = KeywordMatch(cat.name, score * 0.7, "keyword_reverse")
    return best


__all__ = [
    "OTHER",
    "DEFAULT_TYPE",
    "DEFAULT_ORDER",
    "GROSS_PROFIT",
    "OPERATING_INCOME",
    "NET_INCOME",
    "COST_OF_GOODS_SOLD",
    "OPERATING_INCOME_TRIGGERS",
    "STANDARD_CATEGORIES",
    "KeywordMatch",
    "get_category",
    "is_known_category",
    "category_type",
    "category_order",
    "category_keywords",
    "category_names",
    "taxonomy_for_prompt",
    "find_best_match",
]
