"""Public interface for the ``pl_standardizer`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .aggregate import aggregate
from .api import standardize, suggest_rules
from .assemble import assemble
from .errors import (
    EmptyTableError,
    InsufficientColumnsError,
    InvalidInputError,
    StandardizationError,
    SuggestionError,
)
from .ingest import load_table, normalize_table
from .models import (
    AggregatedCategory,
    Category,
    LabelSuggestion,
    MappingRule,
    MappingRules,
    StandardizedStatement,
    StatementRow,
    Structure,
    Table,
)
from .rules import MappingRuleStore
from .structure import detect_structure
from .suggest import keyword_mapping_rules, suggest_labels, suggest_mapping_rules
from .taxonomy import STANDARD_CATEGORIES, find_best_match

__all__ = [
    # API
    "detect_structure",
    "aggregate",
    "assemble",
    "standardize",
    "suggest_rules",
    "suggest_labels",
    "suggest_mapping_rules",
    "keyword_mapping_rules",
    "load_table",
    "normalize_table",
    "find_best_match",
    # Rule store
    "MappingRuleStore",
    # Models / types
    "Structure",
    "Category",
    "MappingRule",
    "MappingRules",
    "LabelSuggestion",
    "AggregatedCategory",
    "StatementRow",
    "StandardizedStatement",
    "Table",
    "STANDARD_CATEGORIES",
    # Errors
    "StandardizationError",
    "EmptyTableError",
    "InsufficientColumnsError",
    "InvalidInputError",
    "SuggestionError",
]
