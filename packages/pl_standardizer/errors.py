"""Exception types raised by the standardization engine.

Per-row anomalies (blank labels, unmapped labels, short vectors) are not
errors; they are skipped or defaulted by the aggregator. Only the conditions
below halt the pipeline.
"""

from __future__ import annotations


class StandardizationError(ValueError):
    """Base class for fatal engine input errors."""


class EmptyTableError(StandardizationError):
    """The table has no rows to process."""


class InsufficientColumnsError(StandardizationError):
    """The table has a single column, so no amount column can exist."""


class InvalidInputError(StandardizationError):
    """A required argument (table, structure, categories) was missing or malformed."""


class SuggestionError(RuntimeError):
    """The label-matching collaborator could not produce suggestions.

    Recoverable: callers keep their existing rules and may fall back to manual
    or keyword mappings.
    """


__all__ = [
    "StandardizationError",
    "EmptyTableError",
    "InsufficientColumnsError",
    "InvalidInputError",
    "SuggestionError",
]
