"""Public API and orchestration for the ``pl_standardizer`` package.

:func:`standardize` is the whole engine: structure detection, aggregation and
assembly. :func:`suggest_rules` is the seeding path that sits in front of it
and is the only call that may reach the network.
"""

from __future__ import annotations

from openai import OpenAI as OpenAI  # re-export for monkeypatch compatibility

from .aggregate import aggregate
from .assemble import assemble
from .errors import SuggestionError
from .logging_setup import get_logger
from .models import MappingRule, MappingRules, StandardizedStatement, Structure, Table
from .rules import ensure_monthly_amounts, fallback_rules
from .structure import detect_structure
from .suggest import keyword_mapping_rules, suggest_mapping_rules

_logger = get_logger("pl_standardizer.api")


def standardize(
    table: Table,
    rules: MappingRules | None,
    structure: Structure | None = None,
) -> StandardizedStatement:
    """Run the deterministic pipeline over ``table`` with the given rules.

    ``structure`` is detected from ``table`` when not supplied. The result
    carries the detected structure, the pre-assembly categories and the
    presentation-ordered statement rows.

    Raises
    ------
    StandardizationError
        From :func:`~pl_standardizer.structure.detect_structure` for empty or
        single-column tables, or ``InvalidInputError`` for missing inputs.
    """

    if structure is None:
        structure = detect_structure(table)
    categories = aggregate(table, structure, rules)
    rows = assemble(categories, structure.period_count)
    return StandardizedStatement(
        structure=structure,
        categories=tuple(categories),
        rows=tuple(rows),
    )


def suggest_rules(
    table: Table,
    structure: Structure | None = None,
    *,
    offline: bool = False,
    client: OpenAI | None = None,
) -> dict[str, MappingRule]:
    """Seed mapping rules for every distinct label in ``table``.

    Tries the suggestion service first (unless ``offline``); when it is
    unavailable, fails, or accepts nothing, falls back to the keyword matcher,
    and to blanket low-confidence ``Other`` rules when that yields nothing.
    Labels the service was unsure about stay unmapped for the user to decide.
    """

    if structure is None:
        structure = detect_structure(table)

    seeded: dict[str, MappingRule] = {}
    if not offline:
        try:
            seeded = suggest_mapping_rules(table, structure, client=client)
        except SuggestionError as e:
            _logger.warning("api:suggest_unavailable error=%s", e)

    if not seeded:
        _logger.info("api:suggest_fallback source=keywords")
        seeded = keyword_mapping_rules(table, structure)
        if not seeded:
            seeded = fallback_rules(table, structure)

    return ensure_monthly_amounts(seeded, table, structure)


__all__ = ["standardize", "suggest_rules"]
