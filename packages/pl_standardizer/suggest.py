"""Mapping suggestions for raw statement labels.

Two sources of seed rules:

- :func:`suggest_mapping_rules` asks the OpenAI Responses API to map labels
  onto the taxonomy. Only suggestions naming a known, non-calculated category
  with confidence above ``MIN_CONFIDENCE`` become rules (provenance ``ai``).
- :func:`keyword_mapping_rules` runs the offline keyword matcher and needs no
  network (provenance ``fallback``). It applies the same confidence floor.

Suggestions are hints. The engine works with zero of them, and nothing here
writes to a rule store; callers merge results with
:meth:`~pl_standardizer.rules.MappingRuleStore.merge_suggestions`. No side
effects happen at import time (no client creation, no environment reads).
"""

from __future__ import annotations

import json
import os
import random
import time
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from openai import OpenAI
from openai.types.responses import ResponseTextConfigParam
from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from . import prompting
from .errors import SuggestionError
from .logging_setup import get_logger
from .models import LabelSuggestion, MappingRule, Structure, Table
from .pmap import p_map
from .rules import first_rows_by_label, raw_vector
from .taxonomy import OTHER, find_best_match, get_category, is_known_category, taxonomy_for_prompt

# ---- Tunables (private) ------------------------------------------------------

MIN_CONFIDENCE: float = 0.3

_BATCH_SIZE_DEFAULT: int = 10
_MAX_WORKERS_DEFAULT: int = 4
_MAX_WORKERS_CAP: int = 8
_MAX_ATTEMPTS: int = 3
_BACKOFF_SCHEDULE_SEC: tuple[float, ...] = (0.5, 2.0)
_JITTER_PCT: float = 0.20
_DEFAULT_MODEL: str = "gpt-5"

_logger = get_logger("pl_standardizer.suggest")


# ---- Response parsing --------------------------------------------------------


class _ResultItem(BaseModel):
    """Typed view of one model result; validators read the allow-list from context."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    idx: int
    category: str | None = None
    confidence: float
    explanation: str = ""
    alternative_categories: list[str] = []

    @field_validator("category")
    @classmethod
    def _category_in_allowlist(cls, v: str | None, info: ValidationInfo) -> str | None:
        if v is None or not v:
            return None
        allowed = info.context.get("allowed_set") if info.context else None
        # Out-of-taxonomy answers are dropped, never coerced into a category.
        if allowed and v not in allowed:
            return None
        return v

    @field_validator("alternative_categories")
    @classmethod
    def _alternatives_in_allowlist(cls, v: list[str], info: ValidationInfo) -> list[str]:
        allowed = info.context.get("allowed_set") if info.context else None
        cleaned = [c.strip() for c in v if isinstance(c, str) and c.strip()]
        if allowed:
            cleaned = [c for c in cleaned if c in allowed]
        return cleaned


class _ResultBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    results: list[_ResultItem]


def parse_and_align_suggestions(
    body: Mapping[str, Any],
    *,
    labels: Sequence[str],
    allowed_categories: Iterable[str],
) -> list[LabelSuggestion]:
    """Validate a decoded response and align results to ``labels`` by ``idx``.

    Raises ``ValueError`` on shape problems: wrong result count, out-of-range
    or duplicate ``idx``, or missing indices.
    """

    if not isinstance(body, Mapping):
        raise ValueError("Invalid response: expected a JSON object at top level")

    parsed = _ResultBody.model_validate(body, context={"allowed_set": set(allowed_categories)})
    n = len(labels)
    if len(parsed.results) != n:
        raise ValueError(f"Invalid response: expected {n} results, got {len(parsed.results)}")

    out: list[LabelSuggestion | None] = [None] * n
    for item in parsed.results:
        if not (0 <= item.idx < n):
            raise ValueError(f"Invalid response: 'idx' out of range: {item.idx}")
        if out[item.idx] is not None:
            raise ValueError(f"Invalid response: duplicate idx {item.idx}")
        out[item.idx] = LabelSuggestion(
            original_label=labels[item.idx],
            standard_category=item.category,
            confidence=item.confidence,
            explanation=item.explanation,
            alternative_categories=tuple(item.alternative_categories),
        )

    missing = [i for i, v in enumerate(out) if v is None]
    if missing:
        raise ValueError(f"Invalid response: missing indices {missing}")
    return [s for s in out if s is not None]


def _extract_response_json_mapping(resp: Any) -> Mapping[str, Any]:
    """Decode the JSON mapping from an OpenAI Responses SDK result.

    Prefers ``resp.output_text``; falls back to ``resp.output[0].content[0].text``.
    Raises ``ValueError`` when no text is found or it is not valid JSON.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        try:
            first = resp.output[0] if getattr(resp, "output", None) else None
            content = getattr(first, "content", None)
            if content and len(content) > 0:
                txt_obj = getattr(content[0], "text", None)
                if isinstance(txt_obj, str):
                    text = txt_obj
                else:
                    maybe_val = getattr(txt_obj, "value", None)
                    if isinstance(maybe_val, str):
                        text = maybe_val
        except (AttributeError, IndexError, TypeError):
            text = None
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")

    try:
        decoded: Mapping[str, Any] = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError("Model output was not valid JSON per the requested schema") from e
    return decoded


# ---- Transport helpers -------------------------------------------------------


def _create_client() -> OpenAI:
    return OpenAI()


def _model_name() -> str:
    return os.getenv("PL_STANDARDIZER_MODEL") or _DEFAULT_MODEL


def _resolve_max_workers(n_batches: int) -> int:
    """Worker count for batch fan-out.

    Honors ``PL_STANDARDIZER_MAX_WORKERS`` when it is a positive integer, capped
    at 8 and at the number of batches; never below 1.
    """

    env_val = os.getenv("PL_STANDARDIZER_MAX_WORKERS")
    try:
        requested = int(env_val) if env_val else None
    except ValueError:
        requested = None
    if requested is None or requested <= 0:
        requested = _MAX_WORKERS_DEFAULT
    return max(1, min(requested, _MAX_WORKERS_CAP, n_batches))


def _is_retryable(exc: BaseException) -> bool:
    """True only for HTTP 429 and 5xx errors; parse failures are terminal."""

    sc = getattr(exc, "status_code", None)
    return isinstance(sc, int) and (sc == 429 or 500 <= sc < 600)


def _sleep_backoff(attempt_no: int) -> None:
    idx = min(attempt_no - 1, len(_BACKOFF_SCHEDULE_SEC) - 1)
    base = _BACKOFF_SCHEDULE_SEC[idx]
    jitter = base * _JITTER_PCT
    time.sleep(max(0.0, base + random.uniform(-jitter, jitter)))


def _batches(labels: Sequence[str], batch_size: int) -> list[list[str]]:
    return [list(labels[i : i + batch_size]) for i in range(0, len(labels), batch_size)]


def _suggest_batch(
    batch_index: int,
    labels: list[str],
    *,
    client: OpenAI | None,
    model: str,
    system_instructions: str,
    text_cfg: ResponseTextConfigParam,
    taxonomy: Sequence[Mapping[str, Any]],
) -> list[LabelSuggestion]:
    user_content = prompting.build_user_content(
        prompting.serialize_labels_to_json(labels), taxonomy
    )
    allowed = prompting.allowed_category_names(taxonomy)

    _logger.info("suggest:batch_llm batch_index=%d num_labels=%d", batch_index, len(labels))
    active_client = client if client is not None else _create_client()
    attempt = 1
    while True:
        t0 = time.perf_counter()
        try:
            resp = active_client.responses.create(
                model=model,
                instructions=system_instructions,
                input=user_content,
                text=text_cfg,
            )
            decoded = _extract_response_json_mapping(resp)
            out = parse_and_align_suggestions(decoded, labels=labels, allowed_categories=allowed)
            dt_ms = (time.perf_counter() - t0) * 1000.0
            _logger.info(
                "suggest:batch_done batch_index=%d num_labels=%d latency_ms=%.2f",
                batch_index,
                len(out),
                dt_ms,
            )
            return out
        except Exception as e:
            dt_ms = (time.perf_counter() - t0) * 1000.0
            if attempt >= _MAX_ATTEMPTS or not _is_retryable(e):
                _logger.error(
                    "suggest:batch_failed_terminal batch_index=%d num_labels=%d "
                    "latency_ms=%.2f error=%s",
                    batch_index,
                    len(labels),
                    dt_ms,
                    e.__class__.__name__,
                )
                if isinstance(e, ValueError):
                    raise
                raise RuntimeError(
                    f"label suggestions failed for batch {batch_index} ({len(labels)} labels): {e}"
                ) from e
            _logger.warning(
                "suggest:batch_retry batch_index=%d latency_ms=%.2f error=%s attempt=%d",
                batch_index,
                dt_ms,
                e.__class__.__name__,
                attempt,
            )
            _sleep_backoff(attempt)
            attempt += 1


def _failed_batch(labels: Sequence[str]) -> list[LabelSuggestion]:
    return [
        LabelSuggestion(
            original_label=label,
            standard_category=None,
            confidence=0.0,
            explanation="Failed to process with the suggestion service",
        )
        for label in labels
    ]


# ---- Public API --------------------------------------------------------------


def suggest_labels(
    labels: Iterable[str],
    *,
    batch_size: int = _BATCH_SIZE_DEFAULT,
    client: OpenAI | None = None,
) -> list[LabelSuggestion]:
    """Ask the suggestion model for a category per label.

    Labels are de-duplicated (first occurrence wins) and sent in batches of
    ``batch_size`` with bounded concurrency. A batch that fails terminally is
    logged and reported as null-category, zero-confidence entries so the other
    batches still count.

    Raises
    ------
    ValueError
        When ``batch_size`` is not a positive integer.
    SuggestionError
        When no client is supplied and ``OPENAI_API_KEY`` is unset, or when
        every batch failed.
    """

    unique = [lbl for lbl in dict.fromkeys(labels) if isinstance(lbl, str) and lbl.strip()]
    if not unique:
        return []
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size <= 0:
        raise ValueError("batch_size must be a positive integer")
    if client is None and not os.getenv("OPENAI_API_KEY"):
        raise SuggestionError("OPENAI_API_KEY is not set; label suggestions are unavailable")

    taxonomy = taxonomy_for_prompt()
    system_instructions = prompting.build_system_instructions()
    text_cfg = ResponseTextConfigParam(format=prompting.build_response_format(taxonomy))
    model = _model_name()

    batches = _batches(unique, batch_size)
    failures: list[Exception] = []

    def _map_batch(arg: tuple[int, list[str]]) -> list[LabelSuggestion]:
        batch_index, batch = arg
        try:
            return _suggest_batch(
                batch_index,
                batch,
                client=client,
                model=model,
                system_instructions=system_instructions,
                text_cfg=text_cfg,
                taxonomy=taxonomy,
            )
        except (ValueError, RuntimeError) as e:
            failures.append(e)
            return _failed_batch(batch)

    per_batch = p_map(
        list(enumerate(batches)), _map_batch, concurrency=_resolve_max_workers(len(batches))
    )
    if failures and len(failures) == len(batches):
        raise SuggestionError(
            f"label suggestions failed for all {len(batches)} batches: {failures[-1]}"
        ) from failures[-1]

    results = [s for batch in per_batch for s in batch]
    _logger.info(
        "suggest:summary labels=%d batches=%d failed_batches=%d",
        len(unique),
        len(batches),
        len(failures),
    )
    return results


def _is_calculated(category: str) -> bool:
    cat = get_category(category)
    return cat is not None and cat.type == "calculated"


def suggest_mapping_rules(
    table: Table,
    structure: Structure,
    *,
    batch_size: int = _BATCH_SIZE_DEFAULT,
    client: OpenAI | None = None,
    min_confidence: float = MIN_CONFIDENCE,
) -> dict[str, MappingRule]:
    """Seed rules from model suggestions for every distinct label in ``table``.

    Suggestions with a null or unknown category, or with confidence at or
    below ``min_confidence``, are discarded, as are subtotal lines mapped to a
    calculated category. Each accepted rule carries the label's first row of
    raw period amounts and their sum.
    """

    rows = first_rows_by_label(table, structure)
    suggestions = suggest_labels(list(rows), batch_size=batch_size, client=client)

    out: dict[str, MappingRule] = {}
    for s in suggestions:
        row = rows.get(s.original_label)
        if row is None or s.standard_category is None:
            continue
        if s.confidence <= min_confidence or not is_known_category(s.standard_category):
            continue
        if _is_calculated(s.standard_category):
            _logger.debug(
                "suggest:skip_subtotal label=%r category=%s",
                s.original_label,
                s.standard_category,
            )
            continue
        vector = raw_vector(row, structure)
        out[s.original_label] = MappingRule(
            original_label=s.original_label,
            standard_label=s.standard_category,
            amount=sum(vector),
            monthly_amounts=vector,
            confidence=s.confidence,
            provenance="ai",
            explanation=s.explanation or None,
            alternative_categories=s.alternative_categories,
        )
    _logger.info(
        "suggest:rules labels=%d suggestions=%d accepted=%d",
        len(rows),
        len(suggestions),
        len(out),
    )
    return out


def keyword_mapping_rules(
    table: Table, structure: Structure, *, min_confidence: float = MIN_CONFIDENCE
) -> dict[str, MappingRule]:
    """Offline seed rules from the taxonomy keyword matcher.

    Labels with no match, or a match at or below ``min_confidence``, map to
    ``Other`` at confidence 0.1. Labels that match a calculated category (a
    subtotal line such as "Gross Profit") get no rule: the assembler recomputes
    those rows.
    """

    out: dict[str, MappingRule] = {}
    for label, row in first_rows_by_label(table, structure).items():
        match = find_best_match(label)
        if match is not None and match.confidence <= min_confidence:
            _logger.debug(
                "suggest:weak_keyword_match label=%r category=%s confidence=%.2f",
                label,
                match.category,
                match.confidence,
            )
            match = None
        if match is not None and _is_calculated(match.category):
            _logger.debug("suggest:skip_subtotal label=%r category=%s", label, match.category)
            continue
        vector = raw_vector(row, structure)
        out[label] = MappingRule(
            original_label=label,
            standard_label=match.category if match else OTHER,
            amount=sum(vector),
            monthly_amounts=vector,
            confidence=match.confidence if match else 0.1,
            provenance="fallback",
            explanation=f"keyword match ({match.match_type})" if match else None,
        )
    return out


__all__ = [
    "MIN_CONFIDENCE",
    "parse_and_align_suggestions",
    "suggest_labels",
    "suggest_mapping_rules",
    "keyword_mapping_rules",
]
