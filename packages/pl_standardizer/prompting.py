"""Prompt construction and label serialization for label-to-category mapping.

This module builds:
- A deterministic JSON serialization of the labels in one request batch, each
  tagged with a batch-relative ``idx``.
- The system and user prompts for the mapping task.
- The strict ``response_format`` (JSON Schema) object for the OpenAI
  Responses API.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from openai.types.responses.response_format_text_json_schema_config_param import (
    ResponseFormatTextJSONSchemaConfigParam,
)

from .taxonomy import OTHER

BEGIN_MARKER = "BEGIN_LABELS_JSON"
END_MARKER = "END_LABELS_JSON"

_USER_TEMPLATE = """\
Map each P&L statement label below to the most appropriate standard category.
{{TAXONOMY}}
For each label return:
- "category": the best matching standard category name, or null when none fits
- "confidence": a score from 0.0 to 1.0
- "explanation": one short sentence on why the mapping makes sense
- "alternative_categories": 2-3 other plausible categories when confidence < 0.8,
  otherwise an empty list

Echo each label's "idx" unchanged. Subtotal lines (gross profit, operating income,
net income) are recomputed from the other lines; return null for them.

{{BEGIN}}
{{LABELS_JSON}}
{{END}}
"""


def serialize_labels_to_json(labels: Sequence[str]) -> str:
    """Serialize batch labels as ``[{"idx": i, "label": ...}, ...]``."""

    arr = [{"idx": i, "label": label} for i, label in enumerate(labels)]
    return json.dumps(arr, ensure_ascii=False)


def build_system_instructions() -> str:
    """Concise system instructions for mapping labels onto the taxonomy."""

    return (
        "You are a financial data expert specializing in profit and loss statement "
        "standardization. Map each label to exactly one category from the provided list, "
        "or null when nothing fits. Never invent categories. Output JSON only that "
        "conforms to the specified schema."
    )


def build_user_content(labels_json: str, taxonomy: Sequence[Mapping[str, Any]]) -> str:
    """Build the user prompt embedding the taxonomy and the labels JSON.

    The taxonomy is listed in presentation order with its type and keyword
    hints; labels are delimited by ``BEGIN_LABELS_JSON``/``END_LABELS_JSON``.
    """

    lines: list[str] = ["", "Standard categories (name [type]: keyword hints):"]
    for entry in taxonomy:
        name = str(entry.get("name"))
        type_ = str(entry.get("type") or "")
        hints = ", ".join(str(k) for k in entry.get("keywords") or ())
        lines.append(f"  - {name} [{type_}]: {hints}")
    lines.append(f"  - {OTHER} [expense]: anything that fits no category above")
    taxonomy_text = "\n".join(lines) + "\n"

    return (
        _USER_TEMPLATE.replace("{{TAXONOMY}}", taxonomy_text)
        .replace("{{BEGIN}}", BEGIN_MARKER)
        .replace("{{END}}", END_MARKER)
        .replace("{{LABELS_JSON}}", labels_json)
    )


def allowed_category_names(taxonomy: Sequence[Mapping[str, Any]]) -> list[str]:
    """Deduplicated category names from ``taxonomy`` plus the ``Other`` sentinel."""

    names = [n for n in dict.fromkeys(str(e.get("name") or "").strip() for e in taxonomy) if n]
    if OTHER not in names:
        names.append(OTHER)
    return names


def build_response_format(
    taxonomy: Sequence[Mapping[str, Any]],
) -> ResponseFormatTextJSONSchemaConfigParam:
    """Return the strict JSON Schema response format for a label batch.

    Each result carries ``idx``, ``category`` (taxonomy name or null),
    ``confidence``, ``explanation`` and ``alternative_categories``.
    """

    names = allowed_category_names(taxonomy)
    if len(names) <= 1:
        raise ValueError("taxonomy must contain at least one non-blank 'name'")

    result: ResponseFormatTextJSONSchemaConfigParam = {
        "type": "json_schema",
        "name": "pl_label_mappings",
        "schema": {
            "type": "object",
            "properties": {
                "results": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "idx": {"type": "integer"},
                            "category": {"type": ["string", "null"], "enum": names + [None]},
                            "confidence": {"type": "number", "minimum": 0, "maximum": 1},
                            "explanation": {"type": "string"},
                            "alternative_categories": {
                                "type": "array",
                                "items": {"type": "string", "enum": names},
                            },
                        },
                        "required": [
                            "idx",
                            "category",
                            "confidence",
                            "explanation",
                            "alternative_categories",
                        ],
                        "additionalProperties": False,
                    },
                }
            },
            "required": ["results"],
            "additionalProperties": False,
        },
        "strict": True,
    }
    return result


__all__ = [
    "BEGIN_MARKER",
    "END_MARKER",
    "serialize_labels_to_json",
    "build_system_instructions",
    "build_user_content",
    "allowed_category_names",
    "build_response_format",
]
