"""Load uploaded statement files into the row-mapping shape the engine reads.

Supported containers:

- ``.csv``: header row, blank lines skipped.
- ``.xlsx``/``.xlsm``: first worksheet, first row is the header, missing
  cells read as ``""``.
- ``.json``: an array of objects; an object with a ``rows`` or ``data``
  array; or any other object, whose entries become rows (mapping values gain
  a trailing ``_key`` column, scalars become ``{"label": key, "value": value}``).

Every loader returns rows padded to the union column set, so the engine sees
one rectangular table regardless of source.
"""

from __future__ import annotations

import csv
import json
from collections.abc import Iterable, Mapping
from os import PathLike
from pathlib import Path
from typing import Any

from .logging_setup import get_logger

_logger = get_logger("pl_standardizer.ingest")

SUPPORTED_EXTENSIONS: tuple[str, ...] = (".csv", ".xlsx", ".xlsm", ".json")


def normalize_table(rows: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Pad ragged rows to the union of columns (first-seen order) with ``""``."""

    materialized = [dict(r) for r in rows]
    columns: dict[str, None] = {}
    for row in materialized:
        for col in row:
            columns.setdefault(col, None)
    return [{col: row.get(col, "") for col in columns} for row in materialized]


def _load_csv(path: Path) -> list[dict[str, Any]]:
    with path.open(encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames:
            raise csv.Error(f"CSV appears to have no header row: {path}")
        rows: list[dict[str, Any]] = []
        for raw in reader:
            # DictReader stores overflow cells under None; they have no header.
            row = {k: ("" if v is None else v) for k, v in raw.items() if k is not None}
            if all(v == "" for v in row.values()):
                continue
            rows.append(row)
    return rows


def _load_xlsx(path: Path) -> list[dict[str, Any]]:
    from openpyxl import load_workbook

    wb = load_workbook(path, read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        values = ws.iter_rows(values_only=True)
        try:
            header_cells = next(values)
        except StopIteration:
            return []
        headers = [
            str(h).strip() if h is not None else f"Column {i + 1}"
            for i, h in enumerate(header_cells)
        ]
        rows: list[dict[str, Any]] = []
        for cells in values:
            if cells is None or all(c is None or c == "" for c in cells):
                continue
            row = {
                header: ("" if i >= len(cells) or cells[i] is None else cells[i])
                for i, header in enumerate(headers)
            }
            rows.append(row)
        return rows
    finally:
        wb.close()


def _rows_from_json(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, list):
        return [dict(item) for item in data if isinstance(item, Mapping)]
    if isinstance(data, Mapping):
        for key in ("rows", "data"):
            nested = data.get(key)
            if isinstance(nested, list):
                return _rows_from_json(nested)
        rows: list[dict[str, Any]] = []
        for key, value in data.items():
            if isinstance(value, Mapping):
                rows.append({**value, "_key": key})
            else:
                rows.append({"label": key, "value": value})
        return rows
    raise ValueError("JSON input must be an array or an object")


def _load_json(path: Path) -> list[dict[str, Any]]:
    with path.open(encoding="utf-8") as f:
        data = json.load(f)
    return _rows_from_json(data)


def load_table(path: str | PathLike[str]) -> list[dict[str, Any]]:
    """Read a statement file into a list of row mappings.

    Raises
    ------
    ValueError
        For unsupported extensions or JSON of the wrong shape.
    OSError / csv.Error / json.JSONDecodeError
        Propagated from the underlying readers.
    """

    p = Path(path)
    ext = p.suffix.lower()
    if ext == ".csv":
        rows = _load_csv(p)
    elif ext in (".xlsx", ".xlsm"):
        rows = _load_xlsx(p)
    elif ext == ".json":
        rows = _load_json(p)
    else:
        raise ValueError(
            f"Unsupported file type {ext or '(none)'!r}; expected one of "
            + ", ".join(SUPPORTED_EXTENSIONS)
        )

    table = normalize_table(rows)
    _logger.info("ingest:loaded path=%s format=%s rows=%d", p.name, ext.lstrip("."), len(table))
    return table


__all__ = ["SUPPORTED_EXTENSIONS", "load_table", "normalize_table"]
