# ruff: noqa: I001
"""CLI for the ``pl_standardizer`` package.

Command handlers (``cmd_detect``, ``cmd_suggest``, ``cmd_standardize``) return
a process exit code and write errors to stderr; the Typer commands below are
thin wrappers around them. Environment variables (notably ``OPENAI_API_KEY``)
are loaded from a local ``.env`` using ``python-dotenv`` in the root callback.
"""

from __future__ import annotations

import csv
import json
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .errors import StandardizationError
from .logging_setup import configure_logging

_FORMATS: tuple[str, ...] = ("csv", "json", "statement-json")


def _read_table(path: Path) -> list[dict[str, Any]] | None:
    """Load ``path`` or print a readable error and return ``None``."""

    from .ingest import load_table

    try:
        return load_table(path)
    except FileNotFoundError:
        print(f"Error: File not found: {path}", file=sys.stderr)
    except PermissionError:
        print(f"Error: Permission denied: {path}", file=sys.stderr)
    except (csv.Error, json.JSONDecodeError) as e:
        print(f"Error: Failed to parse {path.name}: {e}", file=sys.stderr)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
    except Exception as e:
        print(f"Error: Unexpected failure reading '{path}': {e}", file=sys.stderr)
    return None


def _emit(text: str, output: Path | None) -> None:
    if output is None:
        sys.stdout.write(text if text.endswith("\n") else text + "\n")
        return
    output.write_text(text, encoding="utf-8")
    print(f"Wrote {output}", file=sys.stderr)


def cmd_detect(path: Path) -> int:
    """Print the detected label column and amount columns of a file."""

    from .structure import detect_structure

    table = _read_table(path)
    if table is None:
        return 1
    try:
        structure = detect_structure(table)
    except StandardizationError as e:
        print(f"Error: structure detection failed: {e}", file=sys.stderr)
        return 1

    print(f"label column:   {structure.label_column}")
    print(f"amount columns: {', '.join(structure.amount_columns) or '(none)'}")
    return 0


def cmd_suggest(path: Path, *, out: Path | None = None, offline: bool = False) -> int:
    """Produce seed mapping rules for a file and write them as JSON.

    Uses the suggestion service unless ``offline``; falls back to the keyword
    matcher when the service is unavailable or accepts nothing.
    """

    from .api import suggest_rules
    from .rules import MappingRuleStore

    table = _read_table(path)
    if table is None:
        return 1
    try:
        rules = suggest_rules(table, offline=offline)
    except StandardizationError as e:
        print(f"Error: structure detection failed: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: suggestion failed: {e}", file=sys.stderr)
        return 1

    store = MappingRuleStore(rules.values())
    _emit(json.dumps(store.to_dict(), indent=2, ensure_ascii=False), out)
    return 0


def cmd_standardize(
    path: Path,
    rules_path: Path,
    *,
    fmt: str = "csv",
    output: Path | None = None,
) -> int:
    """Run the pipeline over a file with a saved rules file and emit the result."""

    from .api import standardize
    from .exports import categories_to_json, statement_to_csv, statement_to_json
    from .rules import MappingRuleStore

    if fmt not in _FORMATS:
        print(
            f"Error: unknown format {fmt!r}; expected one of {', '.join(_FORMATS)}",
            file=sys.stderr,
        )
        return 1

    table = _read_table(path)
    if table is None:
        return 1

    try:
        with rules_path.open(encoding="utf-8") as f:
            raw_rules = json.load(f)
        if not isinstance(raw_rules, dict):
            raise ValueError("rules file must contain a JSON object keyed by label")
        store = MappingRuleStore.from_mapping(raw_rules)
    except FileNotFoundError:
        print(f"Error: File not found: {rules_path}", file=sys.stderr)
        return 1
    except (json.JSONDecodeError, ValueError) as e:
        # pydantic.ValidationError is a ValueError subclass.
        print(f"Error: invalid rules file '{rules_path}': {e}", file=sys.stderr)
        return 1

    try:
        result = standardize(table, store.snapshot())
    except StandardizationError as e:
        print(f"Error: standardization failed: {e}", file=sys.stderr)
        return 1

    if fmt == "csv":
        text = statement_to_csv(result.rows, result.structure.amount_columns)
    elif fmt == "json":
        text = categories_to_json(result.categories)
    else:
        text = statement_to_json(result.rows)
    _emit(text, output)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Standardize raw P&L statements into a fixed category taxonomy. "
        "Loads OPENAI_API_KEY from a local .env before running."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--path",
    help="Path to a statement file (.csv, .xlsx, .xlsm or .json)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)
RULES_OPTION: OptionInfo = typer.Option(
    ...,
    "--rules",
    help="Path to a JSON rules file as written by 'suggest --out'",
    dir_okay=False,
    file_okay=True,
    exists=False,
)
OUT_OPTION: OptionInfo = typer.Option(
    None, "--out", "--output", help="Write to this file instead of stdout."
)


@app.command("detect")
def detect_cmd(path: Annotated[Path, PATH_OPTION]) -> None:
    """Show which column holds labels and which hold period amounts."""

    rc = cmd_detect(path)
    if rc:
        raise typer.Exit(rc)


@app.command("suggest")
def suggest_cmd(
    path: Annotated[Path, PATH_OPTION],
    out: Path | None = OUT_OPTION,
    *,
    offline: bool = typer.Option(
        False, help="Skip the suggestion service and use keyword matching only."
    ),
) -> None:
    """Seed mapping rules for every label in a file."""

    rc = cmd_suggest(path, out=out, offline=offline)
    if rc:
        raise typer.Exit(rc)


@app.command("standardize")
def standardize_cmd(
    path: Annotated[Path, PATH_OPTION],
    rules: Annotated[Path, RULES_OPTION],
    output: Path | None = OUT_OPTION,
    *,
    fmt: str = typer.Option(
        "csv",
        "--format",
        help="Output format: csv (statement), json (categories) or statement-json.",
    ),
) -> None:
    """Aggregate a file through saved rules and print the standardized statement."""

    rc = cmd_standardize(path, rules, fmt=fmt, output=output)
    if rc:
        raise typer.Exit(rc)


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging()

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    main()
