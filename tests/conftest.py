"""Pytest configuration shared by the test suite.

Puts the workspace ``packages/`` directory on ``sys.path`` so
``pl_standardizer`` imports without an editable install, and clears the
environment variables the package reads at call time so a developer's shell or
``.env`` cannot leak into assertions.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
# Ensure `packages/` precedes the repo root on sys.path so local packages resolve first.
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without suggestion credentials or tuning overrides."""

    for var in (
        "OPENAI_API_KEY",
        "PL_STANDARDIZER_MODEL",
        "PL_STANDARDIZER_MAX_WORKERS",
        "PL_STANDARDIZER_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def _reset_package_logging() -> Iterator[None]:
    """Undo ``configure_logging`` after CLI runs so handlers never outlive a test."""

    yield
    from pl_standardizer import logging_setup

    logger = logging.getLogger("pl_standardizer")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    logging_setup._CONFIGURED = False
