"""Pytest configuration for test isolation.

The lookup cache persists shared-account and partner-profile entries under a
default project-relative directory (``./.cache``). When tests run in the same
working tree, those files would leak between tests (a later test could read an
account cached by an earlier one), so the cache root is redirected to a unique
temporary directory for each test via an autouse fixture.

The shared database engine in ``db.client`` is process-global; it is disposed
after every test so each test can bind to its own SQLite file.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Make the workspace packages importable without an editable install
_ROOT = Path(__file__).resolve().parents[1]
for _p in (_ROOT / "libs" / "db" / "src", _ROOT / "packages", _ROOT):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

from db.client import dispose_engine  # noqa: E402

from tests.helpers.db import bootstrap_sqlite_db  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_cache_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Force a per-test cache root so tests don't share on-disk state.

    The application reads ``WT_CACHE_DIR`` (when set) to override the default
    ``./.cache`` location. We point it at the test's own temporary directory.
    """

    cache_root = tmp_path / "cache"
    cache_root.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("WT_CACHE_DIR", os.fspath(cache_root))
    # Keep amounts in cents regardless of the developer's .env
    monkeypatch.delenv("WT_CURRENCY_EXPONENT", raising=False)
    monkeypatch.delenv("WT_CURRENCY_SYMBOL", raising=False)


@pytest.fixture(autouse=True)
def _fresh_engine() -> Iterator[None]:
    yield
    dispose_engine()


@pytest.fixture
def database_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """File-backed SQLite database with the full schema, exported as ``DATABASE_URL``."""

    url = bootstrap_sqlite_db(tmp_path / "wt.sqlite3")
    monkeypatch.setenv("DATABASE_URL", url)
    return url
