"""
Pytest config.

Pins the repo root on sys.path so `import taskboard` works whether or not the package
was installed, and resets cached config / app state between tests.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()


@pytest.fixture(autouse=True)
def _fresh_config_and_state(monkeypatch: pytest.MonkeyPatch):
    """
    Config loaders are lru_cached and the app keeps its provider client / board views on
    `app.state`; both must not leak between tests.
    """
    from taskboard.api.app import app
    from taskboard.auth.config import load_auth_config
    from taskboard.board.config import load_board_config

    for name in (
        "FIREBASE_API_KEY",
        "FIREBASE_AUTH_EMULATOR_HOST",
        "AUTH_PUBLIC_BASE_URL",
        "AUTH_COOKIE_SECURE",
        "AUTH_SESSION_SECRET",
        "FIREBASE_RECAPTCHA_SITE_KEY",
        "AUTH_GOOGLE_ENABLED",
        "AUTH_OIDC_PROVIDER_ID",
        "AUTH_OIDC_PROVIDER_NAME",
        "BOARD_MAX_VIEWS",
    ):
        monkeypatch.delenv(name, raising=False)

    load_auth_config.cache_clear()
    load_board_config.cache_clear()
    for attr in ("identity_provider", "board_views"):
        if hasattr(app.state, attr):
            delattr(app.state, attr)
    yield
    load_auth_config.cache_clear()
    load_board_config.cache_clear()
    for attr in ("identity_provider", "board_views"):
        if hasattr(app.state, attr):
            delattr(app.state, attr)
