"""Global test fixtures for aitarget."""

from __future__ import annotations

import pytest

from aitarget.core.dom.document import Document
from aitarget.core.models.config import Config, WatcherConfig
from tests.builders import column, make_document, node

# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def login_page() -> Document:
    """A small login form inside a declared component."""
    form = node(
        "form",
        *column(
            node("input", type="email", name="email", placeholder="Email"),
            node("input", type="password", name="password"),
            node("button", text="Sign in", id="submit-btn", type="submit"),
            node("a", text="Forgot password?", href="/reset"),
        ),
        data_ai_component="LoginForm",
    )
    hidden = node("button", text="Hidden", box=(10, 400, 100, 30), style={"display": "none"})
    disabled = node("button", text="Disabled", box=(10, 450, 100, 30), disabled=True)
    return make_document(form, hidden, disabled, url="https://app.test/login")


@pytest.fixture
def fast_config() -> Config:
    """Config with timings small enough for tests."""
    return Config(
        watcher=WatcherConfig(
            settle_delay=0.01,
            debounce_window=0.05,
            periodic_interval=60.0,
        )
    )
