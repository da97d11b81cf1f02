"""Global test fixtures for the Secretline test suite."""

from __future__ import annotations

import os

import pytest

from secretline.core.config import clear_config_cache
from secretline.core.coordinator import LineCoordinator
from secretline.core.events import EventBus
from secretline.crypto.engine import LocalConfidentialEngine
from secretline.crypto.identity import LocalIdentity

# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all SECRETLINE_ environment variables and reset cached config."""
    for key in list(os.environ.keys()):
        if key.startswith("SECRETLINE_"):
            monkeypatch.delenv(key, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def secretline_home(tmp_path, monkeypatch):
    """Point SECRETLINE_HOME at a temporary directory."""
    home = tmp_path / "secretline-home"
    monkeypatch.setenv("SECRETLINE_HOME", str(home))
    clear_config_cache()
    yield home
    clear_config_cache()


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def engine():
    """Local engine that verifies decryption proofs."""
    return LocalConfidentialEngine()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def coordinator(engine, bus):
    """A fresh coordinator with isolated state and the reference secret domain."""
    return LineCoordinator(engine, domain=(10_000_000, 99_999_999), events=bus)


@pytest.fixture
def alice():
    return LocalIdentity()


@pytest.fixture
def bob():
    return LocalIdentity()


@pytest.fixture
def carol():
    return LocalIdentity()
