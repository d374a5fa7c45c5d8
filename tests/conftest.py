"""Shared pytest fixtures for formcrypt tests.

Key generation is slow, so the RSA key pair is generated once per session by
``formcrypt.testing.fixtures.keypair``. Tests that close keys must generate
their own.
"""

from __future__ import annotations

import pytest

from formcrypt.observability import clear_context

# Load formcrypt.testing fixtures (keypair, form_signer, mock_request, signer_credentials)
pytest_plugins = ["formcrypt.testing.fixtures"]


@pytest.fixture(autouse=True)
def _clear_log_context() -> None:
    """Start every test without bound logging context."""
    clear_context()
