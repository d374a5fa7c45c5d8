"""Pytest fixtures and context managers for formcrypt tests.

Fixtures (use with pytest):
    keypair: Session-wide 2048-bit RSA key pair (generation is slow).
    form_signer: FormSigner over the session key pair.
    mock_request: MockRequestContext at 10.0.0.5 with a fixed clock.
    signer_credentials: Credential JSON file pointing at the session keys.

Context managers:
    credentials_file(): Writes key files and a credential JSON for the scope.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import pytest

from formcrypt.crypto.keypair import KeyPair
from formcrypt.crypto.keys import KeyParams
from formcrypt.forms.registry import clear_signer_cache
from formcrypt.forms.signer import FormSigner
from formcrypt.testing.mocks import MockRequestContext

TEST_KEY_BITS = 2048


@pytest.fixture(scope="session")
def keypair() -> Iterator[KeyPair]:
    """Generate one key pair for the whole test session.

    Yields:
        An open KeyPair; closed when the session ends.
    """
    pair = KeyPair.generate(params=KeyParams(length=TEST_KEY_BITS))
    yield pair
    pair.close()


@pytest.fixture
def form_signer(keypair: KeyPair) -> FormSigner:
    """Create a FormSigner with default TTL and group key over the session keys."""
    return FormSigner(keypair)


@pytest.fixture
def mock_request() -> MockRequestContext:
    """Create a request context at 10.0.0.5 with a fixed clock."""
    return MockRequestContext()


@contextmanager
def credentials_file(
    keypair: KeyPair,
    directory: Path,
    password: str | None = None,
) -> Iterator[Path]:
    """Write ``public.pem``, ``private.pem`` and ``credentials.json`` to ``directory``.

    Key paths in the JSON are relative to ``directory``. The signer cache is
    cleared on exit so later tests load fresh signers.

    Example:
        >>> with credentials_file(pair, tmp_path) as path:
        ...     signer = load_signer(path)
    """
    pair_public = directory / "public.pem"
    pair_private = directory / "private.pem"
    keypair.public_key.export_to_file(pair_public)
    keypair.private_key.export_to_file(pair_private, password)
    creds: dict[str, str] = {"publicKey": "public.pem", "privateKey": "private.pem"}
    if password is not None:
        creds["password"] = password
    path = directory / "credentials.json"
    path.write_text(json.dumps(creds), encoding="utf-8")
    try:
        yield path
    finally:
        clear_signer_cache()


@pytest.fixture
def signer_credentials(keypair: KeyPair, tmp_path: Path) -> Iterator[Path]:
    """Credential JSON for the session keys in a temporary directory."""
    with credentials_file(keypair, tmp_path) as path:
        yield path


__all__ = [
    "TEST_KEY_BITS",
    "credentials_file",
    "form_signer",
    "keypair",
    "mock_request",
    "signer_credentials",
]
