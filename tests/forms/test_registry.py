"""Tests for the credential-file signer cache."""

import json
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from formcrypt.crypto.keypair import KeyPair
from formcrypt.errors import CredentialsError, InvalidKeyMaterialError, KeyFileNotFoundError
from formcrypt.forms import clear_signer_cache, load_signer
from formcrypt.testing.fixtures import credentials_file


def test_load_signer_is_cached(signer_credentials: Path, keypair: KeyPair) -> None:
    """The same path returns the same signer."""
    first = load_signer(signer_credentials)
    second = load_signer(str(signer_credentials))
    assert first is second
    assert first.keypair.fingerprint() == keypair.fingerprint()


def test_load_signer_appends_json_suffix(signer_credentials: Path) -> None:
    """A path without extension resolves to the .json file."""
    assert load_signer(signer_credentials.with_suffix("")) is load_signer(signer_credentials)


def test_load_signer_parses_once_under_concurrency(signer_credentials: Path) -> None:
    """Concurrent first lookups parse the credentials only once."""
    results = []
    with patch(
        "formcrypt.forms.registry.KeyPair.from_sources", wraps=KeyPair.from_sources
    ) as mock_from_sources:
        threads = [
            threading.Thread(target=lambda: results.append(load_signer(signer_credentials)))
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
    assert mock_from_sources.call_count == 1
    assert len({id(signer) for signer in results}) == 1


def test_failures_are_not_cached(tmp_path: Path, keypair: KeyPair) -> None:
    """A failed load is retried on the next lookup."""
    path = tmp_path / "credentials.json"
    path.write_text(json.dumps({"publicKey": "public.pem", "privateKey": "garbage"}))
    keypair.public_key.export_to_file(tmp_path / "public.pem")
    with pytest.raises(InvalidKeyMaterialError):
        load_signer(path)
    keypair.private_key.export_to_file(tmp_path / "private.pem")
    path.write_text(json.dumps({"publicKey": "public.pem", "privateKey": "private.pem"}))
    try:
        assert load_signer(path).keypair.fingerprint() == keypair.fingerprint()
    finally:
        clear_signer_cache()


def test_locked_private_key(tmp_path: Path, keypair: KeyPair) -> None:
    """The credential password unlocks the private key."""
    with credentials_file(keypair, tmp_path, password="pw") as path:
        assert load_signer(path).keypair.sign("m").ok


def test_missing_credentials(tmp_path: Path) -> None:
    """A missing credential file raises."""
    with pytest.raises(KeyFileNotFoundError):
        load_signer(tmp_path / "absent")


def test_malformed_credentials(tmp_path: Path) -> None:
    """Bad JSON and missing keys raise CredentialsError."""
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(CredentialsError):
        load_signer(bad)
    partial = tmp_path / "partial.json"
    partial.write_text(json.dumps({"publicKey": "x"}))
    with pytest.raises(CredentialsError) as exc_info:
        load_signer(partial)
    assert exc_info.value.code == "formcrypt:config/invalid_credentials"


def test_clear_signer_cache_closes_keys(signer_credentials: Path) -> None:
    """Clearing the cache releases cached keys and forces a reload."""
    first = load_signer(signer_credentials)
    clear_signer_cache()
    assert first.keypair.public_key.closed
    assert load_signer(signer_credentials) is not first
