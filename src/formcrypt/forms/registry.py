"""Process-wide cache of form signers, keyed by credential file.

Parsing RSA keys is slow, so each credential file is loaded once per process.
Lookups for a path that already loaded return the same signer; a path that
failed to load is retried on the next lookup.
"""

from __future__ import annotations

import threading
from datetime import timedelta
from pathlib import Path

from formcrypt.config import load_credentials, normalize_credentials_path
from formcrypt.crypto.keypair import KeyPair
from formcrypt.forms.attestation import DEFAULT_GROUP_KEY
from formcrypt.forms.signer import DEFAULT_FORM_TTL, FormSigner
from formcrypt.observability import get_logger

logger = get_logger(__name__)

_signers: dict[Path, FormSigner] = {}
_signers_lock = threading.Lock()


def load_signer(
    credentials_path: str | Path,
    ttl: timedelta = DEFAULT_FORM_TTL,
    group_key: str = DEFAULT_GROUP_KEY,
) -> FormSigner:
    """Return the signer for ``credentials_path``, loading it on first use.

    ``ttl`` and ``group_key`` only apply when the signer is created.

    Raises:
        KeyFileNotFoundError: If the credential file or a key file is missing.
        CredentialsError: If the credential file is malformed.
        InvalidKeyMaterialError: If a key cannot be imported.
    """
    path = normalize_credentials_path(credentials_path).resolve()
    with _signers_lock:
        signer = _signers.get(path)
        if signer is None:
            credentials = load_credentials(path)
            keypair = KeyPair.from_sources(
                credentials.public_key, credentials.private_key, credentials.password
            )
            signer = FormSigner(keypair, ttl=ttl, group_key=group_key)
            _signers[path] = signer
            logger.info("form.signer.loaded", path=str(path), fingerprint=keypair.fingerprint())
        return signer


def clear_signer_cache() -> None:
    """Forget every cached signer and release its keys."""
    with _signers_lock:
        for signer in _signers.values():
            signer.keypair.close()
        _signers.clear()
