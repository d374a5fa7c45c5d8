"""Runtime settings and signer credential files.

Settings come from ``FORMCRYPT_*`` environment variables. A credential file is
a JSON document naming a key pair::

    {"publicKey": "keys/public.pem", "privateKey": "keys/private.pem", "password": "..."}

Each key entry is a path or inline PEM text. Relative paths that exist next to
the credential file are resolved against its directory.
"""

from __future__ import annotations

import json
import os
from datetime import timedelta
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from formcrypt.crypto.algorithms import DEFAULT_CIPHER, DEFAULT_HASH
from formcrypt.crypto.keypair import is_existing_file
from formcrypt.errors import CredentialsError, KeyFileNotFoundError
from formcrypt.forms.attestation import DEFAULT_GROUP_KEY

ENV_FORM_TTL = "FORMCRYPT_FORM_TTL"
ENV_FORM_GROUP_KEY = "FORMCRYPT_FORM_GROUP_KEY"
ENV_CIPHER = "FORMCRYPT_CIPHER"
ENV_HASH = "FORMCRYPT_HASH"
ENV_KEY_BITS = "FORMCRYPT_KEY_BITS"
ENV_CREDENTIALS = "FORMCRYPT_CREDENTIALS"

DEFAULT_FORM_TTL_SECONDS = 7200
DEFAULT_KEY_BITS = 4096
CREDENTIALS_SUFFIX = ".json"


class Settings(BaseModel):
    """Process-wide defaults for signing and encryption."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    form_ttl_seconds: int = Field(default=DEFAULT_FORM_TTL_SECONDS, gt=0)
    form_group_key: str = Field(default=DEFAULT_GROUP_KEY, min_length=1)
    cipher: str = Field(default=DEFAULT_CIPHER)
    hash_algo: str = Field(default=DEFAULT_HASH)
    key_bits: int = Field(default=DEFAULT_KEY_BITS, ge=1024)
    credentials_path: Path | None = None

    @property
    def form_ttl(self) -> timedelta:
        return timedelta(seconds=self.form_ttl_seconds)

    @classmethod
    def from_env(cls) -> Settings:
        """Read settings from the environment; unset variables keep their defaults.

        Raises:
            pydantic.ValidationError: If a variable holds an unusable value.
        """
        env = {
            "form_ttl_seconds": os.environ.get(ENV_FORM_TTL),
            "form_group_key": os.environ.get(ENV_FORM_GROUP_KEY),
            "cipher": os.environ.get(ENV_CIPHER),
            "hash_algo": os.environ.get(ENV_HASH),
            "key_bits": os.environ.get(ENV_KEY_BITS),
            "credentials_path": os.environ.get(ENV_CREDENTIALS),
        }
        return cls.model_validate(
            {key: value.strip() for key, value in env.items() if value and value.strip()}
        )


class SignerCredentials(BaseModel):
    """Key sources and optional private key password from a credential file."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    public_key: str = Field(..., alias="publicKey", min_length=1)
    private_key: str = Field(..., alias="privateKey", min_length=1)
    password: str | None = None


def normalize_credentials_path(path: str | Path) -> Path:
    """Append ``.json`` when the path has no extension."""
    path = Path(path)
    if not path.suffix:
        path = path.with_name(path.name + CREDENTIALS_SUFFIX)
    return path


def _resolve_key_source(source: str, base_dir: Path) -> str:
    if is_existing_file(source) or Path(source).is_absolute():
        return source
    candidate = base_dir / source
    return str(candidate) if is_existing_file(candidate) else source


def load_credentials(path: str | Path) -> SignerCredentials:
    """Parse a credential file.

    Raises:
        KeyFileNotFoundError: If the file does not exist.
        CredentialsError: If it is not JSON or misses ``publicKey``/``privateKey``.
    """
    path = normalize_credentials_path(path)
    if not path.is_file():
        raise KeyFileNotFoundError(str(path))
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CredentialsError(str(path), f"not valid JSON ({exc.msg})") from exc
    try:
        credentials = SignerCredentials.model_validate(data)
    except ValidationError as exc:
        raise CredentialsError(
            str(path), "expected publicKey and privateKey", details={"errors": exc.error_count()}
        ) from exc
    base_dir = path.parent
    return credentials.model_copy(
        update={
            "public_key": _resolve_key_source(credentials.public_key, base_dir),
            "private_key": _resolve_key_source(credentials.private_key, base_dir),
        }
    )
