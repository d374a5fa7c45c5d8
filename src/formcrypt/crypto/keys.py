"""RSA public/private keys: import, export, encrypt, decrypt, sign and verify.

Keys are created only through ``import_pem`` / ``import_file`` (or key pair
generation). Import failures raise, because nothing sensible can happen
without a key. Per-call operations never raise; they return a
:class:`~formcrypt.result.Result` and log the provider's complaint.

Encryption works in both directions:

- public key encrypt -> private key decrypt (secrecy), OAEP by default
- private key encrypt -> public key decrypt (proof of possession), PKCS#1 v1.5

Unless ``raw=True``, ciphertexts and signatures are returned base64-encoded
and expected base64-encoded on input.
"""

from __future__ import annotations

import base64
import binascii
import math
import secrets
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, ClassVar

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.exceptions import UnsupportedAlgorithm as ProviderUnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import BaseModel, ConfigDict, Field

from formcrypt.crypto import digest
from formcrypt.crypto.algorithms import (
    DEFAULT_SIGNATURE_ALGORITHM,
    Padding,
    get_signature_hash,
)
from formcrypt.errors import (
    InvalidKeyMaterialError,
    KeyClosedError,
    KeyFileNotFoundError,
    ProviderError,
    SignatureVerificationError,
    UnsupportedAlgorithmError,
)
from formcrypt.observability import get_logger
from formcrypt.result import Result, report_failure

logger = get_logger(__name__)

# Age in days after which to log a key rotation warning.
KEY_ROTATION_WARNING_DAYS = 365
# Recommended mode for private key files (owner read/write only).
KEY_FILE_RECOMMENDED_MODE = 0o600
# Ciphers usable to lock an exported private key PEM.
PEM_CIPHERS = frozenset({"aes-256-cbc"})
# PKCS#1 v1.5 type 1 block overhead: 00 01 <at least 8 x FF> 00.
_PKCS1_OVERHEAD = 11


class KeyParams(BaseModel):
    """Parameters for key generation and private key export."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    digest: str = Field(default="sha512", description="Default signature digest for the pair.")
    length: int = Field(default=4096, ge=1024, description="RSA modulus size in bits.")
    key_type: str = Field(default="rsa", description="Key type; only RSA is supported.")
    cipher: str = Field(default="aes-256-cbc", description="Cipher locking exported private keys.")
    public_exponent: int = Field(default=65537, description="RSA public exponent.")


DEFAULT_KEY_PARAMS = KeyParams()


class KeyMetadata(BaseModel):
    """Key creation time (or file mtime); used for rotation/audit."""

    created_at: datetime


def get_key_metadata_from_file(path: str | Path) -> KeyMetadata:
    """KeyMetadata from file mtime (UTC)."""
    mtime = Path(path).stat().st_mtime
    return KeyMetadata(created_at=datetime.fromtimestamp(mtime, tz=timezone.utc))


def warn_if_key_old(
    metadata: KeyMetadata,
    max_age_days: int = KEY_ROTATION_WARNING_DAYS,
) -> None:
    age_days = (datetime.now(timezone.utc) - metadata.created_at).days
    if age_days >= max_age_days:
        logger.warning(
            "key_rotation_recommended",
            age_days=age_days,
            max_age_days=max_age_days,
            created_at=metadata.created_at.isoformat(),
        )


def warn_if_key_file_permissions_loose(path: Path) -> None:
    """Warn when key file is group/other readable (recommend chmod 0600)."""
    try:
        mode = path.stat().st_mode
    except OSError:
        return
    if (mode & 0o77) != 0:
        logger.warning(
            "key_file_permissions_loose",
            path=str(path),
            mode=oct(mode),
            recommended=oct(KEY_FILE_RECOMMENDED_MODE),
            message="Private key file is readable by group or others; consider chmod 0600.",
        )


def _to_bytes(data: str | bytes) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else data


def _encode_output(data: bytes, raw: bool) -> bytes:
    return data if raw else base64.b64encode(data)


def _decode_input(data: str | bytes, raw: bool) -> bytes:
    """Undo base64 transport encoding. Raises binascii.Error/ValueError when malformed."""
    if raw:
        return _to_bytes(data)
    return base64.b64decode(data, validate=True)


def _read_key_file(path: str | Path) -> bytes:
    path = Path(path)
    if not path.is_file():
        raise KeyFileNotFoundError(str(path))
    return path.read_bytes()


class Key(ABC):
    """An RSA key handle owned by exactly one Key instance.

    Construct through the ``import_*`` class methods. The handle is released by
    :meth:`close` (or leaving a ``with`` block); releasing twice is a no-op and
    any later operation raises :class:`~formcrypt.errors.KeyClosedError`.
    """

    kind: ClassVar[str]

    def __init__(self, handle: Any) -> None:
        self._handle = handle

    @property
    def _key(self) -> Any:
        if self._handle is None:
            raise KeyClosedError(self.kind)
        return self._handle

    @property
    def closed(self) -> bool:
        return self._handle is None

    def close(self) -> None:
        self._handle = None

    def __enter__(self) -> Key:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def bits(self) -> int:
        return int(self._key.key_size)

    @abstractmethod
    def _public_handle(self) -> rsa.RSAPublicKey: ...

    def details(self) -> dict[str, Any]:
        """Public key details: bit size, type, PEM and the RSA public numbers."""
        public = self._public_handle()
        numbers = public.public_numbers()
        pem = public.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")
        return {
            "bits": public.key_size,
            "type": "rsa",
            "key": pem,
            "rsa": {"n": format(numbers.n, "x"), "e": numbers.e},
        }

    def __repr__(self) -> str:
        if self.closed:
            return f"<{type(self).__name__} closed>"
        return f"<{type(self).__name__} rsa {self.bits} bits>"

    @abstractmethod
    def encrypt(
        self, data: str | bytes, raw: bool = False, padding: Padding = Padding.OAEP
    ) -> Result[bytes]: ...

    @abstractmethod
    def decrypt(
        self, data: str | bytes, raw: bool = False, padding: Padding = Padding.OAEP
    ) -> Result[bytes]: ...

    @abstractmethod
    def export(self) -> str: ...

    def _write_export(self, path: str | Path, pem: str, mode: int | None = None) -> bool:
        path = Path(path)
        try:
            if mode is not None:
                # Restrict before the key material is written.
                path.touch(mode=mode, exist_ok=True)
                path.chmod(mode)
            path.write_text(pem, encoding="ascii")
        except OSError as exc:
            logger.warning("key.export.failed", kind=self.kind, path=str(path), error=str(exc))
            return False
        return True


class PublicKey(Key):
    """RSA public key: encrypt for the private key holder, verify its signatures."""

    kind = "public"

    @classmethod
    def import_pem(cls, data: str | bytes) -> PublicKey:
        """Import from ``-----BEGIN PUBLIC KEY-----`` text or an X.509 certificate PEM.

        Raises:
            InvalidKeyMaterialError: If the text is not an RSA public key.
        """
        pem = _to_bytes(data)
        try:
            if b"-----BEGIN CERTIFICATE-----" in pem:
                handle = x509.load_pem_x509_certificate(pem).public_key()
            else:
                handle = serialization.load_pem_public_key(pem)
        except (ValueError, TypeError, ProviderUnsupportedAlgorithm) as exc:
            raise InvalidKeyMaterialError(str(exc), details={"kind": cls.kind}) from exc
        if not isinstance(handle, rsa.RSAPublicKey):
            raise InvalidKeyMaterialError("key is not an RSA public key", details={"kind": cls.kind})
        return cls(handle)

    @classmethod
    def import_file(cls, path: str | Path) -> PublicKey:
        """Import from a PEM file. Raises KeyFileNotFoundError when the path is not a file."""
        return cls.import_pem(_read_key_file(path))

    def _public_handle(self) -> rsa.RSAPublicKey:
        return self._key  # type: ignore[no-any-return]

    def encrypt(
        self, data: str | bytes, raw: bool = False, padding: Padding = Padding.OAEP
    ) -> Result[bytes]:
        """Encrypt ``data`` so that only the matching private key can decrypt it."""
        try:
            encrypted = self._key.encrypt(_to_bytes(data), padding.build())
        except (ValueError, TypeError, ProviderUnsupportedAlgorithm) as exc:
            return report_failure(
                "key.encrypt.failed",
                ProviderError("public key encrypt", str(exc), details={"padding": padding.value}),
            )
        return Result.success(_encode_output(encrypted, raw))

    def decrypt(
        self, data: str | bytes, raw: bool = False, padding: Padding = Padding.PKCS1
    ) -> Result[bytes]:
        """Recover data encrypted with the matching private key (PKCS#1 v1.5 only)."""
        if padding is not Padding.PKCS1:
            return report_failure(
                "key.decrypt.failed",
                UnsupportedAlgorithmError(
                    "padding", padding.value, [Padding.PKCS1.value], {"operation": "public decrypt"}
                ),
            )
        try:
            recovered = self._key.recover_data_from_signature(
                _decode_input(data, raw), asym_padding.PKCS1v15(), None
            )
        except (InvalidSignature, ValueError) as exc:
            return report_failure(
                "key.decrypt.failed",
                ProviderError("public key decrypt", str(exc) or "invalid ciphertext"),
            )
        return Result.success(recovered)

    def verify(
        self,
        data: str | bytes,
        signature: str | bytes,
        raw: bool = False,
        algo: str = DEFAULT_SIGNATURE_ALGORITHM,
    ) -> Result[bool]:
        """Check ``signature`` over ``data``.

        A mismatching signature is a conclusive ``Result(value=False)``. A check
        that cannot be carried out (signature not decodable, unsupported
        algorithm, provider fault) is a failed Result carrying a
        :class:`~formcrypt.errors.SignatureVerificationError`, never ``False``.
        """
        try:
            hash_algo = get_signature_hash(algo)
            raw_signature = _decode_input(signature, raw)
        except UnsupportedAlgorithmError as exc:
            return report_failure(
                "key.verify.inconclusive",
                SignatureVerificationError(exc.message, details={"algo": algo}),
            )
        except (binascii.Error, ValueError) as exc:
            return report_failure(
                "key.verify.inconclusive",
                SignatureVerificationError(f"Invalid signature encoding (base64): {exc}."),
            )
        try:
            self._key.verify(raw_signature, _to_bytes(data), asym_padding.PKCS1v15(), hash_algo)
        except InvalidSignature:
            return Result.success(False)
        except (ValueError, TypeError, ProviderUnsupportedAlgorithm) as exc:
            return report_failure(
                "key.verify.inconclusive",
                SignatureVerificationError(f"Signature check could not complete: {exc}."),
            )
        return Result.success(True)

    def export(self) -> str:
        """``-----BEGIN PUBLIC KEY-----`` PEM text."""
        return self._key.public_bytes(  # type: ignore[no-any-return]
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    def export_to_file(self, path: str | Path) -> bool:
        return self._write_export(path, self.export())

    def fingerprint(self) -> str:
        """SHA-256 hex digest of the exported PEM; safe to log or display."""
        return digest.sha256(self.export())

    def __str__(self) -> str:
        return self.fingerprint()


def _load_private_handle(pem: bytes, password: str | None) -> Any:
    secret = password.encode("utf-8") if password is not None else None
    try:
        return serialization.load_pem_private_key(pem, password=secret)
    except TypeError as exc:
        if secret is None:
            raise InvalidKeyMaterialError(
                "private key is encrypted and no password was given",
                details={"kind": PrivateKey.kind},
            ) from exc
        # A password supplied for an unlocked key is ignored.
        return _load_private_handle(pem, None)
    except (ValueError, ProviderUnsupportedAlgorithm) as exc:
        raise InvalidKeyMaterialError(str(exc), details={"kind": PrivateKey.kind}) from exc


def _pem_encryption(
    password: str | None, params: KeyParams
) -> serialization.KeySerializationEncryption:
    if password is None:
        return serialization.NoEncryption()
    if params.cipher.lower() not in PEM_CIPHERS:
        raise UnsupportedAlgorithmError("private key cipher", params.cipher, PEM_CIPHERS)
    return serialization.BestAvailableEncryption(password.encode("utf-8"))


def _pkcs1_type1_block(data: bytes, size: int) -> bytes:
    if len(data) > size - _PKCS1_OVERHEAD:
        raise ValueError(f"data too large for key size ({len(data)} > {size - _PKCS1_OVERHEAD})")
    return b"\x00\x01" + b"\xff" * (size - 3 - len(data)) + b"\x00" + data


def _rsa_private_op(numbers: rsa.RSAPrivateNumbers, m: int) -> int:
    """Blinded CRT exponentiation ``m^d mod n``, checked against the public exponent.

    Raises:
        ValueError: If the result does not verify (a faulty computation).
    """
    n = numbers.public_numbers.n
    e = numbers.public_numbers.e
    while True:
        r = secrets.randbelow(n - 2) + 2
        if math.gcd(r, n) == 1:
            break
    blinded = (m * pow(r, e, n)) % n
    s1 = pow(blinded, numbers.dmp1, numbers.p)
    s2 = pow(blinded, numbers.dmq1, numbers.q)
    h = (numbers.iqmp * (s1 - s2)) % numbers.p
    s = ((s2 + h * numbers.q) * pow(r, -1, n)) % n
    if pow(s, e, n) != m:
        raise ValueError("private key operation failed its consistency check")
    return s


class PrivateKey(Key):
    """RSA private key: decrypt, sign, and encrypt for public-key recovery."""

    kind = "private"

    @classmethod
    def import_pem(cls, data: str | bytes, password: str | None = None) -> PrivateKey:
        """Import from ``-----BEGIN [ENCRYPTED ]PRIVATE KEY-----`` text.

        Raises:
            InvalidKeyMaterialError: If the text cannot be parsed or unlocked,
                or holds a non-RSA key.
        """
        handle = _load_private_handle(_to_bytes(data), password)
        if not isinstance(handle, rsa.RSAPrivateKey):
            raise InvalidKeyMaterialError("key is not an RSA private key", details={"kind": cls.kind})
        return cls(handle)

    @classmethod
    def import_file(cls, path: str | Path, password: str | None = None) -> PrivateKey:
        """Import from a PEM file, warning about loose permissions and old keys."""
        pem = _read_key_file(path)
        path = Path(path)
        warn_if_key_file_permissions_loose(path)
        key = cls.import_pem(pem, password)
        warn_if_key_old(get_key_metadata_from_file(path))
        return key

    def _public_handle(self) -> rsa.RSAPublicKey:
        return self._key.public_key()  # type: ignore[no-any-return]

    def public_key(self) -> PublicKey:
        return PublicKey(self._public_handle())

    def encrypt(
        self, data: str | bytes, raw: bool = False, padding: Padding = Padding.PKCS1
    ) -> Result[bytes]:
        """Encrypt ``data`` so that the matching public key can recover it.

        Only PKCS#1 v1.5 (type 1) padding is defined for private-key encryption.
        """
        if padding is not Padding.PKCS1:
            return report_failure(
                "key.encrypt.failed",
                UnsupportedAlgorithmError(
                    "padding", padding.value, [Padding.PKCS1.value], {"operation": "private encrypt"}
                ),
            )
        handle = self._key
        size = (handle.key_size + 7) // 8
        try:
            block = _pkcs1_type1_block(_to_bytes(data), size)
        except ValueError as exc:
            return report_failure("key.encrypt.failed", ProviderError("private key encrypt", str(exc)))
        try:
            value = _rsa_private_op(handle.private_numbers(), int.from_bytes(block, "big"))
        except ValueError as exc:
            return report_failure(
                "key.encrypt.failed", ProviderError("private key encrypt", str(exc))
            )
        return Result.success(_encode_output(value.to_bytes(size, "big"), raw))

    def decrypt(
        self, data: str | bytes, raw: bool = False, padding: Padding = Padding.OAEP
    ) -> Result[bytes]:
        """Decrypt data encrypted with the matching public key."""
        try:
            decrypted = self._key.decrypt(_decode_input(data, raw), padding.build())
        except (ValueError, TypeError, ProviderUnsupportedAlgorithm) as exc:
            return report_failure(
                "key.decrypt.failed",
                ProviderError(
                    "private key decrypt", str(exc) or "decryption failed",
                    details={"padding": padding.value},
                ),
            )
        return Result.success(decrypted)

    def sign(
        self, data: str | bytes, raw: bool = False, algo: str = DEFAULT_SIGNATURE_ALGORITHM
    ) -> Result[bytes]:
        """RSA PKCS#1 v1.5 signature over ``data`` using digest ``algo``."""
        try:
            signature = self._key.sign(
                _to_bytes(data), asym_padding.PKCS1v15(), get_signature_hash(algo)
            )
        except UnsupportedAlgorithmError as exc:
            return report_failure("key.sign.failed", exc)
        except (ValueError, TypeError, ProviderUnsupportedAlgorithm) as exc:
            return report_failure("key.sign.failed", ProviderError("sign", str(exc)))
        return Result.success(_encode_output(signature, raw))

    def export(self, password: str | None = None, params: KeyParams = DEFAULT_KEY_PARAMS) -> str:
        """PKCS#8 PEM text, locked with ``password`` when one is given.

        Raises:
            UnsupportedAlgorithmError: If ``params.cipher`` cannot lock a PEM.
        """
        return self._key.private_bytes(  # type: ignore[no-any-return]
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=_pem_encryption(password, params),
        ).decode("ascii")

    def export_to_file(
        self,
        path: str | Path,
        password: str | None = None,
        params: KeyParams = DEFAULT_KEY_PARAMS,
    ) -> bool:
        """Write the PEM with owner-only permissions. Returns False on I/O failure."""
        return self._write_export(path, self.export(password, params), KEY_FILE_RECOMMENDED_MODE)
