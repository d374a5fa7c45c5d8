"""RSA key pair: one public and one private key behind a single facade.

A pair is built either by generating fresh keys or by importing two existing
keys. Each source may be a path to a PEM file or the PEM text itself; the
choice is made by probing whether the string names an existing file.

Example:
    >>> pair = KeyPair.generate(params=KeyParams(length=2048))
    >>> signature = pair.sign("contact-203.0.113.7-1700003600").unwrap()
    >>> pair.verify("contact-203.0.113.7-1700003600", signature).unwrap()
    True
    >>> str(pair)  # SHA-256 fingerprint of the public key PEM
    '5b0c...'
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from cryptography.exceptions import UnsupportedAlgorithm as ProviderUnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa

from formcrypt.crypto.algorithms import SIGNATURE_ALGORITHMS, Padding
from formcrypt.crypto.keys import DEFAULT_KEY_PARAMS, KeyParams, PrivateKey, PublicKey
from formcrypt.errors import KeyGenerationError, UnsupportedAlgorithmError
from formcrypt.observability import get_logger
from formcrypt.result import Result

logger = get_logger(__name__)


def is_existing_file(source: str | Path) -> bool:
    """Probe whether ``source`` names an existing file; never raises."""
    try:
        return Path(source).is_file()
    except (OSError, ValueError):
        return False


class KeyPair:
    """Composes a :class:`PublicKey` and a :class:`PrivateKey`.

    ``sign`` always uses the private key and ``verify`` the public key.
    ``encrypt``/``decrypt`` are the secrecy direction (public encrypt, private
    decrypt); the ``private_encrypt``/``public_decrypt`` pair gives the
    proof-of-possession direction.
    """

    def __init__(
        self,
        public_key: PublicKey,
        private_key: PrivateKey,
        signature_algorithm: str = DEFAULT_KEY_PARAMS.digest,
    ) -> None:
        self._public_key = public_key
        self._private_key = private_key
        self.signature_algorithm = signature_algorithm

    @classmethod
    def from_sources(
        cls,
        public_key: str | Path,
        private_key: str | Path,
        password: str | None = None,
    ) -> KeyPair:
        """Import both keys, each from a file path or inline PEM text.

        Either both keys import or the call raises and nothing is kept.

        Raises:
            InvalidKeyMaterialError: If either source is not a usable key.
            KeyFileNotFoundError: If a key file vanishes between probe and read.
        """
        public = (
            PublicKey.import_file(public_key)
            if is_existing_file(public_key)
            else PublicKey.import_pem(str(public_key))
        )
        try:
            private = (
                PrivateKey.import_file(private_key, password)
                if is_existing_file(private_key)
                else PrivateKey.import_pem(str(private_key), password)
            )
        except Exception:
            public.close()
            raise
        pair = cls(public, private)
        logger.debug("keypair.loaded", fingerprint=pair.fingerprint())
        return pair

    @classmethod
    def generate(cls, password: str | None = None, params: KeyParams | None = None) -> KeyPair:
        """Generate a fresh pair.

        When ``password`` is given the private key is locked with it and
        unlocked again, so a pair is only returned if that round trip works.

        Raises:
            KeyGenerationError: If the provider rejects the parameters.
        """
        params = params or DEFAULT_KEY_PARAMS
        if params.key_type.lower() != "rsa":
            raise KeyGenerationError(
                f"unsupported key type {params.key_type!r}", details={"key_type": params.key_type}
            )
        if params.digest.lower() not in SIGNATURE_ALGORITHMS:
            raise KeyGenerationError(
                f"unsupported digest {params.digest!r}", details={"digest": params.digest}
            )
        try:
            handle = rsa.generate_private_key(
                public_exponent=params.public_exponent,
                key_size=params.length,
            )
        except (ValueError, ProviderUnsupportedAlgorithm) as exc:
            raise KeyGenerationError(str(exc), details={"length": params.length}) from exc

        private = PrivateKey(handle)
        if password is not None:
            try:
                locked = private.export(password, params)
            except UnsupportedAlgorithmError as exc:
                raise KeyGenerationError(exc.message, details={"cipher": params.cipher}) from exc
            finally:
                private.close()
            private = PrivateKey.import_pem(locked, password)
        pair = cls(private.public_key(), private, signature_algorithm=params.digest.lower())
        logger.info("keypair.generated", bits=params.length, fingerprint=pair.fingerprint())
        return pair

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    @property
    def private_key(self) -> PrivateKey:
        return self._private_key

    def public_encrypt(
        self, data: str | bytes, raw: bool = False, padding: Padding = Padding.OAEP
    ) -> Result[bytes]:
        return self._public_key.encrypt(data, raw, padding)

    def public_decrypt(
        self, data: str | bytes, raw: bool = False, padding: Padding = Padding.PKCS1
    ) -> Result[bytes]:
        return self._public_key.decrypt(data, raw, padding)

    def private_encrypt(
        self, data: str | bytes, raw: bool = False, padding: Padding = Padding.PKCS1
    ) -> Result[bytes]:
        return self._private_key.encrypt(data, raw, padding)

    def private_decrypt(
        self, data: str | bytes, raw: bool = False, padding: Padding = Padding.OAEP
    ) -> Result[bytes]:
        return self._private_key.decrypt(data, raw, padding)

    encrypt = public_encrypt
    decrypt = private_decrypt

    def sign(self, data: str | bytes, raw: bool = False, algo: str | None = None) -> Result[bytes]:
        return self._private_key.sign(data, raw, algo or self.signature_algorithm)

    def verify(
        self,
        data: str | bytes,
        signature: str | bytes,
        raw: bool = False,
        algo: str | None = None,
    ) -> Result[bool]:
        return self._public_key.verify(data, signature, raw, algo or self.signature_algorithm)

    def fingerprint(self) -> str:
        return self._public_key.fingerprint()

    def details(self) -> dict[str, Any]:
        return self._public_key.details()

    def close(self) -> None:
        self._public_key.close()
        self._private_key.close()

    def __enter__(self) -> KeyPair:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __str__(self) -> str:
        return self.fingerprint()

    def __repr__(self) -> str:
        if self._public_key.closed:
            return "<KeyPair closed>"
        return f"<KeyPair rsa {self._public_key.bits} bits {self.fingerprint()[:16]}>"
