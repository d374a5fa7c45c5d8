"""Algorithm registries backed by the ``cryptography`` package.

Names follow OpenSSL spelling (``sha512``, ``sha3-256``, ``aes-256-cbc``) so
envelopes stay readable, and lookups are case-insensitive. Anything not listed
here is unsupported: envelopes naming a removed algorithm fail cleanly instead
of being decrypted with a guess.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, IntFlag

from cryptography.hazmat.decrepit.ciphers.algorithms import Camellia
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.ciphers import BlockCipherAlgorithm, algorithms, modes

from formcrypt.errors import UnsupportedAlgorithmError

HASH_ALGORITHMS: dict[str, Callable[[], hashes.HashAlgorithm]] = {
    "sha1": hashes.SHA1,
    "sha224": hashes.SHA224,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
    "sha512-224": hashes.SHA512_224,
    "sha512-256": hashes.SHA512_256,
    "sha3-224": hashes.SHA3_224,
    "sha3-256": hashes.SHA3_256,
    "sha3-384": hashes.SHA3_384,
    "sha3-512": hashes.SHA3_512,
    "blake2b512": lambda: hashes.BLAKE2b(64),
    "blake2s256": lambda: hashes.BLAKE2s(32),
}

# Hex digest length -> algorithm, for matching a message against a bare digest.
HEX_LENGTH_ALGORITHMS: dict[int, str] = {
    40: "sha1",
    64: "sha256",
    96: "sha384",
    128: "sha512",
}


class CipherMode(str, Enum):
    CBC = "cbc"
    CTR = "ctr"
    GCM = "gcm"


@dataclass(frozen=True)
class CipherSpec:
    """Parameters of a symmetric cipher the envelope codec can use."""

    name: str
    algorithm: Callable[[bytes], BlockCipherAlgorithm]
    mode: CipherMode
    key_size: int
    iv_size: int
    block_size: int = 16

    @property
    def aead(self) -> bool:
        return self.mode is CipherMode.GCM

    @property
    def padded(self) -> bool:
        return self.mode is CipherMode.CBC

    def build_mode(self, iv: bytes) -> modes.Mode:
        if self.mode is CipherMode.CBC:
            return modes.CBC(iv)
        if self.mode is CipherMode.CTR:
            return modes.CTR(iv)
        raise UnsupportedAlgorithmError("cipher mode", self.mode.value)


def _build_cipher_registry() -> dict[str, CipherSpec]:
    registry: dict[str, CipherSpec] = {}
    for bits in (128, 192, 256):
        for mode in CipherMode:
            name = f"aes-{bits}-{mode.value}"
            registry[name] = CipherSpec(
                name=name,
                algorithm=algorithms.AES,
                mode=mode,
                key_size=bits // 8,
                iv_size=12 if mode is CipherMode.GCM else 16,
            )
        name = f"camellia-{bits}-cbc"
        registry[name] = CipherSpec(
            name=name,
            algorithm=Camellia,
            mode=CipherMode.CBC,
            key_size=bits // 8,
            iv_size=16,
        )
    return registry


CIPHERS: dict[str, CipherSpec] = _build_cipher_registry()

DEFAULT_CIPHER = "aes-256-cbc"
DEFAULT_HASH = "sha512"


class CipherOption(IntFlag):
    """Envelope option bits, compatible with OpenSSL's OPENSSL_* flag values."""

    NONE = 0
    RAW_DATA = 1
    ZERO_PADDING = 2


class Padding(str, Enum):
    """RSA encryption padding schemes."""

    OAEP = "oaep"
    OAEP_SHA256 = "oaep-sha256"
    PKCS1 = "pkcs1"

    def build(self) -> asym_padding.AsymmetricPadding:
        if self is Padding.OAEP:
            return asym_padding.OAEP(
                mgf=asym_padding.MGF1(algorithm=hashes.SHA1()),
                algorithm=hashes.SHA1(),
                label=None,
            )
        if self is Padding.OAEP_SHA256:
            return asym_padding.OAEP(
                mgf=asym_padding.MGF1(algorithm=hashes.SHA256()),
                algorithm=hashes.SHA256(),
                label=None,
            )
        return asym_padding.PKCS1v15()


DEFAULT_SIGNATURE_ALGORITHM = "sha512"
SIGNATURE_ALGORITHMS = frozenset({"sha1", "sha224", "sha256", "sha384", "sha512"})


def supported_hash_algorithms() -> frozenset[str]:
    return frozenset(HASH_ALGORITHMS)


def supported_ciphers() -> frozenset[str]:
    return frozenset(CIPHERS)


def get_hash(name: str) -> hashes.HashAlgorithm:
    """Return a fresh hash algorithm instance for ``name``.

    Raises:
        UnsupportedAlgorithmError: If the name is not in the hash registry.
    """
    factory = HASH_ALGORITHMS.get(name.lower())
    if factory is None:
        raise UnsupportedAlgorithmError("hash", name, supported_hash_algorithms())
    return factory()


def get_cipher(name: str) -> CipherSpec:
    """Return the :class:`CipherSpec` registered under ``name``.

    Raises:
        UnsupportedAlgorithmError: If the name is not in the cipher registry.
    """
    spec = CIPHERS.get(name.lower())
    if spec is None:
        raise UnsupportedAlgorithmError("cipher", name, supported_ciphers())
    return spec


def get_signature_hash(name: str) -> hashes.HashAlgorithm:
    if name.lower() not in SIGNATURE_ALGORITHMS:
        raise UnsupportedAlgorithmError("signature", name, SIGNATURE_ALGORITHMS)
    return get_hash(name)
