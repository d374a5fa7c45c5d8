"""Password-based symmetric encryption with a self-describing envelope.

An envelope carries everything needed to decrypt it except the password::

    <options>:<base64(cipher name)>:<base64(hash algo)>:<base64(iv)>:<ciphertext>

Fields are joined by a single ``:``. The ciphertext is last and is never
split, so it may itself contain ``:`` (which happens when ``RAW_DATA`` is set
and the ciphertext segment holds raw bytes instead of base64).

The symmetric key is the hex digest of the password under the named hash
algorithm, taken as ASCII and truncated to the cipher's key size, so every
supported hash can key every supported cipher. This is not a password KDF;
low-entropy passwords are not protected against brute force.

The ciphertext segment always ends with an authentication tag: the native tag
for GCM ciphers, an HMAC-SHA256 over header and ciphertext for the others.
A tampered envelope therefore fails to decrypt instead of producing garbage.

Example:
    >>> sealed = encrypt("Hello world!", "fooBar42").unwrap()
    >>> sealed.split(b":")[1]
    b'YWVzLTI1Ni1jYmM='
    >>> decrypt(sealed, "fooBar42").unwrap()
    b'Hello world!'
"""

from __future__ import annotations

import base64
import binascii
import os
import re

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.ciphers import Cipher
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.padding import PKCS7
from pydantic import BaseModel, ConfigDict, Field

from formcrypt.crypto import digest
from formcrypt.crypto.algorithms import (
    DEFAULT_CIPHER,
    DEFAULT_HASH,
    CipherOption,
    CipherSpec,
    get_cipher,
    get_hash,
)
from formcrypt.errors import (
    MalformedEnvelopeError,
    ProviderError,
    UnsupportedAlgorithmError,
)
from formcrypt.result import Result, report_failure

DELIMITER = b":"
FIELD_COUNT = 5
MAC_TAG_SIZE = 32
_KNOWN_OPTIONS = int(CipherOption.RAW_DATA | CipherOption.ZERO_PADDING)
# Bounded so int() never sees an oversized digit string.
_OPTIONS_PATTERN = re.compile(rb"[0-9]{1,10}")


def _b64(data: bytes) -> bytes:
    return base64.b64encode(data)


def _unb64(field: bytes, name: str) -> bytes:
    try:
        return base64.b64decode(field, validate=True)
    except binascii.Error as exc:
        raise MalformedEnvelopeError(f"{name} is not valid base64", details={"field": name}) from exc


def _ascii(field: bytes, name: str) -> str:
    try:
        return _unb64(field, name).decode("ascii")
    except UnicodeDecodeError as exc:
        raise MalformedEnvelopeError(f"{name} is not ASCII", details={"field": name}) from exc


class Envelope(BaseModel):
    """Parsed envelope. ``ciphertext`` holds raw bytes, tag included."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    options: int = Field(ge=0)
    cipher_name: str
    hash_algo: str
    iv: bytes
    ciphertext: bytes

    @property
    def raw(self) -> bool:
        return bool(self.options & CipherOption.RAW_DATA)

    def header(self) -> bytes:
        """Everything before the ciphertext, trailing delimiter included."""
        fields = [
            str(self.options).encode("ascii"),
            _b64(self.cipher_name.encode("ascii")),
            _b64(self.hash_algo.encode("ascii")),
            _b64(self.iv),
        ]
        return DELIMITER.join(fields) + DELIMITER

    def dumps(self) -> bytes:
        payload = self.ciphertext if self.raw else _b64(self.ciphertext)
        return self.header() + payload

    @classmethod
    def loads(cls, data: str | bytes) -> Envelope:
        """Split and decode an envelope.

        Raises:
            MalformedEnvelopeError: If fields are missing or not decodable.
        """
        blob = data.encode("utf-8") if isinstance(data, str) else data
        parts = blob.split(DELIMITER, FIELD_COUNT - 1)
        if len(parts) < FIELD_COUNT:
            raise MalformedEnvelopeError(
                f"expected {FIELD_COUNT} fields, got {len(parts)}",
                details={"fields": len(parts)},
            )
        options_field, cipher_field, hash_field, iv_field, payload = parts
        if not _OPTIONS_PATTERN.fullmatch(options_field):
            raise MalformedEnvelopeError("options is not an integer", details={"field": "options"})
        options = int(options_field)
        raw = bool(options & CipherOption.RAW_DATA)
        return cls(
            options=options,
            cipher_name=_ascii(cipher_field, "cipher"),
            hash_algo=_ascii(hash_field, "hash"),
            iv=_unb64(iv_field, "iv"),
            ciphertext=payload if raw else _unb64(payload, "ciphertext"),
        )


def _derive_keys(password: str | bytes, hash_algo: str, spec: CipherSpec) -> tuple[bytes, bytes]:
    """Return (cipher key, MAC key) from a single hash of the password.

    The cipher key is the leading ``key_size`` characters of the hex digest;
    the shortest supported digest (sha1) still gives 40 of them.
    """
    material = digest.digest(hash_algo, password)
    return material.hex().encode("ascii")[: spec.key_size], material


def _mac(key: bytes, data: bytes) -> hmac.HMAC:
    h = hmac.HMAC(key, hashes.SHA256())
    h.update(data)
    return h


def _seal(
    spec: CipherSpec,
    keys: tuple[bytes, bytes],
    iv: bytes,
    header: bytes,
    plaintext: bytes,
    options: int,
) -> bytes:
    cipher_key, mac_key = keys
    if spec.aead:
        return AESGCM(cipher_key).encrypt(iv, plaintext, header)
    if spec.padded and not options & CipherOption.ZERO_PADDING:
        padder = PKCS7(spec.block_size * 8).padder()
        plaintext = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(spec.algorithm(cipher_key), spec.build_mode(iv)).encryptor()
    body = encryptor.update(plaintext) + encryptor.finalize()
    return body + _mac(mac_key, header + body).finalize()


def _open(
    spec: CipherSpec,
    keys: tuple[bytes, bytes],
    iv: bytes,
    header: bytes,
    ciphertext: bytes,
    options: int,
) -> bytes:
    cipher_key, mac_key = keys
    if spec.aead:
        return AESGCM(cipher_key).decrypt(iv, ciphertext, header)
    if len(ciphertext) < MAC_TAG_SIZE:
        raise ValueError("ciphertext is shorter than its authentication tag")
    body, tag = ciphertext[:-MAC_TAG_SIZE], ciphertext[-MAC_TAG_SIZE:]
    _mac(mac_key, header + body).verify(tag)
    decryptor = Cipher(spec.algorithm(cipher_key), spec.build_mode(iv)).decryptor()
    plaintext = decryptor.update(body) + decryptor.finalize()
    if spec.padded and not options & CipherOption.ZERO_PADDING:
        unpadder = PKCS7(spec.block_size * 8).unpadder()
        plaintext = unpadder.update(plaintext) + unpadder.finalize()
    return plaintext


def encrypt(
    data: str | bytes,
    password: str | bytes,
    cipher_name: str = DEFAULT_CIPHER,
    hash_algo: str = DEFAULT_HASH,
    options: int = CipherOption.NONE,
) -> Result[bytes]:
    """Encrypt ``data`` under ``password`` and return the serialized envelope.

    Args:
        data: Plaintext; text is encoded as UTF-8.
        password: Shared secret the key is derived from.
        cipher_name: Symmetric cipher, see :data:`~formcrypt.crypto.algorithms.CIPHERS`.
        hash_algo: Hash used to derive the key from the password.
        options: :class:`~formcrypt.crypto.algorithms.CipherOption` bits.

    Returns:
        Result holding the envelope bytes (ASCII unless ``RAW_DATA`` is set),
        or the UnsupportedAlgorithmError / ProviderError that stopped it.
    """
    try:
        get_hash(hash_algo)
        spec = get_cipher(cipher_name)
        if options & ~_KNOWN_OPTIONS:
            raise UnsupportedAlgorithmError(
                "cipher option", str(options), [str(int(o)) for o in CipherOption if o]
            )
        keys = _derive_keys(password, hash_algo, spec)
    except UnsupportedAlgorithmError as exc:
        return report_failure("envelope.encrypt.unsupported", exc)

    iv = os.urandom(spec.iv_size)
    plaintext = data.encode("utf-8") if isinstance(data, str) else data
    draft = Envelope(
        options=int(options),
        cipher_name=spec.name,
        hash_algo=hash_algo.lower(),
        iv=iv,
        ciphertext=b"",
    )
    try:
        ciphertext = _seal(spec, keys, iv, draft.header(), plaintext, options)
    except ValueError as exc:
        return report_failure(
            "envelope.encrypt.failed",
            ProviderError("encrypt", str(exc), details={"cipher": spec.name}),
        )
    return Result.success(draft.model_copy(update={"ciphertext": ciphertext}).dumps())


def decrypt(envelope: str | bytes, password: str | bytes) -> Result[bytes]:
    """Decrypt an envelope produced by :func:`encrypt`.

    Every failure (malformed envelope, algorithm no longer supported, wrong
    password, tampering) yields a failed Result. A failed Result must be
    treated as untrusted input, never as an empty plaintext.
    """
    try:
        parsed = Envelope.loads(envelope)
    except MalformedEnvelopeError as exc:
        return report_failure("envelope.decrypt.malformed", exc)

    try:
        get_hash(parsed.hash_algo)
        spec = get_cipher(parsed.cipher_name)
    except UnsupportedAlgorithmError as exc:
        return report_failure("envelope.decrypt.unsupported", exc)

    if len(parsed.iv) != spec.iv_size:
        return report_failure(
            "envelope.decrypt.malformed",
            MalformedEnvelopeError(
                "invalid initialization vector length",
                details={"expected": spec.iv_size, "actual": len(parsed.iv)},
            ),
        )
    if parsed.options & ~_KNOWN_OPTIONS:
        return report_failure(
            "envelope.decrypt.malformed",
            MalformedEnvelopeError("unknown option bits", details={"options": parsed.options}),
        )

    keys = _derive_keys(password, parsed.hash_algo, spec)

    try:
        plaintext = _open(spec, keys, parsed.iv, parsed.header(), parsed.ciphertext, parsed.options)
    except (InvalidSignature, InvalidTag):
        return report_failure(
            "envelope.decrypt.failed",
            ProviderError("decrypt", "authentication failed", details={"cipher": spec.name}),
        )
    except ValueError as exc:
        return report_failure(
            "envelope.decrypt.failed",
            ProviderError("decrypt", str(exc), details={"cipher": spec.name}),
        )
    return Result.success(plaintext)
