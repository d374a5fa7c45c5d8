"""Tests for the hash, cipher and padding registries."""

import warnings

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.ciphers import Cipher

from formcrypt.crypto.algorithms import (
    CIPHERS,
    CipherMode,
    Padding,
    get_cipher,
    get_hash,
    get_signature_hash,
    supported_ciphers,
    supported_hash_algorithms,
)
from formcrypt.errors import UnsupportedAlgorithmError


def test_get_hash_returns_fresh_instance() -> None:
    """Lookups are case-insensitive and return the right algorithm."""
    algo = get_hash("SHA512")
    assert isinstance(algo, hashes.SHA512)
    assert get_hash("blake2b512").digest_size == 64


def test_get_hash_unknown_lists_supported() -> None:
    """The error names the accepted algorithms."""
    with pytest.raises(UnsupportedAlgorithmError) as exc_info:
        get_hash("md5")
    error = exc_info.value
    assert error.kind == "hash"
    assert "sha512" in error.supported
    assert error.to_dict()["code"] == "formcrypt:algorithm/unsupported"


@pytest.mark.parametrize(
    ("name", "key_size", "iv_size", "mode"),
    [
        ("aes-256-cbc", 32, 16, CipherMode.CBC),
        ("aes-128-ctr", 16, 16, CipherMode.CTR),
        ("aes-192-gcm", 24, 12, CipherMode.GCM),
        ("camellia-256-cbc", 32, 16, CipherMode.CBC),
    ],
)
def test_cipher_specs(name: str, key_size: int, iv_size: int, mode: CipherMode) -> None:
    """Cipher specs carry key and IV sizes."""
    spec = get_cipher(name.upper())
    assert (spec.key_size, spec.iv_size, spec.mode) == (key_size, iv_size, mode)
    assert spec.aead is (mode is CipherMode.GCM)
    assert spec.padded is (mode is CipherMode.CBC)


@pytest.mark.parametrize("name", ["camellia-128-cbc", "camellia-256-cbc"])
def test_camellia_builds_without_deprecation_warning(name: str) -> None:
    """Camellia ciphers come from a module that does not warn on use."""
    spec = get_cipher(name)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        Cipher(spec.algorithm(b"k" * spec.key_size), spec.build_mode(b"\x00" * 16)).encryptor()


def test_gcm_has_no_block_mode() -> None:
    """GCM ciphers are AEAD and never build a plain block mode."""
    with pytest.raises(UnsupportedAlgorithmError):
        get_cipher("aes-256-gcm").build_mode(b"\x00" * 12)


def test_supported_sets() -> None:
    """The supported sets mirror the registries."""
    assert supported_ciphers() == frozenset(CIPHERS)
    assert {"sha1", "sha256", "sha384", "sha512"} <= supported_hash_algorithms()
    with pytest.raises(UnsupportedAlgorithmError):
        get_cipher("des-ede3-cbc")


def test_signature_hash_subset() -> None:
    """Signatures accept only the SHA-1/SHA-2 family."""
    assert isinstance(get_signature_hash("sha256"), hashes.SHA256)
    with pytest.raises(UnsupportedAlgorithmError):
        get_signature_hash("sha3-256")


def test_padding_build() -> None:
    """Padding members build the matching provider padding."""
    assert isinstance(Padding.OAEP.build(), asym_padding.OAEP)
    assert isinstance(Padding.OAEP_SHA256.build(), asym_padding.OAEP)
    assert isinstance(Padding.PKCS1.build(), asym_padding.PKCS1v15)
