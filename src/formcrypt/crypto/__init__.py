"""Cryptographic building blocks: digests, RSA keys and the symmetric envelope.

Modules:
    algorithms: Supported hashes, ciphers, paddings and signature digests.
    digest: Hex digests, file digests and constant-time digest matching.
    keys: PublicKey / PrivateKey import, export and primitive operations.
    keypair: KeyPair composition, generation and fingerprinting.
    envelope: Password-based ``options:cipher:hash:iv:ciphertext`` envelopes.
"""

from formcrypt.crypto import digest, envelope
from formcrypt.crypto.algorithms import CipherOption, Padding
from formcrypt.crypto.keypair import KeyPair
from formcrypt.crypto.keys import DEFAULT_KEY_PARAMS, Key, KeyParams, PrivateKey, PublicKey

__all__ = [
    "DEFAULT_KEY_PARAMS",
    "CipherOption",
    "Key",
    "KeyPair",
    "KeyParams",
    "Padding",
    "PrivateKey",
    "PublicKey",
    "digest",
    "envelope",
]
