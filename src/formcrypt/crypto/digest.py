"""Message and file digests, plus timing-safe digest matching.

All digests are lowercase hex strings. :func:`matches` and
:func:`matches_file` take a bare hex digest, infer the algorithm from its
length (40, 64, 96 or 128 hexits) and compare in constant time.
"""

from __future__ import annotations

import hmac
from pathlib import Path

from cryptography.hazmat.primitives import hashes

from formcrypt.crypto.algorithms import HEX_LENGTH_ALGORITHMS, get_hash
from formcrypt.observability import get_logger

logger = get_logger(__name__)

# Read size for file digests.
FILE_CHUNK_SIZE = 64 * 1024


def _to_bytes(data: str | bytes) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else data


def digest(algo: str, data: str | bytes) -> bytes:
    """Raw digest of ``data``. Raises UnsupportedAlgorithmError for unknown ``algo``."""
    h = hashes.Hash(get_hash(algo))
    h.update(_to_bytes(data))
    return h.finalize()


def hexdigest(algo: str, data: str | bytes) -> str:
    return digest(algo, data).hex()


def file_digest(algo: str, path: str | Path) -> str:
    """Hex digest of a file's contents, read in chunks."""
    h = hashes.Hash(get_hash(algo))
    with Path(path).open("rb") as fh:
        for chunk in iter(lambda: fh.read(FILE_CHUNK_SIZE), b""):
            h.update(chunk)
    return h.finalize().hex()


def sha1(data: str | bytes) -> str:
    return hexdigest("sha1", data)


def sha256(data: str | bytes) -> str:
    return hexdigest("sha256", data)


def sha384(data: str | bytes) -> str:
    return hexdigest("sha384", data)


def sha512(data: str | bytes) -> str:
    return hexdigest("sha512", data)


def sha1_file(path: str | Path) -> str:
    return file_digest("sha1", path)


def sha256_file(path: str | Path) -> str:
    return file_digest("sha256", path)


def sha384_file(path: str | Path) -> str:
    return file_digest("sha384", path)


def sha512_file(path: str | Path) -> str:
    return file_digest("sha512", path)


def constant_time_equals(a: str | bytes, b: str | bytes) -> bool:
    return hmac.compare_digest(_to_bytes(a), _to_bytes(b))


def _algorithm_for(expected: str) -> str | None:
    algo = HEX_LENGTH_ALGORITHMS.get(len(expected))
    if algo is None:
        logger.warning(
            "digest.match.unknown_length",
            length=len(expected),
            supported_lengths=sorted(HEX_LENGTH_ALGORITHMS),
        )
    return algo


def matches(message: str | bytes, expected: str) -> bool:
    """Check ``message`` against a hex digest produced by sha1/256/384/512."""
    algo = _algorithm_for(expected)
    actual = hexdigest(algo, message) if algo else ""
    return constant_time_equals(actual, expected.lower())


def matches_file(path: str | Path, expected: str) -> bool:
    """Check a file's contents against a hex digest produced by sha1/256/384/512."""
    algo = _algorithm_for(expected)
    actual = file_digest(algo, path) if algo else ""
    return constant_time_equals(actual, expected.lower())
