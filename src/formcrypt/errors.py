"""FormCrypt Error Taxonomy.

This module defines the error hierarchy for formcrypt, providing structured
error handling with specific error codes and context information.

Two families of errors exist:

- Fatal errors raised at the key-import boundary (bad key material, missing
  key files, key generation failures). No safe continuation exists, so they
  propagate to whoever asked for the key.
- Per-operation errors (unsupported algorithms, malformed envelopes, provider
  failures, form signing/verification failures). These are never raised by
  the public operations; they travel inside a :class:`formcrypt.result.Result`.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class FormCryptError(Exception):
    """Base exception for all formcrypt errors.

    Attributes:
        code: Error code following the formcrypt:<area>/<reason> pattern
        message: Human-readable error message
        details: Optional additional error context
    """

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{code, message, details}`` dict."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidKeyMaterialError(FormCryptError):
    """Raised when key material cannot be parsed or unlocked.

    This covers garbage PEM text, a wrong or missing password for an
    encrypted private key, and keys that are not RSA keys.

    Attributes:
        reason: Why the key material was rejected
    """

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="formcrypt:key/invalid_material",
            message=f"Invalid key material: {reason}",
            details=details or {},
        )
        self.reason = reason


class KeyFileNotFoundError(FormCryptError, FileNotFoundError):
    """Raised when a key file path does not resolve to a file.

    Also a :class:`FileNotFoundError` so callers handling plain I/O errors
    catch it too.

    Attributes:
        path: The path that was requested
    """

    def __init__(self, path: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="formcrypt:key/file_not_found",
            message=f"{path} not found.",
            details={"path": path, **(details or {})},
        )
        self.path = path


class KeyGenerationError(FormCryptError):
    """Raised when the provider cannot generate a key pair for the given parameters."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="formcrypt:key/generation_failed",
            message=f"Key generation failed: {reason}",
            details=details or {},
        )
        self.reason = reason


class KeyClosedError(FormCryptError):
    """Raised when a key is used after its handle was released."""

    def __init__(self, kind: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="formcrypt:key/closed",
            message=f"{kind} key has been closed and can no longer be used",
            details={"kind": kind, **(details or {})},
        )
        self.kind = kind


class UnsupportedAlgorithmError(FormCryptError):
    """Raised when a hash, cipher, padding or signature algorithm is not supported.

    Attributes:
        kind: Which registry was consulted (hash, cipher, padding, signature, ...)
        name: The rejected algorithm name
        supported: Names that would have been accepted
    """

    def __init__(
        self,
        kind: str,
        name: str,
        supported: list[str] | tuple[str, ...] | frozenset[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        supported_list = sorted(supported or [])
        super().__init__(
            code="formcrypt:algorithm/unsupported",
            message=f"Unsupported {kind} algorithm: {name}",
            details={
                "kind": kind,
                "name": name,
                "supported": supported_list,
                **(details or {}),
            },
        )
        self.kind = kind
        self.name = name
        self.supported = supported_list


class MalformedEnvelopeError(FormCryptError):
    """Raised when an encrypted envelope cannot be split or decoded.

    This error occurs when the envelope has fewer than five fields, a header
    field is not valid base64, the options field is not an integer, or the
    initialization vector has the wrong length for the named cipher.
    """

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="formcrypt:envelope/malformed",
            message=f"Malformed envelope: {reason}",
            details=details or {},
        )
        self.reason = reason


class ProviderError(FormCryptError):
    """Raised when a cryptographic primitive call fails.

    Attributes:
        operation: Primitive that failed (encrypt, decrypt, sign, ...)
        reason: Error reported by the provider
    """

    def __init__(
        self, operation: str, reason: str, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            code="formcrypt:provider/failure",
            message=f"{operation} failed: {reason}",
            details={"operation": operation, **(details or {})},
        )
        self.operation = operation
        self.reason = reason


class SignatureVerificationError(FormCryptError):
    """Signature check was inconclusive (bad encoding, wrong algorithm, provider fault).

    A signature that simply does not match is not an error; it is a
    conclusive ``False``.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="formcrypt:signature/inconclusive",
            message=message,
            details=details or {},
        )


class FormSigningError(FormCryptError):
    """Raised when a form cannot be signed (not a form, or no name)."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="formcrypt:form/signing_failed",
            message=reason,
            details=details or {},
        )
        self.reason = reason


class VerificationFailure(str, Enum):
    """Which form verification check rejected a submission, in check order."""

    MISSING_GROUP = "missing_group"
    MISSING_FIELDS = "missing_fields"
    INVALID_EXPIRES = "invalid_expires"
    EXPIRED = "expired"
    INVALID_IP = "invalid_ip"
    IP_MISMATCH = "ip_mismatch"
    BAD_SIGNATURE = "bad_signature"


class FormVerificationError(FormCryptError):
    """Raised when a submitted form attestation fails verification.

    The failed check is kept for diagnostics only; callers must expose no
    more than a boolean to the requester.

    Attributes:
        failure: The check that failed
    """

    def __init__(
        self,
        failure: VerificationFailure,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code=f"formcrypt:form/{failure.value}",
            message=message,
            details={"failure": failure.value, **(details or {})},
        )
        self.failure = failure


class CredentialsError(FormCryptError):
    """Raised when a signer credential file is not valid JSON or lacks keys.

    Attributes:
        path: The credential file
    """

    def __init__(self, path: str, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="formcrypt:config/invalid_credentials",
            message=f"Invalid credentials in {path}: {reason}",
            details={"path": path, **(details or {})},
        )
        self.path = path
