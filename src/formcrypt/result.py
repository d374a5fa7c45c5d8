"""Typed outcome of a non-fatal operation.

Encrypt, decrypt, sign and verify never raise for per-call failures. They
return a :class:`Result` carrying either the value or the
:class:`~formcrypt.errors.FormCryptError` that explains the failure, and the
failure is logged once when the result is built through :func:`report_failure`.

Example:
    >>> from formcrypt.crypto import envelope
    >>> result = envelope.decrypt(b"not-an-envelope", "password")
    >>> result.ok
    False
    >>> result.error.code
    'formcrypt:envelope/malformed'
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from formcrypt.errors import FormCryptError
from formcrypt.observability import get_logger, sanitize_for_logging

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: FormCryptError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, raising the carried error if the operation failed."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def unwrap_or(self, default: T) -> T:
        if self.error is not None:
            return default
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: FormCryptError) -> Result[Any]:
        return cls(error=error)


def report_failure(event: str, error: FormCryptError, **context: Any) -> Result[Any]:
    """Log a soft failure and wrap it in a failed :class:`Result`."""
    logger.warning(
        event,
        code=error.code,
        error=error.message,
        **sanitize_for_logging({**error.details, **context}),
    )
    return Result.failure(error)
