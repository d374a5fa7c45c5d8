"""Tests for the formcrypt error taxonomy."""

import pytest

from formcrypt.errors import (
    CredentialsError,
    FormCryptError,
    FormSigningError,
    FormVerificationError,
    InvalidKeyMaterialError,
    KeyClosedError,
    KeyFileNotFoundError,
    KeyGenerationError,
    MalformedEnvelopeError,
    ProviderError,
    SignatureVerificationError,
    UnsupportedAlgorithmError,
    VerificationFailure,
)


class TestFormCryptError:
    """Test FormCryptError base class."""

    def test_basic_error_creation(self) -> None:
        """Code, message and empty details are kept."""
        error = FormCryptError(code="formcrypt:test/error", message="Test error message")
        assert error.code == "formcrypt:test/error"
        assert error.message == "Test error message"
        assert error.details == {}
        assert str(error) == "Test error message"

    def test_to_dict(self) -> None:
        """to_dict serializes code, message and details."""
        error = FormCryptError("formcrypt:test/x", "msg", {"key": "value"})
        assert error.to_dict() == {
            "code": "formcrypt:test/x",
            "message": "msg",
            "details": {"key": "value"},
        }

    def test_details_not_shared(self) -> None:
        """Instances without details get separate dicts."""
        first = FormCryptError("c", "m")
        second = FormCryptError("c", "m")
        first.details["x"] = 1
        assert second.details == {}


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (InvalidKeyMaterialError("bad"), "formcrypt:key/invalid_material"),
        (KeyFileNotFoundError("/k.pem"), "formcrypt:key/file_not_found"),
        (KeyGenerationError("no"), "formcrypt:key/generation_failed"),
        (KeyClosedError("public"), "formcrypt:key/closed"),
        (UnsupportedAlgorithmError("hash", "md5"), "formcrypt:algorithm/unsupported"),
        (MalformedEnvelopeError("short"), "formcrypt:envelope/malformed"),
        (ProviderError("decrypt", "tag"), "formcrypt:provider/failure"),
        (SignatureVerificationError("?"), "formcrypt:signature/inconclusive"),
        (FormSigningError("no name"), "formcrypt:form/signing_failed"),
        (CredentialsError("/c.json", "bad"), "formcrypt:config/invalid_credentials"),
    ],
)
def test_error_codes(error: FormCryptError, code: str) -> None:
    """Each error class carries its own code and is a FormCryptError."""
    assert isinstance(error, FormCryptError)
    assert error.code == code


def test_key_file_not_found_is_file_not_found() -> None:
    """Plain I/O handlers also catch missing key files."""
    with pytest.raises(FileNotFoundError) as exc_info:
        raise KeyFileNotFoundError("/missing.pem")
    assert exc_info.value.message == "/missing.pem not found."
    assert exc_info.value.details == {"path": "/missing.pem"}


def test_unsupported_algorithm_sorts_supported() -> None:
    """Supported names are listed sorted."""
    error = UnsupportedAlgorithmError("cipher", "rc4", frozenset({"b", "a"}), {"extra": 1})
    assert error.message == "Unsupported cipher algorithm: rc4"
    assert error.supported == ["a", "b"]
    assert error.details == {"kind": "cipher", "name": "rc4", "supported": ["a", "b"], "extra": 1}


@pytest.mark.parametrize("failure", list(VerificationFailure))
def test_form_verification_error_codes(failure: VerificationFailure) -> None:
    """The failed check shapes the code and is kept in details."""
    error = FormVerificationError(failure, "msg", {"form": "contact"})
    assert error.code == f"formcrypt:form/{failure.value}"
    assert error.details == {"failure": failure.value, "form": "contact"}
    assert error.failure is failure
