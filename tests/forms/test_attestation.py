"""Tests for the attestation model, its parse step and field naming."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from formcrypt.errors import FormVerificationError, VerificationFailure
from formcrypt.forms.attestation import Attestation, canonical_message, nest_fields

GROUP = {
    "ip": "203.0.113.7",
    "expires": "1700003600",
    "name": "contact",
    "signature": "c2ln",
}


def test_canonical_message_is_hyphen_joined() -> None:
    """The signed message is name-ip-expires."""
    assert canonical_message("contact", "203.0.113.7", 1700003600) == (
        "contact-203.0.113.7-1700003600"
    )


@given(
    name=st.text(min_size=1),
    ip=st.ip_addresses().map(str),
    expires=st.integers(min_value=0, max_value=2**40),
)
def test_message_is_stable_across_parse(name: str, ip: str, expires: int) -> None:
    """Fields parsed back from a submission rebuild the identical message."""
    attestation = Attestation(name=name, ip=ip, expires=expires, signature="x")
    fields = {"verification": {k.split("[")[-1].rstrip("]"): v for k, v in attestation.to_fields()}}
    assert Attestation.parse(fields).message == canonical_message(name, ip, expires)


def test_to_fields_order_and_names() -> None:
    """Fields are named form[group][key] and attached ip, expires, name, signature."""
    attestation = Attestation.parse({"verification": GROUP})
    assert list(attestation.to_fields("v")) == [
        ("contact[v][ip]", "203.0.113.7"),
        ("contact[v][expires]", "1700003600"),
        ("contact[v][name]", "contact"),
        ("contact[v][signature]", "c2ln"),
    ]


def test_parse_custom_group_key() -> None:
    """The grouping key is caller-chosen."""
    attestation = Attestation.parse({"sig": GROUP}, group_key="sig")
    assert attestation.expires == 1700003600


@pytest.mark.parametrize(
    ("fields", "failure"),
    [
        ({}, VerificationFailure.MISSING_GROUP),
        ({"verification": "scalar"}, VerificationFailure.MISSING_GROUP),
        ("not a map", VerificationFailure.MISSING_GROUP),
        ({"verification": {**GROUP, "signature": None}}, VerificationFailure.MISSING_FIELDS),
        (
            {"verification": {k: v for k, v in GROUP.items() if k != "ip"}},
            VerificationFailure.MISSING_FIELDS,
        ),
        ({"verification": {**GROUP, "expires": "soon"}}, VerificationFailure.INVALID_EXPIRES),
        ({"verification": {**GROUP, "expires": "-5"}}, VerificationFailure.INVALID_EXPIRES),
        ({"verification": {**GROUP, "expires": "9" * 5000}}, VerificationFailure.INVALID_EXPIRES),
        ({"verification": {**GROUP, "expires": "01700003600"}}, VerificationFailure.INVALID_EXPIRES),
        ({"verification": {**GROUP, "expires": "1700003600\n"}}, VerificationFailure.INVALID_EXPIRES),
    ],
)
def test_parse_failures_in_order(fields: object, failure: VerificationFailure) -> None:
    """Each shape problem maps to its own failure."""
    with pytest.raises(FormVerificationError) as exc_info:
        Attestation.parse(fields)  # type: ignore[arg-type]
    assert exc_info.value.failure is failure
    assert exc_info.value.code == f"formcrypt:form/{failure.value}"


def test_parse_reports_all_missing_fields() -> None:
    """Missing field names are listed."""
    with pytest.raises(FormVerificationError) as exc_info:
        Attestation.parse({"verification": {"name": "contact"}})
    assert exc_info.value.details["missing"] == ["expires", "ip", "signature"]


def test_nest_fields() -> None:
    """Bracketed keys become nested maps; other keys stay flat."""
    flat = {
        "contact[verification][ip]": "10.0.0.5",
        "contact[verification][name]": "contact",
        "contact[email]": "a@example.com",
        "tags[]": "x",
        "plain": "1",
    }
    assert nest_fields(flat) == {
        "contact": {
            "verification": {"ip": "10.0.0.5", "name": "contact"},
            "email": "a@example.com",
        },
        "tags[]": "x",
        "plain": "1",
    }


def test_nest_fields_scalar_does_not_replace_map() -> None:
    """A scalar under an existing map key is dropped."""
    flat = {"contact[verification][ip]": "10.0.0.5", "contact[verification]": "x", "contact": "y"}
    assert nest_fields(flat) == {"contact": {"verification": {"ip": "10.0.0.5"}}}


@pytest.mark.parametrize("expires", ["0", "1700003600", "9" * 19])
def test_parse_keeps_submitted_expires_text(expires: str) -> None:
    """Accepted expiry text is rebuilt byte for byte in the signed message."""
    attestation = Attestation.parse({"verification": {**GROUP, "expires": expires}})
    assert attestation.message == f"contact-203.0.113.7-{expires}"
