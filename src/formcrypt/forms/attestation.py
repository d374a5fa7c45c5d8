"""Signed form attestation: the four fields a signed form carries.

The attestation travels inside the form under a grouping key, using the
bracket naming convention web frameworks decode into nested maps::

    contact[verification][ip]        = "203.0.113.7"
    contact[verification][expires]   = "1700003600"
    contact[verification][name]      = "contact"
    contact[verification][signature] = "<base64>"

Submitted data is attacker-controlled, so it becomes an :class:`Attestation`
only through :meth:`Attestation.parse`, which checks shape before anything
else looks at it.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from formcrypt.errors import FormVerificationError, VerificationFailure

DEFAULT_GROUP_KEY = "verification"

# Attached in this order.
FIELD_ORDER = ("ip", "expires", "name", "signature")

# Canonical decimal only, so the rebuilt message matches the submitted text.
_EXPIRES_PATTERN = re.compile(r"0|[1-9][0-9]{0,18}")
_BRACKET_KEY_PATTERN = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")


def canonical_message(name: str, ip: str, expires: int | str) -> str:
    """The signed message, ``name-ip-expires``."""
    return f"{name}-{ip}-{expires}"


class Attestation(BaseModel):
    """Identity, origin and expiry of a form, plus a signature over them."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., description="Identity of the signed form")
    ip: str = Field(..., description="Address the form was served to")
    expires: int = Field(..., ge=0, description="Unix timestamp after which the form is stale")
    signature: str = Field(..., description="Base64 signature over the canonical message")

    @property
    def message(self) -> str:
        return canonical_message(self.name, self.ip, self.expires)

    def to_fields(self, group_key: str = DEFAULT_GROUP_KEY) -> Iterator[tuple[str, str]]:
        """Yield ``(field name, value)`` pairs in attachment order."""
        values = {
            "ip": self.ip,
            "expires": str(self.expires),
            "name": self.name,
            "signature": self.signature,
        }
        for key in FIELD_ORDER:
            yield f"{self.name}[{group_key}][{key}]", values[key]

    @classmethod
    def parse(cls, fields: Mapping[str, Any], group_key: str = DEFAULT_GROUP_KEY) -> Attestation:
        """Build an attestation from a submitted (nested) field map.

        ``fields`` is the map for one form, i.e. the value found under the
        form's name in the decoded submission.

        Raises:
            FormVerificationError: MISSING_GROUP, MISSING_FIELDS or
                INVALID_EXPIRES, checked in that order.
        """
        group = fields.get(group_key) if isinstance(fields, Mapping) else None
        if not isinstance(group, Mapping):
            raise FormVerificationError(
                VerificationFailure.MISSING_GROUP,
                f"{group_key!r} is missing or not a field map",
                details={"group_key": group_key},
            )
        missing = [key for key in FIELD_ORDER if not isinstance(group.get(key), str)]
        if missing:
            raise FormVerificationError(
                VerificationFailure.MISSING_FIELDS,
                "attestation fields missing",
                details={"missing": sorted(missing)},
            )
        if not _EXPIRES_PATTERN.fullmatch(group["expires"]):
            raise FormVerificationError(
                VerificationFailure.INVALID_EXPIRES,
                "expires is not a canonical decimal timestamp",
            )
        return cls(
            name=group["name"],
            ip=group["ip"],
            expires=int(group["expires"]),
            signature=group["signature"],
        )


def _split_key(raw_key: str) -> list[str] | None:
    match = _BRACKET_KEY_PATTERN.match(raw_key)
    if match is None:
        return None
    segments = re.findall(r"\[([^\[\]]*)\]", match.group(2))
    if "" in segments:
        return None
    return [match.group(1), *segments]


def nest_fields(flat: Mapping[str, Any]) -> dict[str, Any]:
    """Decode ``form[group][key]`` style keys into nested dicts.

    Keys without brackets, or with empty brackets (``tags[]``), are kept
    as they are. A scalar never overwrites a nested map built from another key.

    Example:
        >>> nest_fields({"contact[verification][ip]": "10.0.0.5", "email": "a@b"})
        {'contact': {'verification': {'ip': '10.0.0.5'}}, 'email': 'a@b'}
    """
    nested: dict[str, Any] = {}
    for raw_key, value in flat.items():
        path = _split_key(raw_key)
        if path is None:
            if not isinstance(nested.get(raw_key), dict):
                nested[raw_key] = value
            continue
        node = nested
        for segment in path[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        if not isinstance(node.get(path[-1]), dict):
            node[path[-1]] = value
    return nested
