"""Sign HTML forms and verify their submissions.

Signing attaches four hidden inputs (ip, expires, name, signature) to a
named ``<form>``. The signature covers ``name-ip-expires``, so a submission
verifies only if it comes back unaltered, before it expires, and from the
address the form was served to.

Example:
    >>> signer = FormSigner(KeyPair.generate())
    >>> request = StaticRequestContext(remote_addr="10.0.0.5")
    >>> attestation = signer.attest("contact", request).unwrap()
    >>> signer.verify({"verification": dict(ip=attestation.ip, expires=str(attestation.expires),
    ...     name="contact", signature=attestation.signature)}, request)
    True
"""

from __future__ import annotations

import ipaddress
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from bs4 import BeautifulSoup, Tag

from formcrypt.crypto.keypair import KeyPair
from formcrypt.errors import (
    FormSigningError,
    FormVerificationError,
    SignatureVerificationError,
    VerificationFailure,
)
from formcrypt.forms.attestation import DEFAULT_GROUP_KEY, Attestation, canonical_message
from formcrypt.forms.context import RequestContext
from formcrypt.observability import get_logger
from formcrypt.result import Result, report_failure

logger = get_logger(__name__)

DEFAULT_FORM_TTL = timedelta(hours=2)
HTML_PARSER = "html.parser"


class FormSigner:
    """Signs forms with a key pair's private key and verifies them with its public key.

    A signer holds no per-request state; one instance may serve concurrent
    requests.
    """

    def __init__(
        self,
        keypair: KeyPair,
        ttl: timedelta = DEFAULT_FORM_TTL,
        group_key: str = DEFAULT_GROUP_KEY,
    ) -> None:
        self.keypair = keypair
        self.ttl = ttl
        self.group_key = group_key

    def attest(
        self,
        name: str,
        request: RequestContext,
        ttl: timedelta | None = None,
    ) -> Result[Attestation]:
        """Sign ``name`` for the requester's address, valid for ``ttl``."""
        if not name:
            return report_failure(
                "form.sign.failed", FormSigningError("forms require a name in order to be signed")
            )
        ttl = self.ttl if ttl is None else ttl
        ip = request.remote_addr
        expires = request.now() + int(ttl.total_seconds())
        signed = self.keypair.sign(canonical_message(name, ip, expires))
        if not signed.ok:
            return Result.failure(signed.error)  # type: ignore[arg-type]
        return Result.success(
            Attestation(name=name, ip=ip, expires=expires, signature=signed.unwrap().decode("ascii"))
        )

    def sign_form(
        self,
        form: Tag,
        request: RequestContext,
        ttl: timedelta | None = None,
        group_key: str | None = None,
    ) -> Tag:
        """Append the attestation's hidden inputs to ``form`` and return it.

        A tag that is not a ``<form>``, or a form without a name, is logged and
        returned unchanged.
        """
        if form.name != "form":
            report_failure(
                "form.sign.failed",
                FormSigningError(f"expected a <form>, got a <{form.name}>", details={"tag": form.name}),
            )
            return form
        name = form.get("name")
        if not isinstance(name, str) or not name:
            report_failure(
                "form.sign.failed", FormSigningError("forms require a name in order to be signed")
            )
            return form
        attested = self.attest(name, request, ttl)
        if not attested.ok:
            return form
        factory = BeautifulSoup("", HTML_PARSER)
        for field_name, value in attested.unwrap().to_fields(group_key or self.group_key):
            form.append(
                factory.new_tag("input", attrs={"type": "hidden", "name": field_name, "value": value})
            )
        logger.debug("form.signed", form=name, ip=request.remote_addr)
        return form

    def sign_form_html(
        self,
        html: str,
        request: RequestContext,
        ttl: timedelta | None = None,
        group_key: str | None = None,
    ) -> str:
        """Sign every ``<form>`` in ``html`` and return the whole document.

        Markup without forms is logged and returned as given.
        """
        soup = BeautifulSoup(html, HTML_PARSER)
        forms = soup.find_all("form")
        if not forms:
            report_failure(
                "form.sign.failed", FormSigningError("markup does not contain a <form>")
            )
            return html
        for form in forms:
            self.sign_form(form, request, ttl, group_key)
        return str(soup)

    def verify_detailed(
        self,
        fields: Mapping[str, Any],
        request: RequestContext,
        group_key: str | None = None,
    ) -> Result[Attestation]:
        """Verify a submission and say which check rejected it.

        ``fields`` is the submitted map for one form (see
        :func:`~formcrypt.forms.attestation.nest_fields`). Checks run in a
        fixed order: shape, expiry, address, then the signature, so the
        signature primitive only runs for well-formed, fresh, same-origin
        submissions. The failure detail is for logs; never echo it back to the
        requester.
        """
        group_key = group_key or self.group_key
        try:
            attestation = Attestation.parse(fields, group_key)
        except FormVerificationError as exc:
            return report_failure("form.verify.failed", exc)

        if request.now() > attestation.expires:
            return report_failure(
                "form.verify.failed",
                FormVerificationError(
                    VerificationFailure.EXPIRED,
                    "form signature is expired",
                    details={"form": attestation.name, "expires": attestation.expires},
                ),
            )
        try:
            ipaddress.ip_address(attestation.ip)
        except ValueError:
            return report_failure(
                "form.verify.failed",
                FormVerificationError(
                    VerificationFailure.INVALID_IP,
                    "form verification IP is not a valid address",
                    details={"form": attestation.name},
                ),
            )
        if attestation.ip != request.remote_addr:
            return report_failure(
                "form.verify.failed",
                FormVerificationError(
                    VerificationFailure.IP_MISMATCH,
                    "form verification IP does not match user IP",
                    details={"form": attestation.name},
                ),
            )

        try:
            checked = self.keypair.verify(attestation.message, attestation.signature)
        except Exception as exc:  # noqa: BLE001
            checked = Result.failure(SignatureVerificationError(str(exc)))
        if not checked.ok or not checked.value:
            return report_failure(
                "form.verify.failed",
                FormVerificationError(
                    VerificationFailure.BAD_SIGNATURE,
                    "form signature is invalid",
                    details={
                        "form": attestation.name,
                        "inconclusive": not checked.ok,
                    },
                ),
            )
        return Result.success(attestation)

    def verify(
        self,
        fields: Mapping[str, Any],
        request: RequestContext,
        group_key: str | None = None,
    ) -> bool:
        """True only if the submission passes every check of :meth:`verify_detailed`."""
        return self.verify_detailed(fields, request, group_key).ok
