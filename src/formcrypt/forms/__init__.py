"""Signed HTML forms.

Modules:
    attestation: The signed fields a form carries and their parsing.
    context: Request context protocol (client address, clock).
    signer: FormSigner, which signs forms and verifies submissions.
    registry: Cached signers loaded from credential files.
"""

from formcrypt.forms.attestation import (
    DEFAULT_GROUP_KEY,
    Attestation,
    canonical_message,
    nest_fields,
)
from formcrypt.forms.context import RequestContext, StaticRequestContext
from formcrypt.forms.signer import DEFAULT_FORM_TTL, FormSigner
from formcrypt.forms.registry import clear_signer_cache, load_signer

__all__ = [
    "DEFAULT_FORM_TTL",
    "DEFAULT_GROUP_KEY",
    "Attestation",
    "FormSigner",
    "RequestContext",
    "StaticRequestContext",
    "canonical_message",
    "clear_signer_cache",
    "load_signer",
    "nest_fields",
]
