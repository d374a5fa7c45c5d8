"""formcrypt: RSA key pairs, password envelopes and signed HTML forms.

Example:
    >>> from formcrypt import KeyPair, envelope
    >>> pair = KeyPair.generate()
    >>> sealed = envelope.encrypt("secret", "password").unwrap()
"""

from formcrypt.crypto import envelope
from formcrypt.crypto.keypair import KeyPair
from formcrypt.crypto.keys import KeyParams, PrivateKey, PublicKey
from formcrypt.errors import FormCryptError
from formcrypt.forms import Attestation, FormSigner, load_signer
from formcrypt.result import Result

__version__ = "1.0.0"

__all__ = [
    "Attestation",
    "FormCryptError",
    "FormSigner",
    "KeyPair",
    "KeyParams",
    "PrivateKey",
    "PublicKey",
    "Result",
    "__version__",
    "envelope",
    "load_signer",
]
