"""formcrypt testing utilities.

Modules:
    fixtures: Pytest fixtures (keypair, form_signer, mock_request,
              signer_credentials) and the credentials_file context manager.
    mocks: MockRequestContext with a manual clock and submit_form, which
           reads signed markup back into posted fields.

Example:
    >>> from formcrypt.testing import MockRequestContext, submit_form
    >>> # conftest.py: pytest_plugins = ["formcrypt.testing.fixtures"]
"""

from formcrypt.testing.mocks import MockRequestContext, submit_form

__all__ = [
    "MockRequestContext",
    "submit_form",
]
