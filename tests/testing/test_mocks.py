"""Tests for formcrypt.testing.mocks."""

import pytest

from formcrypt.forms import RequestContext
from formcrypt.testing import MockRequestContext, submit_form
from formcrypt.testing.mocks import DEFAULT_TEST_ADDRESS, DEFAULT_TEST_TIME


class TestMockRequestContext:
    """Tests for the controllable request context."""

    def test_defaults_and_protocol(self) -> None:
        """The mock is a RequestContext at the default address and time."""
        request = MockRequestContext()
        assert isinstance(request, RequestContext)
        assert request.remote_addr == DEFAULT_TEST_ADDRESS
        assert request.now() == DEFAULT_TEST_TIME

    def test_advance_moves_clock(self) -> None:
        """advance() adds seconds to the clock."""
        request = MockRequestContext(timestamp=100)
        request.advance(50)
        assert request.now() == 150


class TestSubmitForm:
    """Tests for reading posted fields back from markup."""

    def test_collects_named_inputs(self) -> None:
        """Named inputs are posted; unnamed ones are skipped."""
        html = (
            '<form name="a"><input name="x" value="1"><input value="skip"></form>'
            '<form name="b"><input name="y"></form>'
        )
        assert submit_form(html) == {"x": "1"}
        assert submit_form(html, "b") == {"y": ""}

    def test_missing_form_raises(self) -> None:
        """Asking for an absent form raises LookupError."""
        with pytest.raises(LookupError):
            submit_form("<p></p>", "contact")
