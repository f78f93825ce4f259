import pytest
from pydantic import ValidationError

from modules.accounts.dtos import RegisterAccountDTO, UpdateAddressDTO, clean_text

pytestmark = pytest.mark.unit


class TestCleanText:
    def test_trims_and_collapses_whitespace(self):
        assert clean_text("  1   Main \n Street ") == "1 Main Street"

    def test_truncates(self):
        assert clean_text("x" * 500) == "x" * 200
        assert clean_text("abcdef", max_length=3) == "abc"

    def test_non_string_becomes_empty(self):
        assert clean_text(42) == ""
        assert clean_text(None) == ""


class TestRegisterAccountDTO:
    def _payload(self, **overrides):
        values = {
            "name": "Jo Bloggs",
            "email": "Jo@Example.com ",
            "password": "s3cret",
            "postcode": "la9 4dt",
        }
        values.update(overrides)
        return values

    def test_normalises_fields(self):
        dto = RegisterAccountDTO(**self._payload())
        assert dto.email == "jo@example.com"
        assert dto.postcode == "LA9 4DT"
        assert dto.name == "Jo Bloggs"

    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError):
            RegisterAccountDTO(**self._payload(email="not-an-email"))

    def test_short_password_rejected(self):
        with pytest.raises(ValidationError, match="at least 6 characters"):
            RegisterAccountDTO(**self._payload(password="12345"))

    @pytest.mark.parametrize("postcode", ["", "   ", None])
    def test_postcode_required(self, postcode):
        with pytest.raises(ValidationError, match="Postcode required"):
            RegisterAccountDTO(**self._payload(postcode=postcode))

    def test_name_optional(self):
        payload = self._payload()
        payload.pop("name")
        assert RegisterAccountDTO(**payload).name == ""


class TestUpdateAddressDTO:
    def test_changes_only_include_usable_fields(self):
        dto = UpdateAddressDTO(address_line1="  2  High St ", city="", country=None)
        assert dto.changes() == {"address_line1": "2 High St"}

    def test_nothing_usable_rejected(self):
        with pytest.raises(ValidationError, match="No valid fields"):
            UpdateAddressDTO(name="   ", city=7)

    def test_empty_payload_rejected(self):
        with pytest.raises(ValidationError, match="No valid fields"):
            UpdateAddressDTO()
